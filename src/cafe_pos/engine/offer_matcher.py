"""
Offer Matcher - Finds offers active at a moment and detects window overlaps.

Dates (YYYY-MM-DD) and times (HH:MM) are compared as strings; both
formats sort lexically in chronological order.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from .models import Offer


@dataclass
class MatchedOffer:
    """An offer that is active, with context."""
    offer: Offer
    match_reason: str


def _ranges_intersect(start_a: str, end_a: str, start_b: str, end_b: str) -> bool:
    # Inclusive on both ends; empty bounds are open-ended
    if start_a and end_b and start_a > end_b:
        return False
    if end_a and start_b and end_a < start_b:
        return False
    return True


def offers_overlap(candidate: Offer, other: Offer) -> bool:
    """True when both the date ranges and the time-of-day ranges intersect."""
    a, b = candidate.window, other.window
    dates = _ranges_intersect(a.start_date, a.end_date, b.start_date, b.end_date)
    times = _ranges_intersect(a.start_time, a.end_time, b.start_time, b.end_time)
    return dates and times


def find_conflicts(candidate: Offer, existing_offers: Iterable[Offer]) -> list[Offer]:
    """Existing offers conflicting with the candidate, excluding the candidate itself."""
    return [
        other for other in existing_offers
        if other.offer_id != candidate.offer_id and offers_overlap(candidate, other)
    ]


def validate_offer_non_overlap(candidate: Offer, existing_offers: Iterable[Offer]) -> bool:
    """True when the candidate conflicts with no other existing offer."""
    return not find_conflicts(candidate, existing_offers)


class OfferMatcher:
    """Matches offers against the moment an order is taken."""

    def find_active_offers(
        self,
        offers: Iterable[Offer],
        at: Optional[datetime] = None,
    ) -> list[MatchedOffer]:
        """
        Find all active offers whose window contains the given moment.

        Returns offers sorted by discount (largest first).
        """
        moment = at or datetime.now()
        today = moment.strftime('%Y-%m-%d')
        now = moment.strftime('%H:%M')

        matched = []
        for offer in offers:
            if not offer.is_active:
                continue

            window = offer.window
            reasons = []

            # Date range
            if window.start_date:
                if today < window.start_date:
                    continue
                reasons.append(f"from {window.start_date}")

            if window.end_date:
                if today > window.end_date:
                    continue
                reasons.append(f"until {window.end_date}")

            # Time of day
            if window.start_time:
                if now < window.start_time:
                    continue
                reasons.append(f"after {window.start_time}")

            if window.end_time:
                if now > window.end_time:
                    continue
                reasons.append(f"before {window.end_time}")

            matched.append(MatchedOffer(
                offer=offer,
                match_reason=", ".join(reasons) if reasons else "always",
            ))

        matched.sort(key=lambda m: m.offer.discount_percent, reverse=True)
        return matched
