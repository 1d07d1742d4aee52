"""
Offers Service - CRUD for offers with validation.

An offer whose date range and time-of-day range both intersect another
offer's is rejected before anything is written.
"""
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Optional

from ..data.service import DataService
from ..engine.models import ActiveWindow, InvalidInputError, Offer
from ..engine.offer_matcher import find_conflicts
from .session import Session


logger = logging.getLogger(__name__)


class OfferConflictError(ValueError):
    """The offer window overlaps another offer of the same restaurant."""


@dataclass
class ValidationResult:
    """Result of offer validation."""
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    conflicts: list[str] = field(default_factory=list)


class OffersService:
    """Service for managing offers of the session's restaurant."""

    def __init__(self, data_service: DataService, session: Session):
        self.data_service = data_service
        self.session = session

    def list_offers(self, include_inactive: bool = True) -> list[Offer]:
        """List all offers for the restaurant."""
        return self.data_service.list_offers(self.session.org_id, active_only=not include_inactive)

    def get_offer(self, offer_id: str) -> Optional[Offer]:
        """Get a single offer by ID."""
        for offer in self.list_offers():
            if offer.offer_id == offer_id:
                return offer
        return None

    def validate_offer(self, offer: Offer) -> ValidationResult:
        """Validate an offer before saving. The offer itself is excluded from the overlap check."""
        result = ValidationResult(valid=True)

        if not offer.name or not offer.name.strip():
            result.errors.append("Name is required")
            result.valid = False

        window = offer.window
        for label in ('start_date', 'end_date', 'start_time', 'end_time'):
            if not getattr(window, label):
                result.errors.append(f"{label.replace('_', ' ').capitalize()} is required")
                result.valid = False

        if window.start_date and window.end_date and window.start_date > window.end_date:
            result.errors.append("Start date must be before end date")
            result.valid = False

        if window.start_time and window.end_time and window.start_time > window.end_time:
            result.errors.append("Start time must be before end time")
            result.valid = False

        # Warn if dates are in the past
        today = datetime.now().strftime('%Y-%m-%d')
        if window.end_date and window.end_date < today:
            result.warnings.append("Offer has expired (end date is in the past)")

        if result.valid:
            for other in find_conflicts(offer, self.list_offers()):
                result.conflicts.append(other.offer_id)
                result.errors.append(
                    f"Offer overlaps/conflicts with existing offer '{other.name}' "
                    f"({other.window.start_date}..{other.window.end_date}, "
                    f"{other.window.start_time}-{other.window.end_time})"
                )
                result.valid = False

        return result

    def _raise_if_invalid(self, validation: ValidationResult):
        if validation.valid:
            return
        message = "; ".join(validation.errors)
        if validation.conflicts:
            raise OfferConflictError(message)
        raise ValueError(message)

    def create_offer(self, offer: Offer) -> Offer:
        """Create a new offer; nothing is written if it is invalid or overlaps."""
        self.session.require('admin')
        offer = replace(offer, org_id=self.session.org_id)
        self._raise_if_invalid(self.validate_offer(offer))
        created = self.data_service.create_offer(offer)
        logger.info("Created offer %s (%s%%)", created.offer_id, created.discount_percent)
        return created

    def update_offer(self, offer_id: str, updates: dict) -> Offer:
        """Update an existing offer; the edited offer does not conflict with itself."""
        self.session.require('admin')
        current = self.get_offer(offer_id)
        if current is None:
            raise KeyError(f"Offer with ID '{offer_id}' not found")

        fields = current.to_dict()
        for key, value in updates.items():
            if key in fields and key not in ('offer_id', 'org_id'):
                fields[key] = value
        try:
            updated = Offer.from_dict(fields)
        except InvalidInputError as e:
            raise ValueError(str(e)) from e

        self._raise_if_invalid(self.validate_offer(updated))
        saved = self.data_service.update_offer(updated)
        logger.info("Updated offer %s", offer_id)
        return saved

    def delete_offer(self, offer_id: str) -> bool:
        """Delete an offer."""
        self.session.require('admin')
        self.data_service.delete_offer(self.session.org_id, offer_id)
        logger.info("Deleted offer %s", offer_id)
        return True

    def get_stats(self) -> dict:
        """Get statistics about offers."""
        offers = self.list_offers()
        today = datetime.now().strftime('%Y-%m-%d')

        active = [o for o in offers if o.is_active]
        expired = [o for o in offers if o.window.end_date and o.window.end_date < today]
        by_scope = {}
        for o in offers:
            by_scope[o.scope.value] = by_scope.get(o.scope.value, 0) + 1

        return {
            'total': len(offers),
            'active': len(active),
            'inactive': len(offers) - len(active),
            'expired': len(expired),
            'by_scope': by_scope,
        }


def build_offer(
    name: str,
    discount_percent,
    start_date: str,
    end_date: str,
    start_time: str,
    end_time: str,
    scope: str = 'all',
    offer_id: str = '',
    is_active: bool = True,
) -> Offer:
    """Build an Offer from form values."""
    return Offer(
        offer_id=offer_id,
        name=name,
        discount_percent=discount_percent,
        window=ActiveWindow(start_date, end_date, start_time, end_time),
        scope=scope,
        is_active=is_active,
    )
