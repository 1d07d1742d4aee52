"""
Pricing Engine - subtotal, discount composition and total for a cart.

Discounts are additive: the quick discount and every selected offer are
each computed against the full subtotal, never against a running total.
By default the discount is not capped and the total may go negative; the
clamp_total option caps the discount at the subtotal instead.
"""
from decimal import Decimal
from typing import Iterable, Optional

from .models import Cart, ItemKind, Offer, OfferScope, PricingResult


HUNDRED = Decimal(100)
ZERO = Decimal(0)


class PricingEngine:
    """
    Core pricing engine for order entry.

    Computation order:
    1. Subtotal = sum of unit price x quantity (full precision)
    2. Quick discount (if enabled) = subtotal x quick_discount_percent / 100
    3. Each selected offer = subtotal x offer percent / 100
    4. Discount = sum of 2 and 3
    5. Total = subtotal - discount (floored at zero only when clamp_total)
    """

    def __init__(
        self,
        quick_discount_percent: Decimal = Decimal('10'),
        clamp_total: bool = False,
        enforce_offer_scope: bool = False,
    ):
        self.quick_discount_percent = Decimal(quick_discount_percent)
        self.clamp_total = clamp_total
        self.enforce_offer_scope = enforce_offer_scope

    @classmethod
    def from_settings(cls, settings) -> 'PricingEngine':
        return cls(
            quick_discount_percent=settings.quick_discount_percent,
            clamp_total=settings.clamp_total,
            enforce_offer_scope=settings.enforce_offer_scope,
        )

    def compute_subtotal(self, cart: Cart) -> Decimal:
        return sum((item.extended_price for item in cart.items), ZERO)

    def _scoped_subtotal(self, cart: Cart, offer: Offer) -> Decimal:
        if not self.enforce_offer_scope or offer.scope == OfferScope.ALL:
            return self.compute_subtotal(cart)
        kind = ItemKind.PRODUCT if offer.scope == OfferScope.PRODUCTS else ItemKind.COMBO
        return sum((item.extended_price for item in cart.items if item.kind == kind), ZERO)

    def discount_contributions(
        self,
        cart: Cart,
        offers: Iterable[Offer],
        quick_discount_enabled: Optional[bool] = None,
    ) -> dict[str, Decimal]:
        """
        Each discount source keyed by label, in application order.

        Selected offer ids with no matching offer are skipped.
        """
        if quick_discount_enabled is None:
            quick_discount_enabled = cart.quick_discount

        subtotal = self.compute_subtotal(cart)
        contributions = {}

        if quick_discount_enabled:
            contributions['quick_discount'] = subtotal * self.quick_discount_percent / HUNDRED

        offers_by_id = {offer.offer_id: offer for offer in offers}
        for offer_id in cart.selected_offer_ids:
            offer = offers_by_id.get(offer_id)
            if offer is None:
                continue
            base = self._scoped_subtotal(cart, offer)
            contributions[f"offer:{offer.offer_id}"] = base * offer.discount_percent / HUNDRED

        return contributions

    def compute_discount(
        self,
        cart: Cart,
        offers: Iterable[Offer],
        quick_discount_enabled: Optional[bool] = None,
    ) -> Decimal:
        discount = sum(self.discount_contributions(cart, offers, quick_discount_enabled).values(), ZERO)
        if self.clamp_total:
            discount = min(discount, self.compute_subtotal(cart))
        return discount

    def compute_total(
        self,
        cart: Cart,
        offers: Iterable[Offer],
        quick_discount_enabled: Optional[bool] = None,
    ) -> Decimal:
        total = self.compute_subtotal(cart) - self.compute_discount(cart, offers, quick_discount_enabled)
        if self.clamp_total:
            total = max(total, ZERO)
        return total

    def price(
        self,
        cart: Cart,
        offers: Iterable[Offer],
        quick_discount_enabled: Optional[bool] = None,
    ) -> PricingResult:
        """
        Price the cart with full traceability.

        Returns PricingResult with subtotal, discount, total, the
        per-source breakdown and a trace of each step.
        """
        offers = list(offers)
        subtotal = self.compute_subtotal(cart)
        contributions = self.discount_contributions(cart, offers, quick_discount_enabled)
        raw_discount = sum(contributions.values(), ZERO)
        discount = self.compute_discount(cart, offers, quick_discount_enabled)
        total = self.compute_total(cart, offers, quick_discount_enabled)

        result = PricingResult(
            subtotal=subtotal,
            discount_total=discount,
            total=total,
            contributions=contributions,
        )

        for item in cart.items:
            result.add_trace(
                "Line",
                f"{item.name or item.item_id} ({item.kind.value}) {item.quantity} × ${item.unit_price}",
                f"${item.extended_price}",
            )
        result.add_trace("Subtotal", f"{len(cart.items)} line items", f"${subtotal}")

        offer_names = {offer.offer_id: offer.name for offer in offers}
        for label, amount in contributions.items():
            if label == 'quick_discount':
                result.add_trace("Discount", f"Quick discount {self.quick_discount_percent}%", f"${amount}")
            else:
                offer_id = label.split(':', 1)[1]
                result.add_trace("Discount", f"Offer {offer_names.get(offer_id, offer_id)}", f"${amount}")

        if discount != raw_discount:
            result.add_trace("Clamp", f"Discount ${raw_discount} capped at subtotal", f"${discount}")

        result.add_trace("Total", "Subtotal minus discount", f"${total}")
        return result
