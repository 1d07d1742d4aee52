"""
Order Entry - the cart, pricing and checkout flow for one session.

State machine:
    EMPTY -> BUILDING -> CHECKOUT_PENDING -> COMPLETED (cart cleared, back to EMPTY)
                      <- (cancel)
Drafts can be saved while BUILDING; loading one replaces the cart.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from ..data.records import Draft, PAYMENT_METHODS, SaleLine, SaleRecord
from ..data.service import DataService
from ..engine.cart import merge_or_add_line_item, remove_line_item, set_line_item_quantity, toggle_offer
from ..engine.models import Cart, ItemKind, Offer, PricingResult
from ..engine.pricing_engine import PricingEngine
from .results import ServiceResult, call_service
from .session import Session


logger = logging.getLogger(__name__)


class OrderState(str, Enum):
    EMPTY = 'empty'
    BUILDING = 'building'
    CHECKOUT_PENDING = 'checkout_pending'
    COMPLETED = 'completed'


class OrderStateError(RuntimeError):
    """An operation is not allowed in the current order state."""


@dataclass
class CheckoutDetails:
    customer_name: str
    customer_phone: str
    payment_method: str = 'cash'

    def validate(self) -> list[str]:
        errors = []
        if not self.customer_name or not self.customer_name.strip():
            errors.append("Customer name is required")
        if not self.customer_phone or not self.customer_phone.strip():
            errors.append("Customer phone is required")
        if self.payment_method not in PAYMENT_METHODS:
            errors.append(f"Payment method must be one of {', '.join(PAYMENT_METHODS)}")
        return errors


class OrderEntry:
    """
    Owns the cart of one order-entry session.

    Menu data is loaded once through load_menu(); pricing is recomputed on
    demand from the in-memory cart and offers.
    """

    def __init__(self, data_service: DataService, session: Session, engine: Optional[PricingEngine] = None):
        self.data_service = data_service
        self.session = session
        self.engine = engine or PricingEngine()
        self.cart = Cart()
        self.state = OrderState.EMPTY
        self.products = []
        self.combos = []
        self.offers: list[Offer] = []

    # Menu

    def load_menu(self) -> ServiceResult:
        """
        Load products, combos and active offers for the session's restaurant.

        Nothing is replaced unless all three loads succeed.
        """
        org_id = self.session.org_id
        loaded = {}
        for action, fn, kwargs in (
            ("load products", self.data_service.list_products, {}),
            ("load combos", self.data_service.list_combos, {}),
            ("load offers", self.data_service.list_offers, {'active_only': True}),
        ):
            result = call_service(action, fn, org_id, **kwargs)
            if not result.ok:
                return result
            loaded[action] = result.data

        self.products = loaded["load products"]
        self.combos = loaded["load combos"]
        self.offers = loaded["load offers"]
        return ServiceResult.success({
            'products': len(self.products),
            'combos': len(self.combos),
            'offers': len(self.offers),
        })

    def refresh_menu(self) -> ServiceResult:
        """Reload menu and offers after catalog edits; cart and state are kept."""
        result = self.load_menu()
        if result.ok:
            logger.debug("Menu refreshed for %s: %s", self.session.org_id, result.data)
        return result

    def search(self, term: str = '') -> list:
        """Products and combos whose name contains term (case-insensitive)."""
        term = (term or '').lower()
        return [item for item in [*self.products, *self.combos] if term in item.name.lower()]

    def find_menu_item(self, item_id: str, kind: ItemKind) -> Any:
        pool = self.products if ItemKind(kind) == ItemKind.PRODUCT else self.combos
        for item in pool:
            if item.item_id == str(item_id):
                return item
        raise KeyError(f"No {ItemKind(kind).value} '{item_id}' on the menu")

    # Cart mutations

    def _require_building(self, action: str):
        if self.state == OrderState.CHECKOUT_PENDING:
            raise OrderStateError(f"Cannot {action} while checkout is pending")

    def _sync_state(self):
        self.state = OrderState.BUILDING if not self.cart.is_empty else OrderState.EMPTY

    def add_item(self, item: Any, quantity: Optional[int] = None) -> Cart:
        self._require_building("add items")
        merge_or_add_line_item(self.cart, item, quantity)
        self._sync_state()
        return self.cart

    def update_quantity(self, item_id: str, kind: ItemKind, new_quantity: int) -> Cart:
        self._require_building("change quantities")
        set_line_item_quantity(self.cart, item_id, kind, new_quantity)
        self._sync_state()
        return self.cart

    def remove_item(self, item_id: str, kind: ItemKind) -> Cart:
        self._require_building("remove items")
        remove_line_item(self.cart, item_id, kind)
        self._sync_state()
        return self.cart

    def toggle_offer(self, offer_id: str) -> Cart:
        self._require_building("change offers")
        toggle_offer(self.cart, offer_id)
        return self.cart

    def toggle_quick_discount(self) -> bool:
        self._require_building("change the quick discount")
        self.cart.quick_discount = not self.cart.quick_discount
        return self.cart.quick_discount

    def clear(self):
        self._require_building("clear the cart")
        self.cart.clear()
        self.state = OrderState.EMPTY

    def pricing(self) -> PricingResult:
        return self.engine.price(self.cart, self.offers)

    # Checkout

    def begin_checkout(self):
        if self.state != OrderState.BUILDING:
            raise OrderStateError("Checkout needs a cart with at least one item")
        self.state = OrderState.CHECKOUT_PENDING

    def cancel_checkout(self):
        if self.state != OrderState.CHECKOUT_PENDING:
            raise OrderStateError("No checkout in progress")
        self.state = OrderState.BUILDING

    def build_sale(self, details: CheckoutDetails) -> SaleRecord:
        """Frozen record of the current cart, priced."""
        result = self.pricing()
        costs = {(item.item_id, ItemKind.of(item)): item.making_cost for item in [*self.products, *self.combos]}
        return SaleRecord(
            org_id=self.session.org_id,
            customer_name=details.customer_name.strip(),
            customer_phone=details.customer_phone.strip(),
            payment_method=details.payment_method,
            subtotal=result.subtotal,
            discount_amount=result.discount_total,
            total_amount=result.total,
            applied_offers=list(self.cart.selected_offer_ids),
            quick_discount=self.cart.quick_discount,
            lines=[
                SaleLine(
                    item_id=item.item_id,
                    name=item.name,
                    kind=item.kind.value,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    total_price=item.extended_price,
                    making_cost=costs.get(item.key, Decimal(0)),
                )
                for item in self.cart.items
            ],
            processed_by=self.session.user_id,
        )

    def complete_checkout(self, details: CheckoutDetails) -> ServiceResult:
        """
        Commit the sale and reset the cart.

        On a storage failure the cart is kept and checkout stays pending.
        """
        if self.state != OrderState.CHECKOUT_PENDING:
            raise OrderStateError("Checkout has not been started")

        errors = details.validate()
        if errors:
            return ServiceResult.failure("; ".join(errors))

        result = call_service("complete order", self.data_service.commit_sale, self.build_sale(details))
        if not result.ok:
            return result

        logger.info("Order %s completed: total %s", result.data.sale_id, result.data.total_amount)
        self.state = OrderState.COMPLETED
        # The quick discount toggle carries over to the next order
        self.cart.items = []
        self.cart.selected_offer_ids = []
        self.state = OrderState.EMPTY
        return result

    # Drafts

    def save_draft(self, name: str = '') -> ServiceResult:
        if self.state != OrderState.BUILDING:
            raise OrderStateError("Only a cart being built can be saved as a draft")
        draft = Draft(
            org_id=self.session.org_id,
            name=name or f"Draft {datetime.now().strftime('%H:%M')}",
            cart=self.cart.snapshot(),
        )
        return call_service("save draft", self.data_service.save_draft, draft)

    def list_drafts(self) -> ServiceResult:
        return call_service("load drafts", self.data_service.load_drafts, self.session.org_id)

    def load_draft(self, draft: Draft) -> Cart:
        """Replace the current cart wholesale with the draft's cart."""
        self._require_building("load a draft")
        self.cart = Cart.from_snapshot(draft.cart)
        self.state = OrderState.BUILDING
        return self.cart

    def delete_draft(self, draft_id: str) -> ServiceResult:
        return call_service("delete draft", self.data_service.delete_draft, self.session.org_id, draft_id)
