"""
Data models for the pricing engine.

Uses dataclasses validated at construction, so a Cart never holds a
negative price, a zero quantity or an out-of-range offer.
"""
import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Mapping, Optional


DATE_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}$')
TIME_PATTERN = re.compile(r'^\d{2}:\d{2}$')


class InvalidInputError(ValueError):
    """Raised when a price, quantity, percentage or window is malformed."""


class ItemKind(str, Enum):
    PRODUCT = 'product'
    COMBO = 'combo'

    @classmethod
    def of(cls, item: Any) -> 'ItemKind':
        """
        Derive the kind structurally: anything bundling sub-products is a combo.

        Works for catalog records (Combo has product_ids) and plain mappings
        (a 'combo_items' key marks a combo, even when empty).
        """
        if isinstance(item, Mapping):
            if 'combo_items' in item or 'product_ids' in item:
                return cls.COMBO
            return cls.PRODUCT
        if hasattr(item, 'product_ids') or hasattr(item, 'combo_items'):
            return cls.COMBO
        return cls.PRODUCT


class OfferScope(str, Enum):
    ALL = 'all'
    PRODUCTS = 'products'
    COMBOS = 'combos'


def to_decimal(value: Any, label: str) -> Decimal:
    """Convert a price-like value to Decimal without going through float."""
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise InvalidInputError(f"{label} must be a number, got {value!r}")
    if not result.is_finite():
        raise InvalidInputError(f"{label} must be finite, got {value!r}")
    return result


def validate_quantity(quantity: Any) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidInputError(f"Quantity must be an integer, got {quantity!r}")
    if quantity < 1:
        raise InvalidInputError(f"Quantity must be at least 1, got {quantity}")
    return quantity


@dataclass(frozen=True)
class TraceStep:
    """A single step in the pricing computation trace."""
    step: str
    description: str
    value: Optional[str] = None


@dataclass
class LineItem:
    """One product or combo in the cart."""
    item_id: str
    kind: ItemKind
    unit_price: Decimal
    quantity: int = 1
    name: str = ''

    def __post_init__(self):
        self.item_id = str(self.item_id)
        try:
            self.kind = ItemKind(self.kind)
        except ValueError:
            raise InvalidInputError(f"Unknown item kind {self.kind!r}")
        self.unit_price = to_decimal(self.unit_price, 'Unit price')
        if self.unit_price < 0:
            raise InvalidInputError(f"Unit price cannot be negative, got {self.unit_price}")
        self.quantity = validate_quantity(self.quantity)

    @property
    def key(self) -> tuple[str, ItemKind]:
        return (self.item_id, self.kind)

    @property
    def extended_price(self) -> Decimal:
        return self.unit_price * self.quantity

    @classmethod
    def from_catalog(cls, item: Any, quantity: int = 1) -> 'LineItem':
        """Build a line item from a catalog record or a mapping with id/name/price."""
        if isinstance(item, Mapping):
            item_id = item.get('id', item.get('item_id'))
            name = item.get('name', '')
            price = item.get('price', item.get('unit_price'))
        else:
            item_id = item.item_id
            name = item.name
            price = item.price
        if item_id is None:
            raise InvalidInputError("Catalog item has no id")
        return cls(item_id=item_id, kind=ItemKind.of(item), unit_price=price, quantity=quantity, name=name)

    def to_dict(self) -> dict:
        return {
            'item_id': self.item_id,
            'kind': self.kind.value,
            'name': self.name,
            'unit_price': str(self.unit_price),
            'quantity': self.quantity,
        }

    @classmethod
    def from_dict(cls, data: Mapping) -> 'LineItem':
        return cls(
            item_id=data['item_id'],
            kind=data['kind'],
            unit_price=data['unit_price'],
            quantity=int(data['quantity']),
            name=data.get('name', ''),
        )


@dataclass(frozen=True)
class ActiveWindow:
    """
    Date and time-of-day window of an offer.

    Empty fields are open-ended. Dates are YYYY-MM-DD and times HH:MM, so
    plain string comparison orders them chronologically.
    """
    start_date: str = ''
    end_date: str = ''
    start_time: str = ''
    end_time: str = ''

    def __post_init__(self):
        for label in ('start_date', 'end_date'):
            value = getattr(self, label)
            if value and not DATE_PATTERN.match(value):
                raise InvalidInputError(f"{label} must be YYYY-MM-DD, got {value!r}")
        for label in ('start_time', 'end_time'):
            value = getattr(self, label)
            if value and not TIME_PATTERN.match(value):
                raise InvalidInputError(f"{label} must be HH:MM, got {value!r}")


@dataclass
class Offer:
    """A time-windowed percentage discount."""
    offer_id: str
    name: str
    discount_percent: Decimal
    window: ActiveWindow = field(default_factory=ActiveWindow)
    scope: OfferScope = OfferScope.ALL
    is_active: bool = True
    org_id: Optional[str] = None

    def __post_init__(self):
        self.offer_id = str(self.offer_id)
        self.discount_percent = to_decimal(self.discount_percent, 'Discount percent')
        if not Decimal(0) <= self.discount_percent <= Decimal(100):
            raise InvalidInputError(
                f"Discount percent must be between 0 and 100, got {self.discount_percent}"
            )
        try:
            self.scope = OfferScope(self.scope or OfferScope.ALL)
        except ValueError:
            raise InvalidInputError(f"Unknown offer scope {self.scope!r}")

    def to_dict(self) -> dict:
        return {
            'offer_id': self.offer_id,
            'name': self.name,
            'discount_percent': str(self.discount_percent),
            'start_date': self.window.start_date,
            'end_date': self.window.end_date,
            'start_time': self.window.start_time,
            'end_time': self.window.end_time,
            'scope': self.scope.value,
            'is_active': self.is_active,
            'org_id': self.org_id,
        }

    @classmethod
    def from_dict(cls, data: Mapping) -> 'Offer':
        """Build from a stored row; accepts both 'discount_percent' and 'discount_percentage'."""
        percent = data.get('discount_percent')
        if percent is None or percent == '':
            percent = data.get('discount_percentage', 0)
        is_active = data.get('is_active', True)
        if isinstance(is_active, str):
            is_active = is_active.lower() in ('true', '1', 'yes')
        return cls(
            offer_id=data.get('offer_id', data.get('id', '')),
            name=data.get('name', ''),
            discount_percent=percent,
            window=ActiveWindow(
                start_date=data.get('start_date') or '',
                end_date=data.get('end_date') or '',
                start_time=data.get('start_time') or '',
                end_time=data.get('end_time') or '',
            ),
            scope=data.get('scope', data.get('applies_to')) or OfferScope.ALL,
            is_active=bool(is_active),
            org_id=data.get('org_id', data.get('restaurant_id')) or None,
        )


@dataclass
class Cart:
    """
    In-memory cart for one order-entry session.

    Line items are unique by (item_id, kind); adding an existing item
    merges into its quantity.
    """
    items: list[LineItem] = field(default_factory=list)
    selected_offer_ids: list[str] = field(default_factory=list)
    quick_discount: bool = False

    def __len__(self) -> int:
        return len(self.items)

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    def find(self, item_id: str, kind: ItemKind) -> Optional[LineItem]:
        key = (str(item_id), ItemKind(kind))
        for item in self.items:
            if item.key == key:
                return item
        return None

    def clear(self):
        self.items = []
        self.selected_offer_ids = []
        self.quick_discount = False

    def snapshot(self) -> dict:
        """JSON-safe copy of the cart, used for drafts and sales."""
        return {
            'items': [item.to_dict() for item in self.items],
            'selected_offer_ids': list(self.selected_offer_ids),
            'quick_discount': self.quick_discount,
        }

    @classmethod
    def from_snapshot(cls, data: Mapping) -> 'Cart':
        cart = cls(
            items=[LineItem.from_dict(row) for row in data.get('items', [])],
            selected_offer_ids=[str(o) for o in data.get('selected_offer_ids', [])],
            quick_discount=bool(data.get('quick_discount', False)),
        )
        keys = [item.key for item in cart.items]
        if len(keys) != len(set(keys)):
            raise InvalidInputError("Cart snapshot contains duplicate line items")
        return cart


@dataclass
class PricingResult:
    """Complete result of a pricing computation."""
    subtotal: Decimal
    discount_total: Decimal
    total: Decimal
    contributions: dict[str, Decimal] = field(default_factory=dict)
    trace: list[TraceStep] = field(default_factory=list)

    def add_trace(self, step: str, description: str, value: str = None):
        """Add a step to the result-level trace."""
        self.trace.append(TraceStep(step=step, description=description, value=value))

    def get_trace_text(self) -> str:
        """Get human-readable trace as formatted text."""
        lines = []
        for t in self.trace:
            if t.value:
                lines.append(f"• {t.step}: {t.description} = {t.value}")
            else:
                lines.append(f"• {t.step}: {t.description}")
        return "\n".join(lines)

    def to_dict(self) -> dict:
        return {
            'subtotal': str(self.subtotal),
            'discount_total': str(self.discount_total),
            'total': str(self.total),
            'contributions': {k: str(v) for k, v in self.contributions.items()},
        }
