"""
Catalog and persistence records exchanged with the data services.
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional

from ..engine.models import InvalidInputError, to_decimal


PAYMENT_METHODS = ('cash', 'card', 'upi')


@dataclass
class Product:
    """A single menu product."""
    product_id: str
    org_id: str
    name: str
    price: Decimal
    making_cost: Decimal = Decimal(0)
    is_active: bool = True

    def __post_init__(self):
        self.product_id = str(self.product_id)
        self.price = to_decimal(self.price, 'Price')
        self.making_cost = to_decimal(self.making_cost, 'Making cost')
        if self.price < 0:
            raise InvalidInputError(f"Price cannot be negative, got {self.price}")
        if self.making_cost < 0:
            raise InvalidInputError(f"Making cost cannot be negative, got {self.making_cost}")

    @property
    def item_id(self) -> str:
        return self.product_id

    @property
    def profit(self) -> Decimal:
        return self.price - self.making_cost

    def to_row(self) -> dict:
        return {
            'product_id': self.product_id,
            'org_id': self.org_id,
            'name': self.name,
            'price': str(self.price),
            'making_cost': str(self.making_cost),
            'is_active': self.is_active,
        }


@dataclass
class Combo:
    """A bundle of products sold as one line item."""
    combo_id: str
    org_id: str
    name: str
    price: Decimal
    making_cost: Decimal = Decimal(0)
    product_ids: list[str] = field(default_factory=list)
    is_active: bool = True

    def __post_init__(self):
        self.combo_id = str(self.combo_id)
        self.price = to_decimal(self.price, 'Price')
        self.making_cost = to_decimal(self.making_cost, 'Making cost')
        if self.price < 0:
            raise InvalidInputError(f"Price cannot be negative, got {self.price}")
        self.product_ids = [str(p) for p in self.product_ids]

    @property
    def item_id(self) -> str:
        return self.combo_id

    @property
    def profit(self) -> Decimal:
        return self.price - self.making_cost

    def to_row(self) -> dict:
        return {
            'combo_id': self.combo_id,
            'org_id': self.org_id,
            'name': self.name,
            'price': str(self.price),
            'making_cost': str(self.making_cost),
            'product_ids': ','.join(self.product_ids),
            'is_active': self.is_active,
        }


@dataclass
class Draft:
    """A named snapshot of an in-progress cart."""
    org_id: str
    cart: dict
    name: str = ''
    draft_id: Optional[str] = None
    status: str = 'draft'
    created_at: str = field(default_factory=lambda: datetime.now().isoformat(timespec='seconds'))


@dataclass
class SaleLine:
    item_id: str
    name: str
    kind: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    making_cost: Decimal = Decimal(0)

    @property
    def total_cost(self) -> Decimal:
        return self.making_cost * self.quantity


@dataclass
class SaleRecord:
    """A finalized sale."""
    org_id: str
    customer_name: str
    customer_phone: str
    payment_method: str
    subtotal: Decimal
    discount_amount: Decimal
    total_amount: Decimal
    applied_offers: list[str] = field(default_factory=list)
    quick_discount: bool = False
    lines: list[SaleLine] = field(default_factory=list)
    sale_id: Optional[str] = None
    created_at: str = field(default_factory=lambda: datetime.now().isoformat(timespec='seconds'))
    processed_by: str = ''

    def __post_init__(self):
        if self.payment_method not in PAYMENT_METHODS:
            raise InvalidInputError(
                f"Payment method must be one of {', '.join(PAYMENT_METHODS)}, got {self.payment_method!r}"
            )

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    @property
    def total_cost(self) -> Decimal:
        return sum((line.total_cost for line in self.lines), Decimal(0))

    @property
    def profit(self) -> Decimal:
        """Amount paid minus the making cost of everything sold."""
        return self.total_amount - self.total_cost


def created_within(created_at: str, start: Optional[str] = None, end: Optional[str] = None) -> bool:
    """Inclusive ISO timestamp range check; a date-only end covers the whole day."""
    if start and created_at < start:
        return False
    if end and created_at[:len(end)] > end:
        return False
    return True
