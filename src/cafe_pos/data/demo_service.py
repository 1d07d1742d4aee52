"""
Demo Data Service - in-memory store seeded with a sample cafe.

Used when Settings.data_mode is "demo" and in tests. Nothing survives the
process.
"""
import copy
import logging
import uuid
from dataclasses import replace
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from ..engine.models import ActiveWindow, Offer, OfferScope
from .records import Combo, Draft, Product, SaleLine, SaleRecord, created_within
from .service import DataService, NotFoundError


logger = logging.getLogger(__name__)

DEMO_ORG_ID = 'demo-restaurant'


def _new_id() -> str:
    return uuid.uuid4().hex[:12]


def _owned(rows: dict, org_id: str, row_id: str, label: str):
    """The row with row_id if it belongs to org_id."""
    row = rows.get(row_id)
    if row is None or row.org_id != org_id:
        raise NotFoundError(f"{label} '{row_id}' not found")
    return row


def demo_products(org_id: str = DEMO_ORG_ID) -> list[Product]:
    return [
        Product('1', org_id, 'Cappuccino', Decimal('4.50'), Decimal('1.20')),
        Product('2', org_id, 'Espresso', Decimal('3.00'), Decimal('0.80')),
        Product('3', org_id, 'Latte', Decimal('4.80'), Decimal('1.50')),
        Product('4', org_id, 'Americano', Decimal('3.50'), Decimal('0.90')),
        Product('5', org_id, 'Mocha', Decimal('5.20'), Decimal('1.80')),
    ]


def demo_combos(org_id: str = DEMO_ORG_ID) -> list[Combo]:
    return [
        Combo('1', org_id, 'Coffee + Pastry', Decimal('7.50'), Decimal('2.50'), product_ids=['1']),
        Combo('2', org_id, 'Breakfast Set', Decimal('12.00'), Decimal('4.00'), product_ids=['3', '4']),
    ]


def demo_offers(org_id: str = DEMO_ORG_ID) -> list[Offer]:
    return [
        Offer('1', 'Happy Hour', Decimal('10'),
              ActiveWindow('2024-01-01', '2030-12-31', '15:00', '17:00'),
              OfferScope.ALL, org_id=org_id),
        Offer('2', 'Student Discount', Decimal('15'),
              ActiveWindow('2024-01-01', '2030-12-31', '08:00', '11:00'),
              OfferScope.ALL, org_id=org_id),
    ]


def demo_sales(org_id: str = DEMO_ORG_ID) -> list[SaleRecord]:
    now = datetime.now()
    rows = [
        ('John Doe', 'card', Decimal('45.50'), now),
        ('Jane Smith', 'cash', Decimal('32.80'), now - timedelta(days=1)),
        ('Mike Johnson', 'upi', Decimal('28.90'), now - timedelta(days=2)),
    ]
    return [
        SaleRecord(
            org_id=org_id,
            customer_name=name,
            customer_phone='',
            payment_method=method,
            subtotal=total,
            discount_amount=Decimal(0),
            total_amount=total,
            lines=[SaleLine('1', 'Cappuccino', 'product', 1, total, total, Decimal('1.20'))],
            sale_id=str(i + 1),
            created_at=when.isoformat(timespec='seconds'),
            processed_by='demo-user',
        )
        for i, (name, method, total, when) in enumerate(rows)
    ]


class DemoDataService(DataService):
    """In-memory implementation of the DataService contract."""

    def __init__(self, org_id: str = DEMO_ORG_ID, seed: bool = True):
        self.orgs = [{'id': org_id, 'name': 'Demo Cafe'}]
        self.products: dict[str, Product] = {}
        self.combos: dict[str, Combo] = {}
        self.offers: dict[str, Offer] = {}
        self.drafts: dict[str, Draft] = {}
        self.sales: list[SaleRecord] = []

        if seed:
            self.products = {p.product_id: p for p in demo_products(org_id)}
            self.combos = {c.combo_id: c for c in demo_combos(org_id)}
            self.offers = {o.offer_id: o for o in demo_offers(org_id)}
            self.sales = demo_sales(org_id)
            logger.info("Demo data service seeded for %s", org_id)

    # Catalog

    def list_products(self, org_id: str) -> list[Product]:
        products = [p for p in self.products.values() if p.org_id == org_id]
        return sorted(products, key=lambda p: p.name)

    def add_product(self, product: Product) -> Product:
        if not product.product_id or product.product_id in self.products:
            product = replace(product, product_id=_new_id())
        self.products[product.product_id] = product
        return product

    def update_product(self, org_id: str, product_id: str, updates: dict) -> Product:
        current = _owned(self.products, org_id, product_id, 'Product')
        updated = replace(current, **updates)
        self.products[product_id] = updated
        return updated

    def delete_product(self, org_id: str, product_id: str) -> None:
        _owned(self.products, org_id, product_id, 'Product')
        del self.products[product_id]

    def list_combos(self, org_id: str) -> list[Combo]:
        return [c for c in self.combos.values() if c.org_id == org_id]

    # Offers

    def list_offers(self, org_id: str, active_only: bool = False) -> list[Offer]:
        return [
            o for o in self.offers.values()
            if o.org_id == org_id and (o.is_active or not active_only)
        ]

    def create_offer(self, offer: Offer) -> Offer:
        if not offer.offer_id or offer.offer_id in self.offers:
            offer = replace(offer, offer_id=_new_id())
        self.offers[offer.offer_id] = offer
        return offer

    def update_offer(self, offer: Offer) -> Offer:
        _owned(self.offers, offer.org_id, offer.offer_id, 'Offer')
        self.offers[offer.offer_id] = offer
        return offer

    def delete_offer(self, org_id: str, offer_id: str) -> None:
        _owned(self.offers, org_id, offer_id, 'Offer')
        del self.offers[offer_id]

    # Drafts and sales

    def save_draft(self, draft: Draft) -> str:
        draft_id = draft.draft_id or _new_id()
        if draft_id in self.drafts:
            _owned(self.drafts, draft.org_id, draft_id, 'Draft')
        self.drafts[draft_id] = replace(draft, draft_id=draft_id, cart=copy.deepcopy(draft.cart))
        return draft_id

    def load_drafts(self, org_id: str) -> list[Draft]:
        return [
            replace(d, cart=copy.deepcopy(d.cart))
            for d in self.drafts.values()
            if d.org_id == org_id and d.status == 'draft'
        ]

    def delete_draft(self, org_id: str, draft_id: str) -> None:
        _owned(self.drafts, org_id, draft_id, 'Draft')
        del self.drafts[draft_id]

    def commit_sale(self, sale: SaleRecord) -> SaleRecord:
        sale = replace(sale, sale_id=sale.sale_id or _new_id())
        self.sales.append(sale)
        return sale

    def list_sales(self, org_id: str, start: Optional[str] = None, end: Optional[str] = None) -> list[SaleRecord]:
        sales = [
            s for s in self.sales
            if s.org_id == org_id
            and created_within(s.created_at, start, end)
        ]
        return sorted(sales, key=lambda s: s.created_at, reverse=True)

    def list_orgs(self) -> list[dict]:
        return list(self.orgs)
