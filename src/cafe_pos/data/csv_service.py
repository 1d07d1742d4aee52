"""
CSV Data Service - flat-file store, one CSV table per entity.

Tables live in Settings.data_dir:
products.csv, combos.csv, offers.csv, drafts.csv, sales.csv, orgs.csv.
Cart snapshots and sale lines are stored as JSON text columns.
"""
import json
import logging
import uuid
from dataclasses import asdict, replace
from decimal import Decimal
from pathlib import Path
from typing import Optional

import pandas as pd

from ..engine.models import InvalidInputError, Offer
from .records import Combo, Draft, Product, SaleLine, SaleRecord, created_within
from .service import DataService, DataServiceError, NotFoundError


logger = logging.getLogger(__name__)


TABLE_COLUMNS = {
    'orgs': ['id', 'name'],
    'products': ['product_id', 'org_id', 'name', 'price', 'making_cost', 'is_active'],
    'combos': ['combo_id', 'org_id', 'name', 'price', 'making_cost', 'product_ids', 'is_active'],
    'offers': [
        'offer_id', 'org_id', 'name', 'discount_percent', 'start_date', 'end_date',
        'start_time', 'end_time', 'scope', 'is_active',
    ],
    'drafts': ['draft_id', 'org_id', 'name', 'status', 'created_at', 'cart_json'],
    'sales': [
        'sale_id', 'org_id', 'customer_name', 'customer_phone', 'payment_method', 'subtotal',
        'discount_amount', 'total_amount', 'applied_offers', 'quick_discount', 'lines_json', 'created_at',
        'processed_by',
    ],
}


def _parse_bool(value: str) -> bool:
    return str(value).strip().lower() in ('true', '1', 'yes', 'on')


def _decimal_default(value):
    if isinstance(value, Decimal):
        return str(value)
    raise TypeError(f"Cannot serialize {type(value).__name__}")


class CsvDataService(DataService):
    """DataService backed by CSV files read and written with pandas."""

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DataServiceError(f"Cannot create data directory {self.data_dir}: {e}") from e

    def _path(self, table: str) -> Path:
        return self.data_dir / f'{table}.csv'

    def _load(self, table: str) -> pd.DataFrame:
        path = self._path(table)
        columns = TABLE_COLUMNS[table]
        if not path.exists():
            return pd.DataFrame(columns=columns)
        try:
            df = pd.read_csv(path, dtype=str, keep_default_na=False)
        except (OSError, pd.errors.ParserError) as e:
            raise DataServiceError(f"Failed to read {path}: {e}") from e

        # Strip all strings and headers
        df.columns = [c.strip() for c in df.columns]
        for col in columns:
            if col not in df.columns:
                df[col] = ''
        for col in df.columns:
            df[col] = df[col].astype(str).str.strip()
        return df

    def _save(self, table: str, df: pd.DataFrame):
        path = self._path(table)
        try:
            df.to_csv(path, index=False, columns=TABLE_COLUMNS[table])
        except OSError as e:
            raise DataServiceError(f"Failed to write {path}: {e}") from e

    def _append(self, table: str, row: dict):
        df = self._load(table)
        df = pd.concat([df, pd.DataFrame([row])], ignore_index=True)
        self._save(table, df)

    def _owned_mask(self, df: pd.DataFrame, id_col: str, org_id: str, row_id: str, label: str) -> pd.Series:
        """Rows matching row_id within org_id; NotFoundError when there are none."""
        mask = (df[id_col] == str(row_id)) & (df['org_id'] == str(org_id))
        if not mask.any():
            raise NotFoundError(f"{label} '{row_id}' not found")
        return mask

    def _delete(self, table: str, id_col: str, org_id: str, row_id: str, label: str):
        df = self._load(table)
        mask = self._owned_mask(df, id_col, org_id, row_id, label)
        self._save(table, df[~mask])

    @staticmethod
    def _new_id() -> str:
        return uuid.uuid4().hex[:12]

    # Catalog

    def list_products(self, org_id: str) -> list[Product]:
        df = self._load('products')
        df = df[df['org_id'] == org_id].sort_values('name')
        try:
            return [
                Product(
                    product_id=row['product_id'],
                    org_id=row['org_id'],
                    name=row['name'],
                    price=row['price'],
                    making_cost=row['making_cost'] or '0',
                    is_active=_parse_bool(row['is_active'] or 'true'),
                )
                for row in df.to_dict(orient='records')
            ]
        except InvalidInputError as e:
            raise DataServiceError(f"Corrupt products table: {e}") from e

    def add_product(self, product: Product) -> Product:
        existing = set(self._load('products')['product_id'])
        if not product.product_id or product.product_id in existing:
            product = replace(product, product_id=self._new_id())
        self._append('products', product.to_row())
        return product

    def update_product(self, org_id: str, product_id: str, updates: dict) -> Product:
        df = self._load('products')
        mask = self._owned_mask(df, 'product_id', org_id, product_id, 'Product')

        row = df[mask].iloc[0].to_dict()
        current = Product(
            product_id=row['product_id'],
            org_id=row['org_id'],
            name=row['name'],
            price=row['price'],
            making_cost=row['making_cost'] or '0',
            is_active=_parse_bool(row['is_active'] or 'true'),
        )
        updated = replace(current, **updates)
        for col, value in updated.to_row().items():
            df.loc[mask, col] = str(value)
        self._save('products', df)
        return updated

    def delete_product(self, org_id: str, product_id: str) -> None:
        self._delete('products', 'product_id', org_id, product_id, 'Product')

    def list_combos(self, org_id: str) -> list[Combo]:
        df = self._load('combos')
        df = df[df['org_id'] == org_id]
        try:
            return [
                Combo(
                    combo_id=row['combo_id'],
                    org_id=row['org_id'],
                    name=row['name'],
                    price=row['price'],
                    making_cost=row['making_cost'] or '0',
                    product_ids=[p for p in row['product_ids'].split(',') if p],
                    is_active=_parse_bool(row['is_active'] or 'true'),
                )
                for row in df.to_dict(orient='records')
            ]
        except InvalidInputError as e:
            raise DataServiceError(f"Corrupt combos table: {e}") from e

    # Offers

    def list_offers(self, org_id: str, active_only: bool = False) -> list[Offer]:
        df = self._load('offers')
        df = df[df['org_id'] == org_id]
        try:
            offers = [Offer.from_dict(row) for row in df.to_dict(orient='records')]
        except InvalidInputError as e:
            raise DataServiceError(f"Corrupt offers table: {e}") from e
        if active_only:
            offers = [o for o in offers if o.is_active]
        return offers

    def _offer_row(self, offer: Offer) -> dict:
        row = offer.to_dict()
        row['org_id'] = offer.org_id or ''
        return row

    def create_offer(self, offer: Offer) -> Offer:
        existing = set(self._load('offers')['offer_id'])
        if not offer.offer_id or offer.offer_id in existing:
            offer = replace(offer, offer_id=self._new_id())
        self._append('offers', self._offer_row(offer))
        return offer

    def update_offer(self, offer: Offer) -> Offer:
        df = self._load('offers')
        mask = self._owned_mask(df, 'offer_id', offer.org_id or '', offer.offer_id, 'Offer')
        for col, value in self._offer_row(offer).items():
            df.loc[mask, col] = str(value)
        self._save('offers', df)
        return offer

    def delete_offer(self, org_id: str, offer_id: str) -> None:
        self._delete('offers', 'offer_id', org_id, offer_id, 'Offer')

    # Drafts

    def save_draft(self, draft: Draft) -> str:
        draft_id = draft.draft_id or self._new_id()
        row = {
            'draft_id': draft_id,
            'org_id': draft.org_id,
            'name': draft.name,
            'status': draft.status,
            'created_at': draft.created_at,
            'cart_json': json.dumps(draft.cart, default=_decimal_default),
        }
        df = self._load('drafts')
        if draft.draft_id and (df['draft_id'] == draft_id).any():
            self._owned_mask(df, 'draft_id', draft.org_id, draft_id, 'Draft')
        df = df[df['draft_id'] != draft_id]
        df = pd.concat([df, pd.DataFrame([row])], ignore_index=True)
        self._save('drafts', df)
        return draft_id

    def load_drafts(self, org_id: str) -> list[Draft]:
        df = self._load('drafts')
        df = df[(df['org_id'] == org_id) & (df['status'] == 'draft')]
        try:
            return [
                Draft(
                    draft_id=row['draft_id'],
                    org_id=row['org_id'],
                    name=row['name'],
                    status=row['status'],
                    created_at=row['created_at'],
                    cart=json.loads(row['cart_json'] or '{}'),
                )
                for row in df.to_dict(orient='records')
            ]
        except json.JSONDecodeError as e:
            raise DataServiceError(f"Corrupt drafts table: {e}") from e

    def delete_draft(self, org_id: str, draft_id: str) -> None:
        self._delete('drafts', 'draft_id', org_id, draft_id, 'Draft')

    # Sales

    def commit_sale(self, sale: SaleRecord) -> SaleRecord:
        sale = replace(sale, sale_id=sale.sale_id or self._new_id())
        self._append('sales', {
            'sale_id': sale.sale_id,
            'org_id': sale.org_id,
            'customer_name': sale.customer_name,
            'customer_phone': sale.customer_phone,
            'payment_method': sale.payment_method,
            'subtotal': str(sale.subtotal),
            'discount_amount': str(sale.discount_amount),
            'total_amount': str(sale.total_amount),
            'applied_offers': ','.join(sale.applied_offers),
            'quick_discount': sale.quick_discount,
            'lines_json': json.dumps([asdict(line) for line in sale.lines], default=_decimal_default),
            'created_at': sale.created_at,
            'processed_by': sale.processed_by,
        })
        logger.info("Sale %s committed for %s: %s", sale.sale_id, sale.org_id, sale.total_amount)
        return sale

    def list_sales(self, org_id: str, start: Optional[str] = None, end: Optional[str] = None) -> list[SaleRecord]:
        df = self._load('sales')
        df = df[df['org_id'] == org_id]
        sales = []
        try:
            for row in df.to_dict(orient='records'):
                if not created_within(row['created_at'], start, end):
                    continue
                lines = [
                    SaleLine(
                        item_id=line['item_id'],
                        name=line['name'],
                        kind=line['kind'],
                        quantity=int(line['quantity']),
                        unit_price=Decimal(line['unit_price']),
                        total_price=Decimal(line['total_price']),
                        making_cost=Decimal(line.get('making_cost') or '0'),
                    )
                    for line in json.loads(row['lines_json'] or '[]')
                ]
                sales.append(SaleRecord(
                    sale_id=row['sale_id'],
                    org_id=row['org_id'],
                    customer_name=row['customer_name'],
                    customer_phone=row['customer_phone'],
                    payment_method=row['payment_method'],
                    subtotal=Decimal(row['subtotal']),
                    discount_amount=Decimal(row['discount_amount']),
                    total_amount=Decimal(row['total_amount']),
                    applied_offers=[o for o in row['applied_offers'].split(',') if o],
                    quick_discount=_parse_bool(row['quick_discount']),
                    lines=lines,
                    created_at=row['created_at'],
                    processed_by=row['processed_by'],
                ))
        except (json.JSONDecodeError, KeyError, ArithmeticError, InvalidInputError) as e:
            raise DataServiceError(f"Corrupt sales table: {e}") from e
        return sorted(sales, key=lambda s: s.created_at, reverse=True)

    def list_orgs(self) -> list[dict]:
        return self._load('orgs').to_dict(orient='records')

    def seed(self, service: DataService, org_id: str):
        """Copy catalog and offers for org_id from another service (e.g. the demo store)."""
        orgs = self._load('orgs')
        if org_id not in set(orgs['id']):
            self._append('orgs', {'id': org_id, 'name': org_id})

        products = pd.DataFrame([p.to_row() for p in service.list_products(org_id)], columns=TABLE_COLUMNS['products'])
        combos = pd.DataFrame([c.to_row() for c in service.list_combos(org_id)], columns=TABLE_COLUMNS['combos'])
        offers = pd.DataFrame([self._offer_row(o) for o in service.list_offers(org_id)], columns=TABLE_COLUMNS['offers'])
        self._save('products', products)
        self._save('combos', combos)
        self._save('offers', offers)
        logger.info(
            "Seeded %s: %d products, %d combos, %d offers",
            org_id, len(products), len(combos), len(offers),
        )
