"""
Catalog Service - products, combos and offers for one restaurant.
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional

from ..data.records import Product
from ..data.service import DataService
from ..engine.models import InvalidInputError, to_decimal
from ..engine.offer_matcher import OfferMatcher
from .results import ServiceResult, call_service
from .session import Session


class CatalogService:
    """Catalog reads and admin product writes, scoped by the session's org."""

    def __init__(self, data_service: DataService, session: Session):
        self.data_service = data_service
        self.session = session
        self.offer_matcher = OfferMatcher()

    def list_products(self) -> ServiceResult:
        return call_service("load products", self.data_service.list_products, self.session.org_id)

    def list_combos(self) -> ServiceResult:
        return call_service("load combos", self.data_service.list_combos, self.session.org_id)

    def list_active_offers(self, at: Optional[datetime] = None) -> ServiceResult:
        """
        Offers flagged active; when at is given, only those whose window contains it.
        """
        result = call_service("load offers", self.data_service.list_offers, self.session.org_id, active_only=True)
        if result.ok and at is not None:
            result.data = [m.offer for m in self.offer_matcher.find_active_offers(result.data, at)]
        return result

    @staticmethod
    def validate_product(name: str, price, making_cost) -> list[str]:
        """Validate product form values; returns error messages."""
        errors = []
        if not name or not str(name).strip():
            errors.append("Product name is required")
        try:
            if to_decimal(price, 'Price') <= 0:
                errors.append("Price must be positive")
        except InvalidInputError as e:
            errors.append(str(e))
        try:
            if to_decimal(making_cost, 'Making cost') < 0:
                errors.append("Making cost cannot be negative")
        except InvalidInputError as e:
            errors.append(str(e))
        return errors

    def add_product(self, name: str, price, making_cost=Decimal(0)) -> ServiceResult:
        self.session.require('admin')
        errors = self.validate_product(name, price, making_cost)
        if errors:
            raise InvalidInputError("; ".join(errors))
        product = Product(
            product_id='',
            org_id=self.session.org_id,
            name=str(name).strip(),
            price=price,
            making_cost=making_cost,
        )
        return call_service("add product", self.data_service.add_product, product)

    def update_product(self, product_id: str, updates: dict) -> ServiceResult:
        """Apply field updates; the merged product must pass validate_product."""
        self.session.require('admin')
        updates = {k: v for k, v in updates.items() if k in ('name', 'price', 'making_cost', 'is_active')}

        products = self.list_products()
        if not products.ok:
            return products
        current = next((p for p in products.data if p.product_id == str(product_id)), None)
        if current is None:
            return ServiceResult.failure(f"Failed to update product: Product '{product_id}' not found")

        errors = self.validate_product(
            updates.get('name', current.name),
            updates.get('price', current.price),
            updates.get('making_cost', current.making_cost),
        )
        if errors:
            raise InvalidInputError("; ".join(errors))
        for key in ('price', 'making_cost'):
            if key in updates:
                updates[key] = to_decimal(updates[key], key)
        if 'name' in updates:
            updates['name'] = str(updates['name']).strip()
        return call_service(
            "update product", self.data_service.update_product, self.session.org_id, product_id, updates,
        )

    def delete_product(self, product_id: str) -> ServiceResult:
        self.session.require('admin')
        return call_service("delete product", self.data_service.delete_product, self.session.org_id, product_id)
