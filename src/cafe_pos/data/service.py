"""
Data Service contract - catalog, offers, drafts and sales storage.

Implementations raise DataServiceError on any storage failure; callers in
cafe_pos.services turn that into a ServiceResult instead of letting it
reach pricing code.
"""
from abc import ABC, abstractmethod
from typing import Optional

from ..engine.models import Offer
from .records import Combo, Draft, Product, SaleRecord


class DataServiceError(RuntimeError):
    """A storage or connectivity failure in a data service."""


class NotFoundError(DataServiceError):
    """The requested row does not exist."""


class DataService(ABC):
    """
    Storage operations scoped by organization (restaurant).

    Writes match rows on id AND org_id; a row owned by another org is
    reported as NotFoundError.
    """

    # Catalog
    @abstractmethod
    def list_products(self, org_id: str) -> list[Product]: ...

    @abstractmethod
    def add_product(self, product: Product) -> Product: ...

    @abstractmethod
    def update_product(self, org_id: str, product_id: str, updates: dict) -> Product: ...

    @abstractmethod
    def delete_product(self, org_id: str, product_id: str) -> None: ...

    @abstractmethod
    def list_combos(self, org_id: str) -> list[Combo]: ...

    # Offers
    @abstractmethod
    def list_offers(self, org_id: str, active_only: bool = False) -> list[Offer]: ...

    @abstractmethod
    def create_offer(self, offer: Offer) -> Offer: ...

    @abstractmethod
    def update_offer(self, offer: Offer) -> Offer: ...

    @abstractmethod
    def delete_offer(self, org_id: str, offer_id: str) -> None: ...

    # Drafts and sales
    @abstractmethod
    def save_draft(self, draft: Draft) -> str: ...

    @abstractmethod
    def load_drafts(self, org_id: str) -> list[Draft]: ...

    @abstractmethod
    def delete_draft(self, org_id: str, draft_id: str) -> None: ...

    @abstractmethod
    def commit_sale(self, sale: SaleRecord) -> SaleRecord: ...

    @abstractmethod
    def list_sales(self, org_id: str, start: Optional[str] = None, end: Optional[str] = None) -> list[SaleRecord]: ...

    @abstractmethod
    def list_orgs(self) -> list[dict]: ...
