import logging
from decimal import Decimal
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from cafe_pos import __version__
from cafe_pos.config.settings import Settings
from cafe_pos.data import DataService, DataServiceError, create_data_service
from cafe_pos.engine import Cart, InvalidInputError, LineItem, Offer, PricingEngine
from cafe_pos.services.catalog_service import CatalogService
from cafe_pos.services.sales_service import SalesService
from cafe_pos.services.session import PermissionDenied, Session
from cafe_pos.api.deps import get_data_service, get_engine, get_session
from cafe_pos.api.offers_api import router as offers_router
from cafe_pos.api.orders_api import router as orders_router
from cafe_pos.api.sales_api import router as sales_router


logger = logging.getLogger(__name__)


class QuoteLine(BaseModel):
    item_id: str
    kind: str = "product"
    unit_price: Decimal
    quantity: int = Field(default=1, ge=1)
    name: str = ""


class QuoteRequest(BaseModel):
    items: list[QuoteLine]
    selected_offer_ids: list[str] = []
    quick_discount: bool = False


def create_app(settings: Optional[Settings] = None, data_service: Optional[DataService] = None) -> FastAPI:
    """Build the API with its settings, data service and pricing engine injected."""
    settings = settings or Settings.load()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="Cafe POS API",
        description="Order entry, offers and pricing for the cafe point of sale",
        version=__version__,
    )

    # Enable CORS for frontend development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.data_service = data_service or create_data_service(settings)
    app.state.engine = PricingEngine.from_settings(settings)
    app.state.order_entries = {}
    logger.info("Cafe POS API ready (data mode: %s)", settings.data_mode)

    app.include_router(offers_router)
    app.include_router(orders_router)
    app.include_router(sales_router)

    @app.get("/")
    async def root():
        return {"status": "online", "message": "Cafe POS API Active", "data_mode": settings.data_mode}

    @app.get("/menu")
    async def get_menu(
        search: Optional[str] = None,
        data_service: DataService = Depends(get_data_service),
        session: Session = Depends(get_session),
    ):
        catalog = CatalogService(data_service, session)
        products = catalog.list_products()
        combos = catalog.list_combos()
        for result in (products, combos):
            if not result.ok:
                raise HTTPException(status_code=502, detail=result.error)

        term = (search or "").lower()
        return {
            "products": [
                {**p.to_row(), "profit": str(p.profit)}
                for p in products.data if term in p.name.lower()
            ],
            "combos": [
                {**c.to_row(), "product_ids": c.product_ids}
                for c in combos.data if term in c.name.lower()
            ],
        }

    @app.post("/pricing/quote")
    async def quote(
        req: QuoteRequest,
        engine: PricingEngine = Depends(get_engine),
        data_service: DataService = Depends(get_data_service),
        session: Session = Depends(get_session),
    ):
        """Price a posted cart against the restaurant's active offers without touching any session cart."""
        try:
            cart = Cart(
                items=[LineItem(**{**line.model_dump(), "unit_price": str(line.unit_price)}) for line in req.items],
                selected_offer_ids=list(dict.fromkeys(req.selected_offer_ids)),
                quick_discount=req.quick_discount,
            )
        except InvalidInputError as e:
            raise HTTPException(status_code=400, detail=str(e))

        keys = [item.key for item in cart.items]
        if len(keys) != len(set(keys)):
            raise HTTPException(status_code=400, detail="Duplicate line items; merge quantities instead")

        try:
            offers: list[Offer] = data_service.list_offers(session.org_id, active_only=True)
        except DataServiceError as e:
            raise HTTPException(status_code=502, detail=str(e))

        result = engine.price(cart, offers)
        return {**result.to_dict(), "trace": result.get_trace_text()}

    @app.get("/orgs")
    async def list_restaurants(
        data_service: DataService = Depends(get_data_service),
        session: Session = Depends(get_session),
    ):
        """Restaurant overview for master admins."""
        try:
            result = SalesService(data_service, session).restaurant_overview()
        except PermissionDenied as e:
            raise HTTPException(status_code=403, detail=str(e))
        if not result.ok:
            raise HTTPException(status_code=502, detail=result.error)
        return [{**org, "revenue": str(org["revenue"])} for org in result.data]

    @app.get("/system/status")
    async def get_status():
        return {
            "engine_active": True,
            "data_mode": settings.data_mode,
            "clamp_total": settings.clamp_total,
            "enforce_offer_scope": settings.enforce_offer_scope,
            "open_orders": len(app.state.order_entries),
        }

    return app
