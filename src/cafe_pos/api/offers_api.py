"""
Offers API - FastAPI router for offer management.
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from ..data.service import DataServiceError, NotFoundError
from ..engine.models import InvalidInputError, Offer
from ..engine.offer_matcher import OfferMatcher
from ..services.offers_service import OfferConflictError, OffersService, build_offer
from ..services.session import PermissionDenied, Session
from .deps import get_data_service, get_session

router = APIRouter(prefix="/offers", tags=["offers"])


def get_offers_service(
    data_service=Depends(get_data_service),
    session: Session = Depends(get_session),
) -> OffersService:
    return OffersService(data_service, session)


# Pydantic models for API
class OfferCreate(BaseModel):
    """Request model for creating an offer."""
    name: str
    discount_percent: Decimal = Field(ge=0, le=100)
    start_date: str
    end_date: str
    start_time: str
    end_time: str
    scope: str = "all"
    is_active: bool = True


class OfferUpdate(BaseModel):
    """Request model for updating an offer."""
    name: Optional[str] = None
    discount_percent: Optional[Decimal] = Field(default=None, ge=0, le=100)
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    scope: Optional[str] = None
    is_active: Optional[bool] = None


class OfferResponse(BaseModel):
    """Response model for an offer."""
    offer_id: str
    name: str
    discount_percent: str
    start_date: str
    end_date: str
    start_time: str
    end_time: str
    scope: str
    is_active: bool


class ValidationResponse(BaseModel):
    """Response model for validation."""
    valid: bool
    errors: list[str]
    warnings: list[str]
    conflicts: list[str]


def _to_response(offer: Offer) -> OfferResponse:
    data = offer.to_dict()
    data.pop('org_id', None)
    return OfferResponse(**data)


def _build(offer_data: OfferCreate) -> Offer:
    try:
        return build_offer(**offer_data.model_dump())
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))


# Endpoints

@router.get("", response_model=list[OfferResponse])
async def list_offers(include_inactive: bool = True, service: OffersService = Depends(get_offers_service)):
    """List all offers."""
    try:
        offers = service.list_offers(include_inactive=include_inactive)
    except DataServiceError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return [_to_response(o) for o in offers]


@router.get("/stats")
async def get_stats(service: OffersService = Depends(get_offers_service)):
    """Get offer statistics."""
    return service.get_stats()


@router.get("/active", response_model=list[OfferResponse])
async def active_offers(at: Optional[datetime] = None, service: OffersService = Depends(get_offers_service)):
    """Offers whose window contains the given moment (now by default)."""
    matched = OfferMatcher().find_active_offers(service.list_offers(include_inactive=False), at)
    return [_to_response(m.offer) for m in matched]


@router.get("/{offer_id}", response_model=OfferResponse)
async def get_offer(offer_id: str, service: OffersService = Depends(get_offers_service)):
    """Get a single offer by ID."""
    offer = service.get_offer(offer_id)
    if not offer:
        raise HTTPException(status_code=404, detail=f"Offer '{offer_id}' not found")
    return _to_response(offer)


@router.post("", response_model=OfferResponse)
async def create_offer(offer_data: OfferCreate, service: OffersService = Depends(get_offers_service)):
    """Create a new offer."""
    offer = _build(offer_data)
    try:
        created = service.create_offer(offer)
        return _to_response(created)
    except PermissionDenied as e:
        raise HTTPException(status_code=403, detail=str(e))
    except OfferConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.put("/{offer_id}", response_model=OfferResponse)
async def update_offer(offer_id: str, updates: OfferUpdate, service: OffersService = Depends(get_offers_service)):
    """Update an existing offer."""
    # Only fields present in the request body are changed
    update_dict = updates.model_dump(exclude_unset=True)

    try:
        updated = service.update_offer(offer_id, update_dict)
        return _to_response(updated)
    except PermissionDenied as e:
        raise HTTPException(status_code=403, detail=str(e))
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Offer '{offer_id}' not found")
    except OfferConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/{offer_id}")
async def delete_offer(offer_id: str, service: OffersService = Depends(get_offers_service)):
    """Delete an offer."""
    try:
        service.delete_offer(offer_id)
        return {"success": True, "message": f"Offer '{offer_id}' deleted"}
    except PermissionDenied as e:
        raise HTTPException(status_code=403, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/validate", response_model=ValidationResponse)
async def validate_offer(offer_data: OfferCreate, service: OffersService = Depends(get_offers_service)):
    """Validate an offer without saving."""
    result = service.validate_offer(_build(offer_data))
    return ValidationResponse(
        valid=result.valid,
        errors=result.errors,
        warnings=result.warnings,
        conflicts=result.conflicts,
    )
