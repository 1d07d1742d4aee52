"""
Sales API - history and dashboard figures for the caller's restaurant.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from ..data.service import DataServiceError
from ..services.results import ServiceResult
from ..services.sales_service import SalesService
from ..services.session import PermissionDenied, Session
from .deps import get_data_service, get_session

router = APIRouter(prefix="/sales", tags=["sales"])


def get_sales_service(
    data_service=Depends(get_data_service),
    session: Session = Depends(get_session),
) -> SalesService:
    return SalesService(data_service, session)


def _unwrap(result: ServiceResult):
    if not result.ok:
        raise HTTPException(status_code=502, detail=result.error)
    return result.data


@router.get("")
async def list_sales(
    start: Optional[str] = None,
    end: Optional[str] = None,
    service: SalesService = Depends(get_sales_service),
):
    """Sales between start and end (inclusive ISO bounds)."""
    if not service.session.has_role('admin'):
        raise HTTPException(status_code=403, detail="Sales history requires admin role")
    try:
        sales = service.data_service.list_sales(service.session.org_id, start, end)
    except DataServiceError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return [
        {
            "sale_id": s.sale_id,
            "customer_name": s.customer_name,
            "payment_method": s.payment_method,
            "total_amount": str(s.total_amount),
            "discount_amount": str(s.discount_amount),
            "profit": str(s.profit),
            "items": s.item_count,
            "processed_by": s.processed_by,
            "created_at": s.created_at,
        }
        for s in sales
    ]


@router.get("/stats")
async def period_stats(service: SalesService = Depends(get_sales_service)):
    """Today, week and month sales, orders, profit and margin."""
    try:
        stats = _unwrap(service.period_stats())
    except PermissionDenied as e:
        raise HTTPException(status_code=403, detail=str(e))
    return {
        period: {**figures, "sales": str(figures["sales"]), "profit": str(figures["profit"]),
                 "margin": str(round(figures["margin"], 2))}
        for period, figures in stats.items()
    }


@router.get("/today")
async def staff_today(service: SalesService = Depends(get_sales_service)):
    """Today's orders and revenue, with the caller's own order count."""
    figures = _unwrap(service.staff_today())
    return {**figures, "sales": str(figures["sales"])}


@router.get("/top-items")
async def top_items(limit: int = 5, service: SalesService = Depends(get_sales_service)):
    try:
        return _unwrap(service.top_items(limit))
    except PermissionDenied as e:
        raise HTTPException(status_code=403, detail=str(e))
