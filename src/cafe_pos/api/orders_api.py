"""
Orders API - cart, checkout and drafts for the caller's order-entry session.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from ..engine.models import InvalidInputError, ItemKind
from ..services.order_service import CheckoutDetails, OrderEntry, OrderStateError
from .deps import get_order_entry

router = APIRouter(prefix="/orders", tags=["orders"])


class AddItemRequest(BaseModel):
    item_id: str
    kind: ItemKind = ItemKind.PRODUCT
    quantity: int = Field(default=1, ge=1)


class QuantityRequest(BaseModel):
    item_id: str
    kind: ItemKind = ItemKind.PRODUCT
    quantity: int


class CheckoutRequest(BaseModel):
    customer_name: str
    customer_phone: str
    payment_method: str = "cash"


class DraftRequest(BaseModel):
    name: Optional[str] = None


def cart_payload(entry: OrderEntry) -> dict:
    """Cart snapshot plus current pricing."""
    return {
        "state": entry.state.value,
        "cart": entry.cart.snapshot(),
        "pricing": entry.pricing().to_dict(),
    }


@router.get("/cart")
async def get_cart(entry: OrderEntry = Depends(get_order_entry)):
    return cart_payload(entry)


@router.post("/cart/items")
async def add_item(req: AddItemRequest, entry: OrderEntry = Depends(get_order_entry)):
    try:
        item = entry.find_menu_item(req.item_id, req.kind)
        entry.add_item(item, req.quantity)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except OrderStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return cart_payload(entry)


@router.put("/cart/items")
async def set_quantity(req: QuantityRequest, entry: OrderEntry = Depends(get_order_entry)):
    try:
        entry.update_quantity(req.item_id, req.kind, req.quantity)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except OrderStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return cart_payload(entry)


@router.delete("/cart/items/{kind}/{item_id}")
async def remove_item(kind: ItemKind, item_id: str, entry: OrderEntry = Depends(get_order_entry)):
    try:
        entry.remove_item(item_id, kind)
    except OrderStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return cart_payload(entry)


@router.post("/cart/offers/{offer_id}")
async def toggle_offer(offer_id: str, entry: OrderEntry = Depends(get_order_entry)):
    try:
        entry.toggle_offer(offer_id)
    except OrderStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return cart_payload(entry)


@router.post("/cart/quick-discount")
async def toggle_quick_discount(entry: OrderEntry = Depends(get_order_entry)):
    try:
        entry.toggle_quick_discount()
    except OrderStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return cart_payload(entry)


@router.delete("/cart")
async def clear_cart(entry: OrderEntry = Depends(get_order_entry)):
    try:
        entry.clear()
    except OrderStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return cart_payload(entry)


@router.post("/checkout")
async def begin_checkout(entry: OrderEntry = Depends(get_order_entry)):
    try:
        entry.begin_checkout()
    except OrderStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return cart_payload(entry)


@router.post("/checkout/cancel")
async def cancel_checkout(entry: OrderEntry = Depends(get_order_entry)):
    try:
        entry.cancel_checkout()
    except OrderStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return cart_payload(entry)


@router.post("/checkout/complete")
async def complete_checkout(req: CheckoutRequest, entry: OrderEntry = Depends(get_order_entry)):
    details = CheckoutDetails(**req.model_dump())
    errors = details.validate()
    if errors:
        raise HTTPException(status_code=400, detail="; ".join(errors))
    try:
        result = entry.complete_checkout(details)
    except OrderStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    if not result.ok:
        raise HTTPException(status_code=502, detail=result.error)
    sale = result.data
    return {
        "sale_id": sale.sale_id,
        "subtotal": str(sale.subtotal),
        "discount_amount": str(sale.discount_amount),
        "total_amount": str(sale.total_amount),
        "state": entry.state.value,
    }


@router.get("/drafts")
async def list_drafts(entry: OrderEntry = Depends(get_order_entry)):
    result = entry.list_drafts()
    if not result.ok:
        raise HTTPException(status_code=502, detail=result.error)
    return [
        {"draft_id": d.draft_id, "name": d.name, "created_at": d.created_at, "cart": d.cart}
        for d in result.data
    ]


@router.post("/drafts")
async def save_draft(req: DraftRequest, entry: OrderEntry = Depends(get_order_entry)):
    try:
        result = entry.save_draft(req.name or '')
    except OrderStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    if not result.ok:
        raise HTTPException(status_code=502, detail=result.error)
    return {"draft_id": result.data}


@router.post("/drafts/{draft_id}/load")
async def load_draft(draft_id: str, entry: OrderEntry = Depends(get_order_entry)):
    result = entry.list_drafts()
    if not result.ok:
        raise HTTPException(status_code=502, detail=result.error)
    draft = next((d for d in result.data if d.draft_id == draft_id), None)
    if draft is None:
        raise HTTPException(status_code=404, detail=f"Draft '{draft_id}' not found")
    try:
        entry.load_draft(draft)
    except OrderStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return cart_payload(entry)


@router.delete("/drafts/{draft_id}")
async def delete_draft(draft_id: str, entry: OrderEntry = Depends(get_order_entry)):
    result = entry.delete_draft(draft_id)
    if not result.ok:
        status = 404 if "not found" in (result.error or "") else 502
        raise HTTPException(status_code=status, detail=result.error)
    return {"success": True}
