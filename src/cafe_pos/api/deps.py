"""
Request-scoped dependencies: settings, data service and session come from app.state.
"""
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request

from ..engine.pricing_engine import PricingEngine
from ..services.session import ROLE_HIERARCHY, Session, demo_session
from ..services.order_service import OrderEntry


def get_data_service(request: Request):
    return request.app.state.data_service


def get_engine(request: Request) -> PricingEngine:
    return request.app.state.engine


def get_session(
    request: Request,
    x_user_id: Optional[str] = Header(default=None),
    x_org_id: Optional[str] = Header(default=None),
    x_role: Optional[str] = Header(default=None),
) -> Session:
    """Session from X-User-Id / X-Org-Id / X-Role headers; demo identity when absent in demo mode."""
    settings = request.app.state.settings
    if not x_user_id:
        if settings.demo_mode:
            return demo_session(x_org_id or settings.default_org_id)
        raise HTTPException(status_code=401, detail="X-User-Id header is required")
    role = x_role or 'staff'
    if role not in ROLE_HIERARCHY:
        raise HTTPException(status_code=400, detail=f"Unknown role '{role}'")
    return Session(user_id=x_user_id, org_id=x_org_id or settings.default_org_id, role=role)


def get_order_entry(request: Request, session: Session = Depends(get_session)) -> OrderEntry:
    """One OrderEntry per (org, user); the menu is reloaded on every request, the cart is kept."""
    entries = request.app.state.order_entries
    key = (session.org_id, session.user_id)
    entry = entries.get(key)
    if entry is None:
        entry = OrderEntry(request.app.state.data_service, session, request.app.state.engine)
        loaded = entry.load_menu()
        if not loaded.ok:
            raise HTTPException(status_code=502, detail=loaded.error)
        entries[key] = entry
        return entry

    # Offer and product edits from any session reach the open cart
    refreshed = entry.refresh_menu()
    if not refreshed.ok:
        raise HTTPException(status_code=502, detail=refreshed.error)
    return entry
