# app/routers/orders.py
from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.core.auth import get_claim
from app.core.policy import enforce
from app.database import get_session
from app.schemas.auth import TokenClaim
from app.schemas.order import OrderRead, ShippingInfo
from app.services.container import Services, get_services

router = APIRouter(prefix="/orders", tags=["Orders"])


def _owner(operation: str, claim: TokenClaim | None, owner_id: int | None) -> int:
    """
    Resolve whose order a request targets: the path id if given, otherwise
    the caller. Enforces the operation's rule either way.
    """
    if owner_id is None and claim is not None:
        owner_id = claim.id
    enforce(operation, claim, owner_id=owner_id)
    return owner_id


# -------- Admin endpoints --------
# Declared first so "/admin" is never parsed as an owner id.


@router.get("/admin", response_model=list[OrderRead])
def list_orders_needing_attention(
    session: Session = Depends(get_session),
    services: Services = Depends(get_services),
    claim: TokenClaim | None = Depends(get_claim),
):
    """Reserved orders with shipping info, oldest first (admin only)."""
    enforce("orders.attention", claim)
    return services.orders.needs_attention(session)


@router.get("/admin/{order_id}", response_model=OrderRead)
def get_order_needing_attention(
    order_id: int,
    session: Session = Depends(get_session),
    services: Services = Depends(get_services),
    claim: TokenClaim | None = Depends(get_claim),
):
    enforce("orders.attention", claim)
    return services.orders.get_attention(session, order_id)


@router.post("/admin/{order_id}/ship", response_model=OrderRead)
def ship_order(
    order_id: int,
    session: Session = Depends(get_session),
    services: Services = Depends(get_services),
    claim: TokenClaim | None = Depends(get_claim),
):
    """Mark a reserved order as shipped (admin only). Shipping info must be attached."""
    enforce("orders.ship", claim)
    return services.orders.ship(session, order_id)


# -------- Owner endpoints --------
# Each route works on the caller's own order, or on /{owner_id} for admins.


@router.post("/reserve", response_model=OrderRead)
@router.post("/reserve/{owner_id}", response_model=OrderRead)
def reserve_order(
    owner_id: int | None = None,
    session: Session = Depends(get_session),
    services: Services = Depends(get_services),
    claim: TokenClaim | None = Depends(get_claim),
):
    """
    Turn the cart into a reserved order.

    Stock is taken out of the catalog for every line, or for none of them.
    The cart is removed on success.
    """
    owner_id = _owner("orders.reserve", claim, owner_id)
    return services.orders.reserve(session, owner_id)


@router.post("/shipping", response_model=OrderRead)
@router.post("/shipping/{owner_id}", response_model=OrderRead)
def attach_shipping(
    payload: ShippingInfo,
    owner_id: int | None = None,
    session: Session = Depends(get_session),
    services: Services = Depends(get_services),
    claim: TokenClaim | None = Depends(get_claim),
):
    owner_id = _owner("orders.shipping", claim, owner_id)
    return services.orders.attach_shipping(session, owner_id, payload)


@router.get("", response_model=OrderRead)
@router.get("/{owner_id}", response_model=OrderRead)
def get_order(
    owner_id: int | None = None,
    session: Session = Depends(get_session),
    services: Services = Depends(get_services),
    claim: TokenClaim | None = Depends(get_claim),
):
    """Most recent order of the owner."""
    owner_id = _owner("orders.read", claim, owner_id)
    return services.orders.read(session, owner_id)


@router.delete("", response_model=OrderRead)
@router.delete("/{owner_id}", response_model=OrderRead)
def cancel_order(
    owner_id: int | None = None,
    session: Session = Depends(get_session),
    services: Services = Depends(get_services),
    claim: TokenClaim | None = Depends(get_claim),
):
    """Cancel the reserved order and return its stock to the catalog."""
    owner_id = _owner("orders.cancel", claim, owner_id)
    return services.orders.cancel(session, owner_id)
