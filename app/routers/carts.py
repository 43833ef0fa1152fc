# app/routers/carts.py
from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.core.auth import get_claim
from app.core.policy import enforce
from app.database import get_session
from app.schemas.auth import TokenClaim
from app.schemas.cart import CartLineUpdate, CartRead
from app.services.container import Services, get_services

router = APIRouter(prefix="/carts", tags=["Cart"])


@router.patch("/{owner_id}", response_model=CartRead)
def update_cart(
    owner_id: int,
    payload: CartLineUpdate,
    session: Session = Depends(get_session),
    services: Services = Depends(get_services),
    claim: TokenClaim | None = Depends(get_claim),
):
    """
    Set how many units of one product are in the cart.

    - quantity 0 removes the product
    - the cart is created on first use

    Auth:
      - CUSTOMER or above, and only on your own cart (admins: any cart).
    """
    enforce("carts.update", claim, owner_id=owner_id)
    return services.carts.set_quantity(session, owner_id, payload.product_id, payload.quantity)


@router.get("/{owner_id}", response_model=CartRead)
def read_cart(
    owner_id: int,
    session: Session = Depends(get_session),
    services: Services = Depends(get_services),
    claim: TokenClaim | None = Depends(get_claim),
):
    enforce("carts.read", claim, owner_id=owner_id)
    return services.carts.read_cart(session, owner_id)


@router.delete("/{owner_id}", response_model=CartRead)
def delete_cart(
    owner_id: int,
    session: Session = Depends(get_session),
    services: Services = Depends(get_services),
    claim: TokenClaim | None = Depends(get_claim),
):
    """Empty and remove the cart; returns its last contents."""
    enforce("carts.delete", claim, owner_id=owner_id)
    return services.carts.delete_cart(session, owner_id)
