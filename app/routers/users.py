# app/routers/users.py
from fastapi import APIRouter, Depends, Response, status
from sqlmodel import Session

from app.core.auth import get_claim
from app.core.policy import enforce
from app.core.errors import ValidationFailedError
from app.database import get_session
from app.schemas.auth import TokenClaim
from app.schemas.user import UserCreate, UserRead, UserUpdate, UserWithToken
from app.services.container import Services, get_services

router = APIRouter(prefix="/users", tags=["Users"])


# -------- Registration --------


@router.post("", response_model=UserWithToken, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreate,
    session: Session = Depends(get_session),
    services: Services = Depends(get_services),
    claim: TokenClaim | None = Depends(get_claim),
):
    """
    Register a new account and return it together with a token.

    Auth:
      - Public when no `role` is given (account starts as ANONYMOUS).
      - Setting `role` requires an admin token.
    """
    enforce("users.create_with_role" if payload.role is not None else "users.create", claim)
    return services.users.create_user(session, payload)


# -------- Reads --------


@router.get("", response_model=list[UserRead])
def read_users(
    id: int | None = None,
    username: str | None = None,
    skip: int = 0,
    limit: int = 50,
    session: Session = Depends(get_session),
    services: Services = Depends(get_services),
    claim: TokenClaim | None = Depends(get_claim),
):
    """
    Look up users.

    - ?id=       : that user (self or admin)
    - ?username= : that user (self or admin)
    - neither    : paginated list of every user (admin only)
    """
    if id is not None:
        enforce("users.read", claim, owner_id=id)
        return [services.users.get_user(session, id)]
    if username is not None:
        enforce("users.read", claim, owner_username=username)
        return [services.users.get_by_username(session, username)]

    enforce("users.list", claim)
    return services.users.list_users(session, skip, limit)


@router.get("/{user_id}", response_model=UserRead)
def read_user(
    user_id: int,
    session: Session = Depends(get_session),
    services: Services = Depends(get_services),
    claim: TokenClaim | None = Depends(get_claim),
):
    enforce("users.read", claim, owner_id=user_id)
    return services.users.get_user(session, user_id)


# -------- Writes --------


@router.patch("/{user_id}", response_model=UserRead)
def update_user(
    user_id: int,
    payload: UserUpdate,
    session: Session = Depends(get_session),
    services: Services = Depends(get_services),
    claim: TokenClaim | None = Depends(get_claim),
):
    """
    Partial update (self or admin). Changing `role` is admin-only.

    An empty body is rejected before any auth check.
    """
    if payload.is_empty():
        raise ValidationFailedError("no valid fields provided to update")

    enforce("users.update", claim, owner_id=user_id)
    if payload.role is not None:
        enforce("users.update_role", claim)
    return services.users.update_user(session, user_id, payload)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: int,
    session: Session = Depends(get_session),
    services: Services = Depends(get_services),
    claim: TokenClaim | None = Depends(get_claim),
):
    """Soft-delete an account (self or admin)."""
    enforce("users.delete", claim, owner_id=user_id)
    services.users.delete_user(session, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
