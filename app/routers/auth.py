# app/routers/auth.py
from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.database import get_session
from app.schemas.auth import LoginRequest
from app.schemas.user import UserWithToken
from app.services.container import Services, get_services

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/login", response_model=UserWithToken)
def login(
    payload: LoginRequest,
    session: Session = Depends(get_session),
    services: Services = Depends(get_services),
):
    """
    Log in with username + password.

    Returns the user (without password hash) and a bearer token to send as
    `Authorization: Bearer <token>`.
    """
    return services.auth.login(session, payload)
