"""Session routes: register, login, current profile and logout."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from ..database import get_session
from ..models import Profile
from ..schemas import AuthResponse, LoginRequest, ProfileResponse, RegisterRequest
from ..services import authenticate_user, create_access_token, get_current_user, register_user

router = APIRouter(prefix="/auth", tags=["auth"])

logger = logging.getLogger(__name__)


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register_endpoint(
    payload: RegisterRequest,
    db: Session = Depends(get_session),
) -> AuthResponse:
    profile, token = register_user(db, payload)
    return AuthResponse(access_token=token, user_id=profile.id, username=profile.username)


@router.post("/login", response_model=AuthResponse)
async def login_endpoint(
    payload: LoginRequest,
    db: Session = Depends(get_session),
) -> AuthResponse:
    profile = authenticate_user(db, payload.username, payload.password)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    return AuthResponse(access_token=create_access_token(profile.id), user_id=profile.id, username=profile.username)


@router.get("/me", response_model=ProfileResponse)
async def me_endpoint(current_user: Profile = Depends(get_current_user)) -> ProfileResponse:
    return ProfileResponse.model_validate(current_user)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout_endpoint(current_user: Profile = Depends(get_current_user)) -> Response:
    # Tokens are stateless; the client drops its copy.
    logger.info("Profile %s signed out", current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


__all__ = ["router"]
