"""Account registration, credential checks and bearer-token resolution."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..database import get_session
from ..models import Profile
from ..schemas import RegisterRequest
from ..security.secrets import MissingSecretError, TokenSigning, load_token_signing

logger = logging.getLogger(__name__)

_security = HTTPBearer(auto_error=False)
_pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


@lru_cache(maxsize=1)
def _signing() -> TokenSigning:
    try:
        return load_token_signing()
    except MissingSecretError as exc:
        raise RuntimeError(str(exc)) from exc


def hash_password(password: str) -> str:
    return _pwd_context.hash(password)


def verify_password(password: str, hashed_password: str) -> bool:
    try:
        return _pwd_context.verify(password, hashed_password)
    except ValueError:
        logger.warning("Stored password hash could not be verified")
        return False


def create_access_token(subject: UUID, *, expires_minutes: int | None = None) -> str:
    """Create a signed JWT whose ``sub`` claim is the profile id."""

    signing = _signing()
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(subject),
        "iat": now,
        "exp": now + timedelta(minutes=expires_minutes or signing.expires_minutes),
    }
    return jwt.encode(payload, signing.key, algorithm=signing.algorithm)


def decode_access_token(token: str) -> UUID:
    """Validate ``token`` and return the embedded profile id."""

    signing = _signing()
    try:
        payload = jwt.decode(token, signing.key, algorithms=[signing.algorithm])
    except JWTError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc

    subject = payload.get("sub")
    if not subject:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token payload")
    try:
        return UUID(subject)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token payload") from exc


def register_user(db: Session, payload: RegisterRequest) -> tuple[Profile, str]:
    """Create a profile for ``payload`` and return it together with a fresh token."""

    if db.scalar(select(Profile.id).where(Profile.username == payload.username)) is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Username already in use")

    email = str(payload.email) if payload.email else None
    if email and db.scalar(select(Profile.id).where(Profile.email == email)) is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")

    profile = Profile(username=payload.username, email=email, hashed_password=hash_password(payload.password))
    try:
        db.add(profile)
        db.commit()
        db.refresh(profile)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to register %s", payload.username)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Unable to register user") from exc

    logger.info("Registered profile %s", profile.id)
    return profile, create_access_token(profile.id)


def authenticate_user(db: Session, username: str, password: str) -> Profile | None:
    profile = db.scalar(select(Profile).where(Profile.username == username))
    if profile is None or not verify_password(password, profile.hashed_password):
        return None
    return profile


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_security),
    db: Session = Depends(get_session),
) -> Profile:
    """Resolve the signed-in profile from the bearer token."""

    if not credentials or credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")

    profile = db.get(Profile, decode_access_token(credentials.credentials))
    if profile is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    return profile


async def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_security),
    db: Session = Depends(get_session),
) -> Profile | None:
    """Return the signed-in profile, or ``None`` for anonymous or invalid tokens."""

    if not credentials or credentials.scheme.lower() != "bearer":
        return None
    try:
        user_id = decode_access_token(credentials.credentials)
    except HTTPException:
        return None
    return db.get(Profile, user_id)


__all__ = [
    "hash_password",
    "verify_password",
    "create_access_token",
    "decode_access_token",
    "register_user",
    "authenticate_user",
    "get_current_user",
    "get_optional_user",
]
