"""
Authentication helpers.

Provides:
- Password hashing and verification (passlib + bcrypt)
- JWT creation and decoding (python-jose)
- One-time codes for e-mail verification and password reset
- FastAPI dependencies resolving the current user
"""

import secrets
from datetime import datetime, timedelta
from typing import Any

from fastapi import Depends, HTTPException, Request
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from artgallery.core.config import settings
from artgallery.core.database import get_db
from artgallery.models.user import User

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

TOKEN_COOKIE = "token"


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


def create_access_token(
    user_id: int,
    role: str,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a signed JWT for a user."""
    expire = datetime.utcnow() + (
        expires_delta or timedelta(minutes=settings.jwt_access_token_expire_minutes)
    )
    payload = {"sub": str(user_id), "role": role, "exp": expire}
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any] | None:
    """Decode a JWT, returning None when it is invalid or expired."""
    try:
        return jwt.decode(
            token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm]
        )
    except JWTError:
        return None


def generate_otp() -> str:
    """Six-digit numeric one-time code."""
    return f"{secrets.randbelow(1_000_000):06d}"


def otp_expiry() -> datetime:
    return datetime.utcnow() + timedelta(minutes=settings.otp_expire_minutes)


def extract_token(request: Request) -> str | None:
    """Read the token from the Authorization header or the auth cookie."""
    header = request.headers.get("Authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip() or None
    return request.cookies.get(TOKEN_COOKIE)


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the authenticated user or fail with 401."""
    token = extract_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="Not authorized, no token")

    payload = decode_access_token(token)
    if not payload or "sub" not in payload:
        raise HTTPException(status_code=401, detail="Not authorized, token failed")

    result = await db.execute(select(User).where(User.id == int(payload["sub"])))
    user = result.scalar_one_or_none()

    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="User not found")

    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:
    """Allow only admin users."""
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Not authorized as admin")
    return user
