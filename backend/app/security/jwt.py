# backend/app/security/jwt.py
from datetime import timedelta
from typing import Optional

from jose import jwt as jose_jwt

from backend.app.core.clock import utcnow
from backend.app.core.config import settings


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Sign a HS256 token; `sub` carries the user id as a string."""
    to_encode = data.copy()
    expire = utcnow() + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jose_jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> dict:
    # Raises jose.JWTError on bad signature or expiry
    return jose_jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
