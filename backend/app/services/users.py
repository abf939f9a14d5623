# backend/app/services/users.py
import logging
import re
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.errors import Conflict, Unauthenticated, ValidationFailed
from backend.app.models.user import User
from backend.app.security import hashing

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 6


async def get_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == email.strip().lower()))
    return result.scalars().first()


async def register(db: AsyncSession, name: str, email: str, password: str) -> User:
    if not name or not name.strip() or not email or not password:
        raise ValidationFailed("Missing required fields")
    email = email.strip().lower()
    if not EMAIL_RE.match(email):
        raise ValidationFailed("Invalid email format")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationFailed(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    if await get_by_email(db, email):
        raise Conflict("User already exists")

    user = User(
        name=name.strip(),
        email=email,
        hashed_password=hashing.get_password_hash(password),
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise Conflict("User already exists")
    await db.refresh(user)

    logger.info(f"Registered user {user.id}")
    return user


async def authenticate(db: AsyncSession, email: str, password: str) -> User:
    user = await get_by_email(db, email)
    if not user or not user.is_active or not hashing.verify_password(password, user.hashed_password):
        raise Unauthenticated("Incorrect email or password")
    return user


async def update_preferences(db: AsyncSession, user: User, dark_mode: bool) -> User:
    user.dark_mode = dark_mode
    await db.commit()
    return user
