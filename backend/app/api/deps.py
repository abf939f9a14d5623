# backend/app/api/deps.py
from typing import Optional

from fastapi import Depends, Header, Request
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.core.errors import Forbidden, Unauthenticated
from backend.app.db.base import get_db
from backend.app.integrations.captions import CaptionGenerator
from backend.app.integrations.storage import BlobStorage
from backend.app.models.user import User
from backend.app.schemas.user import TokenPayload
from backend.app.security import jwt

# auto_error=False: the browser client authenticates with the auth cookie instead
reusable_oauth2 = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_V1_STR}/auth/login",
    auto_error=False,
)


async def get_current_user(
        request: Request,
        db: AsyncSession = Depends(get_db),
        token: Optional[str] = Depends(reusable_oauth2),
) -> User:
    token = token or request.cookies.get(settings.AUTH_COOKIE_NAME)
    if not token:
        raise Unauthenticated()

    try:
        payload = jwt.decode_access_token(token)
        token_data = TokenPayload(**payload)
        user_id = int(token_data.sub)
    except (JWTError, ValidationError, TypeError, ValueError):
        raise Unauthenticated("Could not validate credentials")

    user = await db.get(User, user_id)
    if not user or not user.is_active:
        raise Unauthenticated()

    return user


def get_storage(request: Request) -> BlobStorage:
    return request.app.state.storage


def get_caption_generator(request: Request) -> CaptionGenerator:
    return request.app.state.captioner


def require_cron_secret(x_cron_secret: Optional[str] = Header(None)) -> None:
    if settings.CRON_SECRET and x_cron_secret != settings.CRON_SECRET:
        raise Forbidden("Invalid cron secret")
