# backend/app/api/v1/endpoints/auth.py
from datetime import timedelta

from fastapi import APIRouter, Depends, Response
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.api import deps
from backend.app.core.config import settings
from backend.app.db.base import get_db
from backend.app.models.user import User
from backend.app.schemas.user import Token, UserCreate, UserResponse
from backend.app.security import jwt
from backend.app.services import users

router = APIRouter()


@router.post("/register", response_model=UserResponse)
async def register(user_in: UserCreate, db: AsyncSession = Depends(get_db)):
    return await users.register(db, user_in.name, user_in.email, user_in.password)


@router.post("/login", response_model=Token)
async def login(
        response: Response,
        form_data: OAuth2PasswordRequestForm = Depends(),
        db: AsyncSession = Depends(get_db),
):
    # OAuth2 form calls the field "username"; we log in by email
    user = await users.authenticate(db, form_data.username, form_data.password)

    expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    access_token = jwt.create_access_token(data={"sub": str(user.id)}, expires_delta=expires)

    # Browser clients use the cookie, API clients the bearer token
    response.set_cookie(
        key=settings.AUTH_COOKIE_NAME,
        value=access_token,
        max_age=int(expires.total_seconds()),
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )
    return {"access_token": access_token, "token_type": "bearer"}


@router.post("/logout")
async def logout(response: Response):
    response.delete_cookie(settings.AUTH_COOKIE_NAME)
    return {"success": True}


@router.get("/me", response_model=UserResponse)
async def me(current_user: User = Depends(deps.get_current_user)):
    return current_user
