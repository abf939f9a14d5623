# backend/app/schemas/user.py
from pydantic import BaseModel, Field
from typing import Optional


# Request body for /auth/register
class UserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., max_length=255)
    password: str


# Never includes the password hash
class UserResponse(BaseModel):
    id: int
    email: str
    name: str
    dark_mode: bool

    class Config:
        from_attributes = True


class UserBrief(BaseModel):
    id: int
    name: str
    email: str

    class Config:
        from_attributes = True


class PreferencesUpdate(BaseModel):
    dark_mode: bool


class Token(BaseModel):
    access_token: str
    token_type: str


class TokenPayload(BaseModel):
    sub: Optional[str] = None
