# backend/app/schemas/vault.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from backend.app.models.vault import MemberRole
from backend.app.schemas.user import UserBrief


class VaultCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    theme_color: Optional[str] = Field(None, max_length=20)
    cover_image: Optional[str] = None


class VaultUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    theme_color: Optional[str] = Field(None, max_length=20)
    cover_image: Optional[str] = None


class MemberResponse(BaseModel):
    id: int
    user_id: int
    role: MemberRole
    joined_at: Optional[datetime] = None
    user: UserBrief

    class Config:
        from_attributes = True


class MemberRoleUpdate(BaseModel):
    role: MemberRole


class VaultResponse(BaseModel):
    id: int
    name: str
    description: Optional[str]
    theme_color: str
    cover_image: Optional[str]
    invite_code: str
    created_at: Optional[datetime] = None
    members: List[MemberResponse] = []
    media_count: int = 0
    note_count: int = 0


class VaultPreview(BaseModel):
    """What someone holding an invite link may see before joining."""
    id: int
    name: str
    description: Optional[str]
    cover_image: Optional[str]
    theme_color: str
    member_count: int


class JoinRequest(BaseModel):
    invite_code: str = Field(..., min_length=1)


class JoinResponse(BaseModel):
    success: bool
    vault_id: int


class InviteResponse(BaseModel):
    invite_code: str
    invite_url: str
    # Base64 PNG, usable as <img src="data:image/png;base64,...">
    qr_code: str
