# backend/app/schemas/media.py
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from backend.app.models.media import MediaType
from backend.app.schemas.user import UserBrief


class MediaResponse(BaseModel):
    id: int
    vault_id: int
    uploader_id: int
    file_url: str
    file_name: str
    file_size: int
    type: MediaType
    caption: Optional[str]
    ai_caption: Optional[str]
    approved: bool
    deleted_at: Optional[datetime]
    is_locked: bool
    unlock_at: Optional[datetime]
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MediaAction(BaseModel):
    """Body of PUT /media/{id}."""
    action: Literal["approve", "restore", "updateCaption"]
    caption: Optional[str] = None


class DeletionStatus(BaseModel):
    media_id: int
    votes_for_deletion: int
    total_members: int
    majority_threshold: float
    pending: bool


class DeletionResult(BaseModel):
    success: bool = True
    deleted: bool
    voted: bool
    votes_for_deletion: Optional[int] = None
    majority_threshold: Optional[float] = None


class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1)


class CommentResponse(BaseModel):
    id: int
    media_id: int
    author_id: int
    content: str
    created_at: Optional[datetime] = None
    author: UserBrief

    class Config:
        from_attributes = True
