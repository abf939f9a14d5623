# backend/app/schemas/note.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class NoteCreate(BaseModel):
    title: Optional[str] = Field(None, max_length=200)
    content: str
    is_private: bool = False


class TimeCapsuleNoteCreate(BaseModel):
    title: Optional[str] = Field(None, max_length=200)
    content: str
    unlock_at: datetime


class NoteResponse(BaseModel):
    id: int
    vault_id: int
    author_id: int
    title: Optional[str]
    content: str
    is_private: bool
    is_locked: bool
    unlock_at: Optional[datetime]
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
