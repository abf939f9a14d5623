# backend/app/schemas/time_capsule.py
from typing import List

from pydantic import BaseModel

from backend.app.schemas.media import MediaResponse
from backend.app.schemas.note import NoteResponse


class LockedMemories(BaseModel):
    media: List[MediaResponse]
    notes: List[NoteResponse]


class SweepResult(BaseModel):
    success: bool = True
    unlocked_media: int = 0
    unlocked_notes: int = 0


class PurgeResult(BaseModel):
    success: bool = True
    purged_media: int = 0
