# backend/app/api/v1/endpoints/time_capsule.py
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.api import deps
from backend.app.db.base import get_db
from backend.app.integrations.storage import BlobStorage
from backend.app.models.user import User
from backend.app.schemas.media import MediaResponse
from backend.app.schemas.note import NoteResponse, TimeCapsuleNoteCreate
from backend.app.schemas.time_capsule import LockedMemories
from backend.app.services import time_capsule

router = APIRouter()


@router.get("/vaults/{vault_id}/time-capsule", response_model=LockedMemories)
async def locked_memories(
        vault_id: int,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user),
):
    return await time_capsule.list_locked(db, vault_id, current_user)


@router.post("/vaults/{vault_id}/time-capsule/media", response_model=MediaResponse)
async def create_capsule_media(
        vault_id: int,
        file: UploadFile = File(...),
        unlock_at: datetime = Form(...),
        caption: Optional[str] = Form(None),
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user),
        storage: BlobStorage = Depends(deps.get_storage),
):
    data = await file.read()
    return await time_capsule.create_capsule_media(
        db,
        vault_id,
        current_user,
        file_name=file.filename,
        content_type=file.content_type,
        data=data,
        unlock_at=unlock_at,
        storage=storage,
        caption=caption,
    )


@router.post("/vaults/{vault_id}/time-capsule/notes", response_model=NoteResponse)
async def create_capsule_note(
        vault_id: int,
        note_in: TimeCapsuleNoteCreate,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user),
):
    return await time_capsule.create_capsule_note(
        db, vault_id, current_user,
        content=note_in.content,
        unlock_at=note_in.unlock_at,
        title=note_in.title,
    )


@router.post("/time-capsule/media/{media_id}/unlock", response_model=MediaResponse)
async def unlock_media(
        media_id: int,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user),
):
    return await time_capsule.unlock_media(db, media_id, current_user)


@router.post("/time-capsule/notes/{note_id}/unlock", response_model=NoteResponse)
async def unlock_note(
        note_id: int,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user),
):
    return await time_capsule.unlock_note(db, note_id, current_user)
