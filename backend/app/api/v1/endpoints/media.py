# backend/app/api/v1/endpoints/media.py
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.api import deps
from backend.app.db.base import get_db
from backend.app.integrations.storage import BlobStorage
from backend.app.models.user import User
from backend.app.schemas.media import (
    CommentCreate,
    CommentResponse,
    DeletionResult,
    DeletionStatus,
    MediaAction,
    MediaResponse,
)
from backend.app.services import content, moderation

router = APIRouter()


@router.put("/{media_id}", response_model=MediaResponse)
async def update_media(
        media_id: int,
        action_in: MediaAction,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user),
):
    if action_in.action == "approve":
        return await moderation.approve_media(db, media_id, current_user)
    if action_in.action == "restore":
        return await moderation.restore_media(db, media_id, current_user)
    return await moderation.update_caption(db, media_id, current_user, action_in.caption)


# Uploader/admin: straight to trash. Anyone else: a delete vote.
@router.delete("/{media_id}", response_model=DeletionResult)
async def delete_media(
        media_id: int,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user),
):
    return await moderation.request_deletion(db, media_id, current_user)


@router.get("/{media_id}/votes", response_model=DeletionStatus)
async def deletion_status(
        media_id: int,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user),
):
    return await moderation.deletion_status(db, media_id, current_user)


@router.delete("/{media_id}/permanent")
async def permanent_delete(
        media_id: int,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user),
        storage: BlobStorage = Depends(deps.get_storage),
):
    await moderation.permanent_delete_media(db, media_id, current_user, storage)
    return {"success": True}


@router.get("/{media_id}/comments", response_model=List[CommentResponse])
async def list_comments(
        media_id: int,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user),
):
    return await content.list_comments(db, media_id, current_user)


@router.post("/{media_id}/comments", response_model=CommentResponse)
async def add_comment(
        media_id: int,
        comment_in: CommentCreate,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user),
):
    return await content.add_comment(db, media_id, current_user, comment_in.content)
