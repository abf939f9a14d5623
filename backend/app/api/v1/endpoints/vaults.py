# backend/app/api/v1/endpoints/vaults.py
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.api import deps
from backend.app.db.base import get_db
from backend.app.integrations.captions import CaptionGenerator
from backend.app.integrations.storage import BlobStorage
from backend.app.models.user import User
from backend.app.schemas.activity import ActivityFeed, ActivityResponse
from backend.app.schemas.media import MediaResponse
from backend.app.schemas.note import NoteCreate, NoteResponse
from backend.app.schemas.vault import (
    InviteResponse,
    JoinRequest,
    JoinResponse,
    MemberResponse,
    MemberRoleUpdate,
    VaultCreate,
    VaultPreview,
    VaultResponse,
    VaultUpdate,
)
from backend.app.services import activity, content, membership, moderation

router = APIRouter()


# 1. VAULTS
@router.get("/", response_model=List[VaultResponse])
async def list_vaults(
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user),
):
    vaults = await membership.list_vaults(db, current_user)
    return [await membership.describe_vault(db, vault) for vault in vaults]


@router.post("/", response_model=VaultResponse)
async def create_vault(
        vault_in: VaultCreate,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user),
):
    vault = await membership.create_vault(db, current_user, **vault_in.model_dump())
    return await membership.describe_vault(db, vault)


# Public: shown on the /join/{code} page before signing in
@router.get("/info/{code}", response_model=VaultPreview)
async def vault_info(code: str, db: AsyncSession = Depends(get_db)):
    return await membership.preview_by_invite_code(db, code)


@router.post("/join", response_model=JoinResponse)
async def join_vault(
        join_in: JoinRequest,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user),
):
    member = await membership.join_vault(db, join_in.invite_code, current_user)
    return JoinResponse(success=True, vault_id=member.vault_id)


@router.get("/{vault_id}", response_model=VaultResponse)
async def read_vault(
        vault_id: int,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user),
):
    vault = await membership.get_member_vault(db, vault_id, current_user)
    return await membership.describe_vault(db, vault)


@router.put("/{vault_id}", response_model=VaultResponse)
async def update_vault(
        vault_id: int,
        vault_in: VaultUpdate,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user),
):
    vault = await membership.update_vault(db, vault_id, current_user, vault_in)
    return await membership.describe_vault(db, vault)


@router.delete("/{vault_id}")
async def delete_vault(
        vault_id: int,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user),
        storage: BlobStorage = Depends(deps.get_storage),
):
    await membership.delete_vault(db, vault_id, current_user, storage)
    return {"success": True}


@router.post("/{vault_id}/leave")
async def leave_vault(
        vault_id: int,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user),
):
    await membership.leave_vault(db, vault_id, current_user)
    return {"success": True}


# 2. INVITES
@router.get("/{vault_id}/invite", response_model=InviteResponse)
async def invite_details(
        vault_id: int,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user),
):
    return await membership.invite_details(db, vault_id, current_user)


@router.post("/{vault_id}/invite/reset", response_model=InviteResponse)
async def reset_invite(
        vault_id: int,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user),
):
    await membership.reset_invite_code(db, vault_id, current_user)
    return await membership.invite_details(db, vault_id, current_user)


# 3. MEMBERS
@router.put("/{vault_id}/members/{member_id}", response_model=MemberResponse)
async def change_member_role(
        vault_id: int,
        member_id: int,
        role_in: MemberRoleUpdate,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user),
):
    return await membership.change_member_role(db, vault_id, current_user, member_id, role_in.role)


@router.delete("/{vault_id}/members/{member_id}")
async def remove_member(
        vault_id: int,
        member_id: int,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user),
):
    await membership.remove_member(db, vault_id, current_user, member_id)
    return {"success": True}


# 4. ACTIVITY FEED
@router.get("/{vault_id}/activities", response_model=ActivityFeed)
async def read_activities(
        vault_id: int,
        limit: Optional[int] = Query(None, ge=1),
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user),
):
    rows = await activity.recent(db, vault_id, current_user, limit)
    return ActivityFeed(activities=[ActivityResponse.model_validate(row) for row in rows])


# 5. MEDIA
@router.get("/{vault_id}/media", response_model=List[MediaResponse])
async def list_media(
        vault_id: int,
        view: str = Query("gallery"),
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user),
):
    return await content.list_media(db, vault_id, current_user, view)


@router.post("/{vault_id}/media", response_model=MediaResponse)
async def upload_media(
        vault_id: int,
        file: UploadFile = File(...),
        caption: Optional[str] = Form(None),
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user),
        storage: BlobStorage = Depends(deps.get_storage),
        captioner: CaptionGenerator = Depends(deps.get_caption_generator),
):
    data = await file.read()
    return await moderation.upload_media(
        db,
        vault_id,
        current_user,
        file_name=file.filename,
        content_type=file.content_type,
        data=data,
        storage=storage,
        captioner=captioner,
        caption=caption,
    )


# 6. NOTES
@router.get("/{vault_id}/notes", response_model=List[NoteResponse])
async def list_notes(
        vault_id: int,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user),
):
    return await content.list_notes(db, vault_id, current_user)


@router.post("/{vault_id}/notes", response_model=NoteResponse)
async def create_note(
        vault_id: int,
        note_in: NoteCreate,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(deps.get_current_user),
):
    return await content.create_note(
        db, vault_id, current_user,
        content=note_in.content,
        title=note_in.title,
        is_private=note_in.is_private,
    )
