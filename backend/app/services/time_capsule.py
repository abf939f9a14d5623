# backend/app/services/time_capsule.py
"""
Time capsules: media and notes locked until a future date.

LOCKED (is_locked, unlock_at in the future, hidden) -> UNLOCKED (visible
to the whole vault). The author can open a capsule by hand once the date
has passed; the scheduler sweep opens every due capsule through the same
transition.
"""
import logging
from datetime import datetime
from typing import Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.clock import as_utc, utcnow
from backend.app.core.errors import Conflict, Forbidden, NotFound, ValidationFailed
from backend.app.integrations.storage import BlobStorage, discard_stored_file
from backend.app.models.activity import ActivityAction
from backend.app.models.media import Media
from backend.app.models.note import Note
from backend.app.models.user import User
from backend.app.schemas.media import MediaResponse
from backend.app.schemas.note import NoteResponse
from backend.app.schemas.time_capsule import LockedMemories
from backend.app.services import activity
from backend.app.services.access import require_member, require_permission
from backend.app.services.moderation import get_media, store_upload, upload_path, validate_upload
from backend.app.services.policy import Action, is_content_owner

logger = logging.getLogger(__name__)


def _require_future(unlock_at: Optional[datetime], now: datetime) -> datetime:
    if unlock_at is None:
        raise ValidationFailed("Unlock date is required")
    unlock_at = as_utc(unlock_at)
    if unlock_at <= now:
        raise ValidationFailed("Unlock date must be in the future")
    return unlock_at


def _open_media(media: Media) -> None:
    media.is_locked = False
    media.unlock_at = None
    media.approved = True


def _open_note(note: Note) -> None:
    note.is_locked = False
    note.unlock_at = None
    note.is_private = False


def _check_unlockable(item, user_id: int, now: datetime) -> None:
    if not is_content_owner(item, user_id):
        raise Forbidden("You can only unlock your own memories")
    if not item.is_locked:
        raise Conflict("Memory is already unlocked")
    if item.unlock_at is None or now < as_utc(item.unlock_at):
        raise ValidationFailed("Memory is not ready to unlock yet")


async def create_capsule_media(
    db: AsyncSession,
    vault_id: int,
    user: User,
    file_name: str,
    content_type: Optional[str],
    data: bytes,
    unlock_at: Optional[datetime],
    storage: BlobStorage,
    caption: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Media:
    now = as_utc(now) or utcnow()
    await require_permission(db, vault_id, user.id, Action.UPLOAD)
    unlock_at = _require_future(unlock_at, now)
    media_type = validate_upload(file_name, content_type, data)

    path = upload_path(vault_id, f"time-capsule-{file_name}", now)
    file_url = await store_upload(storage, data, path)

    media = Media(
        vault_id=vault_id,
        uploader_id=user.id,
        file_url=file_url,
        file_name=file_name,
        file_size=len(data),
        type=media_type,
        caption=caption or None,
        unlock_at=unlock_at,
        is_locked=True,
        # Hidden from the gallery until it opens
        approved=False,
    )
    db.add(media)
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        await discard_stored_file(storage, path)
        raise
    await db.refresh(media)

    logger.info(f"User {user.id} locked media {media.id} until {unlock_at.isoformat()}")
    return media


async def create_capsule_note(
    db: AsyncSession,
    vault_id: int,
    user: User,
    content: str,
    unlock_at: Optional[datetime],
    title: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Note:
    now = as_utc(now) or utcnow()
    if not content or not content.strip():
        raise ValidationFailed("Note content is required")
    await require_permission(db, vault_id, user.id, Action.UPLOAD)
    unlock_at = _require_future(unlock_at, now)

    note = Note(
        vault_id=vault_id,
        author_id=user.id,
        title=(title or "").strip() or None,
        content=content.strip(),
        unlock_at=unlock_at,
        is_locked=True,
        # Private until the unlock date
        is_private=True,
    )
    db.add(note)
    await db.commit()
    await db.refresh(note)

    logger.info(f"User {user.id} locked note {note.id} until {unlock_at.isoformat()}")
    return note


async def unlock_media(db: AsyncSession, media_id: int, user: User, now: Optional[datetime] = None) -> Media:
    now = as_utc(now) or utcnow()
    media = await get_media(db, media_id, for_update=True)
    _check_unlockable(media, user.id, now)

    _open_media(media)
    activity.record(
        db, media.vault_id, user.id, ActivityAction.TIME_CAPSULE_UNLOCKED,
        f"Opened time capsule: {media.file_name}",
    )
    await db.commit()
    return media


async def get_note(db: AsyncSession, note_id: int, for_update: bool = False) -> Note:
    query = select(Note).where(Note.id == note_id)
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    note = result.scalars().first()
    if not note:
        raise NotFound("Memory not found")
    return note


async def unlock_note(db: AsyncSession, note_id: int, user: User, now: Optional[datetime] = None) -> Note:
    now = as_utc(now) or utcnow()
    note = await get_note(db, note_id, for_update=True)
    _check_unlockable(note, user.id, now)

    _open_note(note)
    activity.record(
        db, note.vault_id, user.id, ActivityAction.TIME_CAPSULE_UNLOCKED,
        f"Opened time capsule: {note.title or 'untitled note'}",
    )
    await db.commit()
    return note


async def unlock_due_capsules(db: AsyncSession, now: Optional[datetime] = None) -> Tuple[int, int]:
    """
    Open every capsule whose date has passed, across all vaults.

    No ownership checks; the activity entry is attributed to the owner.
    Returns (media opened, notes opened). Running it twice opens nothing
    the second time.
    """
    now = as_utc(now) or utcnow()

    media_result = await db.execute(
        select(Media).where(Media.is_locked.is_(True), Media.unlock_at <= now).with_for_update()
    )
    due_media = list(media_result.scalars().all())

    note_result = await db.execute(
        select(Note).where(Note.is_locked.is_(True), Note.unlock_at <= now).with_for_update()
    )
    due_notes = list(note_result.scalars().all())

    for media in due_media:
        _open_media(media)
        activity.record(
            db, media.vault_id, media.uploader_id, ActivityAction.TIME_CAPSULE_UNLOCKED,
            f"Time capsule opened: {media.file_name}",
        )
    for note in due_notes:
        _open_note(note)
        activity.record(
            db, note.vault_id, note.author_id, ActivityAction.TIME_CAPSULE_UNLOCKED,
            f"Time capsule opened: {note.title or 'untitled note'}",
        )
    await db.commit()

    if due_media or due_notes:
        logger.info(f"Unlocked {len(due_media)} media and {len(due_notes)} notes")
    return len(due_media), len(due_notes)


async def list_locked(db: AsyncSession, vault_id: int, user: User) -> LockedMemories:
    """The caller's own sealed capsules in a vault, soonest first."""
    await require_member(db, vault_id, user.id)

    media_result = await db.execute(
        select(Media)
        .where(
            Media.vault_id == vault_id,
            Media.uploader_id == user.id,
            Media.is_locked.is_(True),
            Media.deleted_at.is_(None),
        )
        .order_by(Media.unlock_at)
    )
    note_result = await db.execute(
        select(Note)
        .where(Note.vault_id == vault_id, Note.author_id == user.id, Note.is_locked.is_(True))
        .order_by(Note.unlock_at)
    )
    return LockedMemories(
        media=[MediaResponse.model_validate(m) for m in media_result.scalars().all()],
        notes=[NoteResponse.model_validate(n) for n in note_result.scalars().all()],
    )
