# backend/app/services/moderation.py
"""
Media upload and the moderation state machine.

    PENDING_APPROVAL --approve--> VISIBLE --delete/vote--> TRASHED --purge--> (row gone)
                                          <----restore----

Uploaders and admins delete directly. Everyone else casts a delete
vote; once true votes exceed half of the vault's *current* member count
the item is trashed. Vote insert, recount and the trash transition run
in a single transaction, and the transition itself is a
compare-and-swap on deleted_at IS NULL.
"""
import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from backend.app.core.clock import as_utc, utcnow
from backend.app.core.config import settings
from backend.app.core.errors import Conflict, DependencyFailure, Forbidden, NotFound, ValidationFailed
from backend.app.integrations.captions import CaptionGenerator
from backend.app.integrations.storage import (
    BlobStorage,
    discard_stored_file,
    media_storage_path,
    safe_file_name,
)
from backend.app.models.activity import ActivityAction
from backend.app.models.media import Comment, Media, MediaType, Vote
from backend.app.models.user import User
from backend.app.models.vault import MemberRole
from backend.app.schemas.media import DeletionResult, DeletionStatus
from backend.app.services import activity
from backend.app.services.access import count_members, require_member, require_permission
from backend.app.services.policy import Action, can, is_content_owner

logger = logging.getLogger(__name__)

DELETION_VOTE_REASON = "Deletion request"


# ─────────────────────────────────────────────────────────────────────────────
# Lookups and validation
# ─────────────────────────────────────────────────────────────────────────────

async def get_media(db: AsyncSession, media_id: int, for_update: bool = False) -> Media:
    query = select(Media).where(Media.id == media_id)
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    media = result.scalars().first()
    if not media:
        raise NotFound("Media not found")
    return media


def classify_media(content_type: Optional[str]) -> MediaType:
    content_type = (content_type or "").lower()
    if content_type.startswith("image/"):
        return MediaType.IMAGE
    if content_type.startswith("audio/"):
        return MediaType.AUDIO
    if content_type.startswith("video/"):
        return MediaType.VIDEO
    raise ValidationFailed("Unsupported file type")


def validate_upload(file_name: str, content_type: Optional[str], data: bytes) -> MediaType:
    if not file_name or not data:
        raise ValidationFailed("No file provided")
    if len(data) > settings.MAX_UPLOAD_BYTES:
        limit_mb = settings.MAX_UPLOAD_BYTES // (1024 * 1024)
        raise ValidationFailed(f"File too large (max {limit_mb}MB)")
    return classify_media(content_type)


def upload_path(vault_id: int, file_name: str, now: datetime) -> str:
    return f"{vault_id}/{int(now.timestamp() * 1000)}-{safe_file_name(file_name)}"


def majority_threshold(total_members: int) -> float:
    return total_members / 2


async def store_upload(storage: BlobStorage, data: bytes, path: str) -> str:
    try:
        return await storage.store(data, path)
    except OSError as e:
        logger.error(f"Storing {path} failed: {e}")
        raise DependencyFailure("Failed to store file")


# ─────────────────────────────────────────────────────────────────────────────
# Upload
# ─────────────────────────────────────────────────────────────────────────────

async def upload_media(
    db: AsyncSession,
    vault_id: int,
    user: User,
    file_name: str,
    content_type: Optional[str],
    data: bytes,
    storage: BlobStorage,
    captioner: CaptionGenerator,
    caption: Optional[str] = None,
) -> Media:
    """
    Store the file and create the media row.

    Admin uploads are visible immediately, everyone else's wait for
    approval. READ_ONLY members are rejected before anything is stored.
    """
    member = await require_permission(db, vault_id, user.id, Action.UPLOAD)
    media_type = validate_upload(file_name, content_type, data)

    now = utcnow()
    path = upload_path(vault_id, file_name, now)
    file_url = await store_upload(storage, data, path)

    try:
        ai_caption = await captioner.caption(file_url, media_type, data=data, mime_type=content_type)
    except Exception:
        logger.exception("Error generating AI caption")
        ai_caption = None

    media = Media(
        vault_id=vault_id,
        uploader_id=user.id,
        file_url=file_url,
        file_name=file_name,
        file_size=len(data),
        type=media_type,
        caption=caption or None,
        ai_caption=ai_caption,
        approved=member.role == MemberRole.ADMIN,
    )
    db.add(media)
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        await discard_stored_file(storage, path)
        raise
    await db.refresh(media)

    logger.info(f"User {user.id} uploaded media {media.id} to vault {vault_id} (approved={media.approved})")
    return media


# ─────────────────────────────────────────────────────────────────────────────
# State transitions
# ─────────────────────────────────────────────────────────────────────────────

async def _trash(db: AsyncSession, media: Media, now: datetime) -> bool:
    """VISIBLE/PENDING -> TRASHED. False if someone else got there first."""
    result = await db.execute(
        update(Media)
        .where(Media.id == media.id, Media.deleted_at.is_(None))
        .values(deleted_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        return False
    set_committed_value(media, "deleted_at", now)
    return True


async def _count_deletion_votes(db: AsyncSession, media_id: int) -> int:
    result = await db.execute(
        select(func.count(Vote.id)).where(Vote.media_id == media_id, Vote.value.is_(True))
    )
    return result.scalar_one()


async def _cast_deletion_vote(db: AsyncSession, media_id: int, voter_id: int) -> bool:
    """Insert the voter's delete vote. False when they already voted."""
    result = await db.execute(
        select(Vote.id).where(Vote.media_id == media_id, Vote.voter_id == voter_id)
    )
    if result.first() is not None:
        return False

    db.add(Vote(media_id=media_id, voter_id=voter_id, value=True, reason=DELETION_VOTE_REASON))
    try:
        await db.flush()
    except IntegrityError:
        # A concurrent request from the same voter won the unique constraint
        await db.rollback()
        return False
    return True


async def request_deletion(db: AsyncSession, media_id: int, user: User) -> DeletionResult:
    # Captured up front: a rollback in _cast_deletion_vote expires loaded rows
    user_id = user.id
    media = await get_media(db, media_id, for_update=True)
    member = await require_member(db, media.vault_id, user_id)
    is_owner = is_content_owner(media, user_id)

    if media.deleted_at is not None:
        return DeletionResult(deleted=True, voted=False)

    now = utcnow()

    if is_owner or can(member.role, Action.DELETE_ANY_CONTENT):
        await _trash(db, media, now)
        activity.record(
            db, media.vault_id, user_id, ActivityAction.MEDIA_DELETED,
            f"Moved {media.file_name} to trash",
        )
        await db.commit()
        logger.info(f"User {user_id} trashed media {media.id}")
        return DeletionResult(deleted=True, voted=False)

    if not can(member.role, Action.VOTE_DELETE):
        raise Forbidden()
    if media.is_locked:
        raise Forbidden("Media is locked in a time capsule")

    if not await _cast_deletion_vote(db, media.id, user_id):
        # Reload after a possible rollback so the rest runs in a live transaction
        media = await get_media(db, media_id, for_update=True)

    votes = await _count_deletion_votes(db, media.id)
    threshold = majority_threshold(await count_members(db, media.vault_id))

    trashed = False
    if votes > threshold:
        trashed = await _trash(db, media, now)
        if trashed:
            activity.record(
                db, media.vault_id, user_id, ActivityAction.MEDIA_DELETED,
                f"Moved {media.file_name} to trash by majority vote ({votes} votes)",
            )
    await db.commit()

    logger.info(f"Delete vote on media {media.id}: {votes} votes, threshold {threshold}, trashed={trashed}")
    return DeletionResult(
        deleted=media.deleted_at is not None,
        voted=True,
        votes_for_deletion=votes,
        majority_threshold=threshold,
    )


async def deletion_status(db: AsyncSession, media_id: int, user: User) -> DeletionStatus:
    media = await get_media(db, media_id)
    await require_member(db, media.vault_id, user.id)

    votes = await _count_deletion_votes(db, media.id)
    total = await count_members(db, media.vault_id)
    threshold = majority_threshold(total)
    return DeletionStatus(
        media_id=media.id,
        votes_for_deletion=votes,
        total_members=total,
        majority_threshold=threshold,
        pending=votes <= threshold,
    )


async def approve_media(db: AsyncSession, media_id: int, user: User) -> Media:
    media = await get_media(db, media_id, for_update=True)
    await require_permission(db, media.vault_id, user.id, Action.APPROVE_MEDIA)

    if media.deleted_at is not None:
        raise Conflict("Media is in the trash")
    if media.is_locked:
        raise Conflict("Time capsule media is approved when it unlocks")
    if media.approved:
        return media

    media.approved = True
    activity.record(
        db, media.vault_id, user.id, ActivityAction.MEDIA_APPROVED,
        f"Approved {media.file_name}",
    )
    await db.commit()
    return media


async def _require_admin_or_owner(db: AsyncSession, media: Media, user: User):
    member = await require_member(db, media.vault_id, user.id)
    if not (is_content_owner(media, user.id) or member.role == MemberRole.ADMIN):
        raise Forbidden()
    return member


async def restore_media(db: AsyncSession, media_id: int, user: User) -> Media:
    """TRASHED -> previous state. Votes, comments and captions are untouched."""
    media = await get_media(db, media_id, for_update=True)
    await _require_admin_or_owner(db, media, user)

    if media.deleted_at is None:
        raise Conflict("Media is not in the trash")

    media.deleted_at = None
    activity.record(
        db, media.vault_id, user.id, ActivityAction.MEDIA_RESTORED,
        f"Restored {media.file_name} from trash",
    )
    await db.commit()
    return media


async def update_caption(db: AsyncSession, media_id: int, user: User, caption: Optional[str]) -> Media:
    media = await get_media(db, media_id)
    await _require_admin_or_owner(db, media, user)

    media.caption = caption
    await db.commit()
    return media


async def _purge(
    db: AsyncSession,
    media_id: int,
    vault_id: int,
    file_url: str,
    actor_id: int,
    storage: BlobStorage,
    details: str,
    cutoff: Optional[datetime] = None,
) -> bool:
    """
    TRASHED -> PURGED.

    The media row is deleted only while it is still trashed (and, for the
    sweep, still past the cutoff); a restored item is left alone and False
    is returned. Rows are committed first; the stored file is removed
    afterwards and a storage failure is only logged.
    """
    conditions = [Media.id == media_id, Media.deleted_at.is_not(None)]
    if cutoff is not None:
        conditions.append(Media.deleted_at <= cutoff)
    result = await db.execute(
        delete(Media).where(*conditions).execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await db.rollback()
        return False

    await db.execute(delete(Vote).where(Vote.media_id == media_id))
    await db.execute(delete(Comment).where(Comment.media_id == media_id))
    activity.record(db, vault_id, actor_id, ActivityAction.MEDIA_DELETED, details)
    await db.commit()

    await discard_stored_file(storage, media_storage_path(vault_id, file_url))
    return True


async def permanent_delete_media(db: AsyncSession, media_id: int, user: User, storage: BlobStorage) -> None:
    media = await get_media(db, media_id, for_update=True)
    member = await require_member(db, media.vault_id, user.id)
    if not can(member.role, Action.PURGE_MEDIA):
        raise Forbidden("Only admins can permanently delete media")

    if media.deleted_at is None:
        raise ValidationFailed("Media must be in trash before permanent deletion")

    purged = await _purge(
        db, media.id, media.vault_id, media.file_url, user.id, storage,
        f"Permanently deleted media: {media.file_name}",
    )
    if not purged:
        # Restored by someone else since it was loaded
        raise ValidationFailed("Media must be in trash before permanent deletion")
    db.expunge(media)
    logger.info(f"User {user.id} permanently deleted media {media_id}")


async def purge_expired_trash(
    db: AsyncSession,
    storage: BlobStorage,
    now: Optional[datetime] = None,
) -> int:
    """
    Purge everything that has sat in the trash longer than the retention
    window. Safe to run repeatedly; each item commits on its own and is
    re-checked against the cutoff when it is deleted.
    """
    now = as_utc(now) or utcnow()
    cutoff = now - timedelta(hours=settings.TRASH_RETENTION_HOURS)

    result = await db.execute(
        select(Media.id, Media.vault_id, Media.file_url, Media.file_name, Media.uploader_id)
        .where(Media.deleted_at.is_not(None), Media.deleted_at <= cutoff)
        .order_by(Media.id)
    )
    expired = result.all()
    logger.info(f"Found {len(expired)} media items to permanently delete")

    purged = 0
    for media_id, vault_id, file_url, file_name, uploader_id in expired:
        if await _purge(
            db, media_id, vault_id, file_url, uploader_id, storage,
            f"Permanently deleted media after {settings.TRASH_RETENTION_HOURS}h in trash: {file_name}",
            cutoff=cutoff,
        ):
            purged += 1
        else:
            logger.info(f"Media {media_id} left the trash before it was purged")

    return purged
