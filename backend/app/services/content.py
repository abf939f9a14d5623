# backend/app/services/content.py
"""Notes, comments and the member-facing media listings."""
import logging
from typing import List, Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from backend.app.core.errors import Forbidden, ValidationFailed
from backend.app.models.media import Comment, Media
from backend.app.models.note import Note
from backend.app.models.user import User
from backend.app.models.vault import MemberRole
from backend.app.services.access import require_member, require_permission
from backend.app.services.moderation import get_media
from backend.app.services.policy import Action, can, is_content_owner
from backend.app.services.time_capsule import get_note

logger = logging.getLogger(__name__)

MEDIA_VIEWS = ("gallery", "pending", "trash")


async def create_note(
    db: AsyncSession,
    vault_id: int,
    user: User,
    content: str,
    title: Optional[str] = None,
    is_private: bool = False,
) -> Note:
    if not content or not content.strip():
        raise ValidationFailed("Note content is required")
    await require_permission(db, vault_id, user.id, Action.UPLOAD)

    note = Note(
        vault_id=vault_id,
        author_id=user.id,
        title=(title or "").strip() or None,
        content=content.strip(),
        is_private=bool(is_private),
    )
    db.add(note)
    await db.commit()
    await db.refresh(note)
    return note


async def delete_note(db: AsyncSession, note_id: int, user: User) -> None:
    note = await get_note(db, note_id)
    member = await require_member(db, note.vault_id, user.id)
    if not (is_content_owner(note, user.id) or can(member.role, Action.DELETE_ANY_CONTENT)):
        raise Forbidden()

    await db.delete(note)
    await db.commit()
    logger.info(f"User {user.id} deleted note {note_id}")


async def list_notes(db: AsyncSession, vault_id: int, user: User) -> List[Note]:
    """Shared notes plus the caller's own private ones; sealed capsules stay with their author."""
    await require_member(db, vault_id, user.id)

    result = await db.execute(
        select(Note)
        .where(
            Note.vault_id == vault_id,
            or_(
                Note.author_id == user.id,
                Note.is_private.is_(False) & Note.is_locked.is_(False),
            ),
        )
        .order_by(Note.created_at.desc(), Note.id.desc())
    )
    return list(result.scalars().all())


async def list_media(db: AsyncSession, vault_id: int, user: User, view: str = "gallery") -> List[Media]:
    if view not in MEDIA_VIEWS:
        raise ValidationFailed(f"Unknown view '{view}'")
    member = await require_member(db, vault_id, user.id)

    query = select(Media).where(Media.vault_id == vault_id)
    if view == "gallery":
        query = query.where(
            Media.approved.is_(True),
            Media.deleted_at.is_(None),
            Media.is_locked.is_(False),
        )
    elif view == "pending":
        query = query.where(
            Media.approved.is_(False),
            Media.deleted_at.is_(None),
            Media.is_locked.is_(False),
        )
    else:
        query = query.where(Media.deleted_at.is_not(None))

    # Admins moderate everything; members only see their own pending/trashed items
    if view != "gallery" and member.role != MemberRole.ADMIN:
        query = query.where(Media.uploader_id == user.id)

    result = await db.execute(query.order_by(Media.created_at.desc(), Media.id.desc()))
    return list(result.scalars().all())


async def _visible_media(db: AsyncSession, media_id: int, user: User) -> Media:
    media = await get_media(db, media_id)
    await require_member(db, media.vault_id, user.id)
    if media.is_locked and not is_content_owner(media, user.id):
        raise Forbidden("Media is locked in a time capsule")
    return media


async def add_comment(db: AsyncSession, media_id: int, user: User, content: str) -> Comment:
    # Multiple comments per user per media are allowed
    if not content or not content.strip():
        raise ValidationFailed("Comment cannot be empty")
    media = await _visible_media(db, media_id, user)
    await require_permission(db, media.vault_id, user.id, Action.COMMENT)

    comment = Comment(media_id=media.id, author_id=user.id, content=content.strip())
    db.add(comment)
    await db.commit()

    result = await db.execute(
        select(Comment)
        .options(selectinload(Comment.author))
        .where(Comment.id == comment.id)
        .execution_options(populate_existing=True)
    )
    return result.scalars().one()


async def list_comments(db: AsyncSession, media_id: int, user: User) -> List[Comment]:
    media = await _visible_media(db, media_id, user)
    result = await db.execute(
        select(Comment)
        .options(selectinload(Comment.author))
        .where(Comment.media_id == media.id)
        .order_by(Comment.created_at, Comment.id)
    )
    return list(result.scalars().all())
