# backend/app/services/activity.py
"""Append-only vault activity log."""
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from backend.app.core.config import settings
from backend.app.models.activity import ActivityAction, VaultActivity
from backend.app.models.user import User
from backend.app.services.access import require_member


def record(
    db: AsyncSession,
    vault_id: int,
    actor_id: int,
    action: ActivityAction,
    details: Optional[str] = None,
) -> VaultActivity:
    """
    Stage an activity row in the caller's transaction.

    No flush or commit here: the row lands together with the state
    change it describes, or not at all.
    """
    activity = VaultActivity(
        vault_id=vault_id,
        user_id=actor_id,
        action=action,
        details=details,
    )
    db.add(activity)
    return activity


async def recent(
    db: AsyncSession,
    vault_id: int,
    user: User,
    limit: Optional[int] = None,
) -> List[VaultActivity]:
    await require_member(db, vault_id, user.id)

    limit = min(limit or settings.ACTIVITY_FEED_LIMIT, settings.ACTIVITY_FEED_LIMIT)
    result = await db.execute(
        select(VaultActivity)
        .options(selectinload(VaultActivity.user))
        .where(VaultActivity.vault_id == vault_id)
        .order_by(VaultActivity.created_at.desc(), VaultActivity.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())
