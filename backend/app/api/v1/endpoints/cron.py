# backend/app/api/v1/endpoints/cron.py
"""
Scheduler hooks. Both sweeps are idempotent, so an external cron may
call them as often as it likes.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.api import deps
from backend.app.db.base import get_db
from backend.app.integrations.storage import BlobStorage
from backend.app.schemas.time_capsule import PurgeResult, SweepResult
from backend.app.services import moderation, time_capsule

router = APIRouter(dependencies=[Depends(deps.require_cron_secret)])


@router.post("/unlock-time-capsules", response_model=SweepResult)
async def unlock_time_capsules(db: AsyncSession = Depends(get_db)):
    media_count, note_count = await time_capsule.unlock_due_capsules(db)
    return SweepResult(unlocked_media=media_count, unlocked_notes=note_count)


@router.post("/purge-trash", response_model=PurgeResult)
async def purge_trash(
        db: AsyncSession = Depends(get_db),
        storage: BlobStorage = Depends(deps.get_storage),
):
    purged = await moderation.purge_expired_trash(db, storage)
    return PurgeResult(purged_media=purged)
