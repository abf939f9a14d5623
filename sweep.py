"""
Run the scheduled maintenance jobs once and exit.

    python sweep.py            # unlock due time capsules + purge old trash
    python sweep.py unlock
    python sweep.py purge

Meant for cron; both jobs are idempotent.
"""
import asyncio
import logging
import sys

from backend.app.core.config import settings
from backend.app.db.session import AsyncSessionLocal
from backend.app.integrations.storage import LocalBlobStorage
from backend.app.services import moderation, time_capsule

logging.basicConfig(level=settings.LOG_LEVEL.upper())
logger = logging.getLogger("sweep")


async def run(jobs):
    storage = LocalBlobStorage(settings.STORAGE_DIR, settings.STORAGE_PUBLIC_URL)
    async with AsyncSessionLocal() as db:
        if "unlock" in jobs:
            media_count, note_count = await time_capsule.unlock_due_capsules(db)
            logger.info(f"Unlocked {media_count} media and {note_count} notes")
        if "purge" in jobs:
            purged = await moderation.purge_expired_trash(db, storage)
            logger.info(f"Permanently deleted {purged} media items")


if __name__ == "__main__":
    jobs = set(sys.argv[1:]) or {"unlock", "purge"}
    unknown = jobs - {"unlock", "purge"}
    if unknown:
        sys.exit(f"Unknown job(s): {', '.join(sorted(unknown))}")
    asyncio.run(run(jobs))
