# backend/app/db/__init__.py
import logging

logger = logging.getLogger(__name__)


async def init_models(engine=None, drop: bool = False) -> None:
    """Create every table registered on Base.metadata."""
    from backend.app.db.base import Base
    from backend.app import models  # noqa: F401  registers the tables

    if engine is None:
        from backend.app.db.session import engine

    try:
        async with engine.begin() as conn:
            if drop:
                # DEV MODE ONLY
                await conn.run_sync(Base.metadata.drop_all)
            logger.info("Creating database tables...")
            await conn.run_sync(Base.metadata.create_all)
            logger.info("Database tables ready.")
    except Exception as e:
        logger.error(f"Table creation failed: {e}")
        raise
