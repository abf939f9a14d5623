# backend/app/db/base.py
"""
SQLAlchemy declarative base and re-exports of the session layer.

All ORM models inherit from Base. engine, AsyncSessionLocal and get_db
live in db/session.py and are re-exported here so endpoints can import
everything database related from one place.
"""
from sqlalchemy import MetaData
from sqlalchemy.orm import DeclarativeBase

# Stable constraint names so Postgres migrations and SQLite agree
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Usage:
        class Vault(Base):
            __tablename__ = "vaults"
            id = Column(Integer, primary_key=True)
            ...
    """
    metadata = MetaData(naming_convention=NAMING_CONVENTION)


from backend.app.db.session import (  # noqa: E402
    engine,
    AsyncSessionLocal,
    get_db,
)

__all__ = [
    "Base",
    "engine",
    "AsyncSessionLocal",
    "get_db",
]
