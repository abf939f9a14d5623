# backend/app/models/activity.py
import enum

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from backend.app.db.base import Base


class ActivityAction(str, enum.Enum):
    MEDIA_DELETED = "MEDIA_DELETED"
    MEDIA_RESTORED = "MEDIA_RESTORED"
    MEDIA_APPROVED = "MEDIA_APPROVED"
    MEMBER_JOINED = "MEMBER_JOINED"
    MEMBER_LEFT = "MEMBER_LEFT"
    MEMBER_ROLE_CHANGED = "MEMBER_ROLE_CHANGED"
    MEMBER_REMOVED = "MEMBER_REMOVED"
    VAULT_UPDATED = "VAULT_UPDATED"
    TIME_CAPSULE_UNLOCKED = "TIME_CAPSULE_UNLOCKED"
    INVITE_CODE_RESET = "INVITE_CODE_RESET"


class VaultActivity(Base):
    """Write-once audit row. Nothing updates or deletes these except vault deletion."""
    __tablename__ = "vault_activities"

    id = Column(Integer, primary_key=True, index=True)
    vault_id = Column(Integer, ForeignKey("vaults.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    action = Column(Enum(ActivityAction, name="activity_action", native_enum=False, length=40), nullable=False)
    details = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    user = relationship("User")
