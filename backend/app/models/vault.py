# backend/app/models/vault.py
import enum

from sqlalchemy import (
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from backend.app.db.base import Base


class MemberRole(str, enum.Enum):
    ADMIN = "ADMIN"
    MEMBER = "MEMBER"
    READ_ONLY = "READ_ONLY"


class Vault(Base):
    __tablename__ = "vaults"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    theme_color = Column(String(20), nullable=False, default="#3b82f6")
    cover_image = Column(String(500), nullable=True)

    # Shared through /join/{invite_code}
    invite_code = Column(String(32), unique=True, index=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    members = relationship("VaultMember", back_populates="vault")


class VaultMember(Base):
    """Membership row: one (vault, user) pair with a role."""
    __tablename__ = "vault_members"
    __table_args__ = (
        UniqueConstraint("vault_id", "user_id", name="uq_vault_members_vault_user"),
    )

    id = Column(Integer, primary_key=True, index=True)
    vault_id = Column(Integer, ForeignKey("vaults.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(
        Enum(MemberRole, name="member_role", native_enum=False, length=20),
        nullable=False,
        default=MemberRole.MEMBER,
    )
    joined_at = Column(DateTime(timezone=True), server_default=func.now())

    vault = relationship("Vault", back_populates="members")
    user = relationship("User", back_populates="memberships")
