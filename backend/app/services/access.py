# backend/app/services/access.py
"""
Membership lookups shared by every service.

require_member / require_role / require_permission are the only way the
services decide who may touch a vault; they raise before anything is
written.
"""
from typing import Iterable

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.errors import Forbidden, NotFound
from backend.app.models.vault import MemberRole, Vault, VaultMember
from backend.app.services.policy import Action, can


async def get_vault(db: AsyncSession, vault_id: int) -> Vault:
    vault = await db.get(Vault, vault_id)
    if not vault:
        raise NotFound("Vault not found")
    return vault


async def find_membership(db: AsyncSession, vault_id: int, user_id: int, for_update: bool = False):
    query = select(VaultMember).where(
        VaultMember.vault_id == vault_id,
        VaultMember.user_id == user_id,
    )
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    return result.scalars().first()


async def require_member(
    db: AsyncSession,
    vault_id: int,
    user_id: int,
    for_update: bool = False,
) -> VaultMember:
    await get_vault(db, vault_id)
    member = await find_membership(db, vault_id, user_id, for_update=for_update)
    if not member:
        raise Forbidden("Not a member of this vault")
    return member


async def require_role(
    db: AsyncSession,
    vault_id: int,
    user_id: int,
    allowed_roles: Iterable[MemberRole],
) -> VaultMember:
    member = await require_member(db, vault_id, user_id)
    if member.role not in set(allowed_roles):
        raise Forbidden()
    return member


async def require_permission(
    db: AsyncSession,
    vault_id: int,
    user_id: int,
    action: Action,
) -> VaultMember:
    member = await require_member(db, vault_id, user_id)
    if not can(member.role, action):
        raise Forbidden()
    return member


async def count_members(db: AsyncSession, vault_id: int) -> int:
    result = await db.execute(
        select(func.count(VaultMember.id)).where(VaultMember.vault_id == vault_id)
    )
    return result.scalar_one()


async def count_admins(db: AsyncSession, vault_id: int) -> int:
    """
    Count ADMIN rows, locking them on databases that support it so two
    concurrent demotions cannot both see "one other admin left".
    """
    result = await db.execute(
        select(VaultMember.id)
        .where(
            VaultMember.vault_id == vault_id,
            VaultMember.role == MemberRole.ADMIN,
        )
        .with_for_update()
    )
    return len(result.scalars().all())
