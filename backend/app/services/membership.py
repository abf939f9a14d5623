# backend/app/services/membership.py
"""
Vaults and memberships.

Every mutation here keeps two invariants:
- (vault, user) is unique (schema constraint + pre-check)
- a vault with members always keeps at least one ADMIN
"""
import logging
from typing import List

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from backend.app.core.config import settings
from backend.app.core.errors import Conflict, NotFound
from backend.app.integrations.storage import BlobStorage, discard_stored_file, media_storage_path
from backend.app.models.activity import ActivityAction, VaultActivity
from backend.app.models.media import Comment, Media, Vote
from backend.app.models.note import Note
from backend.app.models.user import User
from backend.app.models.vault import MemberRole, Vault, VaultMember
from backend.app.schemas.vault import (
    InviteResponse,
    MemberResponse,
    VaultPreview,
    VaultResponse,
    VaultUpdate,
)
from backend.app.services import activity, invites
from backend.app.services.access import (
    count_admins,
    count_members,
    find_membership,
    get_vault,
    require_member,
    require_permission,
)
from backend.app.services.policy import Action

logger = logging.getLogger(__name__)

MAX_INVITE_CODE_ATTEMPTS = 5


def display_name(user: User) -> str:
    return user.name or user.email


async def _unused_invite_code(db: AsyncSession) -> str:
    for _ in range(MAX_INVITE_CODE_ATTEMPTS):
        code = invites.generate_invite_code()
        result = await db.execute(select(Vault.id).where(Vault.invite_code == code))
        if result.first() is None:
            return code
    raise Conflict("Could not allocate an invite code, try again")


async def _members_of(db: AsyncSession, vault_id: int) -> List[VaultMember]:
    result = await db.execute(
        select(VaultMember)
        .options(selectinload(VaultMember.user))
        .where(VaultMember.vault_id == vault_id)
        .order_by(VaultMember.id)
    )
    return list(result.scalars().all())


async def describe_vault(db: AsyncSession, vault: Vault) -> VaultResponse:
    members = await _members_of(db, vault.id)
    media_count = (await db.execute(
        select(func.count(Media.id)).where(Media.vault_id == vault.id, Media.deleted_at.is_(None))
    )).scalar_one()
    note_count = (await db.execute(
        select(func.count(Note.id)).where(Note.vault_id == vault.id)
    )).scalar_one()

    return VaultResponse(
        id=vault.id,
        name=vault.name,
        description=vault.description,
        theme_color=vault.theme_color,
        cover_image=vault.cover_image,
        invite_code=vault.invite_code,
        created_at=vault.created_at,
        members=[MemberResponse.model_validate(m) for m in members],
        media_count=media_count,
        note_count=note_count,
    )


async def create_vault(
    db: AsyncSession,
    user: User,
    name: str,
    description: str = None,
    theme_color: str = None,
    cover_image: str = None,
) -> Vault:
    vault = Vault(
        name=name,
        description=description,
        theme_color=theme_color or settings.DEFAULT_THEME_COLOR,
        cover_image=cover_image,
        invite_code=await _unused_invite_code(db),
    )
    db.add(vault)
    await db.flush()

    db.add(VaultMember(vault_id=vault.id, user_id=user.id, role=MemberRole.ADMIN))
    await db.commit()
    await db.refresh(vault)

    logger.info(f"User {user.id} created vault {vault.id}")
    return vault


async def list_vaults(db: AsyncSession, user: User) -> List[Vault]:
    result = await db.execute(
        select(Vault)
        .join(VaultMember, VaultMember.vault_id == Vault.id)
        .where(VaultMember.user_id == user.id)
        .order_by(Vault.created_at.desc(), Vault.id.desc())
    )
    return list(result.scalars().all())


async def get_member_vault(db: AsyncSession, vault_id: int, user: User) -> Vault:
    await require_member(db, vault_id, user.id)
    return await get_vault(db, vault_id)


async def preview_by_invite_code(db: AsyncSession, code: str) -> VaultPreview:
    result = await db.execute(select(Vault).where(Vault.invite_code == code))
    vault = result.scalars().first()
    if not vault:
        raise NotFound("Vault not found")

    return VaultPreview(
        id=vault.id,
        name=vault.name,
        description=vault.description,
        cover_image=vault.cover_image,
        theme_color=vault.theme_color,
        member_count=await count_members(db, vault.id),
    )


async def join_vault(db: AsyncSession, code: str, user: User) -> VaultMember:
    result = await db.execute(select(Vault).where(Vault.invite_code == code.strip()))
    vault = result.scalars().first()
    if not vault:
        raise NotFound("Invalid invite code")

    if await find_membership(db, vault.id, user.id):
        raise Conflict("Already a member")

    member = VaultMember(vault_id=vault.id, user_id=user.id, role=MemberRole.MEMBER)
    db.add(member)
    activity.record(
        db, vault.id, user.id, ActivityAction.MEMBER_JOINED,
        f"{display_name(user)} joined the vault",
    )
    try:
        await db.commit()
    except IntegrityError:
        # Lost a race with a concurrent join of the same user
        await db.rollback()
        raise Conflict("Already a member")

    logger.info(f"User {user.id} joined vault {vault.id}")
    return member


async def leave_vault(db: AsyncSession, vault_id: int, user: User) -> None:
    member = await require_member(db, vault_id, user.id, for_update=True)

    if member.role == MemberRole.ADMIN and await count_admins(db, vault_id) <= 1:
        raise Conflict("Cannot leave vault as the last admin")

    await db.delete(member)
    activity.record(
        db, vault_id, user.id, ActivityAction.MEMBER_LEFT,
        f"{display_name(user)} left the vault",
    )
    await db.commit()
    logger.info(f"User {user.id} left vault {vault_id}")


async def _target_member(db: AsyncSession, vault_id: int, member_id: int) -> VaultMember:
    result = await db.execute(
        select(VaultMember)
        .options(selectinload(VaultMember.user))
        .where(VaultMember.id == member_id, VaultMember.vault_id == vault_id)
        .with_for_update()
    )
    target = result.scalars().first()
    if not target:
        raise NotFound("Member not found")
    return target


async def change_member_role(
    db: AsyncSession,
    vault_id: int,
    actor: User,
    member_id: int,
    role: MemberRole,
) -> VaultMember:
    await require_permission(db, vault_id, actor.id, Action.CHANGE_MEMBER_ROLE)
    target = await _target_member(db, vault_id, member_id)

    if target.role == role:
        return target

    if target.role == MemberRole.ADMIN and await count_admins(db, vault_id) <= 1:
        raise Conflict("Cannot demote the last admin")

    target.role = role
    activity.record(
        db, vault_id, actor.id, ActivityAction.MEMBER_ROLE_CHANGED,
        f"Changed {display_name(target.user)}'s role to {role.value}",
    )
    await db.commit()
    logger.info(f"User {actor.id} set member {member_id} of vault {vault_id} to {role.value}")
    return target


async def remove_member(db: AsyncSession, vault_id: int, actor: User, member_id: int) -> None:
    await require_permission(db, vault_id, actor.id, Action.REMOVE_MEMBER)
    target = await _target_member(db, vault_id, member_id)

    if target.role == MemberRole.ADMIN and await count_admins(db, vault_id) <= 1:
        raise Conflict("Cannot remove the last admin")

    removed_name = display_name(target.user)
    await db.delete(target)
    activity.record(
        db, vault_id, actor.id, ActivityAction.MEMBER_REMOVED,
        f"Removed {removed_name} from the vault",
    )
    await db.commit()
    logger.info(f"User {actor.id} removed member {member_id} from vault {vault_id}")


async def update_vault(db: AsyncSession, vault_id: int, actor: User, changes: VaultUpdate) -> Vault:
    await require_permission(db, vault_id, actor.id, Action.UPDATE_VAULT)
    vault = await get_vault(db, vault_id)

    update_data = changes.model_dump(exclude_unset=True)
    if update_data.get("name") is None:
        update_data.pop("name", None)
    if "theme_color" in update_data and not update_data["theme_color"]:
        update_data["theme_color"] = settings.DEFAULT_THEME_COLOR
    for key, value in update_data.items():
        setattr(vault, key, value)

    activity.record(db, vault_id, actor.id, ActivityAction.VAULT_UPDATED, "Updated vault settings")
    await db.commit()
    return vault


async def delete_vault(db: AsyncSession, vault_id: int, actor: User, storage: BlobStorage) -> None:
    """
    Delete the vault and everything in it.

    Rows go in one transaction, child tables first. Stored files are
    removed afterwards, best-effort.
    """
    await require_permission(db, vault_id, actor.id, Action.DELETE_VAULT)

    result = await db.execute(
        select(Media.file_url).where(Media.vault_id == vault_id)
    )
    file_paths = [media_storage_path(vault_id, url) for url in result.scalars().all()]

    media_ids = select(Media.id).where(Media.vault_id == vault_id)
    await db.execute(delete(Vote).where(Vote.media_id.in_(media_ids)))
    await db.execute(delete(Comment).where(Comment.media_id.in_(media_ids)))
    await db.execute(delete(Media).where(Media.vault_id == vault_id))
    await db.execute(delete(Note).where(Note.vault_id == vault_id))
    await db.execute(delete(VaultActivity).where(VaultActivity.vault_id == vault_id))
    await db.execute(delete(VaultMember).where(VaultMember.vault_id == vault_id))
    await db.execute(delete(Vault).where(Vault.id == vault_id))
    await db.commit()

    logger.info(f"User {actor.id} deleted vault {vault_id}")

    for path in file_paths:
        await discard_stored_file(storage, path)


async def reset_invite_code(db: AsyncSession, vault_id: int, actor: User) -> Vault:
    await require_permission(db, vault_id, actor.id, Action.MANAGE_INVITES)
    vault = await get_vault(db, vault_id)

    vault.invite_code = await _unused_invite_code(db)
    activity.record(db, vault_id, actor.id, ActivityAction.INVITE_CODE_RESET, "Generated a new invite code")
    await db.commit()
    return vault


async def invite_details(db: AsyncSession, vault_id: int, user: User) -> InviteResponse:
    vault = await get_member_vault(db, vault_id, user)
    url = invites.invite_url(vault.invite_code)
    return InviteResponse(
        invite_code=vault.invite_code,
        invite_url=url,
        qr_code=invites.generate_qr_code_base64(url),
    )
