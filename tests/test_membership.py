import pytest

from backend.app.core.errors import Conflict, Forbidden, NotFound
from backend.app.models import ActivityAction, MemberRole, Note, Vault, VaultActivity, VaultMember
from backend.app.schemas.vault import VaultUpdate
from backend.app.services import invites, membership
from backend.app.services.access import count_admins, find_membership
from sqlalchemy import func, select


async def _actions(db, vault_id):
    result = await db.execute(
        select(VaultActivity.action).where(VaultActivity.vault_id == vault_id).order_by(VaultActivity.id)
    )
    return list(result.scalars().all())


async def test_creator_becomes_admin(db, factory):
    alice = await factory.user("alice")
    vault = await membership.create_vault(db, alice, name="Smiths")

    member = await find_membership(db, vault.id, alice.id)
    assert member.role == MemberRole.ADMIN
    assert vault.theme_color == "#3b82f6"
    assert len(vault.invite_code) == 8
    assert set(vault.invite_code) <= set(invites.INVITE_ALPHABET)


async def test_join_with_invite_code(db, factory):
    alice = await factory.user("alice")
    bob = await factory.user("bob")
    vault = await factory.vault(alice)

    member = await membership.join_vault(db, vault.invite_code, bob)

    assert member.role == MemberRole.MEMBER
    assert ActivityAction.MEMBER_JOINED in await _actions(db, vault.id)


async def test_join_twice_conflicts(db, factory):
    alice = await factory.user("alice")
    bob = await factory.user("bob")
    vault = await factory.vault(alice)
    await membership.join_vault(db, vault.invite_code, bob)

    with pytest.raises(Conflict):
        await membership.join_vault(db, vault.invite_code, bob)


async def test_join_unknown_code(db, factory):
    bob = await factory.user("bob")
    with pytest.raises(NotFound):
        await membership.join_vault(db, "NOPE2345", bob)


async def test_preview_counts_members(db, factory):
    alice = await factory.user("alice")
    vault = await factory.vault(alice)
    await factory.member(vault, await factory.user("bob"))

    preview = await membership.preview_by_invite_code(db, vault.invite_code)
    assert preview.name == "Family"
    assert preview.member_count == 2


async def test_sole_admin_cannot_leave(db, factory):
    alice = await factory.user("alice")
    vault = await factory.vault(alice)
    await factory.member(vault, await factory.user("bob"))

    with pytest.raises(Conflict, match="last admin"):
        await membership.leave_vault(db, vault.id, alice)


async def test_admin_can_leave_when_another_admin_remains(db, factory):
    alice = await factory.user("alice")
    bob = await factory.user("bob")
    vault = await factory.vault(alice)
    await factory.member(vault, bob, role=MemberRole.ADMIN)

    await membership.leave_vault(db, vault.id, alice)

    assert await find_membership(db, vault.id, alice.id) is None
    assert await count_admins(db, vault.id) == 1
    assert ActivityAction.MEMBER_LEFT in await _actions(db, vault.id)


async def test_member_leaves(db, factory):
    alice = await factory.user("alice")
    bob = await factory.user("bob")
    vault = await factory.vault(alice)
    await factory.member(vault, bob)

    await membership.leave_vault(db, vault.id, bob)
    assert await find_membership(db, vault.id, bob.id) is None


async def test_leave_requires_membership(db, factory):
    alice = await factory.user("alice")
    vault = await factory.vault(alice)
    with pytest.raises(Forbidden):
        await membership.leave_vault(db, vault.id, await factory.user("eve"))


async def test_cannot_demote_last_admin(db, factory):
    alice = await factory.user("alice")
    vault = await factory.vault(alice)
    admin_row = await find_membership(db, vault.id, alice.id)

    with pytest.raises(Conflict, match="last admin"):
        await membership.change_member_role(db, vault.id, alice, admin_row.id, MemberRole.MEMBER)


async def test_promote_then_demote(db, factory):
    alice = await factory.user("alice")
    bob = await factory.user("bob")
    vault = await factory.vault(alice)
    bob_row = await factory.member(vault, bob)

    promoted = await membership.change_member_role(db, vault.id, alice, bob_row.id, MemberRole.ADMIN)
    assert promoted.role == MemberRole.ADMIN

    alice_row = await find_membership(db, vault.id, alice.id)
    demoted = await membership.change_member_role(db, vault.id, bob, alice_row.id, MemberRole.READ_ONLY)
    assert demoted.role == MemberRole.READ_ONLY
    assert await count_admins(db, vault.id) == 1
    assert (await _actions(db, vault.id)).count(ActivityAction.MEMBER_ROLE_CHANGED) == 2


async def test_member_cannot_change_roles(db, factory):
    alice = await factory.user("alice")
    bob = await factory.user("bob")
    vault = await factory.vault(alice)
    bob_row = await factory.member(vault, bob)

    with pytest.raises(Forbidden):
        await membership.change_member_role(db, vault.id, bob, bob_row.id, MemberRole.ADMIN)


async def test_member_id_is_scoped_to_vault(db, factory):
    alice = await factory.user("alice")
    vault = await factory.vault(alice)
    other = await factory.vault(await factory.user("carol"), name="Other")
    stranger_row = await factory.member(other, await factory.user("dave"))

    with pytest.raises(NotFound):
        await membership.remove_member(db, vault.id, alice, stranger_row.id)


async def test_remove_member(db, factory):
    alice = await factory.user("alice")
    bob = await factory.user("bob")
    vault = await factory.vault(alice)
    bob_row = await factory.member(vault, bob)

    await membership.remove_member(db, vault.id, alice, bob_row.id)

    assert await find_membership(db, vault.id, bob.id) is None
    assert ActivityAction.MEMBER_REMOVED in await _actions(db, vault.id)


async def test_cannot_remove_last_admin(db, factory):
    alice = await factory.user("alice")
    vault = await factory.vault(alice)
    alice_row = await find_membership(db, vault.id, alice.id)

    with pytest.raises(Conflict):
        await membership.remove_member(db, vault.id, alice, alice_row.id)


async def test_update_vault_keeps_unset_fields(db, factory):
    alice = await factory.user("alice")
    vault = await membership.create_vault(db, alice, name="Smiths", description="Our family")

    updated = await membership.update_vault(db, vault.id, alice, VaultUpdate(theme_color="#ff0000"))

    assert updated.name == "Smiths"
    assert updated.description == "Our family"
    assert updated.theme_color == "#ff0000"
    assert ActivityAction.VAULT_UPDATED in await _actions(db, vault.id)


async def test_reset_invite_code(db, factory):
    alice = await factory.user("alice")
    vault = await factory.vault(alice)
    old_code = vault.invite_code

    await membership.reset_invite_code(db, vault.id, alice)

    assert vault.invite_code != old_code
    with pytest.raises(NotFound):
        await membership.join_vault(db, old_code, await factory.user("bob"))


async def test_invite_details_include_qr_code(db, factory):
    alice = await factory.user("alice")
    vault = await factory.vault(alice)

    details = await membership.invite_details(db, vault.id, alice)

    assert details.invite_url.endswith(f"/join/{vault.invite_code}")
    assert details.qr_code


async def test_delete_vault_removes_rows_and_files(db, factory, storage):
    alice = await factory.user("alice")
    vault = await factory.vault(alice)
    await factory.member(vault, await factory.user("bob"))
    media = await factory.media(vault, alice)
    db.add(Note(vault_id=vault.id, author_id=alice.id, content="hello"))
    await db.commit()
    vault_id = vault.id

    await membership.delete_vault(db, vault_id, alice, storage)

    assert (await db.execute(select(func.count(Vault.id)))).scalar_one() == 0
    assert (await db.execute(select(func.count(VaultMember.id)))).scalar_one() == 0
    assert (await db.execute(select(func.count(Note.id)))).scalar_one() == 0
    assert storage.deleted == [f"{vault_id}/{media.file_url.rsplit('/', 1)[-1]}"]


async def test_describe_vault_counts(db, factory, later):
    alice = await factory.user("alice")
    vault = await factory.vault(alice)
    await factory.media(vault, alice)
    await factory.media(vault, alice, deleted_at=later)

    described = await membership.describe_vault(db, vault)

    assert described.media_count == 1
    assert described.members[0].user.name == "alice"
