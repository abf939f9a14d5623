import pytest
from sqlalchemy import func, select

from backend.app.core.errors import Forbidden
from backend.app.models import ActivityAction, VaultActivity
from backend.app.services import activity


async def test_feed_is_newest_first_and_capped(db, factory, monkeypatch):
    alice = await factory.user("alice")
    vault = await factory.vault(alice)
    for i in range(5):
        activity.record(db, vault.id, alice.id, ActivityAction.VAULT_UPDATED, f"change {i}")
    await db.commit()
    monkeypatch.setattr(activity.settings, "ACTIVITY_FEED_LIMIT", 3)

    feed = await activity.recent(db, vault.id, alice)
    assert [row.details for row in feed] == ["change 4", "change 3", "change 2"]
    assert feed[0].user.name == "alice"

    assert len(await activity.recent(db, vault.id, alice, limit=2)) == 2
    assert len(await activity.recent(db, vault.id, alice, limit=100)) == 3


async def test_record_does_not_commit(db, factory):
    alice = await factory.user("alice")
    vault = await factory.vault(alice)
    vault_id = vault.id

    activity.record(db, vault_id, alice.id, ActivityAction.VAULT_UPDATED)
    await db.rollback()

    count = await db.execute(select(func.count(VaultActivity.id)).where(VaultActivity.vault_id == vault_id))
    assert count.scalar_one() == 0


async def test_feed_is_members_only(db, factory):
    alice = await factory.user("alice")
    vault = await factory.vault(alice)
    with pytest.raises(Forbidden):
        await activity.recent(db, vault.id, await factory.user("eve"))
