from datetime import timedelta

from backend.app.core.clock import utcnow
from backend.app.core.config import settings
from backend.app.security import jwt

API = settings.API_V1_STR


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"message": "healthy"}


async def test_register_login_me(client):
    response = await client.post(f"{API}/auth/register", json={
        "name": "Alice", "email": "Alice@Example.com", "password": "secret123",
    })
    assert response.status_code == 200
    assert response.json()["email"] == "alice@example.com"
    assert "hashed_password" not in response.json()

    response = await client.post(f"{API}/auth/login", data={
        "username": "alice@example.com", "password": "secret123",
    })
    assert response.status_code == 200
    token = response.json()["access_token"]
    assert settings.AUTH_COOKIE_NAME in response.cookies

    response = await client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 200
    assert response.json()["name"] == "Alice"


async def test_register_rejects_duplicates_and_short_passwords(client):
    body = {"name": "Alice", "email": "alice@example.com", "password": "secret123"}
    assert (await client.post(f"{API}/auth/register", json=body)).status_code == 200

    response = await client.post(f"{API}/auth/register", json=body)
    assert response.status_code == 409
    assert response.json() == {"detail": "User already exists"}

    response = await client.post(f"{API}/auth/register", json={**body, "email": "bob@example.com", "password": "123"})
    assert response.status_code == 400


async def test_wrong_password(client):
    await client.post(f"{API}/auth/register", json={
        "name": "Alice", "email": "alice@example.com", "password": "secret123",
    })
    response = await client.post(f"{API}/auth/login", data={"username": "alice@example.com", "password": "nope"})
    assert response.status_code == 401
    assert response.json() == {"detail": "Incorrect email or password"}


async def test_requires_authentication(client):
    response = await client.get(f"{API}/vaults/")
    assert response.status_code == 401
    assert response.json() == {"detail": "Unauthorized"}


async def test_cookie_authentication(client, factory):
    alice = await factory.user("alice")
    token = jwt.create_access_token({"sub": str(alice.id)})
    client.cookies.set(settings.AUTH_COOKIE_NAME, token)

    response = await client.get(f"{API}/auth/me")
    assert response.status_code == 200
    assert response.json()["id"] == alice.id


async def test_preferences(client, factory, auth_headers):
    alice = await factory.user("alice")
    response = await client.put(f"{API}/users/preferences", json={"dark_mode": True}, headers=auth_headers(alice))
    assert response.status_code == 200
    assert response.json()["dark_mode"] is True


async def test_vault_flow(client, factory, auth_headers, storage):
    alice = await factory.user("alice")
    bob = await factory.user("bob")
    as_alice, as_bob = auth_headers(alice), auth_headers(bob)

    response = await client.post(f"{API}/vaults/", json={"name": "Smiths"}, headers=as_alice)
    assert response.status_code == 200
    vault = response.json()
    assert vault["members"][0]["role"] == "ADMIN"

    preview = (await client.get(f"{API}/vaults/info/{vault['invite_code']}")).json()
    assert preview["member_count"] == 1

    response = await client.post(f"{API}/vaults/join", json={"invite_code": vault["invite_code"]}, headers=as_bob)
    assert response.json() == {"success": True, "vault_id": vault["id"]}

    # Outsiders and non-admins are kept out
    response = await client.put(f"{API}/vaults/{vault['id']}", json={"name": "Mine"}, headers=as_bob)
    assert response.status_code == 403

    response = await client.post(
        f"{API}/vaults/{vault['id']}/media",
        files={"file": ("beach.jpg", b"jpeg-bytes", "image/jpeg")},
        data={"caption": "Beach day"},
        headers=as_bob,
    )
    assert response.status_code == 200
    media = response.json()
    assert media["approved"] is False
    assert media["ai_caption"] == "A family picnic"
    assert len(storage.files) == 1

    gallery = (await client.get(f"{API}/vaults/{vault['id']}/media", headers=as_alice)).json()
    assert gallery == []

    response = await client.put(f"{API}/media/{media['id']}", json={"action": "approve"}, headers=as_alice)
    assert response.json()["approved"] is True

    gallery = (await client.get(f"{API}/vaults/{vault['id']}/media", headers=as_bob)).json()
    assert [m["id"] for m in gallery] == [media["id"]]

    response = await client.post(f"{API}/media/{media['id']}/comments", json={"content": "Love it"}, headers=as_alice)
    assert response.json()["author"]["name"] == "alice"

    response = await client.delete(f"{API}/media/{media['id']}", headers=as_bob)
    assert response.json()["deleted"] is True

    feed = (await client.get(f"{API}/vaults/{vault['id']}/activities", headers=as_alice)).json()
    actions = [entry["action"] for entry in feed["activities"]]
    assert actions == ["MEDIA_DELETED", "MEDIA_APPROVED", "MEMBER_JOINED"]


async def test_last_admin_cannot_leave(client, factory, auth_headers):
    alice = await factory.user("alice")
    vault = await factory.vault(alice)

    response = await client.post(f"{API}/vaults/{vault.id}/leave", headers=auth_headers(alice))
    assert response.status_code == 409
    assert response.json() == {"detail": "Cannot leave vault as the last admin"}


async def test_unknown_vault(client, factory, auth_headers):
    alice = await factory.user("alice")
    response = await client.get(f"{API}/vaults/9999", headers=auth_headers(alice))
    assert response.status_code == 404
    assert response.json() == {"detail": "Vault not found"}


async def test_time_capsule_note_endpoints(client, factory, auth_headers):
    alice = await factory.user("alice")
    vault = await factory.vault(alice)
    headers = auth_headers(alice)

    response = await client.post(f"{API}/vaults/{vault.id}/time-capsule/notes", json={
        "content": "Too late", "unlock_at": (utcnow() - timedelta(days=1)).isoformat(),
    }, headers=headers)
    assert response.status_code == 400

    response = await client.post(f"{API}/vaults/{vault.id}/time-capsule/notes", json={
        "title": "For the kids", "content": "Hello from 2026", "unlock_at": (utcnow() + timedelta(days=365)).isoformat(),
    }, headers=headers)
    assert response.status_code == 200
    note = response.json()
    assert note["is_locked"] is True

    locked = (await client.get(f"{API}/vaults/{vault.id}/time-capsule", headers=headers)).json()
    assert [n["id"] for n in locked["notes"]] == [note["id"]]

    response = await client.post(f"{API}/time-capsule/notes/{note['id']}/unlock", headers=headers)
    assert response.status_code == 400


async def test_cron_secret(client, monkeypatch):
    monkeypatch.setattr(settings, "CRON_SECRET", "s3cret")

    response = await client.post(f"{API}/cron/unlock-time-capsules")
    assert response.status_code == 403

    response = await client.post(f"{API}/cron/unlock-time-capsules", headers={"X-Cron-Secret": "s3cret"})
    assert response.status_code == 200
    assert response.json()["unlocked_media"] == 0
    assert response.json()["unlocked_notes"] == 0

    response = await client.post(f"{API}/cron/purge-trash", headers={"X-Cron-Secret": "s3cret"})
    assert response.json()["purged_media"] == 0
