"""
Global test fixtures.

Every test gets its own SQLite file, so tests never share rows:
- db: an AsyncSession bound to that database
- storage / captioner: in-memory stand-ins for the external collaborators
- factory: shortcuts for users, vaults, members and media
- client: httpx AsyncClient talking to the FastAPI app in-process
"""
from datetime import timedelta

import pytest
from httpx import ASGITransport, AsyncClient

from backend.app.api import deps
from backend.app.core.clock import utcnow
from backend.app.db import init_models
from backend.app.db.base import get_db
from backend.app.db.session import build_engine, build_sessionmaker
from backend.app.main import app
from backend.app.models import Media, MediaType, MemberRole, User, VaultMember
from backend.app.security import jwt
from backend.app.services import membership


# ============================================================================
# Collaborator fakes
# ============================================================================

class FakeStorage:
    def __init__(self):
        self.files = {}
        self.deleted = []
        self.fail_deletes = False
        self.fail_stores = False
        # Awaited with the path on every delete, before it is applied
        self.on_delete = None

    async def store(self, data: bytes, path: str) -> str:
        if self.fail_stores:
            raise OSError("disk full")
        self.files[path] = data
        return f"/files/{path}"

    async def delete(self, path: str) -> None:
        if self.on_delete is not None:
            await self.on_delete(path)
        if self.fail_deletes:
            raise OSError("storage backend unavailable")
        self.files.pop(path, None)
        self.deleted.append(path)


class FakeCaptioner:
    def __init__(self, text="A family picnic"):
        self.text = text
        self.calls = []

    async def caption(self, url, media_type, data=None, mime_type=None):
        self.calls.append((url, media_type))
        if isinstance(self.text, Exception):
            raise self.text
        return self.text


# ============================================================================
# Database
# ============================================================================

@pytest.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_sessionmaker(engine)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def captioner():
    return FakeCaptioner()


# ============================================================================
# Model factory
# ============================================================================

class Factory:
    def __init__(self, db):
        self.db = db
        self._count = 0

    async def user(self, name=None) -> User:
        self._count += 1
        name = name or f"user{self._count}"
        user = User(name=name, email=f"{name.lower()}@example.com", hashed_password="not-used")
        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)
        return user

    async def vault(self, owner: User, name="Family"):
        return await membership.create_vault(self.db, owner, name=name)

    async def member(self, vault, user: User, role=MemberRole.MEMBER) -> VaultMember:
        member = VaultMember(vault_id=vault.id, user_id=user.id, role=role)
        self.db.add(member)
        await self.db.commit()
        return member

    async def media(self, vault, uploader: User, approved=True, **fields) -> Media:
        self._count += 1
        media = Media(
            vault_id=vault.id,
            uploader_id=uploader.id,
            file_url=f"/files/{vault.id}/photo{self._count}.jpg",
            file_name=f"photo{self._count}.jpg",
            file_size=1024,
            type=MediaType.IMAGE,
            approved=approved,
            **fields,
        )
        self.db.add(media)
        await self.db.commit()
        await self.db.refresh(media)
        return media


@pytest.fixture
def factory(db):
    return Factory(db)


@pytest.fixture
def later():
    """A clock reading safely after anything created 'now' plus a day."""
    return utcnow() + timedelta(days=2)


# ============================================================================
# API client
# ============================================================================

def _bearer(user: User) -> dict:
    token = jwt.create_access_token({"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers():
    return _bearer


@pytest.fixture
async def client(session_factory, storage, captioner):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[deps.get_storage] = lambda: storage
    app.dependency_overrides[deps.get_caption_generator] = lambda: captioner

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
