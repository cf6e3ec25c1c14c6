"""
Pytest fixtures for VidTube tests.
"""

from pathlib import Path
from typing import AsyncGenerator, List, Union

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from vidtube.assets import UploadedAsset
from vidtube.config import Settings
from vidtube.database import Database
from vidtube.kernel.errors import UpstreamFailure
from vidtube.kernel.identity.authentication_service import AuthenticationService
from vidtube.kernel.identity.credential_store import CredentialStore, SanitizedIdentity
from vidtube.kernel.identity.jwt import JWTManager
from vidtube.kernel.identity.password import PasswordHasher

# Lowest cost bcrypt accepts; keeps the suite fast
TEST_BCRYPT_ROUNDS = 4


class FakeAssetStore:
    """In-memory asset store that behaves like the real one towards local files."""

    def __init__(self):
        self.uploaded: List[UploadedAsset] = []
        self.deleted: List[UploadedAsset] = []
        self.fail_uploads = False

    async def upload(self, local_path: Union[str, Path]) -> UploadedAsset:
        path = Path(local_path)
        try:
            if self.fail_uploads:
                raise UpstreamFailure("Failed to upload images")
            asset = UploadedAsset(
                url=f"https://assets.test/{path.name}",
                public_id=path.stem,
            )
        finally:
            path.unlink(missing_ok=True)
        self.uploaded.append(asset)
        return asset

    async def delete(self, asset: UploadedAsset) -> None:
        self.deleted.append(asset)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings isolated from the environment, backed by a temp SQLite file."""
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'vidtube-test.db'}",
        access_token_secret="test-access-secret-for-testing-only",
        refresh_token_secret="test-refresh-secret-for-testing-only",
        bcrypt_rounds=TEST_BCRYPT_ROUNDS,
        upload_temp_dir=str(tmp_path / "uploads"),
    )


@pytest_asyncio.fixture
async def database(settings: Settings) -> AsyncGenerator[Database, None]:
    db = Database(settings.database_url)
    await db.init()
    yield db
    await db.close()


@pytest_asyncio.fixture
async def db_session(database: Database) -> AsyncGenerator[AsyncSession, None]:
    async with database.session() as session:
        yield session


@pytest.fixture
def jwt_manager(settings: Settings) -> JWTManager:
    return JWTManager.from_settings(settings)


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=TEST_BCRYPT_ROUNDS)


@pytest.fixture
def store(db_session: AsyncSession) -> CredentialStore:
    return CredentialStore(db_session)


@pytest.fixture
def auth_service(
    store: CredentialStore,
    jwt_manager: JWTManager,
    hasher: PasswordHasher,
) -> AuthenticationService:
    return AuthenticationService(store, jwt_manager=jwt_manager, hasher=hasher)


@pytest.fixture
def registration() -> dict:
    """Registration fields for the sample user."""
    return {
        "username": "ada",
        "email": "ada@x.io",
        "password": "secret1",
        "full_name": "Ada L.",
        "avatar_url": "https://assets.test/ada-avatar.png",
        "cover_image_url": "https://assets.test/ada-cover.png",
    }


@pytest_asyncio.fixture
async def registered_user(
    auth_service: AuthenticationService,
    registration: dict,
) -> SanitizedIdentity:
    return await auth_service.register(**registration)


@pytest.fixture
def asset_store() -> FakeAssetStore:
    return FakeAssetStore()


@pytest_asyncio.fixture
async def client(
    settings: Settings,
    database: Database,
    asset_store: FakeAssetStore,
) -> AsyncGenerator[AsyncClient, None]:
    """In-process API client sharing the test database."""
    from vidtube.main import create_app

    app = create_app(settings, asset_store=asset_store, database=database)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="https://test",
    ) as ac:
        yield ac
