"""Pytest configuration and fixtures."""

import os
import sys
from collections.abc import AsyncGenerator
from pathlib import Path
from uuid import uuid4

# Disable rate limiting in tests
os.environ["RATE_LIMIT_ENABLED"] = "false"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from infrastructure.auth.jwt_provider import JWTAuthProvider
from infrastructure.auth.provider import AuthenticatedAccount
from infrastructure.database.models import Base, IdentityModel, LegacyProfileModel

# Test database URL (SQLite in memory)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Fixed test account ID for consistency
TEST_ACCOUNT_ID = str(uuid4())
TEST_HANDLE = "alice"


def _make_engine() -> AsyncEngine:
    # One shared connection so every session sees the same in-memory database
    return create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )


@pytest.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Test database with every table provisioned."""
    engine = _make_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def legacy_only_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Test database of a deployment that never created the multi-profile table."""
    engine = _make_engine()
    tables = [t for t in Base.metadata.sorted_tables if t.name != IdentityModel.__tablename__]
    async with engine.begin() as conn:
        await conn.run_sync(lambda sync_conn: Base.metadata.create_all(sync_conn, tables=tables))
    yield engine
    await engine.dispose()


def _factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create session factory."""
    return _factory(engine)


@pytest.fixture
def legacy_only_session_factory(
    legacy_only_engine: AsyncEngine,
) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the legacy-only database."""
    return _factory(legacy_only_engine)


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


async def seed_legacy_profile(
    session_factory: async_sessionmaker[AsyncSession],
    account_id: str = TEST_ACCOUNT_ID,
    handle: str = TEST_HANDLE,
    **fields: object,
) -> None:
    """Insert the account's row in the single-profile table."""
    async with session_factory() as session:
        session.add(
            LegacyProfileModel(
                id=account_id,
                username=handle,
                display_name=fields.pop("display_name", handle.title()),
                **fields,
            )
        )
        await session.commit()


@pytest.fixture
def test_account() -> AuthenticatedAccount:
    """Create a test account with fixed ID."""
    return AuthenticatedAccount(
        id=TEST_ACCOUNT_ID,
        email="alice@example.com",
        username=TEST_HANDLE,
        role="authenticated",
    )


@pytest.fixture
def auth_provider() -> JWTAuthProvider:
    """Create auth provider for testing."""
    return JWTAuthProvider(
        secret_key="test-secret-key",
        algorithm="HS256",
        expire_minutes=30,
    )


@pytest.fixture
def auth_token(auth_provider: JWTAuthProvider, test_account: AuthenticatedAccount) -> str:
    """Create auth token for test account."""
    return str(auth_provider.create_token(test_account))


@pytest.fixture
def auth_headers(auth_token: str) -> dict[str, str]:
    """Create authorization headers."""
    return {"Authorization": f"Bearer {auth_token}"}


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Create async test client (no auth)."""
    from main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


async def _profiles_client(
    session_factory: async_sessionmaker[AsyncSession],
    test_account: AuthenticatedAccount,
    auth_provider: JWTAuthProvider,
) -> AsyncGenerator[AsyncClient, None]:
    from api.dependencies.auth import get_auth_provider, get_current_account
    from api.v1.dependencies import get_profile_repository, get_profile_session_registry
    from domain.services.profile_resolution_service import ProfileResolutionService
    from domain.services.profile_session_registry import ProfileSessionRegistry
    from infrastructure.database.profile_repository import RoutedProfileRepository
    from infrastructure.database.selection_store import UnitOfWorkSelectionStore
    from infrastructure.database.session import get_async_session
    from infrastructure.database.sqlalchemy_uow import SQLAlchemyUnitOfWork
    from main import create_app

    app = create_app()

    # Create a UoW factory that uses test session
    def test_uow_factory() -> SQLAlchemyUnitOfWork:
        return SQLAlchemyUnitOfWork(session_factory)

    repository = RoutedProfileRepository(test_uow_factory)
    selections = UnitOfWorkSelectionStore(test_uow_factory)
    registry = ProfileSessionRegistry(
        lambda: ProfileResolutionService(repository, selections)
    )

    async def override_get_async_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    # Override auth to return test account directly
    async def override_get_account() -> AuthenticatedAccount:
        return test_account

    app.dependency_overrides[get_current_account] = override_get_account
    app.dependency_overrides[get_auth_provider] = lambda: auth_provider
    app.dependency_overrides[get_profile_repository] = lambda: repository
    app.dependency_overrides[get_profile_session_registry] = lambda: registry
    app.dependency_overrides[get_async_session] = override_get_async_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture
async def authenticated_client(
    session_factory: async_sessionmaker[AsyncSession],
    test_account: AuthenticatedAccount,
    auth_provider: JWTAuthProvider,
) -> AsyncGenerator[AsyncClient, None]:
    """
    Create authenticated test client with proper database and auth overrides.

    This client:
    - Uses an in-memory SQLite database with both profile tables
    - Seeds a legacy profile row for the test account
    - Overrides auth dependency to return the test account
    - Overrides the session registry to use the test database
    """
    await seed_legacy_profile(session_factory)
    async for c in _profiles_client(session_factory, test_account, auth_provider):
        yield c


@pytest.fixture
async def legacy_only_client(
    legacy_only_session_factory: async_sessionmaker[AsyncSession],
    test_account: AuthenticatedAccount,
    auth_provider: JWTAuthProvider,
) -> AsyncGenerator[AsyncClient, None]:
    """Authenticated client against a database without the multi-profile table."""
    await seed_legacy_profile(legacy_only_session_factory)
    async for c in _profiles_client(legacy_only_session_factory, test_account, auth_provider):
        yield c
