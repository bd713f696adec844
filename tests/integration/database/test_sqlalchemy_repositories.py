"""Integration tests for the SQLAlchemy profile repositories."""

from datetime import datetime, timedelta
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.exceptions import DuplicateHandleError, ProfileNotFoundError, SchemaUnsupportedError
from domain.entities.profile import Profile
from infrastructure.database.profile_repository import RoutedProfileRepository
from infrastructure.database.sqlalchemy_uow import SQLAlchemyUnitOfWork
from tests.conftest import TEST_ACCOUNT_ID, seed_legacy_profile

_T0 = datetime(2026, 5, 1, 9, 0, 0)


def _identity(handle: str, minutes: int = 0, owner: str = TEST_ACCOUNT_ID, **fields) -> Profile:
    at = _T0 + timedelta(minutes=minutes)
    return Profile(
        id=str(uuid4()),
        owner_account_id=owner,
        handle=handle,
        created_at=at,
        updated_at=at,
        **fields,
    )


class TestLegacyProfileRepository:
    @pytest.mark.asyncio
    async def test_get_and_find_by_handle(self, session_factory: async_sessionmaker[AsyncSession]):
        await seed_legacy_profile(session_factory, bio="Hello")

        async with SQLAlchemyUnitOfWork(session_factory) as uow:
            profile = await uow.legacy_profiles.get(TEST_ACCOUNT_ID)
            by_handle = await uow.legacy_profiles.get_by_handle("  ALICE ")
            missing = await uow.legacy_profiles.get_by_handle("nobody")

        assert profile.id == TEST_ACCOUNT_ID
        assert profile.owner_account_id == TEST_ACCOUNT_ID
        assert profile.handle == "alice"
        assert profile.bio == "Hello"
        assert by_handle.id == TEST_ACCOUNT_ID
        assert missing is None

    @pytest.mark.asyncio
    async def test_update_applies_partial_changes(
        self, session_factory: async_sessionmaker[AsyncSession]
    ):
        await seed_legacy_profile(session_factory, bio="Hello")

        async with SQLAlchemyUnitOfWork(session_factory) as uow:
            updated = await uow.legacy_profiles.update(
                TEST_ACCOUNT_ID, {"handle": "alice2", "shop_name": "Corner"}
            )
            await uow.commit()

        async with SQLAlchemyUnitOfWork(session_factory) as uow:
            stored = await uow.legacy_profiles.get(TEST_ACCOUNT_ID)

        assert updated.handle == "alice2"
        assert stored.handle == "alice2"
        assert stored.shop_name == "Corner"
        assert stored.bio == "Hello"

    @pytest.mark.asyncio
    async def test_update_missing_row_raises(
        self, session_factory: async_sessionmaker[AsyncSession]
    ):
        async with SQLAlchemyUnitOfWork(session_factory) as uow:
            with pytest.raises(ProfileNotFoundError):
                await uow.legacy_profiles.update(str(uuid4()), {"bio": "x"})


class TestIdentityRepository:
    @pytest.mark.asyncio
    async def test_lists_rows_oldest_first(self, session_factory: async_sessionmaker[AsyncSession]):
        async with SQLAlchemyUnitOfWork(session_factory) as uow:
            await uow.identities.create(_identity("bob", minutes=5))
            await uow.identities.create(_identity("alice", minutes=1))
            await uow.identities.create(_identity("zed", owner=str(uuid4())))
            await uow.commit()

        async with SQLAlchemyUnitOfWork(session_factory) as uow:
            rows = await uow.identities.list_for_owner(TEST_ACCOUNT_ID)

        assert [row.handle for row in rows] == ["alice", "bob"]
        assert all(not row.is_primary for row in rows)

    @pytest.mark.asyncio
    async def test_handles_are_unique_per_account_ignoring_case(
        self, session_factory: async_sessionmaker[AsyncSession]
    ):
        async with SQLAlchemyUnitOfWork(session_factory) as uow:
            await uow.identities.create(_identity("alice"))
            await uow.commit()

        async with SQLAlchemyUnitOfWork(session_factory) as uow:
            with pytest.raises(DuplicateHandleError):
                await uow.identities.create(_identity("ALICE"))

        # Another account may reuse the handle
        async with SQLAlchemyUnitOfWork(session_factory) as uow:
            await uow.identities.create(_identity("alice", owner=str(uuid4())))
            await uow.commit()

    @pytest.mark.asyncio
    async def test_get_by_handle_is_scoped_to_owner(
        self, session_factory: async_sessionmaker[AsyncSession]
    ):
        other = str(uuid4())
        async with SQLAlchemyUnitOfWork(session_factory) as uow:
            created = await uow.identities.create(_identity("Bob"))
            await uow.identities.create(_identity("carol", owner=other))
            await uow.commit()

        async with SQLAlchemyUnitOfWork(session_factory) as uow:
            found = await uow.identities.get_by_handle(TEST_ACCOUNT_ID, "bob")
            foreign = await uow.identities.get_by_handle(TEST_ACCOUNT_ID, "carol")

        assert found.id == created.id
        assert foreign is None

    @pytest.mark.asyncio
    async def test_update_and_owner_scoped_delete(
        self, session_factory: async_sessionmaker[AsyncSession]
    ):
        async with SQLAlchemyUnitOfWork(session_factory) as uow:
            created = await uow.identities.create(_identity("bob"))
            await uow.commit()

        async with SQLAlchemyUnitOfWork(session_factory) as uow:
            updated = await uow.identities.update(created.id, {"display_name": "Bobby"})
            wrong_owner = await uow.identities.delete(created.id, str(uuid4()))
            await uow.commit()

        assert updated.display_name == "Bobby"
        assert updated.handle == "bob"
        assert wrong_owner is False

        async with SQLAlchemyUnitOfWork(session_factory) as uow:
            deleted = await uow.identities.delete(created.id, TEST_ACCOUNT_ID)
            await uow.commit()

        async with SQLAlchemyUnitOfWork(session_factory) as uow:
            rows = await uow.identities.list_for_owner(TEST_ACCOUNT_ID)

        assert deleted is True
        assert rows == []

    @pytest.mark.asyncio
    async def test_missing_table_raises_schema_unsupported(
        self, legacy_only_session_factory: async_sessionmaker[AsyncSession]
    ):
        async with SQLAlchemyUnitOfWork(legacy_only_session_factory) as uow:
            with pytest.raises(SchemaUnsupportedError):
                await uow.identities.probe()

        async with SQLAlchemyUnitOfWork(legacy_only_session_factory) as uow:
            with pytest.raises(SchemaUnsupportedError):
                await uow.identities.list_for_owner(TEST_ACCOUNT_ID)


class TestSelectionRepository:
    @pytest.mark.asyncio
    async def test_set_overwrites_and_clear_forgets(
        self, session_factory: async_sessionmaker[AsyncSession]
    ):
        async with SQLAlchemyUnitOfWork(session_factory) as uow:
            assert await uow.selections.get(TEST_ACCOUNT_ID) is None
            await uow.selections.set(TEST_ACCOUNT_ID, "p1")
            await uow.commit()

        async with SQLAlchemyUnitOfWork(session_factory) as uow:
            await uow.selections.set(TEST_ACCOUNT_ID, "p2")
            await uow.commit()

        async with SQLAlchemyUnitOfWork(session_factory) as uow:
            assert await uow.selections.get(TEST_ACCOUNT_ID) == "p2"
            await uow.selections.clear(TEST_ACCOUNT_ID)
            await uow.commit()

        async with SQLAlchemyUnitOfWork(session_factory) as uow:
            assert await uow.selections.get(TEST_ACCOUNT_ID) is None

    @pytest.mark.asyncio
    async def test_namespaces_do_not_collide(
        self, session_factory: async_sessionmaker[AsyncSession]
    ):
        async with SQLAlchemyUnitOfWork(session_factory, selection_namespace="a") as uow:
            await uow.selections.set(TEST_ACCOUNT_ID, "p1")
            await uow.commit()

        async with SQLAlchemyUnitOfWork(session_factory, selection_namespace="b") as uow:
            assert await uow.selections.get(TEST_ACCOUNT_ID) is None


class TestRoutedProfileRepository:
    @pytest.mark.asyncio
    async def test_probe_reports_provisioned_table(
        self, session_factory: async_sessionmaker[AsyncSession]
    ):
        repository = RoutedProfileRepository(lambda: SQLAlchemyUnitOfWork(session_factory))

        assert await repository.probe_multi_profile_support() is True

    @pytest.mark.asyncio
    async def test_probe_reports_missing_table(
        self, legacy_only_session_factory: async_sessionmaker[AsyncSession]
    ):
        repository = RoutedProfileRepository(
            lambda: SQLAlchemyUnitOfWork(legacy_only_session_factory)
        )

        assert await repository.probe_multi_profile_support() is False
        with pytest.raises(SchemaUnsupportedError):
            await repository.insert_multi_profile(TEST_ACCOUNT_ID, "bob", "Bob")

    @pytest.mark.asyncio
    async def test_insert_then_find(self, session_factory: async_sessionmaker[AsyncSession]):
        repository = RoutedProfileRepository(lambda: SQLAlchemyUnitOfWork(session_factory))

        created = await repository.insert_multi_profile(
            TEST_ACCOUNT_ID, "Shop", "Shop", extra={"is_shop_account": True}
        )
        found = await repository.find_multi_profile_by_handle(TEST_ACCOUNT_ID, "shop")

        assert found.id == created.id
        assert found.is_shop_account
        with pytest.raises(DuplicateHandleError):
            await repository.insert_multi_profile(TEST_ACCOUNT_ID, "SHOP", None)
