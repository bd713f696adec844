"""Shared fixtures for unit tests."""

import asyncio
from collections import Counter
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from core.exceptions import DuplicateHandleError, ProfileNotFoundError, SchemaUnsupportedError
from domain.entities.profile import Profile, normalize_handle
from domain.services.profile_resolution_service import ProfileResolutionService
from infrastructure.cache.memory_selection_repo import InMemorySelectionRepository

_EPOCH = datetime(2026, 1, 1, 12, 0, 0)


class FakeUnitOfWork:
    """Fake Unit of Work with repository mocks for unit testing."""

    def __init__(self) -> None:
        self.legacy_profiles = AsyncMock()
        self.identities = AsyncMock()
        self.selections = AsyncMock()
        self.committed = False
        self.rolled_back = False

    async def commit(self) -> None:
        self.committed = True

    async def rollback(self) -> None:
        self.rolled_back = True

    async def __aenter__(self) -> "FakeUnitOfWork":
        return self

    async def __aexit__(self, *args: Any) -> None:
        pass


class FakeProfileRepository:
    """In-memory IProfileRepository with call counts, gates and injected failures.

    ``gates`` pause a named call until the event is set; ``errors`` make a
    named call raise every time until removed.
    """

    def __init__(self) -> None:
        self.legacy: dict[str, Profile] = {}
        self.rows: list[Profile] = []
        self.multi_profile_supported = True
        self.calls: Counter[str] = Counter()
        self.gates: dict[str, asyncio.Event] = {}
        self.errors: dict[str, Exception] = {}
        self._clock = 0

    # --- Seeding helpers ---

    def _tick(self) -> datetime:
        self._clock += 1
        return _EPOCH + timedelta(seconds=self._clock)

    def add_legacy(self, account_id: str, handle: str, **fields: Any) -> Profile:
        now = self._tick()
        profile = Profile(
            id=account_id,
            owner_account_id=account_id,
            handle=handle,
            display_name=fields.pop("display_name", handle.title()),
            created_at=now,
            updated_at=now,
            **fields,
        )
        self.legacy[account_id] = profile
        return profile

    def add_row(self, account_id: str, handle: str, profile_id: str | None = None, **fields: Any) -> Profile:
        now = self._tick()
        profile = Profile(
            id=profile_id or str(uuid4()),
            owner_account_id=account_id,
            handle=handle,
            display_name=fields.pop("display_name", handle.title()),
            created_at=now,
            updated_at=now,
            **fields,
        )
        self.rows.append(profile)
        return profile

    def rows_for(self, account_id: str) -> list[Profile]:
        return [row for row in self.rows if row.owner_account_id == account_id]

    @property
    def multi_profile_writes(self) -> int:
        return (
            self.calls["insert_multi_profile"]
            + self.calls["update_profile"]
            + self.calls["delete_multi_profile"]
        )

    async def _enter(self, name: str) -> None:
        self.calls[name] += 1
        gate = self.gates.get(name)
        if gate is not None:
            await gate.wait()
        error = self.errors.get(name)
        if error is not None:
            raise error

    def _require_multi_profile(self) -> None:
        if not self.multi_profile_supported:
            raise SchemaUnsupportedError()

    # --- IProfileRepository ---

    async def probe_multi_profile_support(self) -> bool:
        await self._enter("probe_multi_profile_support")
        return self.multi_profile_supported

    async def read_legacy_profile(self, account_id: str) -> Profile | None:
        await self._enter("read_legacy_profile")
        return self.legacy.get(account_id)

    async def read_multi_profiles(self, account_id: str) -> list[Profile]:
        await self._enter("read_multi_profiles")
        self._require_multi_profile()
        return self.rows_for(account_id)

    async def insert_multi_profile(
        self,
        account_id: str,
        handle: str,
        display_name: str | None,
        avatar_url: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> Profile:
        await self._enter("insert_multi_profile")
        self._require_multi_profile()
        if any(row.matches_handle(handle) for row in self.rows_for(account_id)):
            raise DuplicateHandleError(handle)
        now = self._tick()
        profile = Profile(
            id=str(uuid4()),
            owner_account_id=account_id,
            handle=handle,
            display_name=display_name,
            avatar_url=avatar_url,
            created_at=now,
            updated_at=now,
        ).with_changes(extra or {})
        self.rows.append(profile)
        return profile

    async def update_profile(self, profile_id: str, changes: dict[str, Any]) -> Profile:
        await self._enter("update_profile")
        self._require_multi_profile()
        for index, row in enumerate(self.rows):
            if row.id == profile_id:
                updated = replace(row.with_changes(changes), updated_at=self._tick())
                self.rows[index] = updated
                return updated
        raise ProfileNotFoundError(profile_id)

    async def update_legacy_profile(self, account_id: str, changes: dict[str, Any]) -> Profile:
        await self._enter("update_legacy_profile")
        row = self.legacy.get(account_id)
        if row is None:
            raise ProfileNotFoundError(account_id)
        updated = replace(row.with_changes(changes), updated_at=self._tick())
        self.legacy[account_id] = updated
        return updated

    async def delete_multi_profile(self, profile_id: str, account_id: str) -> None:
        await self._enter("delete_multi_profile")
        self._require_multi_profile()
        self.rows = [
            row
            for row in self.rows
            if not (row.id == profile_id and row.owner_account_id == account_id)
        ]

    async def find_multi_profile_by_handle(self, account_id: str, handle: str) -> Profile | None:
        await self._enter("find_multi_profile_by_handle")
        self._require_multi_profile()
        wanted = normalize_handle(handle)
        return next(
            (row for row in self.rows_for(account_id) if normalize_handle(row.handle) == wanted),
            None,
        )

    async def find_legacy_profile_by_handle(self, handle: str) -> Profile | None:
        await self._enter("find_legacy_profile_by_handle")
        wanted = normalize_handle(handle)
        return next(
            (row for row in self.legacy.values() if normalize_handle(row.handle) == wanted),
            None,
        )


class RecordingSelectionRepository(InMemorySelectionRepository):
    """In-memory selection store that records every write.

    Set ``read_gate`` to hold back the result of a read, taken before the
    pause, until the event is set.
    """

    def __init__(self) -> None:
        super().__init__()
        self.writes: list[tuple[str, str]] = []
        self.read_gate: asyncio.Event | None = None

    async def get(self, account_id: str) -> str | None:
        value = await super().get(account_id)
        if self.read_gate is not None:
            await self.read_gate.wait()
        return value

    async def set(self, account_id: str, profile_id: str) -> None:
        self.writes.append((account_id, profile_id))
        await super().set(account_id, profile_id)


@pytest.fixture
def uow() -> FakeUnitOfWork:
    """Create a fresh FakeUnitOfWork."""
    return FakeUnitOfWork()


@pytest.fixture
def repo() -> FakeProfileRepository:
    """Create an empty in-memory profile repository."""
    return FakeProfileRepository()


@pytest.fixture
def selections() -> RecordingSelectionRepository:
    """Create an empty selection store."""
    return RecordingSelectionRepository()


@pytest.fixture
def service(
    repo: FakeProfileRepository, selections: RecordingSelectionRepository
) -> ProfileResolutionService:
    return ProfileResolutionService(repo, selections)


@pytest.fixture
def account_id() -> str:
    """A random account ID."""
    return str(uuid4())


@pytest.fixture
def other_account_id() -> str:
    """A random account ID (distinct from account_id)."""
    return str(uuid4())
