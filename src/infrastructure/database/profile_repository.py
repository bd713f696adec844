"""Schema-routing profile repository.

Fronts the legacy and multi-profile stores behind one interface. The
multi-profile capability is probed once per load and remembered here, so
nothing above this layer checks for a missing table.
"""

from collections.abc import Callable
from dataclasses import replace
from typing import Any
from uuid import uuid4

import structlog

from core.exceptions import SchemaUnsupportedError
from domain.entities.profile import Profile
from domain.repositories.profile_repository import IAssetLocator
from domain.repositories.unit_of_work import IUnitOfWork
from infrastructure.storage.supabase_assets import resolve_avatar_url

logger = structlog.get_logger()


class RoutedProfileRepository:
    """IProfileRepository over a legacy and a multi-profile store."""

    def __init__(
        self,
        uow_factory: Callable[[], IUnitOfWork],
        asset_locator: IAssetLocator | None = None,
    ) -> None:
        self._uow_factory = uow_factory
        self._assets = asset_locator
        self._multi_profile_supported: bool | None = None

    @property
    def multi_profile_supported(self) -> bool | None:
        """Result of the most recent probe, None if never probed."""
        return self._multi_profile_supported

    async def probe_multi_profile_support(self) -> bool:
        """Check for the multi-profile table; transient failures propagate."""
        try:
            async with self._uow_factory() as uow:
                await uow.identities.probe()
        except SchemaUnsupportedError:
            if self._multi_profile_supported is not False:
                logger.info("multi_profile_store_unavailable")
            self._multi_profile_supported = False
            return False
        self._multi_profile_supported = True
        return True

    async def read_legacy_profile(self, account_id: str) -> Profile | None:
        async with self._uow_factory() as uow:
            profile = await uow.legacy_profiles.get(account_id)
        return self._resolved(profile) if profile else None

    async def read_multi_profiles(self, account_id: str) -> list[Profile]:
        self._require_multi_profile()
        async with self._uow_factory() as uow:
            rows = await self._multi(uow.identities.list_for_owner(account_id))
        return [self._resolved(row) for row in rows]

    async def insert_multi_profile(
        self,
        account_id: str,
        handle: str,
        display_name: str | None,
        avatar_url: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> Profile:
        self._require_multi_profile()
        profile = Profile(
            id=str(uuid4()),
            owner_account_id=account_id,
            handle=handle,
            display_name=display_name,
            avatar_url=avatar_url,
        ).with_changes(extra or {})

        async with self._uow_factory() as uow:
            created = await self._multi(uow.identities.create(profile))
            await uow.commit()
        return self._resolved(created)

    async def update_profile(self, profile_id: str, changes: dict[str, Any]) -> Profile:
        self._require_multi_profile()
        async with self._uow_factory() as uow:
            updated = await self._multi(uow.identities.update(profile_id, changes))
            await uow.commit()
        return self._resolved(updated)

    async def update_legacy_profile(self, account_id: str, changes: dict[str, Any]) -> Profile:
        async with self._uow_factory() as uow:
            updated = await uow.legacy_profiles.update(account_id, changes)
            await uow.commit()
        return self._resolved(updated)

    async def delete_multi_profile(self, profile_id: str, account_id: str) -> None:
        self._require_multi_profile()
        async with self._uow_factory() as uow:
            deleted = await self._multi(uow.identities.delete(profile_id, account_id))
            await uow.commit()
        if not deleted:
            logger.info("profile_delete_noop", profile_id=profile_id, account_id=account_id)

    async def find_multi_profile_by_handle(self, account_id: str, handle: str) -> Profile | None:
        self._require_multi_profile()
        async with self._uow_factory() as uow:
            profile = await self._multi(uow.identities.get_by_handle(account_id, handle))
        return self._resolved(profile) if profile else None

    async def find_legacy_profile_by_handle(self, handle: str) -> Profile | None:
        async with self._uow_factory() as uow:
            profile = await uow.legacy_profiles.get_by_handle(handle)
        return self._resolved(profile) if profile else None

    # --- Internal helpers ---

    def _require_multi_profile(self) -> None:
        if self._multi_profile_supported is False:
            raise SchemaUnsupportedError()

    async def _multi(self, awaitable: Any) -> Any:
        """Await a multi-profile call, remembering a missing table."""
        try:
            return await awaitable
        except SchemaUnsupportedError:
            self._multi_profile_supported = False
            raise

    def _resolved(self, profile: Profile) -> Profile:
        return replace(profile, avatar_url=resolve_avatar_url(profile.avatar_url, self._assets))
