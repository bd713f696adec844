"""Profile resolution for one signed-in account.

Decides which profiles an account has, which one is primary, which one is
active, and keeps the active choice persisted across restarts. All state
belongs to a single account session; every load is tagged with the account
it started for and its results are dropped if the session has moved on.
"""

import asyncio
from collections.abc import Awaitable
from dataclasses import replace
from typing import Any, TypeVar

import structlog

from core.exceptions import (
    AppException,
    CannotDeletePrimaryError,
    DuplicateHandleError,
    HandleNotFoundError,
    LastProfileError,
    NotAuthenticatedError,
    ProfileNotFoundError,
    SchemaUnsupportedError,
    TransientRepositoryError,
)
from domain.entities.profile import Profile, clean_changes, normalize_handle
from domain.entities.profile_session import (
    PendingHandleRequest,
    ProfileSessionState,
    ProfileSnapshot,
)
from domain.repositories.profile_repository import IProfileRepository, ISelectionRepository
from domain.services.profile_merge import (
    find_by_handle,
    find_by_id,
    merge_profiles,
    replace_entry,
    stub_primary,
)

logger = structlog.get_logger()

T = TypeVar("T")


class ProfileResolutionService:
    """Owns the profile list and active selection of one account session."""

    def __init__(
        self,
        repository: IProfileRepository,
        selections: ISelectionRepository,
        stub_handle_prefix: str = "cardy-",
        pending_handle_ttl_seconds: int = 300,
    ) -> None:
        self._repo = repository
        self._selections = selections
        self._stub_handle_prefix = stub_handle_prefix
        self._pending_ttl = pending_handle_ttl_seconds

        self._account_id: str | None = None
        self._state = ProfileSessionState.UNAUTHENTICATED
        self._profiles: list[Profile] = []
        self._active: Profile | None = None
        self._pending: PendingHandleRequest | None = None
        self._desired_profile_id: str | None = None
        self._multi_profile_supported: bool | None = None
        self._inflight_loads = 0
        self._idle = asyncio.Event()
        self._idle.set()
        self.last_error: AppException | None = None

    # --- Read side ---

    @property
    def account_id(self) -> str | None:
        return self._account_id

    @property
    def state(self) -> ProfileSessionState:
        return self._state

    @property
    def loading(self) -> bool:
        return self._inflight_loads > 0

    @property
    def profiles(self) -> tuple[Profile, ...]:
        return tuple(self._profiles)

    @property
    def active_profile(self) -> Profile | None:
        return self._active

    @property
    def pending_handle_request(self) -> PendingHandleRequest | None:
        return self._pending

    @property
    def multi_profile_supported(self) -> bool | None:
        """Capability seen by the last load; None before the first probe."""
        return self._multi_profile_supported

    def snapshot(self) -> ProfileSnapshot:
        active = self._active
        return ProfileSnapshot(
            account_id=self._account_id,
            state=self._state,
            active_profile_id=active.id if active else None,
            active_profile_handle=active.handle if active else None,
            is_primary=bool(active and active.is_primary),
            loading=self.loading,
            profiles=tuple(self._profiles),
        )

    def active_actor_id(self) -> str | None:
        """Identity downstream writes should be attributed to."""
        if self._active is not None:
            return self._active.id
        return self._account_id

    # --- Session boundary ---

    async def on_account_changed(self, account_id: str | None) -> None:
        """React to a sign-in, re-authentication or sign-out."""
        if account_id is None:
            if self._account_id is not None:
                logger.info("profile_session_signed_out", account_id=self._account_id)
            self._account_id = None
            self._reset(ProfileSessionState.UNAUTHENTICATED)
            self._multi_profile_supported = None
            self._desired_profile_id = None
            return

        if account_id != self._account_id:
            self._account_id = account_id
            self._reset(ProfileSessionState.LOADING)
            self._multi_profile_supported = None
            self._desired_profile_id = None

        await self._load(account_id)

    async def reload(self) -> None:
        """Re-run the load procedure for the current account."""
        account_id = self._require_account()
        await self._load(account_id)

    async def wait_until_idle(self) -> None:
        """Block until no load is in flight."""
        await self._idle.wait()

    # --- Operations ---

    async def switch_to(self, profile_id: str) -> bool:
        """Make ``profile_id`` active.

        Returns False when the profile could not be confirmed even after a
        refresh; the active selection is then the primary.
        """
        account_id = self._require_account()

        target = find_by_id(self._profiles, profile_id)
        if target is not None:
            self._active = target
            if self.loading:
                self._desired_profile_id = profile_id
            await self._persist_selection(account_id, profile_id)
            return True

        self._desired_profile_id = profile_id
        await self._persist_selection(account_id, profile_id)
        if self.loading:
            await self._idle.wait()
        else:
            await self._load(account_id)

        confirmed = (
            self._account_id == account_id
            and self._active is not None
            and self._active.id == profile_id
        )
        if not confirmed:
            logger.info("profile_switch_unconfirmed", account_id=account_id, profile_id=profile_id)
        return confirmed

    async def activate_by_handle(self, handle: str) -> Profile | None:
        """Activate the profile whose handle matches, searching remotely if needed.

        Returns None when no account is signed in yet; the request is kept
        and the next load resolves it.
        """
        normalized = normalize_handle(handle)
        if not normalized:
            raise HandleNotFoundError(handle)

        local = find_by_handle(self._profiles, normalized)
        if local is not None and self._account_id is not None:
            self._active = local
            if self.loading:
                self._desired_profile_id = local.id
            await self._persist_selection(self._account_id, local.id)
            return local

        request = PendingHandleRequest.create(normalized, self._pending_ttl)
        self._pending = request

        account_id = self._account_id
        if account_id is None:
            logger.info("pending_handle_deferred", handle=normalized)
            return None

        found = await self._lookup_remote_handle(account_id, normalized)

        if not await self._await_inflight_load(account_id):
            logger.info("handle_lookup_discarded_stale", account_id=account_id, handle=normalized)
            return None

        if self._pending is request:
            self._pending = None

        if found is None:
            logger.info("handle_not_found", account_id=account_id, handle=normalized)
            raise HandleNotFoundError(normalized)

        self._profiles = replace_entry(self._profiles, found)
        selected = find_by_id(self._profiles, found.id)
        self._active = selected
        await self._persist_selection(account_id, found.id)
        return selected

    async def create_profile(
        self,
        handle: str,
        display_name: str | None = None,
        avatar_url: str | None = None,
    ) -> Profile:
        """Add a sub-profile. Requires the multi-profile store."""
        account_id = self._require_account()
        handle = handle.strip()

        if find_by_handle(self._profiles, handle) is not None:
            raise DuplicateHandleError(handle)

        supported = self._multi_profile_supported
        if supported is None:
            supported = await self._guarded(self._repo.probe_multi_profile_support())
            self._multi_profile_supported = supported
        if not supported:
            raise SchemaUnsupportedError()

        try:
            created = await self._guarded(
                self._repo.insert_multi_profile(
                    account_id, handle, display_name or handle, avatar_url
                )
            )
        except SchemaUnsupportedError:
            self._multi_profile_supported = False
            raise

        if not await self._await_inflight_load(account_id):
            return created

        self._profiles = replace_entry(self._profiles, replace(created, is_primary=False))
        entry = find_by_id(self._profiles, created.id)
        logger.info("profile_created", account_id=account_id, profile_id=created.id)

        if self._active is None:
            self._active = entry
            await self._persist_selection(account_id, created.id)
        return entry  # type: ignore[return-value]

    async def delete_profile(self, profile_id: str) -> None:
        """Delete a non-primary profile."""
        account_id = self._require_account()

        if len(self._profiles) <= 1:
            raise LastProfileError()
        if profile_id == account_id or profile_id == self._profiles[0].id:
            raise CannotDeletePrimaryError(profile_id)
        if find_by_id(self._profiles, profile_id) is None:
            raise ProfileNotFoundError(profile_id)

        await self._guarded(self._repo.delete_multi_profile(profile_id, account_id))

        if not await self._await_inflight_load(account_id):
            return

        self._profiles = [p for p in self._profiles if p.id != profile_id]
        logger.info("profile_deleted", account_id=account_id, profile_id=profile_id)

        if self._active is None or self._active.id == profile_id:
            self._active = self._profiles[0]
            await self._persist_selection(account_id, self._active.id)

    async def update_profile(self, changes: dict[str, Any]) -> Profile:
        """Partially update the active profile and return the merged entry."""
        account_id = self._require_account()
        active = self._active
        if active is None:
            raise ProfileNotFoundError(account_id)

        changes = clean_changes(changes)
        if not changes:
            return active

        new_handle = changes.get("handle")
        if new_handle is not None:
            clash = find_by_handle(self._profiles, new_handle)
            if clash is not None and clash.id != active.id:
                raise DuplicateHandleError(new_handle)

        if active.id == account_id:
            written = await self._guarded(self._repo.update_legacy_profile(account_id, changes))
        else:
            try:
                written = await self._guarded(self._repo.update_profile(active.id, changes))
            except SchemaUnsupportedError:
                logger.warning(
                    "profile_update_legacy_fallback",
                    account_id=account_id,
                    profile_id=active.id,
                )
                self._multi_profile_supported = False
                written = await self._guarded(
                    self._repo.update_legacy_profile(account_id, changes)
                )

        merged = replace(
            active.with_changes({key: getattr(written, key) for key in changes}),
            updated_at=written.updated_at,
        )

        if self._account_id != account_id:
            return merged

        self._profiles = replace_entry(self._profiles, merged)
        current = find_by_id(self._profiles, merged.id)
        if self._active is not None and self._active.id == merged.id:
            self._active = current
        return current  # type: ignore[return-value]

    # --- Load procedure ---

    async def _load(self, account_id: str) -> None:
        self._inflight_loads += 1
        self._idle.clear()
        self._state = ProfileSessionState.LOADING
        log = logger.bind(account_id=account_id)
        log.info("profile_load_started")

        try:
            profiles, supported = await self._resolve_profiles(account_id)
            settled = None
            if self._account_id == account_id:
                settled = await self._settle_selection(account_id, profiles)
            if settled is None:
                log.info("profile_load_discarded_stale")
                return
            active, consumed = settled
        except Exception as exc:
            error = exc if isinstance(exc, AppException) else self._translate(exc)
            if self._account_id != account_id:
                log.info("profile_load_discarded_stale", error_code=error.error_code.value)
                return
            log.warning("profile_load_failed", error_code=error.error_code.value)
            self._reset(ProfileSessionState.FAILED)
            self.last_error = error
            if error is exc:
                raise
            raise error from exc
        finally:
            self._inflight_loads -= 1
            if self._inflight_loads == 0:
                self._idle.set()

        if self._account_id != account_id:
            log.info("profile_load_discarded_stale")
            return

        self._profiles = profiles
        self._active = active
        self._multi_profile_supported = supported
        self._desired_profile_id = None
        if consumed is not None and self._pending is consumed:
            self._pending = None
        self.last_error = None
        self._state = ProfileSessionState.READY
        log.info(
            "profile_load_completed",
            profile_count=len(profiles),
            active_profile_id=active.id,
            multi_profile=supported,
        )

    async def _resolve_profiles(self, account_id: str) -> tuple[list[Profile], bool]:
        """Steps 1-5: legacy read, capability probe, provisioning, merge."""
        try:
            legacy = await self._guarded(self._repo.read_legacy_profile(account_id))
        except AppException as exc:
            logger.warning(
                "legacy_profile_read_failed",
                account_id=account_id,
                error_code=exc.error_code.value,
            )
            legacy = None
        primary = legacy or stub_primary(account_id, self._stub_handle_prefix)

        supported = await self._guarded(self._repo.probe_multi_profile_support())
        if not supported:
            logger.info("multi_profile_schema_missing", account_id=account_id)
            return merge_profiles(primary, []), False

        try:
            rows = await self._guarded(self._repo.read_multi_profiles(account_id))
            if not rows and self._account_id == account_id:
                await self._provision_default_profile(account_id, primary)
                rows = await self._guarded(self._repo.read_multi_profiles(account_id))
        except SchemaUnsupportedError:
            logger.info("multi_profile_schema_missing", account_id=account_id)
            return merge_profiles(primary, []), False

        return merge_profiles(primary, rows), True

    async def _provision_default_profile(self, account_id: str, primary: Profile) -> None:
        extra = {
            "bio": primary.bio,
            "is_public": primary.is_public,
            "is_shop_account": primary.is_shop_account,
            "shop_name": primary.shop_name,
            "shop_address": primary.shop_address,
            "shop_latitude": primary.shop_latitude,
            "shop_longitude": primary.shop_longitude,
        }
        try:
            created = await self._guarded(
                self._repo.insert_multi_profile(
                    account_id,
                    primary.handle,
                    primary.display_name or primary.handle,
                    primary.avatar_url,
                    extra=extra,
                )
            )
        except DuplicateHandleError:
            logger.debug("default_profile_already_provisioned", account_id=account_id)
            return
        logger.info("default_profile_provisioned", account_id=account_id, profile_id=created.id)

    async def _settle_selection(
        self, account_id: str, profiles: list[Profile]
    ) -> tuple[Profile, PendingHandleRequest | None] | None:
        """Steps 6-7: choose and persist the active profile.

        Repeats if a switch or handle request arrives while persisting, so the
        most recent intent is the one that ends up published. Returns None,
        without writing, once the session has moved to another account.
        """
        persisted = await self._guarded(self._selections.get(account_id))
        while True:
            if self._account_id != account_id:
                return None

            desired = self._desired_profile_id
            pending = self._pending
            if pending is not None and pending.is_expired():
                logger.info("pending_handle_expired", handle=pending.handle)
                self._pending = pending = None

            active = find_by_id(profiles, desired) or find_by_id(profiles, persisted) or profiles[0]
            consumed = None
            if pending is not None:
                match = find_by_handle(profiles, pending.handle)
                if match is not None:
                    active = match
                    consumed = pending

            if active.id != persisted:
                await self._persist_selection(account_id, active.id)
                persisted = active.id

            if self._desired_profile_id == desired and self._pending is pending:
                return active, consumed

    async def _lookup_remote_handle(self, account_id: str, handle: str) -> Profile | None:
        try:
            found = await self._guarded(self._repo.find_multi_profile_by_handle(account_id, handle))
        except SchemaUnsupportedError:
            found = None
        if found is not None:
            return found

        legacy = await self._guarded(self._repo.find_legacy_profile_by_handle(handle))
        # Never resolve to another account's legacy row
        if legacy is not None and legacy.id == account_id:
            return legacy
        return None

    # --- Internal helpers ---

    def _require_account(self) -> str:
        if self._account_id is None:
            raise NotAuthenticatedError()
        return self._account_id

    async def _await_inflight_load(self, account_id: str) -> bool:
        """Let a concurrent load publish before amending its result.

        False when the result must be left alone: the session moved to
        another account, or the load failed.
        """
        if not self.loading:
            return self._account_id == account_id
        await self._idle.wait()
        return self._account_id == account_id and self._state == ProfileSessionState.READY

    def _reset(self, state: ProfileSessionState) -> None:
        self._profiles = []
        self._active = None
        self._state = state

    async def _persist_selection(self, account_id: str, profile_id: str) -> None:
        await self._guarded(self._selections.set(account_id, profile_id))

    async def _guarded(self, awaitable: Awaitable[T]) -> T:
        """Await a storage call, translating raw failures into the app taxonomy."""
        try:
            return await awaitable
        except AppException:
            raise
        except Exception as exc:
            raise self._translate(exc) from exc

    @staticmethod
    def _translate(exc: Exception) -> TransientRepositoryError:
        return TransientRepositoryError(cause=type(exc).__name__)
