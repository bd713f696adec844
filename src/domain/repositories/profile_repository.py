"""Profile repository protocols."""

from typing import Any, Protocol

from domain.entities.profile import Profile


class ILegacyProfileRepository(Protocol):
    """Single-profile store: one row per account, keyed by account id."""

    async def get(self, account_id: str) -> Profile | None:
        """Get the account's profile row."""
        ...

    async def get_by_handle(self, handle: str) -> Profile | None:
        """Case-insensitive exact handle lookup across all accounts."""
        ...

    async def update(self, account_id: str, changes: dict[str, Any]) -> Profile:
        """Apply a partial update and return the stored row."""
        ...


class IIdentityRepository(Protocol):
    """Multi-profile store: zero or more rows per account."""

    async def probe(self) -> None:
        """Trivial read; raises SchemaUnsupportedError when the relation is missing."""
        ...

    async def list_for_owner(self, account_id: str) -> list[Profile]:
        """All rows for an account, oldest first."""
        ...

    async def get_by_handle(self, account_id: str, handle: str) -> Profile | None:
        """Case-insensitive exact handle lookup within an account."""
        ...

    async def create(self, profile: Profile) -> Profile:
        """Insert a row; raises DuplicateHandleError on a handle collision."""
        ...

    async def update(self, profile_id: str, changes: dict[str, Any]) -> Profile:
        """Apply a partial update and return the stored row."""
        ...

    async def delete(self, profile_id: str, account_id: str) -> bool:
        """Delete a row owned by ``account_id`` and return success status."""
        ...


class ISelectionRepository(Protocol):
    """Durable active-profile selection keyed by account id."""

    async def get(self, account_id: str) -> str | None:
        """Persisted profile id, or None for "use primary"."""
        ...

    async def set(self, account_id: str, profile_id: str) -> None:
        """Persist the active profile id."""
        ...

    async def clear(self, account_id: str) -> None:
        """Forget the account's selection."""
        ...


class IAssetLocator(Protocol):
    """Expands storage-relative paths into public URLs."""

    def public_url(self, path: str) -> str:
        """Absolute public URL for a storage path."""
        ...


class IProfileRepository(Protocol):
    """Schema-independent profile access used by the resolution engine.

    Every returned Profile has its ``avatar_url`` already resolved to an
    absolute URL.
    """

    async def probe_multi_profile_support(self) -> bool:
        """True if the multi-profile store exists; transient errors propagate."""
        ...

    async def read_legacy_profile(self, account_id: str) -> Profile | None:
        """Get the legacy row for an account."""
        ...

    async def read_multi_profiles(self, account_id: str) -> list[Profile]:
        """Multi-profile rows for an account, oldest first."""
        ...

    async def insert_multi_profile(
        self,
        account_id: str,
        handle: str,
        display_name: str | None,
        avatar_url: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> Profile:
        """Insert a new multi-profile row."""
        ...

    async def update_profile(self, profile_id: str, changes: dict[str, Any]) -> Profile:
        """Partial update of a multi-profile row."""
        ...

    async def update_legacy_profile(self, account_id: str, changes: dict[str, Any]) -> Profile:
        """Partial update of the legacy row."""
        ...

    async def delete_multi_profile(self, profile_id: str, account_id: str) -> None:
        """Delete a multi-profile row scoped to its owner."""
        ...

    async def find_multi_profile_by_handle(self, account_id: str, handle: str) -> Profile | None:
        """Locate a multi-profile row by handle."""
        ...

    async def find_legacy_profile_by_handle(self, handle: str) -> Profile | None:
        """Locate a legacy row by handle."""
        ...
