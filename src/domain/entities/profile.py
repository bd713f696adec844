"""Profile domain entities."""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any

# Fields a caller may change through a partial update.
MUTABLE_PROFILE_FIELDS: frozenset[str] = frozenset(
    {
        "handle",
        "display_name",
        "avatar_url",
        "bio",
        "is_public",
        "is_shop_account",
        "shop_name",
        "shop_address",
        "shop_latitude",
        "shop_longitude",
    }
)

# Mutable fields backed by NOT NULL columns.
REQUIRED_PROFILE_FIELDS: frozenset[str] = frozenset({"handle", "is_public", "is_shop_account"})


def normalize_handle(handle: str) -> str:
    """Canonical form used for every handle comparison."""
    return handle.strip().lower()


@dataclass
class Profile:
    """A named identity an account can act as.

    ``id`` equals ``owner_account_id`` only for the primary synthesized from
    the legacy store. ``is_primary`` is derived by the resolution engine and
    never trusted from storage.
    """

    id: str
    owner_account_id: str
    handle: str
    display_name: str | None = None
    avatar_url: str | None = None
    bio: str | None = None
    is_primary: bool = False
    is_public: bool = True
    is_shop_account: bool = False
    shop_name: str | None = None
    shop_address: str | None = None
    shop_latitude: float | None = None
    shop_longitude: float | None = None
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)

    def __post_init__(self) -> None:
        """Ensure updated_at is always at least as recent as created_at."""
        if self.updated_at < self.created_at:
            self.updated_at = self.created_at

    @property
    def is_legacy_backed(self) -> bool:
        """True when this profile lives in the single-profile table."""
        return self.id == self.owner_account_id

    def matches_handle(self, handle: str) -> bool:
        return normalize_handle(self.handle) == normalize_handle(handle)

    def with_changes(self, changes: dict[str, Any]) -> "Profile":
        """Copy with the mutable fields in ``changes`` applied."""
        return replace(self, **{k: v for k, v in changes.items() if k in MUTABLE_PROFILE_FIELDS})


def clean_changes(fields: dict[str, Any]) -> dict[str, Any]:
    """Drop keys that are not user-editable, and nulls for NOT NULL columns."""
    return {
        k: v
        for k, v in fields.items()
        if k in MUTABLE_PROFILE_FIELDS and not (v is None and k in REQUIRED_PROFILE_FIELDS)
    }
