"""Session-scoped profile resolution state."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import StrEnum
from uuid import UUID, uuid4

from domain.entities.profile import Profile


class ProfileSessionState(StrEnum):
    """Lifecycle of one account's profile resolution."""

    UNAUTHENTICATED = "unauthenticated"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


@dataclass
class PendingHandleRequest:
    """Intent to activate the profile with ``handle`` once it is known.

    Consumed by the first load that produces a match, abandoned when a
    remote lookup finds nothing, and ignored once ``expires_at`` passes.
    """

    handle: str
    expires_at: datetime
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=datetime.utcnow)

    @classmethod
    def create(cls, handle: str, ttl_seconds: int) -> "PendingHandleRequest":
        now = datetime.utcnow()
        return cls(
            handle=handle,
            created_at=now,
            expires_at=now + timedelta(seconds=ttl_seconds),
        )

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or datetime.utcnow()) >= self.expires_at


@dataclass(frozen=True)
class ProfileSnapshot:
    """Read-only projection handed to downstream features."""

    account_id: str | None
    state: ProfileSessionState
    active_profile_id: str | None
    active_profile_handle: str | None
    is_primary: bool
    loading: bool
    profiles: tuple[Profile, ...] = ()
