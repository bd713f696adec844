"""Per-account profile session containers."""

import time
from collections import OrderedDict
from collections.abc import Callable

import structlog

from domain.entities.profile_session import ProfileSessionState
from domain.services.profile_resolution_service import ProfileResolutionService

logger = structlog.get_logger()


class ProfileSessionRegistry:
    """Keeps one ProfileResolutionService per signed-in account.

    Acts as the session boundary: the first request for an account signs it
    in, ``sign_out`` signs it out and drops its state. Sessions idle for
    longer than ``idle_timeout_seconds`` are signed out on the next access,
    and the least recently used one is signed out once ``max_sessions`` is
    exceeded.
    """

    def __init__(
        self,
        service_factory: Callable[[], ProfileResolutionService],
        max_sessions: int = 1000,
        idle_timeout_seconds: float = 1800,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._service_factory = service_factory
        self._max_sessions = max_sessions
        self._idle_timeout = idle_timeout_seconds
        self._clock = clock
        # Least recently used first; values are (service, last access time).
        self._sessions: OrderedDict[str, tuple[ProfileResolutionService, float]] = OrderedDict()

    def __len__(self) -> int:
        return len(self._sessions)

    async def get(self, account_id: str) -> ProfileResolutionService:
        """Session for ``account_id``, loaded and ready to use."""
        now = self._clock()
        await self._evict_idle(now)

        entry = self._sessions.get(account_id)
        if entry is None:
            service = self._service_factory()
            self._sessions[account_id] = (service, now)
            logger.info("profile_session_opened", account_id=account_id)
            await self._evict_overflow()
            await service.on_account_changed(account_id)
            return service

        service = entry[0]
        self._sessions[account_id] = (service, now)
        self._sessions.move_to_end(account_id)

        if service.loading:
            await service.wait_until_idle()
        if service.state == ProfileSessionState.FAILED:
            await service.reload()
        return service

    async def sign_out(self, account_id: str) -> bool:
        """Drop the account's session; returns False if none was open."""
        entry = self._sessions.pop(account_id, None)
        if entry is None:
            return False
        await entry[0].on_account_changed(None)
        logger.info("profile_session_closed", account_id=account_id)
        return True

    async def _evict_idle(self, now: float) -> None:
        expired = [
            account_id
            for account_id, (_, last_used) in self._sessions.items()
            if now - last_used > self._idle_timeout
        ]
        for account_id in expired:
            await self._evict(account_id, "idle")

    async def _evict_overflow(self) -> None:
        while len(self._sessions) > self._max_sessions:
            oldest = next(iter(self._sessions))
            await self._evict(oldest, "capacity")

    async def _evict(self, account_id: str, reason: str) -> None:
        entry = self._sessions.pop(account_id, None)
        if entry is None:
            return
        await entry[0].on_account_changed(None)
        logger.info("profile_session_evicted", account_id=account_id, reason=reason)
