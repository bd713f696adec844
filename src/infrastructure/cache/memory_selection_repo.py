"""Process-local active-profile selection store."""


class InMemorySelectionRepository:
    """ISelectionRepository backed by a dict.

    Survives reloads within one process only; use the SQLAlchemy store when
    selections must outlive a restart.
    """

    def __init__(self, namespace: str = "cardy.active_profile") -> None:
        self._namespace = namespace
        self._values: dict[str, str] = {}

    def key_for(self, account_id: str) -> str:
        return f"{self._namespace}:{account_id}"

    async def get(self, account_id: str) -> str | None:
        return self._values.get(self.key_for(account_id)) or None

    async def set(self, account_id: str, profile_id: str) -> None:
        self._values[self.key_for(account_id)] = profile_id

    async def clear(self, account_id: str) -> None:
        self._values.pop(self.key_for(account_id), None)
