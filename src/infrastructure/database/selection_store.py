"""Durable selection store bound to a unit of work factory."""

from collections.abc import Callable

from domain.repositories.unit_of_work import IUnitOfWork


class UnitOfWorkSelectionStore:
    """ISelectionRepository that opens a short transaction per call."""

    def __init__(self, uow_factory: Callable[[], IUnitOfWork]) -> None:
        self._uow_factory = uow_factory

    async def get(self, account_id: str) -> str | None:
        async with self._uow_factory() as uow:
            return await uow.selections.get(account_id)  # type: ignore[no-any-return]

    async def set(self, account_id: str, profile_id: str) -> None:
        async with self._uow_factory() as uow:
            await uow.selections.set(account_id, profile_id)
            await uow.commit()

    async def clear(self, account_id: str) -> None:
        async with self._uow_factory() as uow:
            await uow.selections.clear(account_id)
            await uow.commit()
