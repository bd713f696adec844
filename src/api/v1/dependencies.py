"""Dependency injection factories for API v1."""

from functools import lru_cache
from typing import Annotated, Callable

from fastapi import Depends

from api.dependencies.auth import CurrentAccount
from core.config import settings
from domain.repositories.profile_repository import ISelectionRepository
from domain.services.profile_resolution_service import ProfileResolutionService
from domain.services.profile_session_registry import ProfileSessionRegistry
from infrastructure.cache.memory_selection_repo import InMemorySelectionRepository
from infrastructure.database.profile_repository import RoutedProfileRepository
from infrastructure.database.selection_store import UnitOfWorkSelectionStore
from infrastructure.database.session import async_session_factory
from infrastructure.database.sqlalchemy_uow import SQLAlchemyUnitOfWork
from infrastructure.storage.supabase_assets import SupabaseAssetLocator


def get_uow_factory() -> Callable[[], SQLAlchemyUnitOfWork]:
    """Factory for creating Unit of Work instances."""

    def factory() -> SQLAlchemyUnitOfWork:
        return SQLAlchemyUnitOfWork(async_session_factory)

    return factory


@lru_cache
def get_profile_repository() -> RoutedProfileRepository:
    """Get the schema-routing profile repository."""
    return RoutedProfileRepository(
        get_uow_factory(),
        asset_locator=SupabaseAssetLocator(settings.supabase_url, settings.avatar_bucket),
    )


@lru_cache
def get_selection_store() -> ISelectionRepository:
    """Get the store that persists each account's active profile."""
    if settings.selection_store == "memory":
        return InMemorySelectionRepository(settings.selection_namespace)
    return UnitOfWorkSelectionStore(get_uow_factory())


@lru_cache
def get_profile_session_registry() -> ProfileSessionRegistry:
    """Get the process-wide registry of per-account profile sessions."""
    repository = get_profile_repository()
    selections = get_selection_store()

    def service_factory() -> ProfileResolutionService:
        return ProfileResolutionService(
            repository,
            selections,
            stub_handle_prefix=settings.stub_handle_prefix,
            pending_handle_ttl_seconds=settings.pending_handle_ttl_seconds,
        )

    return ProfileSessionRegistry(
        service_factory,
        max_sessions=settings.profile_session_max,
        idle_timeout_seconds=settings.profile_session_idle_seconds,
    )


async def get_profile_session(
    account: CurrentAccount,
    registry: ProfileSessionRegistry = Depends(get_profile_session_registry),
) -> ProfileResolutionService:
    """Loaded profile session for the authenticated account."""
    return await registry.get(account.id)


ProfileSession = Annotated[ProfileResolutionService, Depends(get_profile_session)]
