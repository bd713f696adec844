"""SQLAlchemy Unit of Work implementation."""

from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.config import settings
from infrastructure.database.repositories.sqlalchemy_identity_repo import SQLAlchemyIdentityRepository
from infrastructure.database.repositories.sqlalchemy_legacy_profile_repo import (
    SQLAlchemyLegacyProfileRepository,
)
from infrastructure.database.repositories.sqlalchemy_selection_repo import (
    SQLAlchemySelectionRepository,
)


class SQLAlchemyUnitOfWork:
    """Unit of Work implementation using SQLAlchemy."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        selection_namespace: str = settings.selection_namespace,
    ) -> None:
        self._session_factory = session_factory
        self._selection_namespace = selection_namespace
        self._session: Optional[AsyncSession] = None

    @property
    def legacy_profiles(self) -> SQLAlchemyLegacyProfileRepository:
        """Get legacy profile repository."""
        if not self._session:
            raise RuntimeError("UnitOfWork not initialized. Use as context manager.")
        return SQLAlchemyLegacyProfileRepository(self._session)

    @property
    def identities(self) -> SQLAlchemyIdentityRepository:
        """Get multi-profile repository."""
        if not self._session:
            raise RuntimeError("UnitOfWork not initialized. Use as context manager.")
        return SQLAlchemyIdentityRepository(self._session)

    @property
    def selections(self) -> SQLAlchemySelectionRepository:
        """Get active-profile selection repository."""
        if not self._session:
            raise RuntimeError("UnitOfWork not initialized. Use as context manager.")
        return SQLAlchemySelectionRepository(self._session, self._selection_namespace)

    async def commit(self) -> None:
        """Commit the current transaction."""
        if self._session:
            await self._session.commit()

    async def rollback(self) -> None:
        """Rollback the current transaction."""
        if self._session:
            await self._session.rollback()

    async def __aenter__(self) -> "SQLAlchemyUnitOfWork":
        """Enter the context manager and create session."""
        self._session = self._session_factory()
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[Exception],
        exc_tb: Any,
    ) -> None:
        """Exit the context manager and cleanup."""
        if self._session:
            if exc_type:
                await self.rollback()
            await self._session.close()
            self._session = None
