"""SQLAlchemy implementation of the persistent active-profile selection store."""

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from infrastructure.database.errors import translate_db_errors
from infrastructure.database.models import ProfileSelectionModel


class SQLAlchemySelectionRepository:
    """SQLAlchemy implementation of ISelectionRepository.

    Keys are ``<namespace>:<account_id>`` so the table can be shared with
    other per-account cached values without collisions.
    """

    def __init__(self, session: AsyncSession, namespace: str) -> None:
        self._session = session
        self._namespace = namespace
        self._relation = ProfileSelectionModel.__tablename__

    def key_for(self, account_id: str) -> str:
        return f"{self._namespace}:{account_id}"

    async def get(self, account_id: str) -> str | None:
        """Persisted profile id, or None for "use primary"."""
        with translate_db_errors(self._relation):
            model = await self._get_model(account_id)
        if not model or not model.profile_id:
            return None
        return model.profile_id

    async def set(self, account_id: str, profile_id: str) -> None:
        """Persist the active profile id."""
        with translate_db_errors(self._relation):
            model = await self._get_model(account_id)
            if model:
                model.profile_id = profile_id
                model.updated_at = datetime.utcnow()
            else:
                self._session.add(
                    ProfileSelectionModel(key=self.key_for(account_id), profile_id=profile_id)
                )
            await self._session.flush()

    async def clear(self, account_id: str) -> None:
        """Forget the account's selection."""
        with translate_db_errors(self._relation):
            model = await self._get_model(account_id)
            if model:
                await self._session.delete(model)
                await self._session.flush()

    async def _get_model(self, account_id: str) -> ProfileSelectionModel | None:
        stmt = select(ProfileSelectionModel).where(
            ProfileSelectionModel.key == self.key_for(account_id)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()
