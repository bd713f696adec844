"""SQLAlchemy implementation of the legacy single-profile repository."""

from datetime import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import ProfileNotFoundError
from domain.entities.profile import Profile, clean_changes, normalize_handle
from infrastructure.database.errors import translate_db_errors
from infrastructure.database.models import LegacyProfileModel

# Entity field -> column name where they differ
_FIELD_TO_COLUMN = {"handle": "username"}


def apply_changes(model: Any, changes: dict[str, Any]) -> None:
    """Write partial profile changes onto an ORM row."""
    for field_name, value in clean_changes(changes).items():
        setattr(model, _FIELD_TO_COLUMN.get(field_name, field_name), value)
    model.updated_at = datetime.utcnow()


class SQLAlchemyLegacyProfileRepository:
    """SQLAlchemy implementation of ILegacyProfileRepository."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._relation = LegacyProfileModel.__tablename__

    async def get(self, account_id: str) -> Profile | None:
        """Get the account's profile row."""
        with translate_db_errors(self._relation):
            model = await self._get_model(account_id)
        return self._to_entity(model) if model else None

    async def get_by_handle(self, handle: str) -> Profile | None:
        """Case-insensitive exact handle lookup across all accounts."""
        stmt = (
            select(LegacyProfileModel)
            .where(func.lower(LegacyProfileModel.username) == normalize_handle(handle))
            .order_by(LegacyProfileModel.created_at)
            .limit(1)
        )
        with translate_db_errors(self._relation):
            result = await self._session.execute(stmt)
            model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def update(self, account_id: str, changes: dict[str, Any]) -> Profile:
        """Apply a partial update and return the stored row."""
        with translate_db_errors(self._relation):
            model = await self._get_model(account_id)
            if not model:
                raise ProfileNotFoundError(account_id)

            apply_changes(model, changes)
            await self._session.flush()
        return self._to_entity(model)

    async def _get_model(self, account_id: str) -> LegacyProfileModel | None:
        stmt = select(LegacyProfileModel).where(LegacyProfileModel.id == account_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    def _to_entity(model: LegacyProfileModel) -> Profile:
        """Convert ORM model to domain entity."""
        return Profile(
            id=str(model.id),
            owner_account_id=str(model.id),
            handle=model.username,
            display_name=model.display_name,
            avatar_url=model.avatar_url,
            bio=model.bio,
            is_public=model.is_public,
            is_shop_account=model.is_shop_account,
            shop_name=model.shop_name,
            shop_address=model.shop_address,
            shop_latitude=model.shop_latitude,
            shop_longitude=model.shop_longitude,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )
