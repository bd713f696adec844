"""SQLAlchemy implementation of the multi-profile (cards identities) repository."""

from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import DuplicateHandleError, ProfileNotFoundError
from domain.entities.profile import Profile, normalize_handle
from infrastructure.database.errors import is_unique_violation, translate_db_errors
from infrastructure.database.models import IdentityModel
from infrastructure.database.repositories.sqlalchemy_legacy_profile_repo import apply_changes


class SQLAlchemyIdentityRepository:
    """SQLAlchemy implementation of IIdentityRepository."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._relation = IdentityModel.__tablename__

    async def probe(self) -> None:
        """Trivial read that fails with SchemaUnsupportedError if the table is missing."""
        with translate_db_errors(self._relation):
            await self._session.execute(select(IdentityModel.id).limit(1))

    async def list_for_owner(self, account_id: str) -> list[Profile]:
        """All rows for an account, oldest first."""
        stmt = (
            select(IdentityModel)
            .where(IdentityModel.owner_id == account_id)
            .order_by(IdentityModel.created_at, IdentityModel.id)
        )
        with translate_db_errors(self._relation):
            result = await self._session.execute(stmt)
            return [self._to_entity(model) for model in result.scalars()]

    async def get_by_handle(self, account_id: str, handle: str) -> Profile | None:
        """Case-insensitive exact handle lookup within an account."""
        stmt = (
            select(IdentityModel)
            .where(
                IdentityModel.owner_id == account_id,
                func.lower(IdentityModel.username) == normalize_handle(handle),
            )
            .order_by(IdentityModel.created_at)
            .limit(1)
        )
        with translate_db_errors(self._relation):
            result = await self._session.execute(stmt)
            model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def create(self, profile: Profile) -> Profile:
        """Insert a row; raises DuplicateHandleError on a handle collision."""
        model = self._to_model(profile)
        with translate_db_errors(self._relation):
            self._session.add(model)
            try:
                await self._session.flush()
            except IntegrityError as exc:
                if is_unique_violation(exc):
                    raise DuplicateHandleError(profile.handle) from exc
                raise
            await self._session.refresh(model)
        return self._to_entity(model)

    async def update(self, profile_id: str, changes: dict[str, Any]) -> Profile:
        """Apply a partial update and return the stored row."""
        with translate_db_errors(self._relation):
            model = await self._get_model(profile_id)
            if not model:
                raise ProfileNotFoundError(profile_id)

            apply_changes(model, changes)
            try:
                await self._session.flush()
            except IntegrityError as exc:
                if is_unique_violation(exc):
                    raise DuplicateHandleError(model.username) from exc
                raise
        return self._to_entity(model)

    async def delete(self, profile_id: str, account_id: str) -> bool:
        """Delete a row owned by ``account_id``."""
        stmt = select(IdentityModel).where(
            IdentityModel.id == profile_id,
            IdentityModel.owner_id == account_id,
        )
        with translate_db_errors(self._relation):
            result = await self._session.execute(stmt)
            model = result.scalar_one_or_none()

            if not model:
                return False

            await self._session.delete(model)
            await self._session.flush()
        return True

    async def _get_model(self, profile_id: str) -> IdentityModel | None:
        stmt = select(IdentityModel).where(IdentityModel.id == profile_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    def _to_entity(model: IdentityModel) -> Profile:
        """Convert ORM model to domain entity."""
        return Profile(
            id=str(model.id),
            owner_account_id=str(model.owner_id),
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

    @staticmethod
    def _to_model(entity: Profile) -> IdentityModel:
        """Convert domain entity to ORM model."""
        return IdentityModel(
            id=entity.id,
            owner_id=entity.owner_account_id,
            username=entity.handle,
            display_name=entity.display_name,
            avatar_url=entity.avatar_url,
            bio=entity.bio,
            is_public=entity.is_public,
            is_shop_account=entity.is_shop_account,
            shop_name=entity.shop_name,
            shop_address=entity.shop_address,
            shop_latitude=entity.shop_latitude,
            shop_longitude=entity.shop_longitude,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
        )
