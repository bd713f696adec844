"""SQLAlchemy ORM models."""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import Boolean, DateTime, Float, Index, String, Text, func
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from core.config import settings

# Supabase ids are uuid columns; SQLite (tests) stores them as text.
IdType = PG_UUID(as_uuid=False).with_variant(String(36), "sqlite")


def _new_id() -> str:
    return str(uuid4())


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class ProfileColumnsMixin:
    """Presentation columns shared by both profile tables."""

    username: Mapped[str] = mapped_column(String(50), nullable=False)
    display_name: Mapped[str | None] = mapped_column(String(100))
    avatar_url: Mapped[str | None] = mapped_column(String(500))
    bio: Mapped[str | None] = mapped_column(Text)
    is_public: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_shop_account: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    shop_name: Mapped[str | None] = mapped_column(String(255))
    shop_address: Mapped[str | None] = mapped_column(String(500))
    shop_latitude: Mapped[float | None] = mapped_column(Float)
    shop_longitude: Mapped[float | None] = mapped_column(Float)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )


class LegacyProfileModel(ProfileColumnsMixin, Base):
    """Single profile per account; primary key is the auth account id."""

    __tablename__ = settings.legacy_profile_table

    id: Mapped[str] = mapped_column(IdType, primary_key=True)


class IdentityModel(ProfileColumnsMixin, Base):
    """Multi-profile rows ("cards identities"), several per account."""

    __tablename__ = settings.multi_profile_table

    id: Mapped[str] = mapped_column(IdType, primary_key=True, default=_new_id)
    owner_id: Mapped[str] = mapped_column(IdType, nullable=False, index=True)


Index(
    f"uq_{settings.multi_profile_table}_owner_username",
    IdentityModel.owner_id,
    func.lower(IdentityModel.username),
    unique=True,
)


class ProfileSelectionModel(Base):
    """Persisted active-profile choice, one namespaced key per account."""

    __tablename__ = "profile_selections"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    profile_id: Mapped[str | None] = mapped_column(String(64))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )
