"""Pydantic schemas for Profile API."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

HANDLE_PATTERN = r"^[A-Za-z0-9_.\-]+$"


class ProfileCreate(BaseModel):
    """Schema for adding a sub-profile."""

    handle: str = Field(..., min_length=1, max_length=50, pattern=HANDLE_PATTERN)
    display_name: Optional[str] = Field(None, max_length=100)
    avatar_url: Optional[str] = Field(None, max_length=500)


class ProfileUpdate(BaseModel):
    """Schema for updating the active profile (all fields optional)."""

    handle: Optional[str] = Field(None, min_length=1, max_length=50, pattern=HANDLE_PATTERN)
    display_name: Optional[str] = Field(None, max_length=100)
    avatar_url: Optional[str] = Field(None, max_length=500)
    bio: Optional[str] = Field(None, max_length=1000)
    is_public: Optional[bool] = None
    is_shop_account: Optional[bool] = None
    shop_name: Optional[str] = Field(None, max_length=255)
    shop_address: Optional[str] = Field(None, max_length=500)
    shop_latitude: Optional[float] = Field(None, ge=-90, le=90)
    shop_longitude: Optional[float] = Field(None, ge=-180, le=180)

    @field_validator("handle", "is_public", "is_shop_account")
    @classmethod
    def reject_null(cls, v: object) -> object:
        """These columns are NOT NULL; omit the field instead of sending null."""
        if v is None:
            raise ValueError("May be omitted but not null")
        return v


class SwitchProfileRequest(BaseModel):
    """Schema for switching the active profile."""

    profile_id: str = Field(..., min_length=1, max_length=64)


class ActivateByHandleRequest(BaseModel):
    """Schema for activating a profile by handle."""

    handle: str = Field(..., min_length=1, max_length=50)


class ProfileResponse(BaseModel):
    """Schema for Profile response."""

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": "123e4567-e89b-12d3-a456-426614174000",
                "owner_account_id": "456e4567-e89b-12d3-a456-426614174000",
                "handle": "alice",
                "display_name": "Alice",
                "avatar_url": "https://xyz.supabase.co/storage/v1/object/public/avatars/a.png",
                "bio": None,
                "is_primary": True,
                "is_public": True,
                "is_shop_account": False,
                "created_at": "2026-02-01T10:00:00",
                "updated_at": "2026-02-01T10:00:00",
            }
        },
    )

    id: str
    owner_account_id: str
    handle: str
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    is_primary: bool
    is_public: bool = True
    is_shop_account: bool = False
    shop_name: Optional[str] = None
    shop_address: Optional[str] = None
    shop_latitude: Optional[float] = None
    shop_longitude: Optional[float] = None
    created_at: datetime
    updated_at: datetime


class ProfileDetailResponse(BaseModel):
    """Schema for single Profile response."""

    data: ProfileResponse


class ProfileSessionResponse(BaseModel):
    """Schema for the active-profile projection."""

    active_profile_id: Optional[str]
    active_profile_handle: Optional[str]
    is_primary: bool
    loading: bool
    state: str
    profiles: List[ProfileResponse]


class SwitchProfileResponse(BaseModel):
    """Schema for switch result."""

    confirmed: bool
    session: ProfileSessionResponse

