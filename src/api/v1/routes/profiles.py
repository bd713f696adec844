"""Profile API routes."""

from fastapi import APIRouter, Request, Response, status

from api.v1.dependencies import ProfileSession
from api.v1.schemas.common import ErrorResponse
from api.v1.schemas.profile import (
    ActivateByHandleRequest,
    ProfileCreate,
    ProfileDetailResponse,
    ProfileResponse,
    ProfileSessionResponse,
    ProfileUpdate,
    SwitchProfileRequest,
    SwitchProfileResponse,
)
from core.exceptions import HandleNotFoundError
from core.rate_limit import limiter
from domain.entities.profile import Profile
from domain.services.profile_resolution_service import ProfileResolutionService

router = APIRouter(
    prefix="/profiles",
    tags=["profiles"],
    responses={401: {"model": ErrorResponse, "description": "Not authenticated"}},
)


def _to_response(profile: Profile) -> ProfileResponse:
    return ProfileResponse.model_validate(profile)


def _session_response(service: ProfileResolutionService) -> ProfileSessionResponse:
    snapshot = service.snapshot()
    return ProfileSessionResponse(
        active_profile_id=snapshot.active_profile_id,
        active_profile_handle=snapshot.active_profile_handle,
        is_primary=snapshot.is_primary,
        loading=snapshot.loading,
        state=snapshot.state.value,
        profiles=[_to_response(p) for p in snapshot.profiles],
    )


@router.get(
    "/me",
    response_model=ProfileSessionResponse,
    summary="Get the active profile and profile list",
)
@limiter.limit("30/minute")  # type: ignore[untyped-decorator]
async def get_my_profiles(request: Request, session: ProfileSession) -> ProfileSessionResponse:
    """Current profile list (primary first) and the active selection."""
    return _session_response(session)


@router.post(
    "/reload",
    response_model=ProfileSessionResponse,
    summary="Reload profiles from storage",
    responses={503: {"description": "Profile storage unavailable"}},
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def reload_profiles(request: Request, session: ProfileSession) -> ProfileSessionResponse:
    """Re-run profile resolution for the signed-in account."""
    await session.reload()
    return _session_response(session)


@router.post(
    "/switch",
    response_model=SwitchProfileResponse,
    summary="Switch the active profile",
)
@limiter.limit("30/minute")  # type: ignore[untyped-decorator]
async def switch_profile(
    request: Request,
    body: SwitchProfileRequest,
    session: ProfileSession,
) -> SwitchProfileResponse:
    """Activate a profile by id. ``confirmed`` is false if it could not be found."""
    confirmed = await session.switch_to(body.profile_id)
    return SwitchProfileResponse(confirmed=confirmed, session=_session_response(session))


@router.post(
    "/activate-by-handle",
    response_model=ProfileDetailResponse,
    summary="Activate a profile by handle",
    responses={404: {"description": "No profile with this handle"}},
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def activate_by_handle(
    request: Request,
    body: ActivateByHandleRequest,
    session: ProfileSession,
) -> ProfileDetailResponse:
    """Activate the profile whose handle matches (case-insensitive)."""
    profile = await session.activate_by_handle(body.handle)
    if profile is None:
        raise HandleNotFoundError(body.handle)
    return ProfileDetailResponse(data=_to_response(profile))


@router.post(
    "",
    response_model=ProfileDetailResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a sub-profile",
    responses={
        409: {"description": "Handle already taken"},
        503: {"description": "Multiple profiles not enabled"},
    },
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def create_profile(
    request: Request,
    body: ProfileCreate,
    session: ProfileSession,
) -> ProfileDetailResponse:
    """Create a new non-primary profile for the signed-in account."""
    profile = await session.create_profile(
        handle=body.handle,
        display_name=body.display_name,
        avatar_url=body.avatar_url,
    )
    return ProfileDetailResponse(data=_to_response(profile))


@router.patch(
    "/active",
    response_model=ProfileDetailResponse,
    summary="Update the active profile",
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def update_active_profile(
    request: Request,
    body: ProfileUpdate,
    session: ProfileSession,
) -> ProfileDetailResponse:
    """Partially update the active profile; omitted fields are unchanged."""
    profile = await session.update_profile(body.model_dump(exclude_unset=True))
    return ProfileDetailResponse(data=_to_response(profile))


@router.delete(
    "/{profile_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a sub-profile",
    responses={
        400: {"description": "Primary or last profile"},
        404: {"description": "Profile not found"},
    },
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def delete_profile(
    request: Request,
    profile_id: str,
    session: ProfileSession,
) -> Response:
    """Delete a non-primary profile."""
    await session.delete_profile(profile_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
