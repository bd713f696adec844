"""Session lifecycle routes."""

from fastapi import APIRouter, Depends, Request

from api.dependencies.auth import CurrentAccount
from api.v1.dependencies import get_profile_session_registry
from api.v1.schemas.common import MessageResponse
from core.rate_limit import limiter
from domain.services.profile_session_registry import ProfileSessionRegistry

router = APIRouter(prefix="/session", tags=["session"])


@router.post(
    "/sign-out",
    response_model=MessageResponse,
    summary="Drop the account's profile session",
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def sign_out(
    request: Request,
    account: CurrentAccount,
    registry: ProfileSessionRegistry = Depends(get_profile_session_registry),
) -> MessageResponse:
    """Forget in-memory profile state for the account. Persisted selection is kept."""
    closed = await registry.sign_out(account.id)
    return MessageResponse(message="Signed out" if closed else "No active session")
