"""JWT session validation.

Accepts Supabase-issued access tokens (ES256, verified through the project's
JWKS endpoint) and locally signed HS256 tokens used by tests.

Relevant Supabase claims:
    {
        "sub": "account-uuid",
        "email": "user@example.com",
        "role": "authenticated",
        "user_metadata": { "username": "alice" },
        "exp": 1234567890
    }
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Optional

import httpx
from jose import JWTError, jwt
from jose.backends import ECKey

from core.config import settings
from infrastructure.auth.provider import AuthenticatedAccount

logger = logging.getLogger(__name__)

# kid -> JWK, fetched lazily and refreshed on an unknown kid
_jwks_cache: dict[str, Any] | None = None


async def _get_jwks_keys() -> dict[str, Any]:
    """Fetch and cache JWKS keys from Supabase."""
    global _jwks_cache
    if _jwks_cache is not None:
        return _jwks_cache

    jwks_url = settings.supabase_jwks_url
    if not jwks_url:
        return {}

    try:
        async with httpx.AsyncClient() as client:
            response = await client.get(jwks_url, timeout=10.0)
            response.raise_for_status()
            keys = response.json().get("keys", [])
    except (httpx.HTTPError, ValueError):
        logger.exception("Failed to fetch JWKS from %s", jwks_url)
        return {}

    _jwks_cache = {key["kid"]: key for key in keys if key.get("kid")}
    logger.info("Fetched %d JWKS keys", len(_jwks_cache))
    return _jwks_cache


class JWTAuthProvider:
    """Validates Supabase (ES256) and local (HS256) session tokens."""

    def __init__(
        self,
        secret_key: str = settings.jwt_secret_key,
        algorithm: str = settings.jwt_algorithm,
        expire_minutes: int = settings.jwt_expire_minutes,
    ) -> None:
        self._secret_key = secret_key
        self._algorithm = algorithm
        self._expire_minutes = expire_minutes

    async def validate_token(self, token: str) -> Optional[AuthenticatedAccount]:
        """Return the token's account, or None if the token is invalid or expired."""
        try:
            header = jwt.get_unverified_header(token)
            if header.get("alg", self._algorithm) == "ES256":
                payload = await self._decode_es256(token, header)
            else:
                payload = jwt.decode(
                    token,
                    self._secret_key,
                    algorithms=[self._algorithm],
                    options={"verify_aud": False},
                )
        except JWTError:
            return None

        if not payload or not payload.get("sub"):
            return None

        metadata = payload.get("user_metadata") or {}
        return AuthenticatedAccount(
            id=str(payload["sub"]),
            email=payload.get("email"),
            username=metadata.get("username") or metadata.get("user_name"),
            role=payload.get("role"),
        )

    async def _decode_es256(self, token: str, header: dict) -> Optional[dict]:
        kid = header.get("kid")
        if not kid:
            return None

        key_data = (await _get_jwks_keys()).get(kid)
        if not key_data:
            # Unknown kid, keys may have rotated
            global _jwks_cache
            _jwks_cache = None
            key_data = (await _get_jwks_keys()).get(kid)
            if not key_data:
                logger.warning("JWKS key not found for kid=%s", kid)
                return None

        return jwt.decode(  # type: ignore[no-any-return]
            token,
            ECKey(key_data, algorithm="ES256"),
            algorithms=["ES256"],
            options={"verify_aud": False},
        )

    def create_token(self, account: AuthenticatedAccount) -> str:
        """Sign an HS256 token for an account (tests and local tooling)."""
        payload: dict = {
            "sub": account.id,
            "email": account.email,
            "aud": "authenticated",
            "role": account.role or "authenticated",
            "exp": datetime.utcnow() + timedelta(minutes=self._expire_minutes),
            "user_metadata": {"username": account.username},
        }
        return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)  # type: ignore[no-any-return]
