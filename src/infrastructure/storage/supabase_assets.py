"""Avatar URL resolution against Supabase Storage."""

from urllib.parse import quote

import structlog

from domain.repositories.profile_repository import IAssetLocator

logger = structlog.get_logger()

_ABSOLUTE_PREFIXES = ("http://", "https://")


class SupabaseAssetLocator:
    """Builds public object URLs for a Supabase Storage bucket."""

    def __init__(self, supabase_url: str, bucket: str) -> None:
        self._base_url = supabase_url.rstrip("/")
        self._bucket = bucket

    def public_url(self, path: str) -> str:
        """Absolute public URL for a storage path."""
        if not self._base_url:
            raise ValueError("Supabase URL is not configured")

        cleaned = path.strip().lstrip("/")
        if cleaned.startswith(f"{self._bucket}/"):
            cleaned = cleaned[len(self._bucket) + 1 :]
        if not cleaned:
            raise ValueError("Empty storage path")

        return f"{self._base_url}/storage/v1/object/public/{self._bucket}/{quote(cleaned, safe='/')}"


def resolve_avatar_url(raw: str | None, locator: IAssetLocator | None) -> str | None:
    """Expand a storage-relative avatar path; absolute URLs pass through.

    Resolution failures fall back to the stored value so a profile read never
    fails because of its avatar.
    """
    if not raw:
        return raw
    if raw.strip().lower().startswith(_ABSOLUTE_PREFIXES):
        return raw
    if locator is None:
        return raw
    try:
        return locator.public_url(raw)
    except Exception as exc:
        logger.warning("avatar_url_resolution_failed", path=raw, error=str(exc))
        return raw
