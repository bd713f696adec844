"""Authentication provider protocol."""

from dataclasses import dataclass
from typing import Optional, Protocol


@dataclass
class AuthenticatedAccount:
    """Account identity extracted from a session token."""

    id: str
    email: Optional[str] = None
    username: Optional[str] = None
    role: Optional[str] = None


class IAuthProvider(Protocol):
    """Protocol for authentication providers."""

    async def validate_token(self, token: str) -> Optional[AuthenticatedAccount]:
        """
        Validate a session token.

        Args:
            token: The bearer token to validate

        Returns:
            AuthenticatedAccount if valid, None if invalid
        """
        ...

    def create_token(self, account: AuthenticatedAccount) -> str:
        """
        Create a session token for an account.

        Args:
            account: The account to create a token for

        Returns:
            The generated token string
        """
        ...
