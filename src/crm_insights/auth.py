"""Identity provider boundary. Credentials are opaque; only owner ids come back."""

from abc import ABC, abstractmethod
from typing import Mapping, Optional

from crm_insights.errors import AuthenticationError


def bearer_credential(header: Optional[str]) -> str:
    """Extract the token from an "Authorization: Bearer <token>" header value."""
    if not header or not header.strip():
        raise AuthenticationError("Access denied: no credential provided")
    parts = header.strip().split()
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1]:
        raise AuthenticationError("Access denied: malformed authorization header")
    return parts[1]


class IdentityProvider(ABC):
    """Resolves a bearer credential to the authenticated owner id."""

    @abstractmethod
    def authenticate(self, credential: str) -> str:
        """Return the owner id or raise AuthenticationError."""
        pass


class StaticTokenIdentityProvider(IdentityProvider):
    """Fixed token -> owner mapping, for local use and tests."""

    def __init__(self, tokens: Mapping[str, str]):
        self._tokens = dict(tokens)

    def authenticate(self, credential: str) -> str:
        owner = self._tokens.get(credential)
        if not owner:
            raise AuthenticationError("Invalid or expired session. Log in again.")
        return owner
