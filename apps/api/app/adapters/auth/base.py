"""Identity provider interface."""

from abc import ABC, abstractmethod
from typing import Any

from app.schemas.auth import VerifiedIdentity


class AuthVerificationError(Exception):
    """Raised when a token cannot be verified or normalized."""


class IdentityProvider(ABC):
    """Provider-neutral token verification and claims management."""

    @abstractmethod
    async def verify_token(self, token: str) -> VerifiedIdentity:
        """Verify token and return the identity it carries."""

    @abstractmethod
    async def set_custom_claims(self, subject_id: str, claims: dict[str, Any]) -> None:
        """Replace the custom claims attached to ``subject_id``."""


__all__ = ["AuthVerificationError", "IdentityProvider"]
