"""Identity provider adapters."""

from .base import AuthVerificationError, IdentityProvider
from .firebase_provider import FirebaseIdentityProvider
from .mock_provider import MockIdentityProvider

__all__ = [
    "AuthVerificationError",
    "IdentityProvider",
    "FirebaseIdentityProvider",
    "MockIdentityProvider",
]
