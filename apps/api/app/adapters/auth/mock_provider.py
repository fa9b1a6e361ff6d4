"""Mock identity provider for local development and tests."""

from __future__ import annotations

from typing import Any

from app.adapters.auth.base import AuthVerificationError, IdentityProvider
from app.schemas.auth import VerifiedIdentity


class MockIdentityProvider(IdentityProvider):
    """Accepts deterministic test tokens only.

    Expected token format:
    - ``test:<subject_id>``
    - ``test:<subject_id>:<role>``

    Claim updates are recorded; ``claims_failure`` makes the
    next claim updates raise instead.
    """

    def __init__(self, *, claims_failure: str | None = None) -> None:
        self.claims_calls: list[tuple[str, dict[str, Any]]] = []
        self.claims_failure = claims_failure

    async def verify_token(self, token: str) -> VerifiedIdentity:
        parts = token.split(":")
        if len(parts) not in (2, 3) or parts[0] != "test":
            raise AuthVerificationError("Invalid bearer token")

        subject_id = parts[1].strip()
        role = parts[2].strip() if len(parts) == 3 else None

        if not subject_id:
            raise AuthVerificationError("Bearer token missing user identity")
        if role == "":
            raise AuthVerificationError("Bearer token missing role")

        return VerifiedIdentity(subject_id=subject_id, role=role)

    async def set_custom_claims(self, subject_id: str, claims: dict[str, Any]) -> None:
        self.claims_calls.append((subject_id, dict(claims)))
        if self.claims_failure is not None:
            raise RuntimeError(self.claims_failure)


__all__ = ["MockIdentityProvider"]
