"""Firebase Auth identity provider adapter."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from app.adapters.auth.base import AuthVerificationError, IdentityProvider
from app.core.logging_safety import safe_log_identifier
from app.schemas.auth import VerifiedIdentity

logger = logging.getLogger(__name__)


def _firebase_auth() -> Any:
    try:
        import firebase_admin
        from firebase_admin import auth as firebase_auth
    except ImportError as exc:  # pragma: no cover - depends on installed package
        raise AuthVerificationError("Firebase identity provider is unavailable") from exc

    if not firebase_admin._apps:
        firebase_admin.initialize_app()
    return firebase_auth


class FirebaseIdentityProvider(IdentityProvider):
    """Verifies Firebase JWTs and manages custom claims through the Admin SDK.

    The Admin SDK is blocking, so every call runs in a worker thread.
    """

    def __init__(self, project_id: str | None, audience: str | None) -> None:
        self._project_id = project_id
        self._audience = audience

    async def verify_token(self, token: str) -> VerifiedIdentity:
        firebase_auth = _firebase_auth()

        try:
            decoded = await asyncio.to_thread(firebase_auth.verify_id_token, token, check_revoked=True)
        except Exception as exc:  # pragma: no cover - provider exception surface
            raise AuthVerificationError("Invalid bearer token") from exc

        if self._audience and decoded.get("aud") != self._audience:
            raise AuthVerificationError("Invalid bearer token audience")

        if self._project_id:
            issuer = str(decoded.get("iss", ""))
            audience = str(decoded.get("aud", ""))
            if self._project_id not in issuer and audience != self._project_id:
                raise AuthVerificationError("Invalid bearer token issuer")

        subject_id = str(decoded.get("uid") or decoded.get("sub") or "").strip()
        if not subject_id:
            raise AuthVerificationError("Bearer token missing user identity")

        role = decoded.get("role")
        return VerifiedIdentity(
            subject_id=subject_id,
            role=str(role).strip() if role else None,
            email=decoded.get("email"),
        )

    async def set_custom_claims(self, subject_id: str, claims: dict[str, Any]) -> None:
        firebase_auth = _firebase_auth()
        await asyncio.to_thread(firebase_auth.set_custom_user_claims, subject_id, dict(claims))
        logger.info(
            "firebase.claims_updated subject_id=%s",
            safe_log_identifier(subject_id, prefix="sub"),
        )


__all__ = ["FirebaseIdentityProvider"]
