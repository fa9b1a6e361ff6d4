"""Dependency wiring for routes."""

from __future__ import annotations

import logging
from typing import Annotated, Any
from uuid import uuid4

from fastapi import Body, Depends, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.adapters.auth import (
    AuthVerificationError,
    FirebaseIdentityProvider,
    IdentityProvider,
    MockIdentityProvider,
)
from app.core.background import BackgroundTasks
from app.core.config import Settings, get_settings
from app.core.logging_safety import safe_log_identifier
from app.domain.entities import Entity, UserRole
from app.domain.field_policy import restrict_to_allowed
from app.errors import AuthenticationError
from app.repositories.documents import DocumentStore
from app.repositories.users import UserRepository
from app.schemas.auth import AuthPrincipal
from app.services.images import ImageService

bearer_scheme = HTTPBearer(auto_error=False, scheme_name="bearerAuth")
logger = logging.getLogger(__name__)


def _request_correlation_id(request: Request) -> str:
    existing = getattr(request.state, "correlation_id", None)
    if isinstance(existing, str) and existing:
        return existing

    correlation_id = request.headers.get("X-Correlation-Id")
    if correlation_id:
        request.state.correlation_id = correlation_id
        return correlation_id

    generated = f"req-{uuid4()}"
    request.state.correlation_id = generated
    return generated


def get_identity_provider(settings: Annotated[Settings, Depends(get_settings)]) -> IdentityProvider:
    """Resolve provider adapter from configuration."""
    if settings.auth_provider == "firebase":
        return FirebaseIdentityProvider(
            project_id=settings.firebase_project_id,
            audience=settings.firebase_audience,
        )
    return MockIdentityProvider()


def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


def get_background_tasks(request: Request) -> BackgroundTasks:
    return request.app.state.background_tasks


def get_user_repository(
    store: Annotated[DocumentStore, Depends(get_store)],
    identity_provider: Annotated[IdentityProvider, Depends(get_identity_provider)],
    background_tasks: Annotated[BackgroundTasks, Depends(get_background_tasks)],
) -> UserRepository:
    return UserRepository(
        store=store,
        images=ImageService(store),
        identity_provider=identity_provider,
        background_tasks=background_tasks,
    )


async def get_authenticated_principal(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Security(bearer_scheme)],
    identity_provider: Annotated[IdentityProvider, Depends(get_identity_provider)],
    repository: Annotated[UserRepository, Depends(get_user_repository)],
) -> AuthPrincipal:
    """Validate bearer token, resolve the caller's user record and attach the principal to the request."""
    correlation_id = _request_correlation_id(request)
    safe_correlation_id = safe_log_identifier(correlation_id, prefix="cid")
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        logger.warning(
            "auth.rejected correlation_id=%s method=%s path=%s reason=invalid_or_missing_bearer",
            safe_correlation_id,
            request.method,
            request.url.path,
        )
        raise AuthenticationError("Invalid or missing bearer token")

    try:
        identity = await identity_provider.verify_token(credentials.credentials)
    except AuthVerificationError as exc:
        logger.warning(
            "auth.rejected correlation_id=%s method=%s path=%s reason=token_verification_failed",
            safe_correlation_id,
            request.method,
            request.url.path,
        )
        raise AuthenticationError(str(exc) or "Invalid bearer token") from exc

    record = await repository.find_by_subject(identity.subject_id)
    principal = AuthPrincipal(
        subject_id=identity.subject_id,
        role=identity.role or (record or {}).get("role") or UserRole.JUNIOR.value,
        internal_id=record["_id"] if record else None,
        email=identity.email,
    )

    logger.info(
        "auth.accepted correlation_id=%s method=%s path=%s principal_id=%s role=%s registered=%s",
        safe_correlation_id,
        request.method,
        request.url.path,
        safe_log_identifier(principal.subject_id, prefix="sub"),
        principal.role,
        principal.internal_id is not None,
    )
    request.state.auth_principal = principal
    return principal


def get_request_principal(request: Request) -> AuthPrincipal:
    principal = getattr(request.state, "auth_principal", None)
    if principal is None:
        raise AuthenticationError()
    return principal


def accepted_user_fields(payload: Annotated[dict[str, Any], Body()]) -> dict[str, Any]:
    """Body of a user write, rejected unless every field is on the allow-list."""
    return restrict_to_allowed(Entity.USERS.value, payload)
