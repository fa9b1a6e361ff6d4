"""Authentication schemas."""

from pydantic import BaseModel, Field


class VerifiedIdentity(BaseModel):
    """Claims returned by the identity provider for a valid bearer token."""

    subject_id: str = Field(min_length=1)
    role: str | None = None
    email: str | None = None


class AuthPrincipal(BaseModel):
    """Normalized authenticated principal used by repositories and routes."""

    subject_id: str = Field(min_length=1)
    role: str = Field(default="JUNIOR", min_length=1)
    internal_id: str | None = None
    email: str | None = None
