"""User and image API schemas."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ImagePayload(BaseModel):
    """Image descriptor accepted on create/update, already uploaded to blob storage."""

    model_config = ConfigDict(populate_by_name=True)

    url: str = Field(min_length=1)
    blur_hash: str | None = Field(default=None, alias="blurHash")


class ImageRef(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    url: str | None = None
    blur_hash: str | None = Field(default=None, alias="blurHash")


class User(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    firebase_id: str | None = Field(default=None, alias="firebaseId")
    name: str | None = None
    email: str | None = None
    role: str | None = None
    status: bool | None = None
    image: ImageRef | str | None = None
    preferences: dict[str, Any] | None = None
    service_zone: Any = Field(default=None, alias="serviceZone")
    favorite_owners: list[str] | None = Field(default=None, alias="favoriteOwners")
    notification_tokens: list[str] | None = Field(default=None, alias="notificationTokens")
