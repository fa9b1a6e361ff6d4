"""Entity registry: per-entity field policy, compiled once at import."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping

from app.errors import ConfigurationError


class Entity(str, Enum):
    USERS = "users"


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    JUNIOR = "JUNIOR"
    CURATOR = "CURATOR"


IMAGES_COLLECTION = "images"


@dataclass(frozen=True, slots=True)
class EntityDescriptor:
    name: str
    writable_fields: tuple[str, ...]
    required_fields: tuple[str, ...]
    queryable_fields: tuple[str, ...]
    enum_constraints: Mapping[str, frozenset[str]] = field(default_factory=lambda: MappingProxyType({}))
    string_fields: tuple[str, ...] = ()
    references: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def is_writable(self, field_name: str) -> bool:
        return field_name in self.writable_fields

    def is_queryable(self, field_name: str) -> bool:
        return field_name in self.queryable_fields


_USERS = EntityDescriptor(
    name=Entity.USERS.value,
    writable_fields=(
        "name",
        "email",
        "role",
        "image",
        "status",
        "preferences",
        "serviceZone",
        "newFavorite",
        "removeFavorite",
        "notificationTokens",
    ),
    required_fields=("name", "image"),
    queryable_fields=(
        "_id",
        "firebaseId",
        "name",
        "email",
        "role",
        "image",
        "status",
        "preferences",
        "serviceZone",
        "favoriteOwners",
        "notificationTokens",
    ),
    enum_constraints=MappingProxyType({"role": frozenset(role.value for role in UserRole)}),
    string_fields=("newFavorite", "removeFavorite", "notificationTokens"),
    references=MappingProxyType({"image": IMAGES_COLLECTION}),
)

_REGISTRY: Mapping[str, EntityDescriptor] = MappingProxyType({_USERS.name: _USERS})


def describe(entity_name: str) -> EntityDescriptor:
    """Return the descriptor for ``entity_name`` or fail with a 500-class error."""
    key = entity_name.value if isinstance(entity_name, Entity) else entity_name
    descriptor = _REGISTRY.get(key)
    if descriptor is None:
        raise ConfigurationError(f"Unknown entity: {key}")
    return descriptor


__all__ = ["Entity", "EntityDescriptor", "IMAGES_COLLECTION", "UserRole", "describe"]
