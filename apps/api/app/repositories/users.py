"""User repository: reads, composite updates and soft deletes over the document store."""

from __future__ import annotations

import logging
from typing import Any

from app.adapters.auth.base import IdentityProvider
from app.core.background import BackgroundTasks
from app.core.logging_safety import safe_log_identifier
from app.domain.entities import IMAGES_COLLECTION, Entity, UserRole
from app.errors import ApiError, ConflictError, NotFoundError, PersistenceError
from app.repositories.documents import Document, DocumentStore, Population
from app.schemas.auth import AuthPrincipal
from app.schemas.query import PaginatedResult, QueryDescriptor
from app.schemas.user import ImagePayload
from app.services.images import ImageService
from app.services.query_translator import QueryTranslator

logger = logging.getLogger(__name__)

_COLLECTION = Entity.USERS.value
_ACTIVE_IMAGE_URL = Population(
    path="image",
    collection=IMAGES_COLLECTION,
    match={"status": True},
    select={"url": True},
)
_ACTIVE_IMAGE_PREVIEW = Population(
    path="image",
    collection=IMAGES_COLLECTION,
    match={"status": True},
    select={"url": True, "blurHash": True},
)
_PUBLIC_PROJECTION: dict[str, bool] = {
    "name": True,
    "email": True,
    "image": True,
    "preferences": True,
    "role": True,
    "favoriteOwners": True,
    "firebaseId": True,
}
_CONSUMED_UPDATE_FIELDS = ("newFavorite", "removeFavorite", "notificationTokens")


class UserRepository:
    """Storage failures surface as ``PersistenceError``; classified API errors pass through."""

    def __init__(
        self,
        store: DocumentStore,
        images: ImageService,
        identity_provider: IdentityProvider,
        background_tasks: BackgroundTasks,
    ) -> None:
        self._store = store
        self._images = images
        self._identity_provider = identity_provider
        self._background_tasks = background_tasks
        self._translator = QueryTranslator(store)

    async def get_one(self, user_id: str) -> Document:
        try:
            document = await self._store.find_one(
                _COLLECTION,
                {"_id": user_id},
                population=[_ACTIVE_IMAGE_URL],
            )
        except Exception as exc:
            raise self._persistence_error("get_one", exc) from exc

        if document is None:
            raise NotFoundError(f"Could not find user for id: {user_id}")
        return document

    async def get_authenticated(self, principal: AuthPrincipal) -> Document:
        try:
            document = await self._store.find_one(
                _COLLECTION,
                {"firebaseId": principal.subject_id},
                population=[_ACTIVE_IMAGE_URL],
            )
        except Exception as exc:
            raise self._persistence_error("get_authenticated", exc) from exc

        if document is None:
            raise NotFoundError("Could not find user for the authenticated subject")
        return document

    async def find_by_subject(self, subject_id: str) -> Document | None:
        try:
            return await self._store.find_one(
                _COLLECTION,
                {"firebaseId": subject_id},
                projection={"role": True},
            )
        except Exception as exc:
            raise self._persistence_error("find_by_subject", exc) from exc

    async def list(self, descriptor: QueryDescriptor) -> PaginatedResult:
        try:
            return await self._translator.list(_COLLECTION, descriptor)
        except ApiError:
            raise
        except Exception as exc:
            raise self._persistence_error("list", exc) from exc

    async def create(
        self,
        principal: AuthPrincipal,
        data: dict[str, Any],
        image: ImagePayload | None,
    ) -> Document:
        """Register the calling subject as a user.

        ``data`` is expected to have passed the users field policy already.
        New users always start as JUNIOR; a caller-supplied role is ignored.
        """
        fields = {key: value for key, value in data.items() if key not in _CONSUMED_UPDATE_FIELDS and key != "image"}
        if fields.pop("role", None) is not None:
            logger.warning(
                "users.create_role_ignored subject_id=%s",
                safe_log_identifier(principal.subject_id, prefix="sub"),
            )
        role = UserRole.JUNIOR.value

        try:
            existing = await self._store.find_one(_COLLECTION, {"firebaseId": principal.subject_id})
            if existing is not None:
                raise ConflictError("The authenticated subject is already registered")

            document: Document = {
                "firebaseId": principal.subject_id,
                "email": principal.email,
                "role": role,
                "status": True,
                "favoriteOwners": [],
                "notificationTokens": [],
                **fields,
            }
            [created] = await self._store.insert_many(_COLLECTION, [document])
            user_id = created["_id"]

            if image is not None:
                [stored_image] = await self._images.insert_images(
                    [image],
                    parent_type=_COLLECTION,
                    parent_id=user_id,
                )
                await self._store.find_one_and_update(
                    _COLLECTION,
                    {"_id": user_id},
                    {"$set": {"image": stored_image["_id"]}},
                )

            result = await self._store.find_one(
                _COLLECTION,
                {"_id": user_id},
                projection=_PUBLIC_PROJECTION,
                population=[_ACTIVE_IMAGE_PREVIEW],
            )
        except ApiError:
            raise
        except Exception as exc:
            raise self._persistence_error("create", exc) from exc

        self._dispatch_claims(principal.subject_id, role=role, internal_id=user_id)
        return result

    async def update(self, user_id: str, data: dict[str, Any], image: ImagePayload | None) -> Document:
        """Apply the update's side effects, merge the remaining fields and return the public view."""
        rest = {key: value for key, value in data.items() if key not in _CONSUMED_UPDATE_FIELDS and key != "image"}

        try:
            notification_token = data.get("notificationTokens")
            if notification_token:
                await self._add_notification_token(user_id, notification_token)

            new_favorite = data.get("newFavorite")
            if new_favorite:
                await self._store.find_one_and_update(
                    _COLLECTION,
                    {"_id": user_id},
                    {"$addToSet": {"favoriteOwners": new_favorite}},
                )

            remove_favorite = data.get("removeFavorite")
            if remove_favorite:
                await self._store.find_one_and_update(
                    _COLLECTION,
                    {"_id": user_id},
                    {"$pull": {"favoriteOwners": remove_favorite}},
                )

            if image is not None:
                existing = await self._store.find_one(_COLLECTION, {"_id": user_id}, projection={"_id": True})
                if existing is None:
                    raise NotFoundError(f"Could not find user to update for id: {user_id}")
                await self._images.delete_images_by_parent(_COLLECTION, user_id)
                [stored_image] = await self._images.insert_images(
                    [image],
                    parent_type=_COLLECTION,
                    parent_id=user_id,
                )
                rest["image"] = stored_image["_id"]

            document = await self._store.find_one_and_update(
                _COLLECTION,
                {"_id": user_id},
                {"$set": rest},
                return_new=True,
                projection=_PUBLIC_PROJECTION,
                population=[_ACTIVE_IMAGE_PREVIEW],
            )
        except ApiError:
            raise
        except Exception as exc:
            raise self._persistence_error("update", exc) from exc

        if document is None:
            raise NotFoundError(f"Could not find user to update for id: {user_id}")

        role = data.get("role")
        if role:
            self._dispatch_claims(document.get("firebaseId"), role=role, internal_id=document["_id"])

        return document

    async def delete(self, user_id: str) -> bool:
        try:
            document = await self._store.find_one_and_update(
                _COLLECTION,
                {"_id": user_id},
                {"$set": {"status": False}},
            )
        except Exception as exc:
            raise self._persistence_error("delete", exc) from exc

        if document is None:
            raise NotFoundError(f"Could not find user to delete for id: {user_id}")
        return True

    async def _add_notification_token(self, user_id: str, token: Any) -> None:
        current = await self._store.find_one(
            _COLLECTION,
            {"_id": user_id},
            projection={"notificationTokens": True},
        )
        if current is None:
            raise NotFoundError(f"Could not find user to update for id: {user_id}")

        tokens = list(current.get("notificationTokens") or [])
        if token not in tokens:
            tokens.append(token)
        await self._store.find_one_and_update(
            _COLLECTION,
            {"_id": user_id},
            {"$set": {"notificationTokens": tokens}},
        )

    def _dispatch_claims(self, subject_id: str | None, *, role: str, internal_id: str) -> None:
        if not subject_id:
            logger.warning(
                "users.claims_skipped user_id=%s reason=missing_subject",
                safe_log_identifier(internal_id, prefix="uid"),
            )
            return

        claims = {"role": role, "internalId": internal_id}
        self._background_tasks.spawn(
            self._identity_provider.set_custom_claims(subject_id, claims),
            name=f"claims:{safe_log_identifier(subject_id, prefix='sub')}",
        )
        logger.info(
            "users.claims_dispatched subject_id=%s role=%s",
            safe_log_identifier(subject_id, prefix="sub"),
            role,
        )

    @staticmethod
    def _persistence_error(operation: str, exc: Exception) -> PersistenceError:
        logger.error(
            "users.persistence_failed operation=%s error=%s",
            operation,
            type(exc).__name__,
            exc_info=exc,
        )
        return PersistenceError(f"{operation} database error")


__all__ = ["UserRepository"]
