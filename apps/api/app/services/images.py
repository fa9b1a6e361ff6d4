"""Image records linked to a parent entity."""

from __future__ import annotations

from typing import Sequence

from app.domain.entities import IMAGES_COLLECTION
from app.repositories.documents import Document, DocumentStore
from app.schemas.user import ImagePayload


class ImageService:
    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def insert_images(
        self,
        images: Sequence[ImagePayload],
        *,
        parent_type: str,
        parent_id: str,
    ) -> list[Document]:
        documents = [
            {
                "url": image.url,
                "blurHash": image.blur_hash,
                "status": True,
                "parentType": parent_type,
                "parentId": parent_id,
            }
            for image in images
        ]
        return await self._store.insert_many(IMAGES_COLLECTION, documents)

    async def delete_images_by_parent(self, parent_type: str, parent_id: str) -> int:
        """Deactivate every image currently attached to the parent."""
        return await self._store.update_many(
            IMAGES_COLLECTION,
            {"parentType": parent_type, "parentId": parent_id, "status": True},
            {"$set": {"status": False}},
        )


__all__ = ["ImageService"]
