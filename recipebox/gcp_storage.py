from __future__ import annotations

import logging
import os
from datetime import timedelta
from typing import Mapping, Optional

from google.auth import exceptions as auth_exceptions
from google.cloud import firestore, storage
from werkzeug.datastructures import FileStorage

from .images import build_image_name, check_image

logger = logging.getLogger(__name__)

SIGNED_URL_EXPIRATION = timedelta(days=7)
VALUE_FIELD = "value"


class FirestoreKeyValueStore:
    """Key-value store keeping each key as one Firestore document."""

    def __init__(
        self,
        *,
        project: Optional[str] = None,
        collection_name: str = "recipes",
        client: Optional[firestore.Client] = None,
    ) -> None:
        self._client = firestore.Client(project=project) if client is None else client
        self._collection = self._client.collection(collection_name)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "FirestoreKeyValueStore":
        """Build a store from environment variables."""

        env = os.environ if environ is None else environ
        project = env.get("GCP_PROJECT")
        collection_name = env.get("RECIPES_COLLECTION") or "recipes"
        return cls(project=project, collection_name=collection_name)

    def get(self, key: str) -> Optional[str]:
        snapshot = self._collection.document(_document_id(key)).get()
        if not snapshot.exists:
            return None
        data = snapshot.to_dict() or {}
        value = data.get(VALUE_FIELD)
        if not isinstance(value, str):
            raise ValueError(f"Document '{snapshot.id}' has no string '{VALUE_FIELD}' field.")
        return value

    def set(self, key: str, value: str) -> None:
        # set() replaces the whole document in a single write.
        self._collection.document(_document_id(key)).set(
            {VALUE_FIELD: value, "updated_at": firestore.SERVER_TIMESTAMP}
        )

    def remove(self, key: str) -> None:
        self._collection.document(_document_id(key)).delete()


class CloudStorageImageStore:
    """Uploads recipe photos to a Cloud Storage bucket."""

    def __init__(
        self,
        bucket_name: str,
        *,
        project: Optional[str] = None,
        client: Optional[storage.Client] = None,
    ) -> None:
        self._client = storage.Client(project=project) if client is None else client
        self._bucket = self._client.bucket(bucket_name)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> Optional["CloudStorageImageStore"]:
        """Build an image store for ``GCS_BUCKET``, or ``None`` when it is unset."""

        env = os.environ if environ is None else environ
        bucket_name = env.get("GCS_BUCKET")
        if not bucket_name:
            return None
        return cls(bucket_name, project=env.get("GCP_PROJECT"))

    def save(self, image: Optional[FileStorage]) -> Optional[str]:
        if not check_image(image):
            return None

        blob = self._bucket.blob(f"recipes/{build_image_name(image.filename)}")
        image.stream.seek(0)
        blob.upload_from_file(image.stream, content_type=image.mimetype)
        logger.info("Uploaded image %s", blob.name)
        return self._get_image_url(blob)

    def _get_image_url(self, blob: storage.Blob) -> str:
        try:
            return blob.generate_signed_url(
                version="v4", method="GET", expiration=SIGNED_URL_EXPIRATION
            )
        except (ValueError, TypeError, AttributeError, auth_exceptions.GoogleAuthError):
            # Signing needs credentials that can sign; without them use the
            # object's public URL and leave bucket permissions alone.
            return blob.public_url


def _document_id(key: str) -> str:
    # Firestore document ids cannot contain "/".
    return key.replace("/", "_")


__all__ = ["CloudStorageImageStore", "FirestoreKeyValueStore"]
