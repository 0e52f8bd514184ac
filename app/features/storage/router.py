"""
Backend selection policy.

Uploads:
    - Categories that need a durable off-box copy (resumes, cover letters)
      go to the object store or fail with ``StorageUnavailable``.
    - Everything else tries the object store first and falls back to local
      disk on ``BackendUnavailable``. The fallback is logged, not raised.

Reads:
    - Always from the backend named on the record.
    - If that backend reports the object missing, the local backend is probed
      once before giving up with ``NotFound``.
    - Transient failures surface as ``BackendUnavailable`` so callers can retry.
"""

import logging
from typing import Iterator

from app.features.documents.models import DocumentRecord, StorageProvider
from app.features.storage.base import StorageBackend, StoredObject
from app.shared.errors import BackendUnavailable, NotFound, StorageUnavailable

logger = logging.getLogger("Recruit.Storage.Router")


class StorageRouter:
    """Single entry point for byte storage; owns the fallback policy."""

    def __init__(self, object_store: StorageBackend, local: StorageBackend):
        self.object_store = object_store
        self.local = local

    def backend(self, provider: StorageProvider) -> StorageBackend:
        if provider == StorageProvider.OBJECT_STORE:
            return self.object_store
        return self.local

    def put(
        self,
        data: bytes,
        locator: str,
        mimetype: str,
        require_object_store: bool,
    ) -> StoredObject:
        """
        Write ``data`` according to the upload policy.

        Documents carrying personal data are always stored private.

        Raises:
            StorageUnavailable: The mandatory object store, or every fallback, failed
        """
        try:
            return self.object_store.put(data, locator, mimetype, make_public=False)
        except BackendUnavailable as e:
            if require_object_store:
                logger.error(f"Object store unavailable for mandatory upload {locator}: {e.message}")
                raise StorageUnavailable(
                    "Document storage is temporarily unavailable. Please try again shortly.",
                    details={"locator": locator},
                ) from e
            logger.warning(
                f"Object store unavailable for {locator}, falling back to local storage: {e.message}"
            )

        try:
            return self.local.put(data, locator, mimetype)
        except BackendUnavailable as e:
            logger.error(f"Local fallback failed for {locator}: {e.message}")
            raise StorageUnavailable(
                "Document storage is temporarily unavailable. Please try again shortly.",
                details={"locator": locator},
            ) from e

    def open(self, record: DocumentRecord) -> Iterator[bytes]:
        """
        Chunk iterator over the bytes of ``record``.

        Raises:
            NotFound: Missing on the recorded backend and on the local probe
            BackendUnavailable: The recorded backend failed transiently
        """
        primary = self.backend(record.storage_provider)
        try:
            return primary.get(record.locator)
        except NotFound:
            if record.storage_provider == StorageProvider.LOCAL:
                raise
            logger.warning(
                f"Document {record.id} missing on {record.storage_provider.value} "
                f"at {record.locator}, probing local storage"
            )

        try:
            chunks = self.local.get(record.locator)
        except (NotFound, BackendUnavailable) as e:
            logger.warning(f"Local probe for document {record.id} failed: {e.message}")
            raise NotFound("Document file not found", resource_type="document", resource_id=record.id) from e

        logger.warning(f"Serving document {record.id} from local fallback copy")
        return chunks

    def delete(self, record: DocumentRecord) -> None:
        """Remove the bytes of ``record`` from its recorded backend."""
        self.backend(record.storage_provider).delete(record.locator)
