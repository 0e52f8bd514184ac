"""
Object-store backend on Google Cloud Storage.

All SDK calls are funnelled through this class so every caller gets the same
error semantics: ``google.api_core`` not-found errors become ``NotFound``,
everything else the SDK, auth layer or network raises becomes
``BackendUnavailable``.
"""

import logging
from typing import Iterator, Optional

from google.api_core import exceptions as gcs_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import storage

from app.core.config import StorageConfig
from app.core.tracing import get_tracer
from app.features.documents.models import StorageProvider
from app.features.storage.base import CHUNK_SIZE, StorageBackend, StoredObject
from app.shared.errors import BackendUnavailable, NotFound

logger = logging.getLogger("Recruit.Storage.GCS")
tracer = get_tracer(__name__)

# Network-level failures from requests surface as OSError subclasses
_TRANSIENT_ERRORS = (gcs_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError, OSError)


class ObjectStoreBackend(StorageBackend):
    """
    GCS bucket backend.

    A disabled backend (no bucket configured, or ``GCS_ENABLED=false``)
    answers every call with ``BackendUnavailable``, which is exactly what a
    failing object store looks like to the router.
    """

    provider = StorageProvider.OBJECT_STORE

    def __init__(self, config: StorageConfig, client: Optional[storage.Client] = None):
        self._config = config
        self._client = client
        self._bucket = None

    @property
    def enabled(self) -> bool:
        return self._config.gcs_enabled and bool(self._config.gcs_bucket)

    def _get_bucket(self) -> storage.Bucket:
        if not self.enabled:
            raise BackendUnavailable("Object store is not configured", provider=self.provider.value)
        if self._bucket is None:
            try:
                if self._client is None:
                    self._client = storage.Client(project=self._config.gcs_project)
                self._bucket = self._client.bucket(self._config.gcs_bucket)
            except _TRANSIENT_ERRORS as e:
                logger.error(f"Failed to initialise GCS client: {e}")
                raise BackendUnavailable(
                    f"Object store client unavailable: {e}", provider=self.provider.value
                ) from e
        return self._bucket

    def _unavailable(self, action: str, locator: str, error: Exception) -> BackendUnavailable:
        logger.warning(f"GCS {action} failed for {locator}: {error}")
        return BackendUnavailable(
            f"Object store {action} failed", provider=self.provider.value, details={"locator": locator}
        )

    def put(
        self,
        data: bytes,
        locator: str,
        mimetype: str,
        make_public: bool = False,
    ) -> StoredObject:
        with tracer.start_as_current_span("storage.put") as span:
            span.set_attribute("storage.provider", self.provider.value)
            span.set_attribute("storage.size", len(data))
            bucket = self._get_bucket()
            try:
                blob = bucket.blob(locator)
                blob.upload_from_string(data, content_type=mimetype)
                public_url = None
                if make_public:
                    blob.make_public()
                    public_url = blob.public_url
            except _TRANSIENT_ERRORS as e:
                raise self._unavailable("upload", locator, e) from e

            logger.info(f"Stored gs://{self._config.gcs_bucket}/{locator} ({len(data)} bytes)")
            return StoredObject(provider=self.provider, locator=locator, public_url=public_url)

    def get(self, locator: str, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
        with tracer.start_as_current_span("storage.get") as span:
            span.set_attribute("storage.provider", self.provider.value)
            bucket = self._get_bucket()
            try:
                blob = bucket.get_blob(locator)
                if blob is None:
                    raise NotFound("Stored object not found", resource_type="object", resource_id=locator)
                reader = blob.open("rb", chunk_size=chunk_size)
            except gcs_exceptions.NotFound as e:
                raise NotFound("Stored object not found", resource_type="object", resource_id=locator) from e
            except _TRANSIENT_ERRORS as e:
                raise self._unavailable("read", locator, e) from e

        return self._iter_reader(reader, locator, chunk_size)

    def _iter_reader(self, reader, locator: str, chunk_size: int) -> Iterator[bytes]:
        try:
            while True:
                try:
                    chunk = reader.read(chunk_size)
                except _TRANSIENT_ERRORS as e:
                    raise self._unavailable("read", locator, e) from e
                if not chunk:
                    break
                yield chunk
        finally:
            reader.close()

    def delete(self, locator: str) -> None:
        with tracer.start_as_current_span("storage.delete") as span:
            span.set_attribute("storage.provider", self.provider.value)
            bucket = self._get_bucket()
            try:
                bucket.blob(locator).delete()
            except gcs_exceptions.NotFound:
                logger.debug(f"GCS object already gone: {locator}")
                return
            except _TRANSIENT_ERRORS as e:
                raise self._unavailable("delete", locator, e) from e
            logger.info(f"Deleted gs://{self._config.gcs_bucket}/{locator}")

    def exists(self, locator: str) -> bool:
        bucket = self._get_bucket()
        try:
            return bucket.blob(locator).exists()
        except _TRANSIENT_ERRORS as e:
            raise self._unavailable("exists", locator, e) from e
