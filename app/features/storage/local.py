"""Local filesystem backend rooted at ``UPLOADS_PATH``."""

import logging
import os
import uuid
from pathlib import Path
from typing import Iterator, Optional

from app.core.config import StorageConfig
from app.core.tracing import get_tracer
from app.features.documents.models import StorageProvider
from app.features.storage.base import CHUNK_SIZE, StorageBackend, StoredObject
from app.shared.errors import BackendUnavailable, InvalidInput, NotFound

logger = logging.getLogger("Recruit.Storage.Local")
tracer = get_tracer(__name__)


class LocalFilesystemBackend(StorageBackend):
    """
    Stores bytes under a root directory.

    Locators are relative paths; intermediate directories are created on
    write. Disk full and permission errors surface as ``BackendUnavailable``.
    """

    provider = StorageProvider.LOCAL

    def __init__(self, config: StorageConfig):
        self._root = Path(config.uploads_path).resolve()

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, locator: str) -> Path:
        """Absolute path of ``locator``; rejects locators escaping the root."""
        path = (self._root / locator).resolve()
        if path != self._root and self._root not in path.parents:
            raise InvalidInput(f"Invalid storage locator '{locator}'")
        return path

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
            path = self.path_for(locator)
            partial = path.with_name(f".{path.name}.{uuid.uuid4().hex}.part")
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                partial.write_bytes(data)
                os.replace(partial, path)
            except OSError as e:
                logger.error(f"Local write failed for {locator}: {e}")
                partial.unlink(missing_ok=True)
                raise BackendUnavailable(
                    "Local storage write failed", provider=self.provider.value, details={"locator": locator}
                ) from e

            logger.info(f"Stored {locator} locally ({len(data)} bytes)")
            return StoredObject(provider=self.provider, locator=locator)

    def get(self, locator: str, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
        path = self.path_for(locator)
        try:
            handle = open(path, "rb")
        except (FileNotFoundError, IsADirectoryError) as e:
            raise NotFound("Stored file not found", resource_type="file", resource_id=locator) from e
        except OSError as e:
            logger.error(f"Local read failed for {locator}: {e}")
            raise BackendUnavailable(
                "Local storage read failed", provider=self.provider.value, details={"locator": locator}
            ) from e
        return self._iter_file(handle, locator, chunk_size)

    def _iter_file(self, handle, locator: str, chunk_size: int) -> Iterator[bytes]:
        with handle:
            while True:
                try:
                    chunk = handle.read(chunk_size)
                except OSError as e:
                    raise BackendUnavailable(
                        "Local storage read failed", provider=self.provider.value, details={"locator": locator}
                    ) from e
                if not chunk:
                    break
                yield chunk

    def delete(self, locator: str) -> None:
        path = self.path_for(locator)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise BackendUnavailable(
                "Local storage delete failed", provider=self.provider.value, details={"locator": locator}
            ) from e
        logger.info(f"Deleted local file {locator}")

    def exists(self, locator: str) -> bool:
        return self.path_for(locator).is_file()

    def local_path(self, locator: str) -> Optional[Path]:
        path = self.path_for(locator)
        return path if path.is_file() else None
