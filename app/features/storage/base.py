"""
Storage backend contract.

Every backend exposes the same four capabilities. Backends translate their
own SDK or OS errors into the document error taxonomy:

- ``NotFound``: nothing stored at the locator
- ``BackendUnavailable``: the backend could not be reached or refused the call

so callers never see ``google.api_core`` or ``OSError`` exceptions.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional

from app.features.documents.models import DocumentCategory, StorageProvider

CHUNK_SIZE = 256 * 1024


@dataclass(frozen=True)
class StoredObject:
    """
    Where a ``put`` landed.

    Attributes:
        provider: Backend that now holds the bytes
        locator: Backend-specific key or relative path
        public_url: Direct URL, only for publicly readable objects
    """
    provider: StorageProvider
    locator: str
    public_url: Optional[str] = None


def build_locator(
    category: DocumentCategory,
    filename: str,
    when: Optional[datetime] = None,
) -> str:
    """Category and date partitioned key: ``{category}/{YYYY}/{MM}/{filename}``."""
    when = when or datetime.now(timezone.utc)
    return f"{category.value}/{when:%Y}/{when:%m}/{filename}"


class StorageBackend(ABC):
    """Byte storage with put/get/delete/exists semantics."""

    provider: StorageProvider

    @abstractmethod
    def put(
        self,
        data: bytes,
        locator: str,
        mimetype: str,
        make_public: bool = False,
    ) -> StoredObject:
        """
        Store ``data`` at ``locator``.

        Raises:
            BackendUnavailable: The write did not happen
        """

    @abstractmethod
    def get(self, locator: str, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
        """
        Open ``locator`` for reading and return an iterator of chunks.

        The object is opened eagerly, so a missing object raises ``NotFound``
        from this call rather than from the first ``next()``.

        Raises:
            NotFound: Nothing stored at ``locator``
            BackendUnavailable: Transient failure
        """

    @abstractmethod
    def delete(self, locator: str) -> None:
        """Remove ``locator``. Deleting a missing object is not an error."""

    @abstractmethod
    def exists(self, locator: str) -> bool:
        """True if bytes are stored at ``locator``."""

    def local_path(self, locator: str) -> Optional[Path]:
        """Path on this machine holding ``locator``, for backends that have one."""
        return None

    def read_all(self, locator: str) -> bytes:
        """Convenience for small objects and tests."""
        return b"".join(self.get(locator))
