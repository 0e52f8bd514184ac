"""
Byte storage backends.

Two interchangeable backends (object store, local filesystem) behind one
contract, and a router that applies the upload and read fallback policy.
"""

from app.features.storage.base import StorageBackend, StoredObject, build_locator
from app.features.storage.gcs import ObjectStoreBackend
from app.features.storage.local import LocalFilesystemBackend
from app.features.storage.router import StorageRouter

__all__ = [
    "StorageBackend",
    "StoredObject",
    "build_locator",
    "ObjectStoreBackend",
    "LocalFilesystemBackend",
    "StorageRouter",
]
