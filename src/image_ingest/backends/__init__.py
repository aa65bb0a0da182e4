"""Storage backends that implement the BackendAdapter capability set."""

from .local import LocalFilesystemAdapter
from .object_store import ObjectStorageAdapter

__all__ = [
    "LocalFilesystemAdapter",
    "ObjectStorageAdapter",
]
