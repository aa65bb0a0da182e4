"""Protocol definitions for dependency injection and testability."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Protocol

from .models import WriteDescriptor


class AsyncS3ClientProtocol(Protocol):
    """Subset of the aioboto3 S3 client used by the object store adapter."""

    async def put_object(
        self, Bucket: str, Key: str, Body: bytes, ContentType: str, ACL: str
    ) -> Dict[str, Any]:
        """Put object to S3."""
        ...

    async def delete_objects(self, Bucket: str, Delete: Dict[str, Any]) -> Dict[str, Any]:
        """Delete several objects in one request."""
        ...


class LoggerProtocol(Protocol):
    """Protocol for logging operations."""

    def debug(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log debug message."""
        ...

    def info(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log info message."""
        ...

    def warning(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log warning message."""
        ...

    def error(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log error message."""
        ...


class BackendAdapter(ABC):
    """Where renditions are durably stored.

    Implementations hold no per-request state; one instance is shared by
    every in-flight ingestion.
    """

    @property
    @abstractmethod
    def location(self) -> str:
        """Bucket name or root directory reported back to clients."""
        ...

    @abstractmethod
    async def write(self, key: str, data: bytes, content_type: str) -> WriteDescriptor:
        """Store ``data`` under ``key``; return once the write is durable."""
        ...

    @abstractmethod
    async def delete(self, keys: Iterable[str]) -> None:
        """Delete every key; raise DeleteError naming the keys that failed."""
        ...


def unique_keys(keys: Iterable[str]) -> List[str]:
    """Deduplicate keys, keeping first-seen order and skipping blanks."""
    seen: Dict[str, None] = {}
    for key in keys:
        if key:
            seen.setdefault(key, None)
    return list(seen)
