"""Exception taxonomy for image ingestion.

Every error that crosses the engine boundary is one of these; library
errors (Pillow, botocore, OS) are wrapped before they reach the caller.
"""

from __future__ import annotations

from typing import Iterable, Optional, Tuple


class ImageIngestError(Exception):
    """Base exception for all image ingestion errors."""


class ConfigurationError(ImageIngestError):
    """Error raised for invalid engine configuration; fatal at startup."""


class DecodeError(ImageIngestError):
    """Error raised when an upload cannot be read or decoded as an image."""


class UploadTooLargeError(DecodeError):
    """Error raised when an upload exceeds the configured size limit."""

    def __init__(self, limit_bytes: int, received_bytes: int):
        self.limit_bytes = limit_bytes
        self.received_bytes = received_bytes
        super().__init__(
            f"Upload exceeds the {limit_bytes} byte limit "
            f"(received at least {received_bytes} bytes)"
        )


class WriteError(ImageIngestError):
    """Error raised when a rendition could not be written to the backend.

    ``keys`` holds both keys of the ingestion so the caller can issue a
    compensating delete without knowing which rendition landed.
    """

    def __init__(
        self,
        message: str,
        role: str,
        key: str,
        keys: Optional[Tuple[str, str]] = None,
    ):
        self.role = role
        self.key = key
        self.keys = keys
        super().__init__(f"Failed to write {role} rendition '{key}': {message}")


class DeleteError(ImageIngestError):
    """Error raised when a compensating delete fails for one or more keys."""

    def __init__(self, message: str, failed_keys: Iterable[str]):
        self.failed_keys = tuple(sorted(failed_keys))
        if self.failed_keys:
            message = f"{message}: {', '.join(self.failed_keys)}"
        super().__init__(message)
