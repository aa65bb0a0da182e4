"""Image ingestion: store an original and a placeholder rendition of each upload."""

from .core import (
    EngineConfig,
    StorageEngine,
    UploadResult,
    create_engine,
    open_engine,
)

__version__ = "0.1.0"

__all__ = [
    "EngineConfig",
    "StorageEngine",
    "UploadResult",
    "create_engine",
    "open_engine",
    "__version__",
]
