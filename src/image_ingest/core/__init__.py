"""Core components for image ingestion."""

from .logging_config import get_logger, setup_logger
from .exceptions import (
    ImageIngestError,
    ConfigurationError,
    DecodeError,
    UploadTooLargeError,
    WriteError,
    DeleteError,
)
from .models import (
    Backend,
    EngineConfig,
    IngestionKeys,
    OutputFormat,
    RenditionPlan,
    RenditionRole,
    RenditionSpec,
    UploadResult,
    WriteDescriptor,
)
from .naming import derive_storage_key, parse_storage_key, placeholder_key_for
from .planner import plan_renditions
from .protocols import BackendAdapter
from .engine import StorageEngine
from .factories import create_backend, create_engine, open_engine

__all__ = [
    "setup_logger",
    "get_logger",
    "ImageIngestError",
    "ConfigurationError",
    "DecodeError",
    "UploadTooLargeError",
    "WriteError",
    "DeleteError",
    "Backend",
    "EngineConfig",
    "IngestionKeys",
    "OutputFormat",
    "RenditionPlan",
    "RenditionRole",
    "RenditionSpec",
    "UploadResult",
    "WriteDescriptor",
    "derive_storage_key",
    "parse_storage_key",
    "placeholder_key_for",
    "plan_renditions",
    "BackendAdapter",
    "StorageEngine",
    "create_backend",
    "create_engine",
    "open_engine",
]
