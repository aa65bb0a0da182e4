"""Shared data models for image ingestion."""

import os
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, NamedTuple, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .exceptions import ConfigurationError


DEFAULT_MAX_UPLOAD_BYTES = 5 * 1024 * 1024
ENV_PREFIX = "IMAGE_INGEST_"


class Backend(str, Enum):
    """Where renditions are stored."""

    LOCAL = "local"
    OBJECT_STORE = "object-store"


class OutputFormat(str, Enum):
    """Encoded format of both renditions."""

    JPEG = "jpeg"
    PNG = "png"

    @property
    def mime_type(self) -> str:
        return "image/jpeg" if self is OutputFormat.JPEG else "image/png"

    @property
    def extension(self) -> str:
        return "jpg" if self is OutputFormat.JPEG else "png"

    @property
    def pil_format(self) -> str:
        return self.value.upper()


class RenditionRole(str, Enum):
    """Role of a rendition within one ingestion."""

    ORIGINAL = "original"
    PLACEHOLDER = "placeholder"


class EngineConfig(BaseModel):
    """Configuration for a storage engine, validated once at construction."""

    model_config = ConfigDict(frozen=True)

    backend: Backend = Backend.LOCAL
    output_format: OutputFormat = OutputFormat.PNG
    quality: int = Field(default=90, ge=0, le=100)
    resize_threshold: Optional[int] = Field(default=None, gt=0)
    placeholder_width: int = Field(default=10, gt=0)
    greyscale: bool = False
    max_upload_bytes: int = Field(default=DEFAULT_MAX_UPLOAD_BYTES, gt=0)
    write_timeout_seconds: Optional[float] = Field(default=30.0, gt=0)

    # local backend
    root_dir: Optional[Path] = None

    # object-store backend
    bucket: Optional[str] = None
    acl: Optional[str] = None
    region: Optional[str] = None
    endpoint_url: Optional[str] = None

    @field_validator("output_format", mode="before")
    @classmethod
    def _normalize_output_format(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip().lower()
            if value == "jpg":
                return OutputFormat.JPEG.value
        return value

    @field_validator("backend", mode="before")
    @classmethod
    def _normalize_backend(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip().lower().replace("_", "-")
            if value in ("s3", "object-storage"):
                return Backend.OBJECT_STORE.value
        return value

    @model_validator(mode="after")
    def _check_backend_fields(self) -> "EngineConfig":
        if self.backend is Backend.OBJECT_STORE:
            if not self.bucket:
                raise ValueError("bucket is required for the object-store backend")
            if not self.acl:
                raise ValueError("acl is required for the object-store backend")
        elif self.root_dir is None:
            raise ValueError("root_dir is required for the local backend")
        return self

    @classmethod
    def build(cls, **values: Any) -> "EngineConfig":
        """Validate ``values`` and raise ConfigurationError on any problem."""
        try:
            return cls(**values)
        except ValidationError as exc:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'config'}: {err['msg']}"
                for err in exc.errors()
            )
            raise ConfigurationError(f"Invalid engine configuration: {problems}") from exc

    @classmethod
    def from_env(
        cls, environ: Optional[Mapping[str, str]] = None, **overrides: Any
    ) -> "EngineConfig":
        """
        Build a configuration from environment variables.

        Variables use the IMAGE_INGEST_ prefix (IMAGE_INGEST_BACKEND,
        IMAGE_INGEST_OUTPUT_FORMAT, IMAGE_INGEST_ROOT_DIR, ...). The bucket
        and region also fall back to AWS_BUCKET_NAME and AWS_BUCKET_REGION.
        Keyword overrides that are not None win over the environment.
        """
        env = os.environ if environ is None else environ
        values: Dict[str, Any] = {}

        for name in cls.model_fields:
            raw = env.get(f"{ENV_PREFIX}{name.upper()}")
            if raw is not None and raw != "":
                values[name] = raw

        if "bucket" not in values and env.get("AWS_BUCKET_NAME"):
            values["bucket"] = env["AWS_BUCKET_NAME"]
        if "region" not in values and env.get("AWS_BUCKET_REGION"):
            values["region"] = env["AWS_BUCKET_REGION"]

        for option in ("resize_threshold", "write_timeout_seconds"):
            if str(values.get(option, "")).lower() in ("none", "off"):
                values[option] = None

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls.build(**values)

    @property
    def mime_type(self) -> str:
        return self.output_format.mime_type

    @property
    def extension(self) -> str:
        return self.output_format.extension


class RenditionSpec(BaseModel):
    """Target size and encoding of one rendition."""

    model_config = ConfigDict(frozen=True)

    role: RenditionRole
    width: int
    height: int
    quality: int
    format: OutputFormat


class RenditionPlan(BaseModel):
    """Exactly two renditions: the original first, then the placeholder."""

    model_config = ConfigDict(frozen=True)

    original: RenditionSpec
    placeholder: RenditionSpec

    @property
    def renditions(self) -> List[RenditionSpec]:
        return [self.original, self.placeholder]


class IngestionKeys(NamedTuple):
    """The two storage keys produced by one ingestion."""

    original: str
    placeholder: str

    def for_role(self, role: RenditionRole) -> str:
        return self.original if role is RenditionRole.ORIGINAL else self.placeholder


class WriteDescriptor(BaseModel):
    """What a backend reports after durably storing one blob."""

    model_config = ConfigDict(frozen=True)

    key: str
    location: str
    size: int = 0
    content_type: str = "application/octet-stream"


class UploadResult(BaseModel):
    """Outcome of a successful ingestion."""

    model_config = ConfigDict(frozen=True)

    mime_type: str
    original_key: str
    placeholder_key: str
    bucket_or_root: str
    original_filename: Optional[str] = None

    @property
    def keys(self) -> IngestionKeys:
        return IngestionKeys(self.original_key, self.placeholder_key)

    def to_response(self) -> Dict[str, Optional[str]]:
        """Shape returned to upload clients."""
        return {
            "mimeType": self.mime_type,
            "originalFilename": self.original_filename,
            "originalKey": self.original_key,
            "placeholderKey": self.placeholder_key,
            "bucketOrRoot": self.bucket_or_root,
        }
