"""Factory helpers for creating configured engines and their backends."""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

import aioboto3

from .exceptions import ConfigurationError
from .engine import StorageEngine
from .models import Backend, EngineConfig
from .protocols import AsyncS3ClientProtocol, BackendAdapter, LoggerProtocol


class S3ClientFactory:
    """Factory for aioboto3 sessions and S3 clients."""

    @staticmethod
    def create_session(region: Optional[str] = None) -> aioboto3.Session:
        """Create a session; credentials come from the usual AWS sources."""
        if region:
            return aioboto3.Session(region_name=region)
        return aioboto3.Session()

    @staticmethod
    def create_client(config: EngineConfig, session: Optional[Any] = None) -> Any:
        """
        Return an async context manager yielding an S3 client for ``config``.

        Use with ``async with``; the client is closed on exit.
        """
        session = session or S3ClientFactory.create_session(config.region)
        kwargs = {}
        if config.endpoint_url:
            kwargs["endpoint_url"] = config.endpoint_url
        return session.client("s3", **kwargs)


def create_backend(
    config: EngineConfig, s3_client: Optional[AsyncS3ClientProtocol] = None
) -> BackendAdapter:
    """
    Select and build the backend adapter named by ``config.backend``.

    Backends are imported lazily so the local backend does not pull in
    object storage dependencies at import time.

    Raises:
        ConfigurationError: If the backend cannot be built from ``config``
    """
    if config.backend is Backend.LOCAL:
        from ..backends.local import LocalFilesystemAdapter

        return LocalFilesystemAdapter(config.root_dir)

    if config.backend is Backend.OBJECT_STORE:
        from ..backends.object_store import ObjectStorageAdapter

        return ObjectStorageAdapter(s3_client, config.bucket, config.acl)

    raise ConfigurationError(f"Unsupported backend: {config.backend}")


def create_engine(
    config: EngineConfig,
    s3_client: Optional[AsyncS3ClientProtocol] = None,
    logger: Optional[LoggerProtocol] = None,
) -> StorageEngine:
    """Create an engine with the backend selected by ``config``."""
    return StorageEngine(config, create_backend(config, s3_client), logger=logger)


@asynccontextmanager
async def open_engine(
    config: EngineConfig,
    s3_client: Optional[AsyncS3ClientProtocol] = None,
    session: Optional[Any] = None,
    logger: Optional[LoggerProtocol] = None,
) -> AsyncIterator[StorageEngine]:
    """
    Async context manager yielding a ready engine.

    For the object-store backend an S3 client is opened (unless one is
    passed in) and closed again when the block exits.
    """
    if config.backend is Backend.OBJECT_STORE and s3_client is None:
        async with S3ClientFactory.create_client(config, session) as client:
            yield create_engine(config, client, logger)
        return

    yield create_engine(config, s3_client, logger)
