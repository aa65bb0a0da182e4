"""Storage engine: turns one upload into two stored renditions."""

import asyncio
import inspect
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Iterable, Optional, Union

from PIL import Image

from .error_handling import translate_write_errors
from .exceptions import DecodeError, DeleteError, ImageIngestError, UploadTooLargeError, WriteError
from .image_utils import decode_image, render
from .models import (
    EngineConfig,
    IngestionKeys,
    RenditionPlan,
    RenditionRole,
    RenditionSpec,
    UploadResult,
    WriteDescriptor,
)
from .naming import derive_storage_key, placeholder_key_for
from .observability import LogContext, StructuredLogger, start_stage
from .planner import plan_renditions
from .protocols import BackendAdapter, LoggerProtocol


READ_CHUNK_SIZE = 64 * 1024

UploadCallback = Callable[[Optional[ImageIngestError], Optional[UploadResult]], Any]
RemoveCallback = Callable[[Optional[ImageIngestError]], Any]
KeysLike = Union[IngestionKeys, UploadResult, Iterable[str]]


@dataclass
class IngestionState:
    """Bookkeeping owned by a single ingestion.

    A fresh instance is created for every call to ``StorageEngine.ingest``
    and passed explicitly to the steps that need it.
    """

    log_context: LogContext
    original_filename: Optional[str] = None
    start_time: float = field(default_factory=time.perf_counter)
    received_bytes: int = 0
    keys: Optional[IngestionKeys] = None
    descriptors: Dict[RenditionRole, WriteDescriptor] = field(default_factory=dict)


async def read_upload(stream: Any, limit_bytes: int, chunk_size: int = READ_CHUNK_SIZE) -> bytes:
    """
    Buffer an entire upload stream, rejecting it as soon as it grows past the limit.

    ``stream`` may expose ``read(size)`` (sync or async) or be an async
    iterator of byte chunks.

    Raises:
        UploadTooLargeError: As soon as more than ``limit_bytes`` are read
        DecodeError: If the stream itself fails
    """
    buffer = bytearray()

    async def chunks() -> AsyncIterator[bytes]:
        if hasattr(stream, "read"):
            while True:
                chunk = stream.read(chunk_size)
                if inspect.isawaitable(chunk):
                    chunk = await chunk
                if not chunk:
                    return
                yield chunk
        else:
            async for chunk in stream:
                yield chunk

    try:
        async for chunk in chunks():
            buffer.extend(chunk)
            if len(buffer) > limit_bytes:
                raise UploadTooLargeError(limit_bytes, len(buffer))
    except DecodeError:
        raise
    except Exception as exc:  # noqa: BLE001
        raise DecodeError(f"Failed to read upload stream: {exc}") from exc

    return bytes(buffer)


class StorageEngine:
    """
    Ingests uploads and stores an original and a placeholder rendition.

    The engine holds only the configuration and the backend adapter, both of
    which are read-only after construction, so one engine serves any number
    of concurrent ingestions.
    """

    def __init__(
        self,
        config: EngineConfig,
        backend: BackendAdapter,
        logger: Optional[LoggerProtocol] = None,
    ):
        self._config = config
        self._backend = backend
        self._logger = logger or StructuredLogger("engine")

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def backend(self) -> BackendAdapter:
        return self._backend

    async def ingest(
        self, stream: Any, original_filename: Optional[str] = None
    ) -> UploadResult:
        """
        Buffer, decode, plan, encode and store one upload.

        Args:
            stream: Readable byte stream of the upload
            original_filename: Name supplied by the client, if any

        Returns:
            UploadResult once both renditions are stored

        Raises:
            DecodeError: Oversized, unreadable or undecodable upload
            WriteError: A rendition could not be stored; ``keys`` names both
                keys so the caller can compensate
        """
        state = IngestionState(
            log_context=LogContext(operation="ingest", component="storage_engine").with_metadata(
                filename=original_filename or "-"
            ),
            original_filename=original_filename,
        )

        data = await self._buffer(stream, state)
        image = await self._decode(data, state)
        plan = self._plan(image, state)

        original_key = derive_storage_key(
            original_filename, self._config.extension, now=datetime.now()
        )
        state.keys = IngestionKeys(original_key, placeholder_key_for(original_key))

        await self._store_renditions(image, plan, state)

        result = UploadResult(
            mime_type=self._config.mime_type,
            original_key=state.keys.original,
            placeholder_key=state.keys.placeholder,
            bucket_or_root=self._backend.location,
            original_filename=original_filename,
        )
        self._logger.info(
            "Stored upload",
            state.log_context,
            original_key=result.original_key,
            placeholder_key=result.placeholder_key,
            bytes=state.received_bytes,
            duration_ms=round((time.perf_counter() - state.start_time) * 1000, 1),
        )
        return result

    async def _buffer(self, stream: Any, state: IngestionState) -> bytes:
        stage = start_stage("buffer")
        try:
            data = await read_upload(stream, self._config.max_upload_bytes)
        except UploadTooLargeError as exc:
            self._logger.warning(
                "Rejected oversized upload", state.log_context, limit=exc.limit_bytes
            )
            raise
        except DecodeError as exc:
            self._logger.error(f"Upload stream failed: {exc}", state.log_context)
            raise

        state.received_bytes = len(data)
        self._logger.debug(
            "Buffered upload",
            state.log_context,
            bytes=len(data),
            duration_ms=round(stage.stop().duration_ms, 1),
        )
        return data

    async def _decode(self, data: bytes, state: IngestionState) -> "Image.Image":
        stage = start_stage("decode")
        try:
            image = await asyncio.to_thread(decode_image, data)
        except DecodeError as exc:
            self._logger.warning(f"Rejected undecodable upload: {exc}", state.log_context)
            raise
        except Exception as exc:  # noqa: BLE001
            self._logger.error(f"Decoder failed: {exc}", state.log_context, exc_info=True)
            raise DecodeError(f"Could not decode upload: {exc}") from exc

        self._logger.debug(
            "Decoded upload",
            state.log_context,
            size=f"{image.width}x{image.height}",
            duration_ms=round(stage.stop().duration_ms, 1),
        )
        return image

    def _plan(self, image: "Image.Image", state: IngestionState) -> RenditionPlan:
        try:
            plan = plan_renditions(image.width, image.height, self._config)
        except Exception as exc:  # noqa: BLE001
            self._logger.error(f"Cannot plan renditions: {exc}", state.log_context, exc_info=True)
            raise DecodeError(f"Cannot plan renditions for this upload: {exc}") from exc

        self._logger.debug(
            "Planned renditions",
            state.log_context,
            source=f"{image.width}x{image.height}",
            original=f"{plan.original.width}x{plan.original.height}",
            placeholder=f"{plan.placeholder.width}x{plan.placeholder.height}",
        )
        return plan

    async def _store_rendition(
        self, image: "Image.Image", spec: RenditionSpec, state: IngestionState
    ) -> WriteDescriptor:
        key = state.keys.for_role(spec.role)
        async with translate_write_errors(spec.role.value, key, tuple(state.keys)):
            data = await asyncio.to_thread(render, image, spec, self._config.greyscale)
            write = self._backend.write(key, data, spec.format.mime_type)
            if self._config.write_timeout_seconds is not None:
                descriptor = await asyncio.wait_for(write, self._config.write_timeout_seconds)
            else:
                descriptor = await write

        self._logger.debug(
            f"Stored {spec.role.value} rendition",
            state.log_context,
            key=key,
            bytes=descriptor.size,
        )
        return descriptor

    async def _store_renditions(
        self, image: "Image.Image", plan: RenditionPlan, state: IngestionState
    ) -> None:
        """Write both renditions concurrently and wait for both to settle.

        The first failure by completion order is re-raised after the other
        write has finished; nothing already written is deleted here.
        """
        tasks = {
            asyncio.create_task(self._store_rendition(image, spec, state)): spec.role
            for spec in plan.renditions
        }

        first_error: Optional[WriteError] = None
        pending = set(tasks)
        try:
            while pending:
                done, pending = await asyncio.wait(
                    pending, return_when=asyncio.FIRST_COMPLETED
                )
                for task in done:
                    error = task.exception()
                    if error is None:
                        state.descriptors[tasks[task]] = task.result()
                    elif first_error is None:
                        first_error = error
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            raise

        if first_error is not None:
            self._logger.error(
                f"Ingestion failed: {first_error}",
                state.log_context,
                stored=",".join(role.value for role in state.descriptors) or "none",
            )
            raise first_error

    async def handle_upload(
        self,
        stream: Any,
        original_filename: Optional[str],
        on_done: UploadCallback,
    ) -> None:
        """
        Ingest an upload and report the outcome through ``on_done``.

        ``on_done(error, result)`` is called exactly once: with ``(None,
        result)`` on success or ``(error, None)`` on failure. Errors raised
        by ``on_done`` itself propagate to the caller.
        """
        try:
            result = await self.ingest(stream, original_filename)
        except ImageIngestError as exc:
            outcome = (exc, None)
        except Exception as exc:  # noqa: BLE001
            # ingest translates its own stage failures; reported as a rejected upload
            self._logger.error(f"Unexpected ingestion failure: {exc}", exc_info=True)
            outcome = (DecodeError(f"Unexpected ingestion failure: {exc}"), None)
        else:
            outcome = (None, result)

        await _invoke(on_done, *outcome)

    async def remove_keys(self, keys: KeysLike) -> None:
        """
        Delete the renditions of one ingestion (compensating delete).

        Keys that were never written, or are already gone, do not count as
        failures on the local backend.

        Raises:
            DeleteError: Naming the keys that could not be deleted
        """
        try:
            key_list = _normalize_keys(keys)
        except TypeError as exc:
            self._logger.error(f"Cannot remove {keys!r}: {exc}")
            raise DeleteError(f"Invalid keys for removal ({exc})", ()) from exc

        context = LogContext(operation="remove", component="storage_engine").with_metadata(
            keys=",".join(key_list)
        )
        try:
            await self._backend.delete(key_list)
        except DeleteError as exc:
            self._logger.error(f"Compensating delete failed: {exc}", context)
            raise
        except Exception as exc:  # noqa: BLE001
            self._logger.error(f"Compensating delete failed: {exc}", context, exc_info=True)
            raise DeleteError(f"Unexpected delete failure ({exc})", key_list) from exc

        self._logger.info("Removed renditions", context)

    async def remove(self, keys: KeysLike, on_done: RemoveCallback) -> None:
        """Compensating delete reporting through ``on_done(error)`` exactly once."""
        try:
            await self.remove_keys(keys)
        except ImageIngestError as exc:
            error: Optional[ImageIngestError] = exc
        except Exception as exc:  # noqa: BLE001
            self._logger.error(f"Unexpected removal failure: {exc}", exc_info=True)
            error = DeleteError(f"Unexpected removal failure ({exc})", ())
        else:
            error = None

        await _invoke(on_done, error)


def _normalize_keys(keys: KeysLike) -> list:
    if isinstance(keys, UploadResult):
        keys = keys.keys
    if isinstance(keys, str):
        keys = [keys]
    if keys is None:
        raise TypeError("no keys given")

    key_list = [key for key in keys if key]
    for key in key_list:
        if not isinstance(key, str):
            raise TypeError(f"storage keys must be strings, got {type(key).__name__}")
    return key_list


async def _invoke(callback: Callable[..., Union[Awaitable[Any], Any]], *args: Any) -> None:
    outcome = callback(*args)
    if inspect.isawaitable(outcome):
        await outcome
