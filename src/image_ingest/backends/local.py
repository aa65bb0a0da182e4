"""Local filesystem backend."""

import uuid
from pathlib import Path
from typing import Iterable, List

import aiofiles
import aiofiles.os

from ..core.exceptions import ConfigurationError, DeleteError
from ..core.logging_config import get_logger
from ..core.models import WriteDescriptor
from ..core.protocols import BackendAdapter, unique_keys


class LocalFilesystemAdapter(BackendAdapter):
    """Stores renditions as files below a root directory."""

    def __init__(self, root_dir: Path):
        self._logger = get_logger("backend.local")
        self._root = Path(root_dir).expanduser().resolve()
        try:
            self._root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ConfigurationError(
                f"Cannot create storage root {self._root}: {exc}"
            ) from exc
        if not self._root.is_dir():
            raise ConfigurationError(f"Storage root {self._root} is not a directory")

    @property
    def root(self) -> Path:
        return self._root

    @property
    def location(self) -> str:
        return str(self._root)

    def resolve(self, key: str) -> Path:
        """
        Resolve ``key`` to a path inside the root directory.

        Raises:
            ValueError: If the key is empty, absolute, or escapes the root
        """
        if not key or key.startswith(("/", "\\")):
            raise ValueError(f"Invalid storage key: {key!r}")

        candidate = (self._root / key).resolve()
        try:
            candidate.relative_to(self._root)
        except ValueError as exc:
            raise ValueError(f"Storage key escapes the root directory: {key!r}") from exc
        return candidate

    async def write(self, key: str, data: bytes, content_type: str) -> WriteDescriptor:
        """
        Write ``data`` to ``root/key``.

        Bytes go to a temporary sibling first and are renamed into place once
        the file is flushed and closed, so readers never see a partial file.
        """
        path = self.resolve(key)
        await aiofiles.os.makedirs(path.parent, exist_ok=True)

        tmp_path = path.with_name(f".{path.name}.{uuid.uuid4().hex}.tmp")
        try:
            async with aiofiles.open(tmp_path, "wb") as handle:
                await handle.write(data)
                await handle.flush()
            await aiofiles.os.replace(tmp_path, path)
        except BaseException:
            try:
                await aiofiles.os.remove(tmp_path)
            except FileNotFoundError:
                pass
            raise

        self._logger.debug(f"Wrote {len(data)} bytes to {path}")
        return WriteDescriptor(
            key=key, location=self.location, size=len(data), content_type=content_type
        )

    async def delete(self, keys: Iterable[str]) -> None:
        """Remove each file; files that are already gone are not an error."""
        failed: List[str] = []

        for key in unique_keys(keys):
            try:
                path = self.resolve(key)
                await aiofiles.os.remove(path)
                self._logger.debug(f"Deleted {path}")
            except FileNotFoundError:
                self._logger.debug(f"Already absent: {key}")
            except (OSError, ValueError) as exc:
                self._logger.error(f"Failed to delete '{key}': {exc}")
                failed.append(key)

        if failed:
            raise DeleteError("Failed to delete local files", failed)


__all__ = ["LocalFilesystemAdapter"]
