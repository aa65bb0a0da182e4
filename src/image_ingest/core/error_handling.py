# src/image_ingest/core/error_handling.py

import asyncio
import logging
from contextlib import asynccontextmanager, contextmanager
from typing import Any, Dict, Optional, Tuple

from botocore.exceptions import BotoCoreError, ClientError
from PIL import Image, UnidentifiedImageError

from .exceptions import ConfigurationError, DecodeError, WriteError


logger = logging.getLogger("image-ingest.error_handling")


def describe_client_error(error: ClientError) -> Dict[str, Optional[str]]:
    """Return the error code and message carried by a botocore ClientError."""
    details = error.response.get("Error", {}) if error.response else {}
    return {"code": details.get("Code"), "message": details.get("Message")}


@contextmanager
def decode_errors(description: str = "upload"):
    """
    Translate Pillow decode failures into DecodeError.

    Pillow reports unsupported or corrupt data through several unrelated
    exception types depending on where in the file it gives up.
    """
    try:
        yield
    except DecodeError:
        raise
    except (
        UnidentifiedImageError,
        Image.DecompressionBombError,
        SyntaxError,
        ValueError,
        OSError,
    ) as exc:
        logger.warning(f"Could not decode {description}: {exc}")
        raise DecodeError(f"Could not decode {description}: {exc}") from exc


@asynccontextmanager
async def translate_write_errors(
    role: str, key: str, keys: Optional[Tuple[str, str]] = None
):
    """
    Translate any failure while encoding or writing a rendition into WriteError.

    Cancellation is not translated.
    """
    try:
        yield
    except WriteError:
        raise
    except asyncio.TimeoutError as exc:
        logger.error(f"Timed out writing {role} rendition '{key}'")
        raise WriteError("backend write timed out", role, key, keys) from exc
    except ClientError as exc:
        details = describe_client_error(exc)
        logger.error(
            f"Object store rejected {role} rendition '{key}': "
            f"{details['code']} {details['message']}"
        )
        raise WriteError(
            f"object store error {details['code']}: {details['message']}",
            role,
            key,
            keys,
        ) from exc
    except (BotoCoreError, OSError) as exc:
        logger.error(f"I/O error writing {role} rendition '{key}': {exc}")
        raise WriteError(str(exc), role, key, keys) from exc
    except Exception as exc:  # noqa: BLE001
        logger.error(
            f"Unexpected error writing {role} rendition '{key}': {exc}", exc_info=True
        )
        raise WriteError(str(exc), role, key, keys) from exc


def error_exit_code(error: Any) -> int:
    """Map an ingestion error onto the CLI exit code."""
    if isinstance(error, ConfigurationError):
        return 3
    if isinstance(error, DecodeError):
        return 2
    return 1
