"""Storage key derivation.

Keys look like ``{year}/{month}/{basename}[_placeholder].{ext}``, where the
basename is a slug of the uploaded filename followed by a timestamp and a
random suffix. Both renditions of one upload share the basename, so the
placeholder key can always be rebuilt from the original key.
"""

import re
import secrets
import string
from datetime import datetime
from typing import NamedTuple, Optional

from .models import RenditionRole


SUFFIX_ALPHABET = string.ascii_lowercase
SUFFIX_LENGTH = 10
PLACEHOLDER_SUFFIX = f"_{RenditionRole.PLACEHOLDER.value}"

_EXTENSION_RE = re.compile(r"\.[^/.]+$")
_DISALLOWED_RE = re.compile(r"[^A-Za-z0-9\s!?]")
_KEY_RE = re.compile(
    r"^(?P<year>\d{4})/(?P<month>[1-9]|1[0-2])/"
    r"(?P<basename>[^/]+?)(?P<placeholder>_placeholder)?\.(?P<extension>[a-z0-9]+)$"
)


class StorageKeyParts(NamedTuple):
    """A storage key split back into its components."""

    year: int
    month: int
    basename: str
    role: RenditionRole
    extension: str


def random_suffix(length: int = SUFFIX_LENGTH) -> str:
    """Random lowercase letters; collisions are possible and not checked."""
    return "".join(secrets.choice(SUFFIX_ALPHABET) for _ in range(length))


def slugify_filename(original_filename: Optional[str]) -> str:
    """
    Reduce an uploaded filename to a URL-safe slug.

    The extension and any remaining dots are removed, characters outside
    letters, digits, whitespace, ``!`` and ``?`` are dropped, whitespace
    runs become ``_``, and ``!``/``?`` are stripped from the result.

    Returns an empty string when nothing usable is left.
    """
    if not original_filename:
        return ""

    name = _EXTENSION_RE.sub("", original_filename).replace(".", "")
    name = _DISALLOWED_RE.sub("", name).strip()
    slug = re.sub(r"\s+", "_", name)
    slug = re.sub(r"[!?]", "", slug).strip("_")
    return re.sub(r"_+", "_", slug).lower()


def date_partition(now: Optional[datetime] = None) -> str:
    """Year/month prefix for a key; the month is not zero-padded."""
    now = now or datetime.now()
    return f"{now.year}/{now.month}"


def derive_storage_key(
    original_filename: Optional[str],
    extension: str,
    now: Optional[datetime] = None,
    suffix: Optional[str] = None,
) -> str:
    """
    Derive the key for the original rendition of a new upload.

    Args:
        original_filename: Name supplied by the client, if any
        extension: Output extension without the dot ("jpg" or "png")
        now: Clock reading used for the partition and timestamp
        suffix: Random component; generated when omitted

    Returns:
        Relative storage key, e.g. "2024/3/holiday_photo__1710000000_qwertyuiop.jpg"
    """
    now = now or datetime.now()
    timestamp = int(round(now.timestamp()))
    suffix = suffix or random_suffix()

    stem = f"{timestamp}_{suffix}"
    slug = slugify_filename(original_filename)
    if slug:
        stem = f"{slug}__{stem}"

    return f"{date_partition(now)}/{stem.lower()}.{extension.lstrip('.').lower()}"


def placeholder_key_for(original_key: str) -> str:
    """Insert the placeholder marker before the extension of ``original_key``."""
    head, dot, extension = original_key.rpartition(".")
    if not dot or "/" in extension:
        return f"{original_key}{PLACEHOLDER_SUFFIX}"
    return f"{head}{PLACEHOLDER_SUFFIX}.{extension}"


def parse_storage_key(key: str) -> StorageKeyParts:
    """
    Split a storage key into its partition, basename, role and extension.

    Raises:
        ValueError: If ``key`` was not produced by ``derive_storage_key``
    """
    match = _KEY_RE.match(key)
    if match is None:
        raise ValueError(f"Not a storage key: {key!r}")

    role = RenditionRole.PLACEHOLDER if match["placeholder"] else RenditionRole.ORIGINAL
    return StorageKeyParts(
        year=int(match["year"]),
        month=int(match["month"]),
        basename=match["basename"],
        role=role,
        extension=match["extension"],
    )
