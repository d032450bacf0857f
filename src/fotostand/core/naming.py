"""Filename helpers for stored uploads and downloaded photos."""

from __future__ import annotations

import mimetypes
import re
import secrets
import string
import time
from datetime import datetime, timezone

_BASE36 = string.digits + string.ascii_lowercase
_SUFFIX_LENGTH = 11
_NON_ALNUM = re.compile(r"[^A-Za-z0-9]")
_WHITESPACE = re.compile(r"\s+")

DEFAULT_EXTENSION = "jpg"


def utc_timestamp(moment: datetime | None = None) -> str:
    """Return an ISO-8601 UTC timestamp with millisecond precision and a ``Z`` suffix."""
    moment = moment or datetime.now(timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp as written to ``metadata.json``.

    Naive timestamps are taken to be UTC.

    Raises:
        ValueError: If ``value`` is not a valid ISO-8601 timestamp.
    """
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def file_extension(filename: str, default: str = DEFAULT_EXTENSION) -> str:
    """Return the text after the last ``.`` of ``filename``, or ``default``.

    Only alphanumeric characters are kept so the extension can never carry a
    path separator into a generated filename.
    """
    _, dot, ext = filename.rpartition(".")
    ext = _NON_ALNUM.sub("", ext) if dot else ""
    return ext or default


def generate_unique_filename(original_filename: str) -> str:
    """Build a collision-resistant on-disk name for an uploaded file.

    Format: ``<epoch-milliseconds>_<random base36 suffix>.<extension>``.
    Two uploads of the same original name get different names even within
    the same millisecond.
    """
    timestamp = int(time.time() * 1000)
    suffix = "".join(secrets.choice(_BASE36) for _ in range(_SUFFIX_LENGTH))
    return f"{timestamp}_{suffix}.{file_extension(original_filename)}"


def sanitize_title(event_title: str) -> str:
    """Strip whitespace and any non-alphanumeric character from an event title."""
    return _NON_ALNUM.sub("", _WHITESPACE.sub("", event_title))


def generate_display_filename(event_title: str, timestamp: datetime, extension: str) -> str:
    """Build the download name ``<Title>_<YYYYMMDD_HHMMSS>.<extension>``.

    Example:
        >>> generate_display_filename("My Event", parse_timestamp("2024-03-15T10:30:00.000Z"), "jpg")
        'MyEvent_20240315_103000.jpg'
    """
    date_stamp = timestamp.astimezone(timezone.utc).strftime("%Y%m%d_%H%M%S")
    return f"{sanitize_title(event_title)}_{date_stamp}.{extension}"


def guess_media_type(filename: str) -> str:
    """Guess the ``Content-Type`` for a stored file, defaulting to JPEG."""
    media_type, _ = mimetypes.guess_type(filename)
    return media_type or "image/jpeg"
