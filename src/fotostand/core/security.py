"""Path-safety guard and upload token verification.

``is_valid_path`` is the single choke point against path traversal: every
externally influenced gallery id or filename passes through it before it is
joined onto the data root.  The check is purely syntactic and does not
resolve or canonicalize anything.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import re

from fotostand.core.errors import InvalidPathError

logger = logging.getLogger(__name__)

_SHA256_BYTES = 32
_HEX_DIGEST = re.compile(r"[0-9a-fA-F]{64}")


def is_valid_path(segment: str) -> bool:
    """Return ``True`` if ``segment`` is safe to use as a single path component.

    A segment is rejected when it contains ``..`` anywhere, a forward slash,
    or a backslash.  Leading or trailing dots on their own are fine
    (``.hidden`` passes, ``test..`` does not).

    Args:
        segment: Gallery id or filename taken from outside the process.

    Returns:
        Whether the segment may be used in a filesystem path.
    """
    return not (".." in segment or "/" in segment or "\\" in segment)


def ensure_valid_path(*segments: str) -> None:
    """Raise :class:`InvalidPathError` if any segment fails :func:`is_valid_path`."""
    for segment in segments:
        if not is_valid_path(segment):
            logger.warning(f"Rejected unsafe path segment: {segment!r}")
            raise InvalidPathError(f"Invalid path segment: {segment!r}")


def hash_upload_token(token: str) -> str:
    """Return the lower-case hex SHA-256 digest of ``token``.

    This is the value operators put into ``FOTOSTAND_UPLOAD_TOKEN_HASH``.
    """
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def verify_upload_token(provided_token: str, stored_hash: str) -> bool:
    """Check a bearer token against the configured SHA-256 hash.

    The provided token is hashed and compared byte-for-byte against the
    hex-decoded stored hash with :func:`hmac.compare_digest`, so the
    comparison time does not depend on where the digests differ.

    Args:
        provided_token: Token taken from the ``Authorization`` header.
        stored_hash: Hex-encoded SHA-256 hash from the configuration
            (case-insensitive).

    Returns:
        ``True`` only if both digests are 32 bytes and equal.
    """
    provided_digest = hashlib.sha256(provided_token.encode("utf-8")).digest()

    if not _HEX_DIGEST.fullmatch(stored_hash or ""):
        logger.error("Configured upload token hash is not a 64 character hex digest")
        return False
    stored_digest = bytes.fromhex(stored_hash)

    if len(provided_digest) != _SHA256_BYTES or len(stored_digest) != _SHA256_BYTES:
        return False

    return hmac.compare_digest(provided_digest, stored_digest)
