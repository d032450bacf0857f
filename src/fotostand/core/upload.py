"""Authenticated upload gateway.

External tools (a second camera, a phone app, a DSLR tether script) push
extra files into a gallery through ``POST /api/upload/{gallery_id}``.  This
module holds the decisions behind that route so they can be tested without
HTTP:

1. the gallery id must pass the path-safety guard
2. uploads must be configured (a token hash is set)
3. the ``Authorization: Bearer <token>`` header must verify
4. the file must fit the size limit and MIME allow-list

Only after all four checks pass is anything written to the store.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from fotostand.core.config import ALLOWED_MIME_TYPES, MAX_UPLOAD_BYTES
from fotostand.core.errors import (
    NotConfiguredError,
    PayloadTooLargeError,
    UnauthorizedError,
    UnsupportedMediaTypeError,
)
from fotostand.core.gallery_store import GalleryStore
from fotostand.core.security import ensure_valid_path, verify_upload_token

logger = logging.getLogger(__name__)

_BEARER_PREFIX = "Bearer "


@dataclass
class UploadResult:
    success: bool
    filename: str
    gallery_id: str


class UploadGateway:
    """Validate uploads and hand them to the :class:`GalleryStore`.

    Args:
        store: Destination store.
        token_hash: Hex SHA-256 hash of the bearer token, ``None`` to disable uploads.
        max_bytes: Largest accepted file size.
        allowed_mime_types: MIME allow-list.
    """

    def __init__(
        self,
        store: GalleryStore,
        token_hash: str | None,
        max_bytes: int = MAX_UPLOAD_BYTES,
        allowed_mime_types: Iterable[str] = ALLOWED_MIME_TYPES,
    ):
        self.store = store
        self.token_hash = token_hash
        self.max_bytes = max_bytes
        self.allowed_mime_types = frozenset(t.lower() for t in allowed_mime_types)

    @classmethod
    def from_config(cls, config, store: GalleryStore) -> UploadGateway:
        return cls(
            store,
            token_hash=config.upload_token_hash,
            max_bytes=config.max_upload_bytes,
            allowed_mime_types=config.allowed_mime_types,
        )

    def authorize(self, authorization: str | None) -> None:
        """Check the ``Authorization`` header value.

        Raises:
            NotConfiguredError: If no token hash is configured.
            UnauthorizedError: If the header is missing, not a bearer token,
                or the token does not match.
        """
        if not self.token_hash:
            raise NotConfiguredError()

        if not authorization or not authorization.startswith(_BEARER_PREFIX):
            logger.warning("Unauthorized upload attempt: missing or invalid Authorization header")
            raise UnauthorizedError()

        token = authorization[len(_BEARER_PREFIX) :]
        if not verify_upload_token(token, self.token_hash):
            logger.warning("Unauthorized upload attempt: invalid token")
            raise UnauthorizedError()

    def validate_file(self, size: int, content_type: str | None) -> None:
        """Check the size limit and MIME allow-list.

        Raises:
            PayloadTooLargeError: If ``size`` exceeds ``max_bytes``.
            UnsupportedMediaTypeError: If ``content_type`` is not allowed.
        """
        if size > self.max_bytes:
            limit_mb = self.max_bytes / 1024 / 1024
            raise PayloadTooLargeError(f"File too large. Maximum size is {limit_mb:g}MB")

        media_type = (content_type or "").split(";", 1)[0].strip().lower()
        if media_type not in self.allowed_mime_types:
            raise UnsupportedMediaTypeError(
                f"Invalid file type. Only images are allowed, but got {content_type or 'nothing'}"
            )

    def upload(
        self,
        gallery_id: str,
        authorization: str | None,
        data: bytes,
        filename: str,
        content_type: str | None,
    ) -> UploadResult:
        """Run every check, then append the file to the gallery.

        Returns:
            The generated filename and the gallery id.
        """
        ensure_valid_path(gallery_id)
        self.authorize(authorization)
        return self.accept(gallery_id, data, filename, content_type)

    def accept(
        self,
        gallery_id: str,
        data: bytes,
        filename: str,
        content_type: str | None,
    ) -> UploadResult:
        """Validate an already authorized file and append it to the gallery."""
        self.validate_file(len(data), content_type)

        stored_name = self.store.append_file(gallery_id, data, filename)
        return UploadResult(success=True, filename=stored_name, gallery_id=gallery_id)
