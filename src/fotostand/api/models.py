"""Pydantic response models for the Fotostand API.

These models define the JSON schema of every API response.  Field names are
snake_case in Python and serialised with the camelCase aliases the booth
frontend and external upload tools expect.

Models
------
UploadResponse
    Body of a successful ``POST /api/upload/{gallery_id}``.
GalleryResponse
    Body of ``GET /api/gallery/{gallery_id}``.
ConfigResponse
    Body of ``GET /api/config``.
ErrorResponse
    Body of every error response.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class UploadResponse(BaseModel):
    """Response body for a stored upload.

    Attributes:
        success: Always ``True`` for a stored file.
        filename: Generated on-disk filename inside the gallery.
        gallery_id: Gallery the file was added to.
    """

    success: bool = True
    filename: str = Field(..., description="Generated on-disk filename.")
    gallery_id: str = Field(..., serialization_alias="galleryId")


class GalleryFileEntry(BaseModel):
    """One media file of a gallery listing."""

    name: str
    size: int
    url: str = Field(..., description="Download URL under /img.")


class GalleryResponse(BaseModel):
    """Response body for a gallery listing.

    Attributes:
        id: Gallery id.
        event_title: Event title snapshotted in the gallery metadata, or the
            configured title when the metadata is unavailable.
        files: Media files sorted by filename.
    """

    id: str
    event_title: str = Field(..., serialization_alias="eventTitle")
    files: list[GalleryFileEntry]


class ConfigResponse(BaseModel):
    """Public configuration for the frontend."""

    version: str
    event_title: str = Field(..., serialization_alias="eventTitle")
    id_mode: str = Field(..., serialization_alias="idMode")
    upload_enabled: bool = Field(..., serialization_alias="uploadEnabled")


class ErrorResponse(BaseModel):
    """Body of every error response."""

    error: str
