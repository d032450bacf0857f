"""Configuration management for the Fotostand photo booth.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the FOTOSTAND_ prefix,
allowing a booth to be re-targeted at a new event without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Keyword arguments passed to ``FotostandConfig(...)``
2. Environment variables (FOTOSTAND_* prefix)
3. .env file in the working directory
4. Default values defined in FotostandConfig

Example .env file:
    FOTOSTAND_EVENT_TITLE=Winterball 2026
    FOTOSTAND_BASE_URL=https://fotos.example.com
    FOTOSTAND_ID_MODE=random
    FOTOSTAND_UPLOAD_TOKEN_HASH=3b1f...e9

Explicit Construction
---------------------
There is no global configuration instance.  Entry points (the API app
factory and the watcher CLI) build a ``FotostandConfig`` once and pass it to
every component they construct, so tests can run several independently
configured stores side by side.

Usage Example
-------------
    from fotostand.core.config import FotostandConfig
    from fotostand.core.gallery_store import GalleryStore

    config = FotostandConfig(event_title="Sommerfest")
    store = GalleryStore.from_config(config)

Directory Management
--------------------
The configuration creates the two working directories on initialization:
- data_dir: one sub-directory per gallery
- input_dir: where the camera software drops new photos
"""

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

#: Maximum accepted upload size (50 MiB).
MAX_UPLOAD_BYTES = 50 * 1024 * 1024

#: MIME types accepted by the upload endpoint.
ALLOWED_MIME_TYPES = (
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/webp",
    "image/heic",
    "image/heif",
    "video/mp4",
)

IdMode = Literal["derived", "random", "hybrid", "manual"]


class FotostandConfig(BaseSettings):
    """Main configuration for the Fotostand photo booth.

    Attributes
    ----------
    Event Settings:
        event_title : str
            Event name shown on web pages and snapshotted into every
            gallery's ``metadata.json``
        base_url : str
            Public base URL used to build gallery links

    Paths:
        data_dir : Path
            Root of the gallery store, one folder per gallery
        input_dir : Path
            Directory watched for new photos

    Identifier Allocation:
        id_mode : Literal["derived", "random", "hybrid", "manual"]
            ``derived`` uses the photo filename stem, ``random`` draws a
            three-word code, ``hybrid`` accepts an operator-supplied id and
            falls back to a random code, ``manual`` requires one
        id_separator : str
            Separator between the words of a random code
        word_list_path : Path | None
            Word list for random codes (bundled German list when unset)
        max_allocation_attempts : int
            Upper bound on random draws before allocation gives up

    Upload Settings:
        upload_token_hash : str | None
            Hex SHA-256 of the upload bearer token; uploads are disabled
            when unset
        max_upload_bytes : int
            Largest accepted upload
        allowed_mime_types : tuple[str, ...]
            MIME allow-list for uploads

    Watcher Settings:
        image_extensions : tuple[str, ...]
            Extensions the watcher picks up (and strips in derived mode)
        watch_poll_interval : float
            Seconds between scans when the watcher runs in polling mode

    Server Settings:
        server_host : str
            Bind address for uvicorn
        server_port : int
            Port for uvicorn (1024-65535)

    Examples
    --------
        >>> cfg = FotostandConfig(
        ...     event_title="My Event",
        ...     id_mode="random",
        ...     data_dir="/srv/fotostand/data",
        ... )
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="FOTOSTAND_",
        case_sensitive=False,
    )

    # Event settings
    event_title: str = Field(
        default="Photo Booth",
        description="Event name displayed on web pages and stored in gallery metadata",
    )
    base_url: str = Field(
        default="http://localhost:8080",
        description="Base URL for gallery access",
    )

    # Paths
    data_dir: Path = Field(
        default=Path("data"),
        description="Root directory of the gallery store",
    )
    input_dir: Path = Field(
        default=Path("input"),
        description="Directory watched for new photos",
    )

    # Identifier allocation
    id_mode: IdMode = Field(
        default="derived",
        description="Gallery id strategy: derived (filename), random (three words), hybrid or manual",
    )
    id_separator: str = Field(default="-", min_length=1, max_length=1)
    word_list_path: Path | None = Field(
        default=None,
        description="Word list for random ids (bundled German list when unset)",
    )
    max_allocation_attempts: int = Field(default=100, ge=1, le=10_000)

    # Upload settings
    upload_token_hash: str | None = Field(
        default=None,
        description="Hex SHA-256 hash of the upload bearer token; uploads disabled when unset",
    )
    max_upload_bytes: int = Field(default=MAX_UPLOAD_BYTES, ge=1)
    allowed_mime_types: tuple[str, ...] = Field(default=ALLOWED_MIME_TYPES)

    # Watcher settings
    image_extensions: tuple[str, ...] = Field(default=(".jpg", ".jpeg"))
    watch_poll_interval: float = Field(default=0.5, gt=0, le=60)

    # Server settings
    server_host: str = Field(
        default="0.0.0.0",
        description="Server bind address (0.0.0.0 for local network)",
    )
    server_port: int = Field(
        default=8080,
        description="Server port",
        ge=1024,
        le=65535,
    )

    @field_validator("upload_token_hash")
    @classmethod
    def _blank_hash_is_unset(cls, value: str | None) -> str | None:
        # An empty FOTOSTAND_UPLOAD_TOKEN_HASH= line means "not configured".
        if value is not None and not value.strip():
            return None
        return value.strip() if value else value

    @field_validator("image_extensions")
    @classmethod
    def _normalise_extensions(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in value)

    def __init__(self, **kwargs):
        """Initialize configuration and create the working directories.

        Args:
            **kwargs: Configuration overrides (typically from environment variables)
        """
        super().__init__(**kwargs)

        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.input_dir.mkdir(parents=True, exist_ok=True)

    @property
    def upload_enabled(self) -> bool:
        """Whether an upload token hash has been configured."""
        return bool(self.upload_token_hash)

    def gallery_url(self, gallery_id: str) -> str:
        """Build the public gallery URL for ``gallery_id``."""
        return f"{self.base_url.rstrip('/')}/gallery/{gallery_id}"
