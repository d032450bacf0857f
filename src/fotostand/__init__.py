"""Fotostand - event photo booth with file-backed galleries."""

__version__ = "0.3.0"

from fotostand.core.config import FotostandConfig
from fotostand.core.gallery_store import GalleryStore

__all__ = [
    "FotostandConfig",
    "GalleryStore",
]
