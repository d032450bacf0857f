"""Core functionality for the Fotostand photo booth.

Architecture Overview
---------------------
The core is a small set of layers, leaf first:

1. **Guards** (security.py, naming.py):
   - Path-safety check applied to every gallery id and filename
   - Constant-time upload token verification
   - Generated upload filenames and download display names

2. **Identifier Allocation** (allocator.py, words.py):
   - Derived (filename stem), random (three words) or hybrid ids
   - Collision checks against the store, bounded retries

3. **Gallery Store** (gallery_store.py):
   - One directory per gallery plus ``metadata.json``
   - The only module that touches gallery directories

4. **Producers** (watcher.py, upload.py):
   - Ingestion watcher turning new photos into galleries
   - Authenticated upload gateway appending files to galleries

Configuration (config.py) is an explicit ``FotostandConfig`` object passed
to each component's ``from_config`` constructor.
"""

from fotostand.core.allocator import IdentifierAllocator
from fotostand.core.config import FotostandConfig
from fotostand.core.gallery_store import GalleryFile, GalleryMetadata, GalleryStore, ResolvedFile
from fotostand.core.upload import UploadGateway, UploadResult
from fotostand.core.watcher import IngestEvent, IngestionWatcher

__all__ = [
    "FotostandConfig",
    "GalleryFile",
    "GalleryMetadata",
    "GalleryStore",
    "IdentifierAllocator",
    "IngestEvent",
    "IngestionWatcher",
    "ResolvedFile",
    "UploadGateway",
    "UploadResult",
]
