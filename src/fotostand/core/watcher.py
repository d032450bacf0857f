"""Ingestion watcher: turn photos dropped into the input directory into galleries.

The booth camera software writes each shot into ``input_dir``.  The watcher
picks up every new photo, allocates a gallery id for it, hard-links the photo
into a fresh gallery and reports the result as an :class:`IngestEvent`.

Photos already present when the watcher starts are marked as processed and
left alone, so restarting the watcher never duplicates galleries.

Detection is event driven through ``watchdog``; :meth:`IngestionWatcher.scan`
offers the same processing as a one-shot directory sweep (used for the
``--once`` CLI flag and as a fallback when events are missed).
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from fotostand.core.allocator import IdentifierAllocator
from fotostand.core.errors import (
    AllocationExhaustedError,
    AlreadyExistsError,
    InvalidPathError,
    StorageError,
)
from fotostand.core.gallery_store import GalleryMetadata, GalleryStore
from fotostand.core.naming import utc_timestamp

logger = logging.getLogger(__name__)


@dataclass
class IngestEvent:
    """Machine-readable record of one ingested photo."""

    id: str
    url: str
    photo_count: int
    timestamp: str
    original_filename: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "url": self.url,
            "photoCount": self.photo_count,
            "timestamp": self.timestamp,
            "originalFilename": self.original_filename,
        }


class PhotoEventHandler(FileSystemEventHandler):
    """Forward file creations and renames in the input directory to the watcher."""

    def __init__(self, watcher: IngestionWatcher):
        super().__init__()
        self.watcher = watcher

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self.watcher.handle_path(Path(event.src_path))

    def on_moved(self, event: FileSystemEvent) -> None:
        # Camera tools often write to a temp name and rename when done.
        if not event.is_directory:
            self.watcher.handle_path(Path(event.dest_path))


class IngestionWatcher:
    """Watch ``input_dir`` and create one gallery per new photo.

    Args:
        input_dir: Directory the camera writes into.
        store: Gallery store receiving new galleries.
        allocator: Id allocator.
        gallery_url: Maps a gallery id to its public URL.
        image_extensions: Extensions that count as photos (lower-case, with dot).
        on_ingest: Called with every :class:`IngestEvent`.
    """

    def __init__(
        self,
        input_dir: Path,
        store: GalleryStore,
        allocator: IdentifierAllocator,
        gallery_url: Callable[[str], str],
        image_extensions: tuple[str, ...] = (".jpg", ".jpeg"),
        on_ingest: Callable[[IngestEvent], None] | None = None,
    ):
        self.input_dir = Path(input_dir)
        self.store = store
        self.allocator = allocator
        self.gallery_url = gallery_url
        self.image_extensions = tuple(ext.lower() for ext in image_extensions)
        self.on_ingest = on_ingest

        self._processed: set[str] = set()
        self._requested_id: str | None = None
        self._lock = threading.Lock()
        self._observer: Observer | None = None

    @classmethod
    def from_config(
        cls,
        config,
        store: GalleryStore | None = None,
        allocator: IdentifierAllocator | None = None,
        on_ingest: Callable[[IngestEvent], None] | None = None,
    ) -> IngestionWatcher:
        store = store or GalleryStore.from_config(config)
        allocator = allocator or IdentifierAllocator.from_config(config, store)
        return cls(
            config.input_dir,
            store,
            allocator,
            gallery_url=config.gallery_url,
            image_extensions=config.image_extensions,
            on_ingest=on_ingest,
        )

    def request_id(self, gallery_id: str | None) -> None:
        """Set an operator-supplied id for the next photo (hybrid or manual mode).

        The id is used once; later photos fall back to random codes, or are
        skipped in manual mode.
        """
        with self._lock:
            self._requested_id = gallery_id

    def is_photo(self, path: Path) -> bool:
        return path.suffix.lower() in self.image_extensions

    def _photo_names(self) -> list[str]:
        return sorted(
            entry.name for entry in self.input_dir.iterdir() if entry.is_file() and self.is_photo(entry)
        )

    def mark_existing(self) -> int:
        """Mark every photo already in the input directory as processed.

        Returns:
            Number of photos skipped.
        """
        names = self._photo_names()
        with self._lock:
            self._processed.update(names)
        logger.info(f"Ignoring {len(names)} existing photo(s) in {self.input_dir}")
        return len(names)

    def scan(self) -> list[IngestEvent]:
        """Process every photo in the input directory not seen before."""
        events = []
        for name in self._photo_names():
            event = self.process_photo(name)
            if event is not None:
                events.append(event)
        return events

    def handle_path(self, path: Path) -> IngestEvent | None:
        """Process ``path`` if it is a photo directly inside the input directory."""
        if path.parent.resolve() != self.input_dir.resolve() or not self.is_photo(path):
            return None
        return self.process_photo(path.name)

    def process_photo(self, filename: str) -> IngestEvent | None:
        """Create a gallery for one photo.

        Allocation or storage problems are logged and the photo is skipped;
        they never stop the watcher.

        Returns:
            The ingest event, or ``None`` if the photo was skipped or seen before.
        """
        with self._lock:
            if filename in self._processed:
                return None
            self._processed.add(filename)
            requested_id, self._requested_id = self._requested_id, None

            logger.info(f"New photo detected: {filename}")
            try:
                gallery_id = self.allocator.allocate(filename=filename, requested_id=requested_id)
            except AlreadyExistsError:
                logger.warning(f"Gallery for {filename} already exists. Skipping this photo.")
                return None
            except InvalidPathError as e:
                logger.warning(f"No usable gallery id for {filename}: {e}")
                return None
            except AllocationExhaustedError as e:
                logger.error(f"Skipping {filename}: {e}")
                return None

            timestamp = utc_timestamp()
            metadata = GalleryMetadata(
                timestamp=timestamp,
                event_title=self.store.event_title,
                original_filename=filename,
            )
            try:
                self.store.create(gallery_id, [self.input_dir / filename], metadata)
            except AlreadyExistsError:
                logger.warning(f"Gallery {gallery_id} already exists. Skipping {filename}.")
                return None
            except InvalidPathError as e:
                logger.warning(f"Cannot store {filename} under {gallery_id}: {e}")
                return None
            except StorageError as e:
                logger.warning(f"Could not create gallery {gallery_id} for {filename}: {e}")
                return None

        event = IngestEvent(
            id=gallery_id,
            url=self.gallery_url(gallery_id),
            photo_count=1,
            timestamp=timestamp,
            original_filename=filename,
        )
        logger.info(f"Created gallery {gallery_id}: {event.url}")

        if self.on_ingest is not None:
            self.on_ingest(event)
        return event

    def start(self) -> None:
        """Mark existing photos and start the filesystem observer."""
        self.mark_existing()
        observer = Observer()
        observer.schedule(PhotoEventHandler(self), str(self.input_dir), recursive=False)
        observer.start()
        self._observer = observer
        logger.info(f"Watching {self.input_dir} for new photos")

    def stop(self) -> None:
        if self._observer is not None:
            self._observer.stop()
            self._observer.join()
            self._observer = None

    def run_forever(self, sweep_interval: float = 0.5) -> None:
        """Start watching and block until interrupted.

        A periodic :meth:`scan` picks up any photo whose creation event was
        missed; already processed photos are ignored.
        """
        self.start()
        try:
            while True:
                time.sleep(sweep_interval)
                self.scan()
        except KeyboardInterrupt:
            logger.info("Stopping watcher")
        finally:
            self.stop()
