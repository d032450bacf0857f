"""File-backed gallery store.

This module is the only place in Fotostand that builds paths below the data
root.  Everything else (watcher, upload gateway, HTTP routes) goes through
:class:`GalleryStore`, which validates every externally influenced segment
with the path-safety guard before touching the disk.

The layout is intentionally simple:

- one directory per gallery, named after the gallery id
- media files live directly in that directory
- a reserved ``metadata.json`` holds the timestamp, the event title snapshot
  and the upload counter

There is no database and no in-memory cache: every read reconstructs the
gallery from disk, so operators can inspect or clean up galleries by hand.

Consistency
-----------
A gallery is created directory first, then files, then metadata.  A crash
between those steps leaves a directory without ``metadata.json``; such a
gallery is reported as incomplete by :meth:`GalleryStore.is_complete`, is
listed as not found, and is never rolled back automatically.

Appends to the same gallery are serialized with an in-process lock keyed by
gallery id, and ``metadata.json`` is replaced atomically (write temp file,
then ``os.replace``), so readers never see a half-written metadata file and
concurrent uploads in one process do not lose counter updates.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
import threading
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from fotostand.core.errors import (
    AlreadyExistsError,
    NotFoundError,
    StorageError,
)
from fotostand.core.naming import (
    file_extension,
    generate_display_filename,
    generate_unique_filename,
    guess_media_type,
    parse_timestamp,
    utc_timestamp,
)
from fotostand.core.security import ensure_valid_path

logger = logging.getLogger(__name__)

METADATA_FILENAME = "metadata.json"
_TEMP_PREFIX = ".metadata."
_UNIQUE_NAME_ATTEMPTS = 5


@dataclass
class GalleryMetadata:
    """Contents of a gallery's ``metadata.json``."""

    timestamp: str
    event_title: str
    uploaded_files: int = 0
    original_filename: str | None = None

    def to_dict(self) -> dict:
        data = {
            "timestamp": self.timestamp,
            "eventTitle": self.event_title,
            "uploadedFiles": self.uploaded_files,
        }
        if self.original_filename is not None:
            data["originalFilename"] = self.original_filename
        return data

    @classmethod
    def from_dict(cls, data: dict) -> GalleryMetadata:
        """Build metadata from parsed JSON.

        Raises:
            ValueError: If required fields are missing or have the wrong type.
        """
        if not isinstance(data, dict):
            raise ValueError("metadata must be a JSON object")

        timestamp = data.get("timestamp")
        event_title = data.get("eventTitle")
        if not isinstance(timestamp, str) or not isinstance(event_title, str):
            raise ValueError("metadata requires string 'timestamp' and 'eventTitle'")

        uploaded_files = data.get("uploadedFiles", 0)
        if not isinstance(uploaded_files, int) or isinstance(uploaded_files, bool):
            uploaded_files = 0

        original_filename = data.get("originalFilename")
        if not isinstance(original_filename, str):
            original_filename = None

        return cls(
            timestamp=timestamp,
            event_title=event_title,
            uploaded_files=uploaded_files,
            original_filename=original_filename,
        )


@dataclass
class GalleryFile:
    """A single media file inside a gallery."""

    name: str
    size: int

    @property
    def extension(self) -> str:
        return file_extension(self.name)


@dataclass
class ResolvedFile:
    """A file looked up for download, with the name it should be served under."""

    path: Path
    content: bytes
    display_filename: str
    media_type: str


def _is_reserved(name: str) -> bool:
    return name == METADATA_FILENAME or name.startswith(_TEMP_PREFIX)


class GalleryStore:
    """Create, extend and read galleries below a data root.

    Args:
        data_dir: Root directory holding one folder per gallery.
        event_title: Event name snapshotted into metadata on create/append.
    """

    def __init__(self, data_dir: Path, event_title: str):
        self.data_dir = Path(data_dir)
        self.event_title = event_title
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    @classmethod
    def from_config(cls, config) -> GalleryStore:
        """Build a store from a :class:`~fotostand.core.config.FotostandConfig`."""
        return cls(config.data_dir, config.event_title)

    # ------------------------------------------------------------------
    # Path handling
    # ------------------------------------------------------------------

    def _gallery_path(self, gallery_id: str) -> Path:
        ensure_valid_path(gallery_id)
        return self.data_dir / gallery_id

    def _file_path(self, gallery_id: str, filename: str) -> Path:
        ensure_valid_path(gallery_id, filename)
        return self.data_dir / gallery_id / filename

    def _lock_for(self, gallery_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(gallery_id)
            if lock is None:
                lock = self._locks[gallery_id] = threading.Lock()
            return lock

    # ------------------------------------------------------------------
    # Metadata persistence
    # ------------------------------------------------------------------

    def _load_raw_metadata(self, gallery_path: Path) -> dict | None:
        """Load ``metadata.json`` as a dict, or ``None`` if absent or unreadable."""
        metadata_path = gallery_path / METADATA_FILENAME
        try:
            with open(metadata_path, encoding="utf-8") as handle:
                raw = json.load(handle)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read metadata for {gallery_path.name}: {e}")
            return None

        if not isinstance(raw, dict):
            logger.warning(f"Ignoring non-object metadata for {gallery_path.name}")
            return None
        return raw

    def _save_metadata(self, gallery_path: Path, metadata: GalleryMetadata) -> None:
        """Atomically replace ``metadata.json`` in ``gallery_path``."""
        fd, temp_name = tempfile.mkstemp(dir=gallery_path, prefix=_TEMP_PREFIX, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(metadata.to_dict(), handle, indent=2, ensure_ascii=False)
            os.replace(temp_name, gallery_path / METADATA_FILENAME)
        except BaseException:
            Path(temp_name).unlink(missing_ok=True)
            raise

    def read_metadata(self, gallery_id: str) -> GalleryMetadata | None:
        """Return the gallery's metadata, or ``None`` if missing or malformed.

        Raises:
            InvalidPathError: If ``gallery_id`` fails the path-safety guard.
        """
        gallery_path = self._gallery_path(gallery_id)
        raw = self._load_raw_metadata(gallery_path)
        if raw is None:
            return None
        try:
            return GalleryMetadata.from_dict(raw)
        except ValueError as e:
            logger.warning(f"Malformed metadata for {gallery_id}: {e}")
            return None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def exists(self, gallery_id: str) -> bool:
        """Whether a gallery directory (complete or not) exists for ``gallery_id``."""
        return self._gallery_path(gallery_id).exists()

    def is_complete(self, gallery_id: str) -> bool:
        """Whether the gallery exists and its metadata has been written.

        A directory without ``metadata.json`` is a gallery whose creation is
        still in progress or was interrupted.
        """
        return (self._gallery_path(gallery_id) / METADATA_FILENAME).is_file()

    def gallery_ids(self) -> list[str]:
        """Return the ids of all gallery directories, sorted."""
        try:
            return sorted(entry.name for entry in self.data_dir.iterdir() if entry.is_dir())
        except FileNotFoundError:
            return []

    def list_files(self, gallery_id: str) -> list[GalleryFile]:
        """List the media files of a gallery, sorted by filename.

        ``metadata.json`` and temporary files are excluded.  A directory
        without ``metadata.json`` is still being created (or was left behind by
        a failed create) and is reported as not found.

        Raises:
            InvalidPathError: If ``gallery_id`` fails the path-safety guard.
            NotFoundError: If the gallery does not exist or is incomplete.
            StorageError: On any other filesystem error.
        """
        gallery_path = self._gallery_path(gallery_id)
        try:
            entries = list(os.scandir(gallery_path))
        except (FileNotFoundError, NotADirectoryError) as e:
            raise NotFoundError(f"Gallery {gallery_id} not found") from e
        except OSError as e:
            logger.error(f"Failed to list gallery {gallery_id}: {e}")
            raise StorageError(f"Failed to list gallery {gallery_id}") from e

        if not any(entry.name == METADATA_FILENAME and entry.is_file() for entry in entries):
            logger.warning(f"Gallery {gallery_id} has no {METADATA_FILENAME}; treating it as incomplete")
            raise NotFoundError(f"Gallery {gallery_id} not found")

        files = [
            GalleryFile(name=entry.name, size=entry.stat().st_size)
            for entry in entries
            if entry.is_file() and not _is_reserved(entry.name)
        ]
        files.sort(key=lambda f: f.name)
        return files

    def resolve_file(self, gallery_id: str, filename: str) -> ResolvedFile:
        """Read a gallery file and work out the name it should be downloaded as.

        The display name is ``<EventTitle>_<YYYYMMDD_HHMMSS>.<ext>`` built from
        the gallery metadata.  When metadata is missing or unreadable the
        on-disk filename is used instead; that never fails the request.

        Raises:
            InvalidPathError: If either segment fails the path-safety guard.
            NotFoundError: If the gallery or the file does not exist.
            StorageError: If the file exists but cannot be read.
        """
        file_path = self._file_path(gallery_id, filename)
        if _is_reserved(filename) or not file_path.is_file():
            raise NotFoundError(f"File {filename} not found in gallery {gallery_id}")

        try:
            content = file_path.read_bytes()
        except FileNotFoundError as e:
            raise NotFoundError(f"File {filename} not found in gallery {gallery_id}") from e
        except OSError as e:
            logger.error(f"Failed to read {gallery_id}/{filename}: {e}")
            raise StorageError(f"Failed to read {filename}") from e

        return ResolvedFile(
            path=file_path,
            content=content,
            display_filename=self._display_filename(gallery_id, filename),
            media_type=guess_media_type(filename),
        )

    def _display_filename(self, gallery_id: str, filename: str) -> str:
        metadata = self.read_metadata(gallery_id)
        if metadata is None:
            logger.warning(f"No usable metadata for {gallery_id}, using original filename")
            return filename
        try:
            timestamp = parse_timestamp(metadata.timestamp)
        except ValueError:
            logger.warning(
                f"Invalid metadata timestamp {metadata.timestamp!r} for {gallery_id}, "
                "using original filename"
            )
            return filename
        return generate_display_filename(metadata.event_title, timestamp, file_extension(filename))

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create(
        self,
        gallery_id: str,
        initial_files: Iterable[Path],
        metadata: GalleryMetadata | None = None,
    ) -> GalleryMetadata:
        """Create a new gallery from existing files.

        Files are hard-linked into the gallery directory, falling back to a
        copy when linking is not possible (for example across filesystems).
        Steps run in the order directory, files, metadata.  A failure part
        way through is not rolled back.

        Args:
            gallery_id: Id of the new gallery.
            initial_files: Source files; each keeps its filename.
            metadata: Metadata to write.  Defaults to "now" and the store's
                event title.

        Returns:
            The metadata that was written.

        Raises:
            InvalidPathError: If the id or a filename fails the path-safety guard.
            AlreadyExistsError: If a gallery with this id already exists.
            StorageError: On any filesystem error.
        """
        gallery_path = self._gallery_path(gallery_id)
        sources = [Path(p) for p in initial_files]
        ensure_valid_path(*(source.name for source in sources))

        if metadata is None:
            metadata = GalleryMetadata(timestamp=utc_timestamp(), event_title=self.event_title)

        with self._lock_for(gallery_id):
            try:
                gallery_path.mkdir()
            except FileExistsError as e:
                raise AlreadyExistsError(f"Gallery {gallery_id} already exists") from e
            except OSError as e:
                logger.error(f"Failed to create gallery directory {gallery_id}: {e}")
                raise StorageError(f"Failed to create gallery {gallery_id}") from e

            try:
                for source in sources:
                    self._link_or_copy(source, gallery_path / source.name)
                self._save_metadata(gallery_path, metadata)
            except OSError as e:
                logger.error(f"Gallery {gallery_id} left incomplete: {e}")
                raise StorageError(f"Failed to populate gallery {gallery_id}") from e

        logger.info(f"Created gallery {gallery_id} with {len(sources)} file(s)")
        return metadata

    @staticmethod
    def _link_or_copy(source: Path, target: Path) -> None:
        try:
            os.link(source, target)
        except FileNotFoundError:
            raise
        except OSError as e:
            logger.debug(f"Hard link {source} -> {target} failed ({e}), copying instead")
            shutil.copy2(source, target)

    def append_file(self, gallery_id: str, data: bytes, original_filename: str) -> str:
        """Store an uploaded file in a gallery, creating the gallery on demand.

        The file is written under a generated unique name that keeps the
        original extension.  Afterwards the metadata counter is incremented
        and the timestamp and event title are refreshed.

        Args:
            gallery_id: Target gallery.
            data: File content.
            original_filename: Client-supplied filename (only its extension is used).

        Returns:
            The generated on-disk filename.

        Raises:
            InvalidPathError: If ``gallery_id`` fails the path-safety guard.
            StorageError: On any filesystem error.
        """
        gallery_path = self._gallery_path(gallery_id)

        with self._lock_for(gallery_id):
            try:
                gallery_path.mkdir(exist_ok=True)
                filename = self._write_new_file(gallery_path, data, original_filename)

                raw = self._load_raw_metadata(gallery_path) or {}
                previous = raw.get("uploadedFiles", 0)
                if not isinstance(previous, int) or isinstance(previous, bool):
                    previous = 0
                original = raw.get("originalFilename")

                metadata = GalleryMetadata(
                    timestamp=utc_timestamp(),
                    event_title=self.event_title,
                    uploaded_files=previous + 1,
                    original_filename=original if isinstance(original, str) else None,
                )
                self._save_metadata(gallery_path, metadata)
            except OSError as e:
                logger.error(f"Failed to append file to gallery {gallery_id}: {e}")
                raise StorageError(f"Failed to store file in gallery {gallery_id}") from e

        logger.info(f"Stored {filename} in gallery {gallery_id} ({len(data)} bytes)")
        return filename

    @staticmethod
    def _write_new_file(gallery_path: Path, data: bytes, original_filename: str) -> str:
        # Exclusive create so a generated name can never overwrite an existing file.
        for _ in range(_UNIQUE_NAME_ATTEMPTS):
            filename = generate_unique_filename(original_filename)
            try:
                with open(gallery_path / filename, "xb") as handle:
                    handle.write(data)
                return filename
            except FileExistsError:
                continue
        raise FileExistsError(f"Could not find a free filename in {gallery_path}")
