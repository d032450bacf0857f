"""Unit tests for the ingestion watcher."""

import json
import logging
import random
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from fotostand.core.allocator import IdentifierAllocator
from fotostand.core.watcher import IngestEvent, IngestionWatcher, PhotoEventHandler


@pytest.fixture
def events() -> list:
    return []


@pytest.fixture
def watcher(test_config, store, events) -> IngestionWatcher:
    return IngestionWatcher.from_config(test_config, store=store, on_ingest=events.append)


def _drop(test_config, name: str, content: bytes = b"jpeg") -> Path:
    path = test_config.input_dir / name
    path.write_bytes(content)
    return path


class TestIngestEvent:
    def test_to_dict(self):
        event = IngestEvent("abc", "http://x/gallery/abc", 1, "2024-03-15T10:30:00.000Z", "abc.jpg")
        assert event.to_dict() == {
            "id": "abc",
            "url": "http://x/gallery/abc",
            "photoCount": 1,
            "timestamp": "2024-03-15T10:30:00.000Z",
            "originalFilename": "abc.jpg",
        }


class TestProcessPhoto:
    """Derived mode: one photo, one gallery named after the file."""

    def test_creates_gallery(self, watcher, test_config, store, events):
        _drop(test_config, "DSC_0001.jpg", b"photo")

        event = watcher.process_photo("DSC_0001.jpg")

        assert event.id == "DSC_0001"
        assert event.url == "http://booth.test/gallery/DSC_0001"
        assert event.photo_count == 1
        assert event.original_filename == "DSC_0001.jpg"
        assert events == [event]

        assert [f.name for f in store.list_files("DSC_0001")] == ["DSC_0001.jpg"]
        metadata = store.read_metadata("DSC_0001")
        assert metadata.original_filename == "DSC_0001.jpg"
        assert metadata.event_title == "Test Event"
        assert metadata.timestamp == event.timestamp

    def test_metadata_json_shape(self, watcher, test_config):
        _drop(test_config, "a.jpg")
        watcher.process_photo("a.jpg")
        data = json.loads((test_config.data_dir / "a" / "metadata.json").read_text())
        assert set(data) == {"timestamp", "eventTitle", "uploadedFiles", "originalFilename"}

    def test_existing_gallery_skips_photo(self, watcher, test_config, make_gallery, events):
        gallery_path = make_gallery("DSC_0001", files={"old.jpg": b"old"})
        _drop(test_config, "DSC_0001.jpg")

        assert watcher.process_photo("DSC_0001.jpg") is None
        assert events == []
        assert [p.name for p in gallery_path.iterdir()] == ["old.jpg"]

    def test_photo_processed_only_once(self, watcher, test_config, events):
        _drop(test_config, "a.jpg")
        watcher.process_photo("a.jpg")
        assert watcher.process_photo("a.jpg") is None
        assert len(events) == 1

    def test_unsafe_name_is_skipped(self, watcher, test_config):
        _drop(test_config, "a..b.jpg")
        assert watcher.process_photo("a..b.jpg") is None

    def test_missing_file_is_logged_and_skipped(self, watcher, store):
        assert watcher.process_photo("vanished.jpg") is None
        assert store.exists("vanished")
        assert not store.is_complete("vanished")


class TestScanning:
    def test_mark_existing_ignores_backlog(self, watcher, test_config, events):
        _drop(test_config, "old.jpg")
        assert watcher.mark_existing() == 1
        _drop(test_config, "new.jpg")

        created = watcher.scan()

        assert [e.id for e in created] == ["new"]
        assert [e.id for e in events] == ["new"]

    def test_scan_only_picks_images(self, watcher, test_config):
        _drop(test_config, "notes.txt", b"text")
        _drop(test_config, "b.JPG")
        _drop(test_config, "a.jpeg")
        assert [e.id for e in watcher.scan()] == ["a", "b"]

    def test_handle_path_ignores_other_directories(self, watcher, test_config, temp_dir):
        other = temp_dir / "elsewhere.jpg"
        other.write_bytes(b"x")
        assert watcher.handle_path(other) is None
        assert watcher.handle_path(_drop(test_config, "ok.jpg")).id == "ok"


class TestModes:
    def test_random_mode(self, test_config, store):
        allocator = IdentifierAllocator(store, mode="random", words=["eins", "zwei"], rng=random.Random(7))
        watcher = IngestionWatcher.from_config(test_config, store=store, allocator=allocator)
        _drop(test_config, "DSC_1.jpg")

        event = watcher.process_photo("DSC_1.jpg")

        assert len(event.id.split("-")) == 3
        assert [f.name for f in store.list_files(event.id)] == ["DSC_1.jpg"]

    def test_random_mode_skips_unsafe_filename(self, test_config, store, caplog):
        allocator = IdentifierAllocator(store, mode="random", words=["eins", "zwei"], rng=random.Random(7))
        watcher = IngestionWatcher.from_config(test_config, store=store, allocator=allocator)
        _drop(test_config, "photo..jpg")
        _drop(test_config, "z.jpg")

        with caplog.at_level(logging.WARNING):
            events = watcher.scan()

        assert [e.original_filename for e in events] == ["z.jpg"]
        assert [f.name for f in store.list_files(events[0].id)] == ["z.jpg"]
        assert "photo..jpg" in caplog.text

    def test_manual_mode_uses_requested_id_and_skips_the_rest(self, test_config, store):
        allocator = IdentifierAllocator(store, mode="manual")
        watcher = IngestionWatcher.from_config(test_config, store=store, allocator=allocator)
        watcher.request_id("tisch-7")
        _drop(test_config, "1.jpg")
        _drop(test_config, "2.jpg")

        events = watcher.scan()

        assert [e.id for e in events] == ["tisch-7"]
        assert store.gallery_ids() == ["tisch-7"]

    def test_hybrid_requested_id_used_once(self, test_config, store):
        allocator = IdentifierAllocator(store, mode="hybrid", words=["eins", "zwei"], rng=random.Random(7))
        watcher = IngestionWatcher.from_config(test_config, store=store, allocator=allocator)
        watcher.request_id("my-code")
        _drop(test_config, "1.jpg")
        _drop(test_config, "2.jpg")

        first = watcher.process_photo("1.jpg")
        second = watcher.process_photo("2.jpg")

        assert first.id == "my-code"
        assert second.id != "my-code"


class TestPhotoEventHandler:
    def test_created_and_moved_events_are_forwarded(self):
        watcher = MagicMock()
        handler = PhotoEventHandler(watcher)

        handler.on_created(MagicMock(is_directory=False, src_path="/in/a.jpg"))
        handler.on_moved(MagicMock(is_directory=False, src_path="/in/tmp", dest_path="/in/b.jpg"))
        handler.on_created(MagicMock(is_directory=True, src_path="/in/dir"))

        assert [c.args[0] for c in watcher.handle_path.call_args_list] == [
            Path("/in/a.jpg"),
            Path("/in/b.jpg"),
        ]
