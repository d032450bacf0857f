"""Integration tests for the watcher CLI and the filesystem observer."""

from __future__ import annotations

import json
import time

import pytest

from fotostand.core.watcher import IngestionWatcher
from fotostand.watch import OUTPUT_PREFIX, main

pytestmark = pytest.mark.integration


@pytest.fixture
def booth_env(monkeypatch, temp_dir):
    """Point the FOTOSTAND_* settings at a temporary booth."""
    monkeypatch.setenv("FOTOSTAND_DATA_DIR", str(temp_dir / "data"))
    monkeypatch.setenv("FOTOSTAND_INPUT_DIR", str(temp_dir / "input"))
    monkeypatch.setenv("FOTOSTAND_BASE_URL", "https://fotos.example.com")
    monkeypatch.setenv("FOTOSTAND_EVENT_TITLE", "Winterball")
    (temp_dir / "input").mkdir()
    return temp_dir


def _output_lines(captured: str) -> list[dict]:
    return [
        json.loads(line[len(OUTPUT_PREFIX) :])
        for line in captured.splitlines()
        if line.startswith(OUTPUT_PREFIX)
    ]


class TestWatchCli:
    def test_once_processes_backlog(self, booth_env, capsys):
        (booth_env / "input" / "DSC_0001.jpg").write_bytes(b"jpeg")

        assert main(["--once", "--env-file", str(booth_env / "missing.env")]) == 0

        outputs = _output_lines(capsys.readouterr().out)
        assert len(outputs) == 1
        assert outputs[0]["id"] == "DSC_0001"
        assert outputs[0]["url"] == "https://fotos.example.com/gallery/DSC_0001"
        assert outputs[0]["photoCount"] == 1
        assert outputs[0]["originalFilename"] == "DSC_0001.jpg"
        metadata = json.loads((booth_env / "data" / "DSC_0001" / "metadata.json").read_text())
        assert metadata["eventTitle"] == "Winterball"

    def test_hybrid_id_flag(self, booth_env, monkeypatch, capsys):
        monkeypatch.setenv("FOTOSTAND_ID_MODE", "hybrid")
        (booth_env / "input" / "DSC_0001.jpg").write_bytes(b"jpeg")

        main(["--once", "--id", "tisch-19", "--env-file", str(booth_env / "missing.env")])

        assert _output_lines(capsys.readouterr().out)[0]["id"] == "tisch-19"
        assert (booth_env / "data" / "tisch-19" / "DSC_0001.jpg").exists()

    def test_manual_mode_requires_id(self, booth_env, monkeypatch):
        monkeypatch.setenv("FOTOSTAND_ID_MODE", "manual")
        with pytest.raises(SystemExit) as exc_info:
            main(["--once", "--env-file", str(booth_env / "missing.env")])
        assert exc_info.value.code == 2

    def test_unsafe_photo_does_not_stop_backlog(self, booth_env, monkeypatch, capsys):
        monkeypatch.setenv("FOTOSTAND_ID_MODE", "random")
        (booth_env / "input" / "photo..jpg").write_bytes(b"jpeg")
        (booth_env / "input" / "z.jpg").write_bytes(b"jpeg")

        assert main(["--once", "--env-file", str(booth_env / "missing.env")]) == 0

        outputs = _output_lines(capsys.readouterr().out)
        assert [o["originalFilename"] for o in outputs] == ["z.jpg"]


class TestObserver:
    def test_new_photo_is_picked_up(self, test_config, store):
        events = []
        watcher = IngestionWatcher.from_config(test_config, store=store, on_ingest=events.append)
        (test_config.input_dir / "before.jpg").write_bytes(b"old")

        watcher.start()
        try:
            (test_config.input_dir / "after.jpg").write_bytes(b"new")
            deadline = time.monotonic() + 5
            while not events and time.monotonic() < deadline:
                time.sleep(0.05)
        finally:
            watcher.stop()

        assert [e.id for e in events] == ["after"]
        assert not store.exists("before")
