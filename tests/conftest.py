"""Shared pytest fixtures for Fotostand tests."""

import hashlib
import json
import shutil
import tempfile
from pathlib import Path
from typing import Generator

import pytest

from fotostand.core.config import FotostandConfig
from fotostand.core.gallery_store import GalleryStore

UPLOAD_TOKEN = "test-token-0f5c1d2e"
UPLOAD_TOKEN_HASH = hashlib.sha256(UPLOAD_TOKEN.encode("utf-8")).hexdigest()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path) -> FotostandConfig:
    """Create a test configuration with temporary directories.

    Args:
        temp_dir: Temporary directory from fixture

    Returns:
        FotostandConfig with uploads enabled and the derived id mode
    """
    return FotostandConfig(
        _env_file=None,
        event_title="Test Event",
        base_url="http://booth.test",
        data_dir=str(temp_dir / "data"),
        input_dir=str(temp_dir / "input"),
        upload_token_hash=UPLOAD_TOKEN_HASH,
        id_mode="derived",
    )


@pytest.fixture
def store(test_config: FotostandConfig) -> GalleryStore:
    """Gallery store rooted in the test data directory."""
    return GalleryStore.from_config(test_config)


@pytest.fixture
def upload_token() -> str:
    """Plain-text bearer token matching ``test_config.upload_token_hash``."""
    return UPLOAD_TOKEN


@pytest.fixture
def photo_bytes() -> bytes:
    """A few bytes that start like a JPEG file."""
    return b"\xff\xd8\xff\xe0" + bytes(range(256)) * 4


@pytest.fixture
def make_gallery(test_config: FotostandConfig):
    """Create a gallery directory by hand, bypassing the store.

    Returns:
        Function ``(gallery_id, files=None, metadata=None) -> Path``
    """

    def _make(gallery_id: str, files: dict | None = None, metadata: dict | None = None) -> Path:
        gallery_path = test_config.data_dir / gallery_id
        gallery_path.mkdir(parents=True)
        for name, content in (files or {}).items():
            (gallery_path / name).write_bytes(content)
        if metadata is not None:
            (gallery_path / "metadata.json").write_text(json.dumps(metadata), encoding="utf-8")
        return gallery_path

    return _make
