"""Unit tests for filename helpers."""

import re
from datetime import datetime, timedelta, timezone

import pytest

from fotostand.core.naming import (
    file_extension,
    generate_display_filename,
    generate_unique_filename,
    guess_media_type,
    parse_timestamp,
    sanitize_title,
    utc_timestamp,
)

UNIQUE_NAME = re.compile(r"^\d{13}_[0-9a-z]{11}\.[A-Za-z0-9]+$")


class TestGenerateUniqueFilename:
    """Tests for generate_unique_filename."""

    def test_format(self):
        assert UNIQUE_NAME.match(generate_unique_filename("photo.jpg"))

    def test_keeps_extension(self):
        assert generate_unique_filename("clip.mp4").endswith(".mp4")
        assert generate_unique_filename("archive.tar.png").endswith(".png")

    def test_defaults_to_jpg_without_extension(self):
        assert generate_unique_filename("photo").endswith(".jpg")
        assert generate_unique_filename("photo.").endswith(".jpg")

    def test_same_name_gives_distinct_results(self):
        names = {generate_unique_filename("same.jpg") for _ in range(50)}
        assert len(names) == 50


class TestFileExtension:
    """Tests for file_extension."""

    def test_last_suffix(self):
        assert file_extension("a.b.JPG") == "JPG"

    def test_strips_non_alphanumeric_characters(self):
        assert file_extension("evil.j/p\\g") == "jpg"

    def test_default(self):
        assert file_extension("noext") == "jpg"
        assert file_extension("noext", default="bin") == "bin"


class TestDisplayFilename:
    """Tests for sanitize_title and generate_display_filename."""

    def test_sanitize_title(self):
        assert sanitize_title("My Event") == "MyEvent"
        assert sanitize_title("  Sommer-Fest 2024!  ") == "SommerFest2024"
        assert sanitize_title("Ünïcode Party") == "ncodeParty"

    def test_display_filename_scenario(self):
        timestamp = parse_timestamp("2024-03-15T10:30:00.000Z")
        assert generate_display_filename("My Event", timestamp, "jpg") == "MyEvent_20240315_103000.jpg"

    def test_display_filename_uses_utc(self):
        timestamp = datetime(2024, 3, 15, 11, 30, 0, tzinfo=timezone(timedelta(hours=1)))
        assert generate_display_filename("X", timestamp, "png") == "X_20240315_103000.png"


class TestTimestamps:
    """Tests for utc_timestamp and parse_timestamp."""

    def test_utc_timestamp_format(self):
        value = utc_timestamp(datetime(2024, 3, 15, 10, 30, 0, 123000, tzinfo=timezone.utc))
        assert value == "2024-03-15T10:30:00.123Z"

    def test_parse_naive_as_utc(self):
        assert parse_timestamp("2024-03-15T10:30:00").tzinfo == timezone.utc

    def test_round_trip(self):
        now = datetime(2025, 1, 2, 3, 4, 5, 678000, tzinfo=timezone.utc)
        assert parse_timestamp(utc_timestamp(now)) == now

    def test_parse_invalid(self):
        with pytest.raises(ValueError):
            parse_timestamp("yesterday")


class TestGuessMediaType:
    def test_known_types(self):
        assert guess_media_type("a.png") == "image/png"
        assert guess_media_type("a.jpg") == "image/jpeg"
        assert guess_media_type("a.mp4") == "video/mp4"

    def test_unknown_defaults_to_jpeg(self):
        assert guess_media_type("a.unknownext") == "image/jpeg"
