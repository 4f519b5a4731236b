"""Tests for filename and volume label sanitization."""

from pathlib import Path

from burn_pipeline.sanitize import (
    converted_filename,
    sanitize_filename,
    sanitize_volume_label,
    track_filename,
)


class TestSanitizeFilename:
    def test_replaces_unsafe_chars(self):
        assert sanitize_filename('a/b\\c:"d') == "a_b_c_d"

    def test_removes_leading_dots(self):
        assert sanitize_filename("..hidden") == "hidden"

    def test_collapses_underscores(self):
        assert sanitize_filename("a___b") == "a_b"

    def test_preserves_normal_names(self):
        assert sanitize_filename("Track 01.flac") == "Track 01.flac"

    def test_control_chars(self):
        assert sanitize_filename("a\x01b") == "a_b"

    def test_truncation_preserves_extension(self):
        result = sanitize_filename("a" * 300 + ".flac")
        assert result.endswith(".flac")
        assert len(result.encode("utf-8")) <= 255

    def test_removes_trailing_dots(self):
        assert sanitize_filename("name...") == "name"


class TestTrackFilename:
    def test_default_prefix(self):
        assert track_filename(3, "flac") == "Track 03.flac"

    def test_custom_prefix(self):
        assert track_filename(12, "mp3", prefix="Disc1") == "Disc1 12.mp3"

    def test_prefix_sanitized(self):
        assert track_filename(2, "wav", prefix="Live/Set") == "Live_Set 02.wav"

    def test_unusable_prefix_falls_back(self):
        assert track_filename(4, "wav", prefix="...") == "Track 04.wav"


class TestConvertedFilename:
    def test_keeps_stem(self):
        assert converted_filename(Path("/music/01 Intro.flac"), "mp3") == "01 Intro.mp3"

    def test_stem_sanitized(self):
        assert converted_filename(Path("a/b:c?.wav"), "flac") == "b_c.flac"

    def test_unusable_stem_falls_back(self):
        assert converted_filename(Path("/music/...wav"), "m4a") == "audio.m4a"


class TestSanitizeVolumeLabel:
    def test_uppercases_and_replaces(self):
        assert sanitize_volume_label("My Disc 2024!") == "MY_DISC_2024"

    def test_truncates(self):
        assert len(sanitize_volume_label("x" * 40)) == 32

    def test_empty_falls_back(self):
        assert sanitize_volume_label("") == "DISC"
        assert sanitize_volume_label("!!!") == "DISC"
