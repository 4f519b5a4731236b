"""Tests for descriptors.py -- TOC generation/parsing and CUE staging."""

from pathlib import Path

import pytest

from burn_pipeline.descriptors import (
    cue_referenced_files,
    escape_toc_string,
    generate_data_toc,
    generate_toc,
    msf_to_seconds,
    parse_toc_tracks,
    place_file,
    rewrite_cue_files,
    seconds_to_msf,
    stage_cue,
)
from burn_pipeline.errors import ValidationCode, ValidationError
from burn_pipeline.params import AudioTrackSpec, CDText

READ_CD_TOC = """CD_DA

// Track 1
TRACK AUDIO
NO COPY
NO PRE_EMPHASIS
TWO_CHANNEL_AUDIO
FILE "disc.bin" 0 03:20:00

// Track 2
TRACK AUDIO
TWO_CHANNEL_AUDIO
FILE "disc.bin" 03:20:00 04:00:00
START 00:02:00

// Track 3
TRACK MODE1
DATAFILE "disc.bin" 07:20:00 00:10:00
"""


class TestMsf:
    def test_seconds_to_msf(self):
        assert seconds_to_msf(0) == "00:00:00"
        assert seconds_to_msf(2) == "00:02:00"
        assert seconds_to_msf(61.2) == "01:01:15"

    def test_msf_to_seconds(self):
        assert msf_to_seconds("01:01:15") == pytest.approx(61.2)
        assert msf_to_seconds("150") == 2.0
        assert msf_to_seconds("bogus") is None


class TestEscape:
    def test_quotes_and_backslashes(self):
        assert escape_toc_string('say "hi" \\o/') == 'say \\"hi\\" \\\\o/'

    def test_empty_becomes_space(self):
        assert escape_toc_string("") == " "


class TestGenerateToc:
    def test_plain(self):
        toc = generate_toc(
            [("track01.wav", AudioTrackSpec(Path("a.mp3")))], CDText()
        )
        assert toc.startswith("CD_DA")
        assert "CD_TEXT" not in toc
        assert 'AUDIOFILE "track01.wav" 0' in toc

    def test_cd_text(self):
        tracks = [
            ("track01.wav", AudioTrackSpec(Path("a.mp3"), title="One", performer="Band")),
            ("track02.wav", AudioTrackSpec(Path("b.mp3"), title="Two")),
        ]
        toc = generate_toc(tracks, CDText(title="Album", performer="Band"))
        assert "LANGUAGE_MAP { 0 : EN }" in toc
        assert 'TITLE "Album"' in toc
        assert 'TITLE "One"' in toc
        assert 'TITLE "Two"' in toc
        # performer is used, so track 2 gets a placeholder
        assert toc.count('PERFORMER "Band"') == 2
        assert 'PERFORMER " "' in toc
        assert "SONGWRITER" not in toc
        assert toc.count("TRACK AUDIO") == 2

    def test_isrc_and_pregap(self):
        track = AudioTrackSpec(Path("a.wav"), isrc="USABC1234567", pregap_seconds=2)
        toc = generate_toc([("track01.wav", track)], CDText())
        assert 'ISRC "USABC1234567"' in toc
        assert "PREGAP 00:02:00" in toc

    def test_upc(self):
        toc = generate_toc(
            [("track01.wav", AudioTrackSpec(Path("a.wav")))],
            CDText(title="Album", upc_ean="0123456789012"),
        )
        assert 'UPC_EAN "0123456789012"' in toc

    def test_generated_toc_has_no_track_lengths(self):
        tracks = [(f"track{i:02d}.wav", AudioTrackSpec(Path("a.wav"))) for i in (1, 2, 3)]
        toc = generate_toc(tracks, CDText())
        # AUDIOFILE entries without a length are not extractable
        assert parse_toc_tracks(toc) == []


class TestDataToc:
    def test_generate(self):
        assert generate_data_toc("disc.iso") == (
            'CD_ROM\n\nTRACK MODE1\n  DATAFILE "disc.iso"\n'
        )


class TestParseTocTracks:
    def test_read_cd_toc(self):
        tracks = parse_toc_tracks(READ_CD_TOC)
        assert [t.number for t in tracks] == [1, 2, 3]
        first, second, third = tracks
        assert first.data_file == "disc.bin"
        assert first.start_seconds == 0.0
        assert first.length_seconds == 200.0
        assert second.start_seconds == pytest.approx(202.0)
        assert second.length_seconds == pytest.approx(238.0)
        assert second.is_audio
        assert not third.is_audio

    def test_ignores_header_lines(self):
        assert parse_toc_tracks('CD_DA\nFILE "x.bin" 0 00:01:00\n') == []


class TestCue:
    CUE = (
        'FILE "C:\\rips\\Game.bin" BINARY\n'
        "  TRACK 01 MODE1/2352\n"
        "    INDEX 01 00:00:00\n"
    )

    def test_referenced_files(self):
        assert cue_referenced_files(self.CUE) == ["C:\\rips\\Game.bin"]
        assert cue_referenced_files("FILE game.bin BINARY\n") == ["game.bin"]

    def test_rewrite(self):
        rewritten = rewrite_cue_files(self.CUE)
        assert rewritten.splitlines()[0] == 'FILE "Game.bin" BINARY'
        assert "TRACK 01 MODE1/2352" in rewritten


class TestStageCue:
    def test_stages_cue_and_bin(self, tmp_path):
        src = tmp_path / "src"
        src.mkdir()
        (src / "game.bin").write_bytes(b"\x00" * 2352)
        cue = src / "game.cue"
        cue.write_text("FILE game.bin BINARY\n  TRACK 01 MODE1/2352\n")
        dest = tmp_path / "work"
        dest.mkdir()

        staged = stage_cue(cue, dest)

        assert staged == dest / "game.cue"
        assert (dest / "game.bin").stat().st_size == 2352
        assert staged.read_text().startswith('FILE "game.bin" BINARY')

    def test_missing_bin(self, tmp_path):
        cue = tmp_path / "game.cue"
        cue.write_text('FILE "gone.bin" BINARY\n')
        with pytest.raises(ValidationError) as exc:
            stage_cue(cue, tmp_path)
        assert exc.value.code == ValidationCode.MISSING_SOURCE

    def test_no_file_directive(self, tmp_path):
        cue = tmp_path / "game.cue"
        cue.write_text("TRACK 01 AUDIO\n")
        with pytest.raises(ValidationError) as exc:
            stage_cue(cue, tmp_path)
        assert exc.value.code == ValidationCode.UNSUPPORTED_IMAGE


class TestPlaceFile:
    def test_copies_when_link_fails(self, tmp_path, monkeypatch):
        src = tmp_path / "a.wav"
        src.write_bytes(b"RIFF")

        def _no_link(*args):
            raise OSError("cross-device link")

        monkeypatch.setattr("burn_pipeline.descriptors.os.link", _no_link)
        place_file(src, tmp_path / "b.wav")
        assert (tmp_path / "b.wav").read_bytes() == b"RIFF"
