"""Tests for probe.py -- ffprobe wrappers."""

import json
import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from burn_pipeline.probe import (
    AudioFormatInfo,
    duration_to_timestamp,
    get_audio_format,
    get_duration,
)


def _completed(stdout="", returncode=0):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr="")


def _stream_json(**stream):
    return json.dumps({"streams": [stream]})


class TestGetDuration:
    @patch("burn_pipeline.probe.subprocess.run")
    def test_parses_float(self, mock_run):
        mock_run.return_value = _completed("245.333\n")
        assert get_duration(Path("a.mp3")) == pytest.approx(245.333)

    @patch("burn_pipeline.probe.subprocess.run")
    def test_empty_raises(self, mock_run):
        mock_run.return_value = _completed("")
        with pytest.raises(ValueError, match="empty duration"):
            get_duration(Path("a.mp3"))

    @patch("burn_pipeline.probe.subprocess.run")
    def test_uses_configured_binary(self, mock_run):
        mock_run.return_value = _completed("1.0")
        get_duration(Path("a.mp3"), "/opt/ffprobe")
        assert mock_run.call_args.args[0][0] == "/opt/ffprobe"


class TestGetAudioFormat:
    @patch("burn_pipeline.probe.subprocess.run")
    def test_cd_quality(self, mock_run):
        mock_run.return_value = _completed(
            _stream_json(
                codec_name="pcm_s16le", sample_rate="44100", channels=2, bits_per_sample=16
            )
        )
        info = get_audio_format(Path("a.wav"))
        assert info == AudioFormatInfo("pcm_s16le", 44100, 2, 16)
        assert info.is_cd_quality

    @patch("burn_pipeline.probe.subprocess.run")
    def test_not_cd_quality(self, mock_run):
        mock_run.return_value = _completed(
            _stream_json(codec_name="mp3", sample_rate="48000", channels=2, bits_per_sample=0)
        )
        assert not get_audio_format(Path("a.mp3")).is_cd_quality

    @patch("burn_pipeline.probe.subprocess.run")
    def test_failure_returns_none(self, mock_run):
        mock_run.return_value = _completed("", returncode=1)
        assert get_audio_format(Path("a.mp3")) is None

    @patch("burn_pipeline.probe.subprocess.run")
    def test_no_streams(self, mock_run):
        mock_run.return_value = _completed(json.dumps({"streams": []}))
        assert get_audio_format(Path("a.mp3")) is None

    @patch("burn_pipeline.probe.subprocess.run")
    def test_bad_json(self, mock_run):
        mock_run.return_value = _completed("not json")
        assert get_audio_format(Path("a.mp3")) is None


class TestDurationToTimestamp:
    def test_minutes(self):
        assert duration_to_timestamp(245.9) == "04:05"

    def test_hours(self):
        assert duration_to_timestamp(3725) == "1:02:05"
