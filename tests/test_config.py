"""Tests for config.py -- defaults, env var overrides, tool paths."""

from pathlib import Path

import pytest

from burn_pipeline.config import PipelineConfig
from burn_pipeline.models import Tool

# Env vars that pydantic-settings reads -- must be cleaned for default tests
_CONFIG_ENV_VARS = [
    "WORK_DIR", "TOOL_LOG_DIR", "LOCK_DIR", "LOG_DIR", "CDRDAO_PATH",
    "GROWISOFS_PATH", "DVD_RW_FORMAT_PATH", "MKISOFS_PATH", "XORRISO_PATH",
    "FFMPEG_PATH", "FFPROBE_PATH", "DD_PATH", "IMAGE_WRITER",
    "POLL_INTERVAL_MS", "UNLOCK_AFTER_FAILURE", "FREE_SPACE_MARGIN",
    "CD_RAW_SAMPLE_FORMAT", "VERBOSE", "LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Remove pipeline env vars so defaults tests see actual defaults."""
    for var in _CONFIG_ENV_VARS:
        monkeypatch.delenv(var, raising=False)


class TestDefaults:
    def test_default_values(self):
        config = PipelineConfig(_env_file=None)
        assert config.poll_interval_ms == 200
        assert config.unlock_after_failure is True
        assert config.free_space_margin == 1.1
        assert config.cd_raw_sample_format == "s16le"
        assert config.image_writer == "growisofs"
        assert config.verbose is False
        assert config.log_level == "INFO"

    def test_default_paths(self):
        config = PipelineConfig(_env_file=None)
        assert config.work_dir == Path("/tmp")
        assert config.tool_log_dir == Path("/tmp")
        assert config.lock_dir == Path("/tmp/burn-pipeline/locks")

    def test_tool_paths(self):
        config = PipelineConfig(_env_file=None)
        assert config.tool_path(Tool.CDRDAO) == "cdrdao"
        assert config.tool_path(Tool.DVD_RW_FORMAT) == "dvd+rw-format"
        for tool in Tool:
            assert config.tool_path(tool)


class TestOverrides:
    def test_constructor_override(self):
        config = PipelineConfig(_env_file=None, poll_interval_ms=50, cdrdao_path="/opt/cdrdao")
        assert config.poll_interval == 0.05
        assert config.tool_path(Tool.CDRDAO) == "/opt/cdrdao"

    def test_env_var_override(self, monkeypatch):
        monkeypatch.setenv("POLL_INTERVAL_MS", "500")
        monkeypatch.setenv("UNLOCK_AFTER_FAILURE", "false")
        config = PipelineConfig(_env_file=None)
        assert config.poll_interval_ms == 500
        assert config.unlock_after_failure is False

    def test_path_from_env(self, monkeypatch):
        monkeypatch.setenv("WORK_DIR", "/tmp/test-work")
        config = PipelineConfig(_env_file=None)
        assert config.work_dir == Path("/tmp/test-work")

    def test_env_file(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("IMAGE_WRITER=xorriso\nFFMPEG_PATH=/usr/local/bin/ffmpeg\n")
        config = PipelineConfig(_env_file=env_file)
        assert config.image_writer == "xorriso"
        assert config.ffmpeg_path == "/usr/local/bin/ffmpeg"


class TestDerived:
    def test_poll_interval_floor(self):
        assert PipelineConfig(_env_file=None, poll_interval_ms=1).poll_interval == 0.01

    def test_writer_tool(self):
        assert PipelineConfig(_env_file=None).writer_tool == Tool.GROWISOFS
        assert PipelineConfig(_env_file=None, image_writer="xorriso").writer_tool == (
            Tool.XORRISO
        )

    def test_ensure_dirs(self, tmp_path):
        config = PipelineConfig(
            _env_file=None,
            work_dir=tmp_path / "work",
            tool_log_dir=tmp_path / "logs",
            lock_dir=tmp_path / "locks",
        )
        config.ensure_dirs()
        assert (tmp_path / "work").is_dir()
        assert (tmp_path / "logs").is_dir()
        assert (tmp_path / "locks").is_dir()
