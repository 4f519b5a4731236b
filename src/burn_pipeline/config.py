"""Pipeline configuration via pydantic-settings (.env + env vars)."""

import sys
from pathlib import Path

from loguru import logger
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import Tool


class PipelineConfig(BaseSettings):
    """All pipeline configuration with layered resolution:
    .env file < environment variables < constructor kwargs.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    # -- Directories --
    work_dir: Path = Path("/tmp")
    tool_log_dir: Path = Path("/tmp")
    lock_dir: Path = Path("/tmp/burn-pipeline/locks")
    log_dir: Path = Path("/var/log/burn-pipeline")

    # -- Tools --
    cdrdao_path: str = "cdrdao"
    growisofs_path: str = "growisofs"
    dvd_rw_format_path: str = "dvd+rw-format"
    mkisofs_path: str = "mkisofs"
    xorriso_path: str = "xorriso"
    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"
    dd_path: str = "dd"
    image_writer: str = "growisofs"  # growisofs | xorriso

    # -- Tailing --
    poll_interval_ms: int = 200

    # -- Behavior --
    unlock_after_failure: bool = True
    free_space_margin: float = 1.1
    cd_raw_sample_format: str = "s16le"
    verbose: bool = False
    log_level: str = "INFO"

    @property
    def poll_interval(self) -> float:
        """Log tailer poll interval in seconds."""
        return max(self.poll_interval_ms, 10) / 1000

    @property
    def writer_tool(self) -> Tool:
        """Tool used to write ISO images to DVD/BD media."""
        return Tool.XORRISO if self.image_writer == "xorriso" else Tool.GROWISOFS

    def tool_path(self, tool: Tool) -> str:
        """Executable configured for a tool."""
        return {
            Tool.CDRDAO: self.cdrdao_path,
            Tool.GROWISOFS: self.growisofs_path,
            Tool.DVD_RW_FORMAT: self.dvd_rw_format_path,
            Tool.MKISOFS: self.mkisofs_path,
            Tool.XORRISO: self.xorriso_path,
            Tool.FFMPEG: self.ffmpeg_path,
            Tool.DD: self.dd_path,
        }[tool]

    def ensure_dirs(self) -> None:
        """Create all required directories if they don't exist."""
        for d in (
            self.work_dir,
            self.tool_log_dir,
            self.lock_dir,
        ):
            d.mkdir(parents=True, exist_ok=True)

    def setup_logging(self) -> None:
        """Configure loguru for the pipeline."""
        logger.remove()  # Remove default stderr handler

        log_format = (
            "{time:YYYY-MM-DDTHH:mm:ssZ} | {level:<8} | "
            "{extra[stage]:<12} | {message}"
        )

        def _default_extra(record):
            record["extra"].setdefault("stage", "")
            return True

        level = "DEBUG" if self.verbose else self.log_level.upper()
        logger.add(
            sys.stderr,
            format=log_format,
            level=level,
            filter=_default_extra,
        )

        self.log_dir.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(self.log_dir / "pipeline.log"),
            format=log_format,
            level="DEBUG",
            rotation="10 MB",
            retention="30 days",
            filter=_default_extra,
        )
