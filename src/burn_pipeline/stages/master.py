"""Master stage -- build an ISO9660 image from the staged file list."""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

from .. import commands
from ..errors import InfrastructureError
from ..models import Tool
from ..parsers import get_parser
from ..sanitize import sanitize_volume_label
from ..tool_step import run_tool

if TYPE_CHECKING:
    from ..params import BurnDataParams
    from ..pipeline_run import PipelineRun

log = logger.bind(stage="master")

ISO_NAME = "disc.iso"


def run(pipeline_run: PipelineRun) -> None:
    """Master stage -- runs mkisofs, sets artifacts["image"]."""
    params: BurnDataParams = pipeline_run.params
    output = pipeline_run.temp_dir / ISO_NAME
    label = sanitize_volume_label(params.volume_label)

    run_tool(
        pipeline_run,
        Tool.MKISOFS,
        commands.mkisofs(
            output,
            pipeline_run.artifacts["path_list"],
            label,
            joliet=params.joliet,
            rock_ridge=params.rock_ridge,
        ),
        get_parser(Tool.MKISOFS),
        working_directory=pipeline_run.temp_dir,
    )

    if not output.is_file():
        raise InfrastructureError("mkisofs did not produce an image")
    pipeline_run.artifacts["image"] = output
    log.info(f"Mastered {label}: {output.stat().st_size:,} bytes")
