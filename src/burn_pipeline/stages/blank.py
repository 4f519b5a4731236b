"""Blank stage -- erase rewritable media.

CD-RW is blanked with cdrdao; DVD-RW, DVD+RW, DVD-RAM and BD-RE go through
dvd+rw-format.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

from .. import commands
from ..models import MediaType, Tool
from ..parsers import get_parser
from ..tool_step import run_tool

if TYPE_CHECKING:
    from ..params import EraseParams
    from ..pipeline_run import PipelineRun

log = logger.bind(stage="blank")


def run(pipeline_run: PipelineRun) -> None:
    """Blank stage."""
    params: EraseParams = pipeline_run.params

    if params.media_type == MediaType.CD_RW:
        pipeline_run.needs_unlock = True
        tool = Tool.CDRDAO
        args = commands.cdrdao_blank(
            params.device, params.blank_mode, speed=params.speed, eject=params.eject
        )
    else:
        tool = Tool.DVD_RW_FORMAT
        args = commands.dvd_rw_format(
            params.device, params.media_type, params.blank_mode
        )

    log.info(f"Erasing {params.media_type} in {params.device} ({params.blank_mode})")
    run_tool(pipeline_run, tool, args, get_parser(tool))
