"""Read stage -- read a disc into the temp directory.

CDs are read with ``cdrdao read-cd`` into disc.toc + disc.bin; DVD/BD media
are copied sector by sector with dd into disc_copy.iso. For read-image the
result is moved to the requested destination once the read has succeeded.
"""

from __future__ import annotations

import shutil
from typing import TYPE_CHECKING

from loguru import logger

from .. import commands
from ..errors import InfrastructureError
from ..models import MediaKind, Tool
from ..params import CopyParams, ExtractParams, ReadImageParams
from ..parsers import get_parser
from ..tool_step import run_tool

if TYPE_CHECKING:
    from ..pipeline_run import PipelineRun

log = logger.bind(stage="read")

TOC_NAME = "disc.toc"
DATA_NAME = "disc.bin"
ISO_NAME = "disc_copy.iso"


def _source_device(params) -> str:
    return params.source_device if isinstance(params, CopyParams) else params.device


def _read_cd(run: PipelineRun) -> None:
    run_tool(
        run,
        Tool.CDRDAO,
        commands.cdrdao_read_cd(_source_device(run.params), TOC_NAME, DATA_NAME),
        get_parser(Tool.CDRDAO),
        working_directory=run.temp_dir,
    )
    toc = run.temp_dir / TOC_NAME
    if not toc.is_file():
        raise InfrastructureError("cdrdao did not write a TOC file")
    run.artifacts["toc"] = toc
    run.artifacts["data_file"] = run.temp_dir / DATA_NAME


def _read_iso(run: PipelineRun, expected_bytes: int | None) -> None:
    output = run.temp_dir / ISO_NAME
    run_tool(
        run,
        Tool.DD,
        commands.dd_read(_source_device(run.params), output),
        get_parser(Tool.DD, total_bytes=expected_bytes or 0),
    )
    if not output.is_file():
        raise InfrastructureError("dd did not produce an image")
    run.artifacts["image"] = output


def _deliver(run: PipelineRun, params: ReadImageParams) -> None:
    """Move the finished read out of the temp directory."""
    dest = params.destination
    if params.media == MediaKind.CD:
        toc_dest = dest.with_suffix(".toc")
        bin_dest = dest.with_suffix(".bin")
        shutil.move(run.artifacts["data_file"], bin_dest)
        toc_text = run.artifacts["toc"].read_text(errors="replace")
        toc_dest.write_text(
            toc_text.replace(f'"{DATA_NAME}"', f'"{bin_dest.name}"'),
            encoding="utf-8",
        )
        log.info(f"Disc saved to {toc_dest} + {bin_dest.name}")
    else:
        shutil.move(run.artifacts["image"], dest)
        log.info(f"Disc saved to {dest}")


def run(pipeline_run: PipelineRun) -> None:
    """Read stage."""
    params = pipeline_run.params

    if isinstance(params, ExtractParams):
        _read_cd(pipeline_run)
    elif isinstance(params, (CopyParams, ReadImageParams)):
        if params.media == MediaKind.CD:
            _read_cd(pipeline_run)
        else:
            _read_iso(pipeline_run, params.expected_bytes)
        if isinstance(params, ReadImageParams):
            _deliver(pipeline_run, params)
    else:
        raise NotImplementedError(f"Nothing to read for {pipeline_run.operation}")
