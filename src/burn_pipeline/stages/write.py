"""Write stage -- burn the prepared image or TOC to disc.

cdrdao handles everything with a track layout (CUE/BIN, TOC, audio CDs,
data and copied CDs). ISO images go to DVD/BD through growisofs or xorriso,
selected by the ``image_writer`` setting.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from .. import commands
from ..descriptors import generate_data_toc
from ..models import MediaKind, Tool
from ..params import (
    BurnAudioParams,
    BurnDataParams,
    BurnImageParams,
    CopyParams,
)
from ..parsers import get_parser
from ..tool_step import run_tool

if TYPE_CHECKING:
    from ..pipeline_run import PipelineRun

log = logger.bind(stage="write")

DATA_TOC_NAME = "data.toc"


def _write_toc(
    run: PipelineRun,
    toc_file: Path,
    *,
    speed: int | None,
    simulate: bool,
    eject: bool,
    overburn: bool = False,
    swap: bool = False,
    raw_mode: bool = False,
) -> None:
    run.needs_unlock = True
    run_tool(
        run,
        Tool.CDRDAO,
        commands.cdrdao_write(
            run.params.device,
            toc_file.name,
            speed=speed,
            simulate=simulate,
            eject=eject,
            overburn=overburn,
            swap=swap,
            raw_mode=raw_mode,
        ),
        get_parser(Tool.CDRDAO),
        working_directory=toc_file.parent,
    )


def _write_iso(
    run: PipelineRun,
    image: Path,
    *,
    speed: int | None,
    simulate: bool,
    eject: bool,
    overburn: bool = False,
    dvd_compat: bool = True,
) -> None:
    tool = run.config.writer_tool
    device = run.params.device
    if tool == Tool.XORRISO:
        args = commands.xorriso_burn(
            device, image, speed=speed, simulate=simulate, eject=eject
        )
    else:
        args = commands.growisofs_burn(
            device,
            image,
            speed=speed,
            simulate=simulate,
            dvd_compat=dvd_compat,
            overburn=overburn,
        )
    run_tool(run, tool, args, get_parser(tool), working_directory=image.parent)


def _iso_to_cd(run: PipelineRun, image: Path, **options) -> None:
    toc = image.parent / DATA_TOC_NAME
    toc.write_text(generate_data_toc(image.name), encoding="utf-8")
    _write_toc(run, toc, **options)


def run(pipeline_run: PipelineRun) -> None:
    """Write stage."""
    params = pipeline_run.params
    artifacts = pipeline_run.artifacts

    if isinstance(params, BurnImageParams):
        image: Path = artifacts["image"]
        if params.image_type.uses_cdrdao:
            _write_toc(
                pipeline_run,
                image,
                speed=params.speed,
                simulate=params.simulate,
                eject=params.eject,
                overburn=params.overburn,
                swap=params.swap_audio,
                raw_mode=params.raw_mode,
            )
        else:
            _write_iso(
                pipeline_run,
                image,
                speed=params.speed,
                simulate=params.simulate,
                eject=params.eject,
                overburn=params.overburn,
                dvd_compat=params.dvd_compat,
            )

    elif isinstance(params, BurnAudioParams):
        _write_toc(
            pipeline_run,
            artifacts["toc"],
            speed=params.speed,
            simulate=params.simulate,
            eject=params.eject,
            overburn=params.overburn,
            swap=params.swap_audio,
        )

    elif isinstance(params, BurnDataParams):
        options = dict(
            speed=params.speed,
            simulate=params.simulate,
            eject=params.eject,
            overburn=params.overburn,
        )
        if params.media == MediaKind.CD:
            _iso_to_cd(pipeline_run, artifacts["image"], **options)
        else:
            _write_iso(pipeline_run, artifacts["image"], **options)

    elif isinstance(params, CopyParams):
        if params.media == MediaKind.CD:
            _write_toc(
                pipeline_run,
                artifacts["toc"],
                speed=params.speed,
                simulate=params.simulate,
                eject=params.eject,
            )
        else:
            _write_iso(
                pipeline_run,
                artifacts["image"],
                speed=params.speed,
                simulate=params.simulate,
                eject=params.eject,
            )

    else:
        raise NotImplementedError(f"Nothing to write for {pipeline_run.operation}")

    log.info(f"Write finished on {params.device}")
