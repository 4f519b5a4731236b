"""Stage-files stage -- put burn inputs where the writing tools expect them.

burn-image: CUE sheets are copied next to their BIN files inside the temp
directory with FILE directives rewritten to bare names; TOC images are burned
from their own directory; ISO/IMG images are burned in place.
burn-data: writes the mkisofs graft-point list mapping disc paths to sources.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from ..descriptors import stage_cue
from ..models import ImageType
from ..params import BurnDataParams, BurnImageParams

if TYPE_CHECKING:
    from ..pipeline_run import PipelineRun

log = logger.bind(stage="stage-files")


def _escape_graft(value: str) -> str:
    return value.replace("\\", "\\\\").replace("=", "\\=")


def build_graft_points(files: list[Path]) -> list[str]:
    """One ``disc_name=source_path`` entry per input, names made unique."""
    seen: dict[str, int] = {}
    entries = []
    for path in files:
        name = path.name
        count = seen.get(name.lower(), 0)
        seen[name.lower()] = count + 1
        if count:
            name = f"{path.stem} ({count + 1}){path.suffix}"
        disc_path = f"/{name}/" if path.is_dir() else f"/{name}"
        entries.append(f"{_escape_graft(disc_path)}={_escape_graft(str(path.resolve()))}")
    return entries


def _stage_image(run: PipelineRun, params: BurnImageParams) -> None:
    image_type = params.image_type
    if image_type == ImageType.CUE_BIN:
        staged = stage_cue(params.image, run.temp_dir)
        run.artifacts["image"] = staged
        log.info(f"Staged CUE sheet {params.image.name} into {run.temp_dir}")
    else:
        run.artifacts["image"] = params.image.resolve()
        log.debug(f"Burning {params.image} in place")


def _stage_data(run: PipelineRun, params: BurnDataParams) -> None:
    entries = build_graft_points(params.files)
    path_list = run.temp_dir / "graft-points.txt"
    path_list.write_text("\n".join(entries) + "\n", encoding="utf-8")
    run.artifacts["path_list"] = path_list
    log.info(f"Prepared {len(entries)} entries for mastering")


def run(pipeline_run: PipelineRun) -> None:
    """Stage-files stage."""
    params = pipeline_run.params
    if isinstance(params, BurnImageParams):
        _stage_image(pipeline_run, params)
    elif isinstance(params, BurnDataParams):
        _stage_data(pipeline_run, params)
    else:
        raise NotImplementedError(f"Nothing to stage for {pipeline_run.operation}")
