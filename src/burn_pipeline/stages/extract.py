"""Extract-tracks stage -- cut the raw CD read into per-track audio files."""

from __future__ import annotations

import shutil
from typing import TYPE_CHECKING

from loguru import logger

from .. import commands
from ..descriptors import parse_toc_tracks
from ..errors import InfrastructureError
from ..models import Tool
from ..parsers import get_parser
from ..sanitize import track_filename
from ..tool_step import run_tool

if TYPE_CHECKING:
    from ..params import ExtractParams
    from ..pipeline_run import PipelineRun

log = logger.bind(stage="extract")


def run(pipeline_run: PipelineRun) -> None:
    """Extract-tracks stage.

    Each track is encoded into the temp directory and moved to the output
    directory only once ffmpeg has finished, so a cancelled or failed run
    never leaves a partial file behind. Updates artifacts["extracted"].
    """
    params: ExtractParams = pipeline_run.params
    toc_path = pipeline_run.artifacts["toc"]
    tracks = [t for t in parse_toc_tracks(toc_path.read_text(errors="replace")) if t.is_audio]
    if not tracks:
        raise InfrastructureError("No audio tracks found on disc")

    if params.tracks is not None:
        available = {t.number for t in tracks}
        missing = sorted(set(params.tracks) - available)
        if missing:
            # Only known once the disc has been read
            raise InfrastructureError(
                f"Tracks not on disc: {', '.join(map(str, missing))}"
            )
        tracks = [t for t in tracks if t.number in params.tracks]

    extracted = []
    count = len(tracks)
    for step, track in enumerate(tracks, start=1):
        pipeline_run.token.raise_if_cancelled()
        pipeline_run.state.begin_step(step, count)
        pipeline_run.notify()

        name = track_filename(track.number, params.format.extension, prefix=params.name_prefix)
        staged = pipeline_run.temp_dir / name
        log.info(f"[{step}/{count}] Extracting track {track.number} -> {name}")
        run_tool(
            pipeline_run,
            Tool.FFMPEG,
            commands.ffmpeg_extract_track(
                pipeline_run.temp_dir / track.data_file,
                staged,
                track.start_seconds,
                track.length_seconds,
                params.format,
                track.number,
                sample_format=pipeline_run.config.cd_raw_sample_format,
                mp3_bitrate=params.mp3_bitrate,
            ),
            get_parser(Tool.FFMPEG, total_seconds=track.length_seconds),
        )
        dest = params.output_dir / name
        shutil.move(staged, dest)
        extracted.append(dest)

    pipeline_run.artifacts["extracted"] = extracted
    log.info(f"Extracted {len(extracted)} tracks to {params.output_dir}")
