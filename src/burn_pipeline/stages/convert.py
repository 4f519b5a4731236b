"""Convert stage -- run audio files through ffmpeg.

For burn-audio every track becomes CD-DA WAV in the temp dir; for the
standalone convert operation each file is encoded to the requested format
and delivered to the output directory.
"""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from .. import commands
from ..descriptors import place_file
from ..errors import InfrastructureError
from ..models import Tool
from ..params import ConvertParams
from ..parsers import get_parser
from ..probe import get_audio_format
from ..sanitize import converted_filename
from ..tool_step import run_tool

if TYPE_CHECKING:
    from ..params import BurnAudioParams
    from ..pipeline_run import PipelineRun

log = logger.bind(stage="convert")


def wav_name(index: int) -> str:
    return f"track{index:02d}.wav"


def _is_cd_ready(source: Path, ffprobe: str) -> bool:
    if source.suffix.lower() != ".wav":
        return False
    info = get_audio_format(source, ffprobe)
    return info is not None and info.is_cd_quality


def _require_output(output: Path, source: Path) -> None:
    if not output.is_file() or output.stat().st_size == 0:
        raise InfrastructureError(f"Conversion produced no output for {source.name}")


def _convert_for_cd(pipeline_run: PipelineRun, params: BurnAudioParams) -> None:
    config = pipeline_run.config
    durations = pipeline_run.artifacts.get("durations") or [0.0] * len(params.tracks)
    count = len(params.tracks)
    wav_files: list[Path] = []

    for index, track in enumerate(params.tracks, start=1):
        pipeline_run.token.raise_if_cancelled()
        pipeline_run.state.begin_step(index, count)
        pipeline_run.notify()

        output = pipeline_run.temp_dir / wav_name(index)
        if _is_cd_ready(track.source, config.ffprobe_path):
            place_file(track.source, output)
            log.info(f"[{index}/{count}] {track.source.name} already CD audio")
        else:
            log.info(f"[{index}/{count}] Converting {track.source.name}")
            run_tool(
                pipeline_run,
                Tool.FFMPEG,
                commands.ffmpeg_to_cd_wav(track.source, output),
                get_parser(Tool.FFMPEG, total_seconds=durations[index - 1]),
            )

        _require_output(output, track.source)
        wav_files.append(output)

    pipeline_run.artifacts["wav_files"] = wav_files


def _convert_files(pipeline_run: PipelineRun, params: ConvertParams) -> None:
    count = len(params.tracks)
    converted: list[Path] = []

    for index, track in enumerate(params.tracks, start=1):
        pipeline_run.token.raise_if_cancelled()
        pipeline_run.state.begin_step(index, count)
        pipeline_run.notify()

        name = converted_filename(track.source, params.format.extension)
        staged = pipeline_run.temp_dir / name
        log.info(f"[{index}/{count}] Converting {track.source.name} -> {name}")
        run_tool(
            pipeline_run,
            Tool.FFMPEG,
            commands.ffmpeg_convert(
                track.source, staged, params.format, params.mp3_bitrate
            ),
            get_parser(Tool.FFMPEG, total_seconds=track.duration_seconds or 0.0),
        )
        _require_output(staged, track.source)

        dest = params.output_dir / name
        shutil.move(staged, dest)
        converted.append(dest)

    pipeline_run.artifacts["converted"] = converted
    log.info(f"Converted {len(converted)} files to {params.output_dir}")


def run(pipeline_run: PipelineRun) -> None:
    """Convert stage.

    burn-audio writes track01.wav, track02.wav, ... into the temp dir,
    linking WAV files already at 44.1 kHz/16-bit/stereo instead of
    re-encoding them (artifacts["wav_files"]). convert encodes each file in
    the temp dir and moves it to the output directory only once ffmpeg has
    finished, so a failed run leaves no partial file (artifacts["converted"]).
    """
    params = pipeline_run.params
    if isinstance(params, ConvertParams):
        _convert_files(pipeline_run, params)
    else:
        _convert_for_cd(pipeline_run, params)
