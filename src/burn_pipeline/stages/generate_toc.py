"""Generate-TOC stage -- write the cdrdao TOC for the converted tracks."""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

from ..descriptors import generate_toc

if TYPE_CHECKING:
    from ..params import BurnAudioParams
    from ..pipeline_run import PipelineRun

log = logger.bind(stage="generate-toc")

TOC_NAME = "disc.toc"


def run(pipeline_run: PipelineRun) -> None:
    """Generate-TOC stage -- AUDIOFILE entries reference WAVs by bare name."""
    params: BurnAudioParams = pipeline_run.params
    wav_files = pipeline_run.artifacts["wav_files"]

    toc_text = generate_toc(
        [(wav.name, track) for wav, track in zip(wav_files, params.tracks)],
        params.cd_text,
    )
    toc_path = pipeline_run.temp_dir / TOC_NAME
    toc_path.write_text(toc_text, encoding="utf-8")
    pipeline_run.artifacts["toc"] = toc_path
    log.info(f"Wrote TOC with {len(wav_files)} tracks")
    log.debug(toc_text)
