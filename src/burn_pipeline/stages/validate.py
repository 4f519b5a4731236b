"""Validate stage -- reject bad parameters before any tool runs."""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

from ..concurrency import check_disk_space, path_size
from ..errors import ValidationCode, ValidationError
from ..models import (
    CD_AUDIO_BYTES_PER_SECOND,
    DEFAULT_CAPACITY_BYTES,
    ImageType,
    MediaKind,
)
from ..params import (
    BurnAudioParams,
    BurnDataParams,
    BurnImageParams,
    ConvertParams,
    CopyParams,
    EraseParams,
    ExtractParams,
    ReadImageParams,
)
from ..probe import duration_to_timestamp
from ..sanitize import converted_filename

if TYPE_CHECKING:
    from ..pipeline_run import PipelineRun

log = logger.bind(stage="validate")

# Raw CD audio read for extraction: an 80-minute disc
CD_READ_BYTES = 80 * 60 * CD_AUDIO_BYTES_PER_SECOND


def _require_space(run: PipelineRun, required_bytes: int) -> None:
    if not check_disk_space(
        required_bytes, run.config.work_dir, run.config.free_space_margin
    ):
        raise ValidationError(
            f"Not enough free space in {run.config.work_dir} "
            f"({required_bytes / 1024 / 1024:.0f} MB needed)",
            ValidationCode.INSUFFICIENT_SPACE,
        )


def _validate_burn_image(run: PipelineRun, params: BurnImageParams) -> None:
    if not params.image.is_file():
        raise ValidationError(
            f"Image file not found: {params.image}", ValidationCode.MISSING_SOURCE
        )
    image_type = params.image_type
    if image_type is None:
        raise ValidationError(
            f"Unsupported image type: {params.image.suffix or params.image.name}",
            ValidationCode.UNSUPPORTED_IMAGE,
        )
    if image_type == ImageType.NRG:
        raise ValidationError(
            "NRG images must be converted to ISO or CUE/BIN first",
            ValidationCode.UNSUPPORTED_IMAGE,
        )
    log.info(f"Image {params.image.name} ({image_type}) -> {params.device}")


def _validate_burn_audio(run: PipelineRun, params: BurnAudioParams) -> None:
    if not params.tracks:
        raise ValidationError("No audio tracks selected", ValidationCode.NO_INPUT)

    durations = []
    for track in params.tracks:
        if not track.source.is_file():
            raise ValidationError(
                f"Audio file not found: {track.source}", ValidationCode.MISSING_SOURCE
            )
        # Durations come from the caller; validation never starts a process
        if track.duration_seconds is None:
            raise ValidationError(
                f"Duration unknown for {track.source.name}",
                ValidationCode.MISSING_SOURCE,
            )
        durations.append(track.duration_seconds)

    total = sum(durations) + sum(t.pregap_seconds for t in params.tracks)
    limit = params.cd_type.max_seconds
    log.info(
        f"{len(params.tracks)} tracks, {duration_to_timestamp(total)} "
        f"of {duration_to_timestamp(limit)}"
    )
    if total > limit and not params.overburn:
        raise ValidationError(
            f"Total duration {duration_to_timestamp(total)} exceeds "
            f"{params.cd_type}-minute CD capacity",
            ValidationCode.CAPACITY_EXCEEDED,
        )

    run.artifacts["durations"] = durations
    _require_space(run, int(total * CD_AUDIO_BYTES_PER_SECOND))


def _validate_burn_data(run: PipelineRun, params: BurnDataParams) -> None:
    if not params.files:
        raise ValidationError("No files selected", ValidationCode.NO_INPUT)
    for path in params.files:
        if not path.exists():
            raise ValidationError(
                f"File not found: {path}", ValidationCode.MISSING_SOURCE
            )

    total = sum(path_size(p) for p in params.files)
    capacity = params.capacity_bytes or DEFAULT_CAPACITY_BYTES[params.media]
    log.info(f"{len(params.files)} items, {total:,} of {capacity:,} bytes")
    if total > capacity and not params.overburn:
        raise ValidationError(
            f"Total size {total / 1024 / 1024:.0f} MB exceeds "
            f"disc capacity {capacity / 1024 / 1024:.0f} MB",
            ValidationCode.CAPACITY_EXCEEDED,
        )
    run.artifacts["total_bytes"] = total
    _require_space(run, total)


def _image_bytes(media: MediaKind, expected: int | None) -> int:
    if expected:
        return expected
    if media == MediaKind.CD:
        return CD_READ_BYTES
    return DEFAULT_CAPACITY_BYTES[media]


def _validate_copy(run: PipelineRun, params: CopyParams) -> None:
    _require_space(run, _image_bytes(params.media, params.expected_bytes))


def _validate_read_image(run: PipelineRun, params: ReadImageParams) -> None:
    dest = params.destination
    if not dest.parent.is_dir():
        raise ValidationError(
            f"Output directory does not exist: {dest.parent}",
            ValidationCode.INVALID_OUTPUT,
        )
    if dest.exists():
        raise ValidationError(
            f"Output file already exists: {dest}", ValidationCode.INVALID_OUTPUT
        )
    _require_space(run, _image_bytes(params.media, params.expected_bytes))


def _validate_extract(run: PipelineRun, params: ExtractParams) -> None:
    if not params.output_dir.is_dir():
        raise ValidationError(
            f"Output directory does not exist: {params.output_dir}",
            ValidationCode.INVALID_OUTPUT,
        )
    if params.tracks is not None:
        if not params.tracks:
            raise ValidationError("No tracks selected", ValidationCode.NO_INPUT)
        if any(n < 1 for n in params.tracks):
            raise ValidationError(
                "Track numbers start at 1", ValidationCode.NO_INPUT
            )
    _require_space(run, CD_READ_BYTES)


def _validate_erase(run: PipelineRun, params: EraseParams) -> None:
    if not params.media_type.is_rewritable:
        raise ValidationError(
            f"{params.media_type} media cannot be erased",
            ValidationCode.UNSUPPORTED_MEDIA,
        )


def _validate_convert(run: PipelineRun, params: ConvertParams) -> None:
    if not params.tracks:
        raise ValidationError("No audio files selected", ValidationCode.NO_INPUT)
    if not params.output_dir.is_dir():
        raise ValidationError(
            f"Output directory does not exist: {params.output_dir}",
            ValidationCode.INVALID_OUTPUT,
        )

    names: set[str] = set()
    for track in params.tracks:
        if not track.source.is_file():
            raise ValidationError(
                f"Audio file not found: {track.source}", ValidationCode.MISSING_SOURCE
            )
        name = converted_filename(track.source, params.format.extension)
        if name.lower() in names:
            raise ValidationError(
                f"Two files would both be written as {name}",
                ValidationCode.INVALID_OUTPUT,
            )
        names.add(name.lower())
        if (params.output_dir / name).exists():
            raise ValidationError(
                f"Output file already exists: {params.output_dir / name}",
                ValidationCode.INVALID_OUTPUT,
            )

    # Uncompressed PCM is the upper bound for every output format
    known = sum(t.duration_seconds or 0.0 for t in params.tracks)
    log.info(f"{len(params.tracks)} files -> {params.format} in {params.output_dir}")
    _require_space(run, int(known * CD_AUDIO_BYTES_PER_SECOND))


_VALIDATORS = {
    BurnImageParams: _validate_burn_image,
    BurnAudioParams: _validate_burn_audio,
    BurnDataParams: _validate_burn_data,
    CopyParams: _validate_copy,
    ReadImageParams: _validate_read_image,
    ExtractParams: _validate_extract,
    EraseParams: _validate_erase,
    ConvertParams: _validate_convert,
}


def run(pipeline_run: PipelineRun) -> None:
    """Validate stage -- raises ValidationError on the first problem found."""
    params = pipeline_run.params
    if not all(params.devices):
        raise ValidationError("No drive selected", ValidationCode.MISSING_DEVICE)
    _VALIDATORS[type(params)](pipeline_run, params)
    log.debug(f"{pipeline_run.operation} parameters valid")
