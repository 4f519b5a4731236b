"""Operation parameters -- one frozen dataclass per pipeline operation."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import ClassVar

from .models import (
    AudioFormat,
    BlankMode,
    CDType,
    ImageType,
    MediaKind,
    MediaType,
    OperationKind,
)


@dataclass(frozen=True)
class CDText:
    """Disc-level CD-TEXT fields."""

    title: str = ""
    performer: str = ""
    songwriter: str = ""
    composer: str = ""
    arranger: str = ""
    message: str = ""
    upc_ean: str = ""

    @property
    def is_empty(self) -> bool:
        return not any(
            (
                self.title,
                self.performer,
                self.songwriter,
                self.composer,
                self.arranger,
                self.message,
            )
        )


@dataclass(frozen=True)
class AudioTrackSpec:
    """One track of an audio CD.

    ``duration_seconds`` is required before a burn validates; callers read it
    (see ``probe.get_duration``) when the track is added.
    """

    source: Path
    title: str = ""
    performer: str = ""
    songwriter: str = ""
    composer: str = ""
    arranger: str = ""
    message: str = ""
    isrc: str = ""
    pregap_seconds: float = 0.0
    duration_seconds: float | None = None

    @property
    def has_cd_text(self) -> bool:
        return any(
            (
                self.title,
                self.performer,
                self.songwriter,
                self.composer,
                self.arranger,
                self.message,
            )
        )


@dataclass(frozen=True)
class BurnImageParams:
    operation: ClassVar[OperationKind] = OperationKind.BURN_IMAGE

    image: Path
    device: str
    speed: int | None = None
    simulate: bool = False
    eject: bool = True
    overburn: bool = False
    raw_mode: bool = False
    swap_audio: bool = False
    dvd_compat: bool = True

    @property
    def image_type(self) -> ImageType | None:
        return ImageType.from_suffix(self.image.suffix)

    @property
    def devices(self) -> tuple[str, ...]:
        return (self.device,)


@dataclass(frozen=True)
class BurnAudioParams:
    operation: ClassVar[OperationKind] = OperationKind.BURN_AUDIO

    tracks: list[AudioTrackSpec]
    device: str
    cd_type: CDType = CDType.CD_80
    cd_text: CDText = field(default_factory=CDText)
    speed: int | None = None
    simulate: bool = False
    eject: bool = True
    overburn: bool = False
    swap_audio: bool = False

    @property
    def devices(self) -> tuple[str, ...]:
        return (self.device,)


@dataclass(frozen=True)
class BurnDataParams:
    operation: ClassVar[OperationKind] = OperationKind.BURN_DATA

    files: list[Path]
    device: str
    media: MediaKind = MediaKind.DVD
    volume_label: str = "DATA_DISC"
    capacity_bytes: int | None = None
    speed: int | None = None
    simulate: bool = False
    eject: bool = True
    overburn: bool = False
    joliet: bool = True
    rock_ridge: bool = True

    @property
    def devices(self) -> tuple[str, ...]:
        return (self.device,)


@dataclass(frozen=True)
class CopyParams:
    operation: ClassVar[OperationKind] = OperationKind.COPY

    source_device: str
    device: str
    media: MediaKind = MediaKind.CD
    expected_bytes: int | None = None
    speed: int | None = None
    simulate: bool = False
    eject: bool = True

    @property
    def devices(self) -> tuple[str, ...]:
        if self.source_device == self.device:
            return (self.device,)
        return (self.source_device, self.device)


@dataclass(frozen=True)
class ReadImageParams:
    operation: ClassVar[OperationKind] = OperationKind.READ_IMAGE

    device: str
    destination: Path
    media: MediaKind = MediaKind.CD
    expected_bytes: int | None = None

    @property
    def devices(self) -> tuple[str, ...]:
        return (self.device,)


@dataclass(frozen=True)
class ExtractParams:
    operation: ClassVar[OperationKind] = OperationKind.EXTRACT

    device: str
    output_dir: Path
    tracks: list[int] | None = None
    format: AudioFormat = AudioFormat.WAV
    mp3_bitrate: int = 320
    name_prefix: str = "Track"

    @property
    def devices(self) -> tuple[str, ...]:
        return (self.device,)


@dataclass(frozen=True)
class EraseParams:
    operation: ClassVar[OperationKind] = OperationKind.ERASE

    device: str
    media_type: MediaType = MediaType.CD_RW
    blank_mode: BlankMode = BlankMode.FULL
    eject: bool = True
    speed: int | None = None

    @property
    def devices(self) -> tuple[str, ...]:
        return (self.device,)


@dataclass(frozen=True)
class ConvertParams:
    """Convert audio files into ``output_dir`` without touching a drive.

    WAV output is CD-quality (44.1 kHz, 16-bit, stereo). Track durations only
    drive progress reporting and may be left unset.
    """

    operation: ClassVar[OperationKind] = OperationKind.CONVERT

    tracks: list[AudioTrackSpec]
    output_dir: Path
    format: AudioFormat = AudioFormat.WAV
    mp3_bitrate: int = 320

    @property
    def devices(self) -> tuple[str, ...]:
        return ()


OperationParams = (
    BurnImageParams
    | BurnAudioParams
    | BurnDataParams
    | CopyParams
    | ReadImageParams
    | ExtractParams
    | EraseParams
    | ConvertParams
)

SIMULATION_OPERATIONS = (BurnImageParams, BurnAudioParams, BurnDataParams, CopyParams)


def is_simulation(params: OperationParams) -> bool:
    return isinstance(params, SIMULATION_OPERATIONS) and params.simulate
