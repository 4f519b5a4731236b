"""Core enums, constants, and value types for the disc pipeline.

Enums:
    OperationKind -- Top-level pipeline operation (burn-image, burn-audio, ...).
    Stage         -- Individual pipeline stage (validate through cleanup).
    PhaseKind     -- Discriminant of the user-visible pipeline phase.
    EventKind     -- Discriminant of a parsed tool output event.
    Tool          -- External command-line tools driven by the pipeline.
    MediaKind     -- Disc family (cd, dvd, bluray).
    MediaType     -- Concrete media type, used for erase and capacity checks.
    ImageType     -- Disc image formats accepted by burn-image.
    BlankMode     -- cdrdao blanking mode (full, minimal).
    AudioFormat   -- Output format for extracted audio tracks.
    CDType        -- Audio CD length (74 or 80 minutes).

Value types:
    Phase         -- Tagged phase value (kind + optional track / failure reason).
    OutputEvent   -- Tagged event value produced by the tool output parsers.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class OperationKind(StrEnum):
    BURN_IMAGE = "burn-image"
    BURN_AUDIO = "burn-audio"
    BURN_DATA = "burn-data"
    COPY = "copy"
    READ_IMAGE = "read-image"
    EXTRACT = "extract"
    ERASE = "erase"
    CONVERT = "convert"


class Stage(StrEnum):
    VALIDATE = "validate"
    STAGE_FILES = "stage-files"
    CONVERT = "convert"
    GENERATE_TOC = "generate-toc"
    MASTER = "master"
    READ = "read"
    WRITE = "write"
    BLANK = "blank"
    EXTRACT_TRACKS = "extract-tracks"
    CLEANUP = "cleanup"


# Which stages run for each operation
STAGE_ORDER: dict[OperationKind, list[Stage]] = {
    OperationKind.BURN_IMAGE: [
        Stage.VALIDATE,
        Stage.STAGE_FILES,
        Stage.WRITE,
        Stage.CLEANUP,
    ],
    OperationKind.BURN_AUDIO: [
        Stage.VALIDATE,
        Stage.CONVERT,
        Stage.GENERATE_TOC,
        Stage.WRITE,
        Stage.CLEANUP,
    ],
    OperationKind.BURN_DATA: [
        Stage.VALIDATE,
        Stage.STAGE_FILES,
        Stage.MASTER,
        Stage.WRITE,
        Stage.CLEANUP,
    ],
    OperationKind.COPY: [
        Stage.VALIDATE,
        Stage.READ,
        Stage.WRITE,
        Stage.CLEANUP,
    ],
    OperationKind.READ_IMAGE: [
        Stage.VALIDATE,
        Stage.READ,
        Stage.CLEANUP,
    ],
    OperationKind.EXTRACT: [
        Stage.VALIDATE,
        Stage.READ,
        Stage.EXTRACT_TRACKS,
        Stage.CLEANUP,
    ],
    OperationKind.ERASE: [
        Stage.VALIDATE,
        Stage.BLANK,
        Stage.CLEANUP,
    ],
    OperationKind.CONVERT: [
        Stage.VALIDATE,
        Stage.CONVERT,
        Stage.CLEANUP,
    ],
}


class PhaseKind(StrEnum):
    IDLE = "idle"
    PREPARING = "preparing"
    STAGING = "staging"
    CONVERTING = "converting"
    GENERATING_TOC = "generating-toc"
    MASTERING = "mastering"
    READING = "reading"
    STARTING = "starting"
    PAUSING = "pausing"
    BLANKING = "blanking"
    CALIBRATING = "calibrating"
    WRITING_LEAD_IN = "writing-lead-in"
    WRITING_TRACK = "writing-track"
    WRITING_LEAD_OUT = "writing-lead-out"
    FLUSHING = "flushing"
    EXTRACTING = "extracting"
    CLEANING_UP = "cleaning-up"
    CANCELLING = "cancelling"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_PHASES: frozenset[PhaseKind] = frozenset(
    {PhaseKind.COMPLETED, PhaseKind.FAILED}
)

# Phases a disc writer walks through, in the order cdrdao reports them
WRITE_PHASES: tuple[PhaseKind, ...] = (
    PhaseKind.STARTING,
    PhaseKind.PAUSING,
    PhaseKind.BLANKING,
    PhaseKind.CALIBRATING,
    PhaseKind.WRITING_LEAD_IN,
    PhaseKind.WRITING_TRACK,
    PhaseKind.WRITING_LEAD_OUT,
    PhaseKind.FLUSHING,
)

# Phase entered when a stage begins
STAGE_PHASES: dict[Stage, PhaseKind] = {
    Stage.VALIDATE: PhaseKind.PREPARING,
    Stage.STAGE_FILES: PhaseKind.STAGING,
    Stage.CONVERT: PhaseKind.CONVERTING,
    Stage.GENERATE_TOC: PhaseKind.GENERATING_TOC,
    Stage.MASTER: PhaseKind.MASTERING,
    Stage.READ: PhaseKind.READING,
    Stage.WRITE: PhaseKind.STARTING,
    Stage.BLANK: PhaseKind.BLANKING,
    Stage.EXTRACT_TRACKS: PhaseKind.EXTRACTING,
    Stage.CLEANUP: PhaseKind.CLEANING_UP,
}


def phase_order(operation: OperationKind) -> tuple[PhaseKind, ...]:
    """Return the forward order of active phases for an operation.

    The write stage expands into the full writer sequence; the blank stage
    uses the writer sequence too since cdrdao reports the same markers while
    erasing.
    """
    order: list[PhaseKind] = [PhaseKind.IDLE]
    for stage in STAGE_ORDER[operation]:
        if stage in (Stage.WRITE, Stage.BLANK):
            order.extend(WRITE_PHASES)
        else:
            order.append(STAGE_PHASES[stage])
    return tuple(order)


class EventKind(StrEnum):
    PHASE_CHANGED = "phase-changed"
    PROGRESS = "progress"
    BUFFER_STATS = "buffer-stats"
    TRACK_CHANGED = "track-changed"
    SPEED_NEGOTIATED = "speed-negotiated"
    WARNING = "warning"
    TOOL_ERROR = "tool-error"


class Tool(StrEnum):
    CDRDAO = "cdrdao"
    GROWISOFS = "growisofs"
    DVD_RW_FORMAT = "dvd+rw-format"
    MKISOFS = "mkisofs"
    XORRISO = "xorriso"
    FFMPEG = "ffmpeg"
    DD = "dd"


class MediaKind(StrEnum):
    CD = "cd"
    DVD = "dvd"
    BLURAY = "bluray"


class MediaType(StrEnum):
    CD_R = "cd-r"
    CD_RW = "cd-rw"
    DVD_PLUS_R = "dvd+r"
    DVD_PLUS_RW = "dvd+rw"
    DVD_MINUS_R = "dvd-r"
    DVD_MINUS_RW = "dvd-rw"
    DVD_RAM = "dvd-ram"
    BD_R = "bd-r"
    BD_RE = "bd-re"

    @property
    def kind(self) -> MediaKind:
        if self in (MediaType.CD_R, MediaType.CD_RW):
            return MediaKind.CD
        if self in (MediaType.BD_R, MediaType.BD_RE):
            return MediaKind.BLURAY
        return MediaKind.DVD

    @property
    def is_rewritable(self) -> bool:
        return self in (
            MediaType.CD_RW,
            MediaType.DVD_PLUS_RW,
            MediaType.DVD_MINUS_RW,
            MediaType.DVD_RAM,
            MediaType.BD_RE,
        )


class ImageType(StrEnum):
    CUE_BIN = "cue"
    TOC = "toc"
    ISO = "iso"
    NRG = "nrg"
    IMG = "img"

    @classmethod
    def from_suffix(cls, suffix: str) -> ImageType | None:
        """Map a file suffix (with or without dot) to an image type."""
        value = suffix.lower().lstrip(".")
        if value == "bin":
            return cls.IMG
        try:
            return cls(value)
        except ValueError:
            return None

    @property
    def uses_cdrdao(self) -> bool:
        """Cue/bin and TOC images carry a track layout and go through cdrdao."""
        return self in (ImageType.CUE_BIN, ImageType.TOC)


class BlankMode(StrEnum):
    FULL = "full"
    MINIMAL = "minimal"


class AudioFormat(StrEnum):
    WAV = "wav"
    MP3 = "mp3"
    FLAC = "flac"
    AAC = "aac"

    @property
    def extension(self) -> str:
        return "m4a" if self == AudioFormat.AAC else self.value


class CDType(StrEnum):
    CD_74 = "74"
    CD_80 = "80"

    @property
    def max_seconds(self) -> int:
        return CD_74_MAX_SECONDS if self == CDType.CD_74 else CD_80_MAX_SECONDS


# -- CD-DA geometry --
CD_SECTORS_PER_SECOND = 75
CD_AUDIO_BYTES_PER_SECOND = 176_400
CD_74_MAX_SECONDS = 74 * 60
CD_80_MAX_SECONDS = 80 * 60

# -- Data capacities in bytes --
CD_700_BYTES = 734_003_200
DVD_SL_BYTES = 4_700_372_992
BD_SL_BYTES = 25_025_314_816

DEFAULT_CAPACITY_BYTES: dict[MediaKind, int] = {
    MediaKind.CD: CD_700_BYTES,
    MediaKind.DVD: DVD_SL_BYTES,
    MediaKind.BLURAY: BD_SL_BYTES,
}

CANCELLED_REASON = "Cancelled by user"


@dataclass(frozen=True)
class Phase:
    """A pipeline phase.

    ``track`` is set only for WRITING_TRACK, ``reason`` only for FAILED.
    """

    kind: PhaseKind
    track: int | None = None
    reason: str | None = None

    @classmethod
    def writing_track(cls, track: int) -> Phase:
        return cls(PhaseKind.WRITING_TRACK, track=track)

    @classmethod
    def failed(cls, reason: str) -> Phase:
        return cls(PhaseKind.FAILED, reason=reason or "Unknown error")

    @property
    def is_terminal(self) -> bool:
        return self.kind in TERMINAL_PHASES

    @property
    def is_active(self) -> bool:
        return self.kind != PhaseKind.IDLE and not self.is_terminal

    @property
    def is_cancelled(self) -> bool:
        return self.kind == PhaseKind.FAILED and self.reason == CANCELLED_REASON

    def __str__(self) -> str:
        if self.kind == PhaseKind.WRITING_TRACK:
            return f"writing track {self.track}"
        if self.kind == PhaseKind.FAILED:
            return f"failed: {self.reason}"
        return self.kind.value.replace("-", " ")


IDLE = Phase(PhaseKind.IDLE)


@dataclass(frozen=True)
class OutputEvent:
    """A typed event parsed from one line of tool output.

    Only the payload fields belonging to ``kind`` are set.
    """

    kind: EventKind
    phase: Phase | None = None
    current: float | None = None
    total: float | None = None
    unit: str | None = None
    fifo: int | None = None
    drive: int | None = None
    track: int | None = None
    speed: str | None = None
    simulation: bool | None = None
    text: str | None = None

    @classmethod
    def phase_changed(cls, phase: Phase) -> OutputEvent:
        return cls(EventKind.PHASE_CHANGED, phase=phase)

    @classmethod
    def progress(cls, current: float, total: float, unit: str = "MB") -> OutputEvent:
        return cls(EventKind.PROGRESS, current=current, total=total, unit=unit)

    @classmethod
    def buffer_stats(cls, fifo: int, drive: int) -> OutputEvent:
        return cls(EventKind.BUFFER_STATS, fifo=fifo, drive=drive)

    @classmethod
    def track_changed(cls, track: int) -> OutputEvent:
        return cls(EventKind.TRACK_CHANGED, track=track)

    @classmethod
    def speed_negotiated(
        cls, speed: str, simulation: bool | None = None
    ) -> OutputEvent:
        return cls(EventKind.SPEED_NEGOTIATED, speed=speed, simulation=simulation)

    @classmethod
    def warning(cls, text: str) -> OutputEvent:
        return cls(EventKind.WARNING, text=text)

    @classmethod
    def tool_error(cls, text: str) -> OutputEvent:
        return cls(EventKind.TOOL_ERROR, text=text)
