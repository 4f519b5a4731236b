"""Exception hierarchy and typed tool error classification.

Every external tool has a closed set of error kinds, each with a stable
numeric code and a user-facing message. ``classify()`` maps a tool's exit code
and captured output onto one of them:

1. negative exit codes come from the executor, not the tool;
2. the tool's ordered pattern table is searched (case-insensitive substring,
   first match wins);
3. exit codes >= 128 mean the tool died from signal ``code - 128``;
4. anything else is a generic error naming the tool and the exit code.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from .models import Tool


class PipelineError(Exception):
    """Base exception for all pipeline errors."""


class ConfigError(PipelineError):
    """Invalid or missing configuration."""


class ValidationCode(StrEnum):
    NO_INPUT = "no-input"
    MISSING_SOURCE = "missing-source"
    MISSING_DEVICE = "missing-device"
    CAPACITY_EXCEEDED = "capacity-exceeded"
    UNSUPPORTED_MEDIA = "unsupported-media"
    UNSUPPORTED_IMAGE = "unsupported-image"
    INVALID_OUTPUT = "invalid-output"
    INSUFFICIENT_SPACE = "insufficient-space"


class ValidationError(PipelineError):
    """Operation parameters were rejected before any tool ran."""

    def __init__(self, message: str, code: ValidationCode) -> None:
        super().__init__(message)
        self.code = code


class DeviceBusyError(PipelineError):
    """Another run already holds the device."""

    def __init__(self, device: str) -> None:
        super().__init__(f"Device {device} is busy with another operation")
        self.device = device


class InfrastructureError(PipelineError):
    """Temp directory, log file, or other local resource failure."""


class PipelineCancelled(PipelineError):
    """The run's cancellation token was triggered."""


class ToolFailure(PipelineError):
    """An external tool exited unsuccessfully."""

    def __init__(self, error: ToolError) -> None:
        super().__init__(error.message)
        self.error = error


# -- Per-tool error kinds --


class ExecutorErrorKind(StrEnum):
    INVALID_TOOL_PATH = "invalid-tool-path"
    INVALID_ARGUMENTS = "invalid-arguments"
    INVALID_WORKING_DIRECTORY = "invalid-working-directory"
    INVALID_LOG_PATH = "invalid-log-path"
    LAUNCH_FAILED = "launch-failed"
    EXECUTOR_FAILED = "executor-failed"


class CdrdaoErrorKind(StrEnum):
    DEVICE_NOT_FOUND = "device-not-found"
    NO_DISC = "no-disc"
    DISC_NOT_EMPTY = "disc-not-empty"
    CANNOT_READ_DISC = "cannot-read-disc"
    WRITE_ERROR = "write-error"
    BUFFER_UNDERRUN = "buffer-underrun"
    INCOMPATIBLE_MEDIUM = "incompatible-medium"
    TOC_NOT_FOUND = "toc-not-found"
    TOC_INVALID = "toc-invalid"
    BLANK_FAILED = "blank-failed"
    SCSI_ERROR = "scsi-error"
    CAPACITY_EXCEEDED = "capacity-exceeded"
    DEVICE_SETUP_FAILED = "device-setup-failed"
    SIGNALED = "signaled"
    GENERIC = "generic"


class GrowisofsErrorKind(StrEnum):
    NO_MEDIA = "no-media"
    MEDIA_NOT_BLANK = "media-not-blank"
    NOT_APPENDABLE = "not-appendable"
    UNSUPPORTED_MEDIA = "unsupported-media"
    DEVICE_ERROR = "device-error"
    WRITE_FAILED = "write-failed"
    NO_FREE_SPACE = "no-free-space"
    SIGNALED = "signaled"
    GENERIC = "generic"


class DvdRwFormatErrorKind(StrEnum):
    NOT_DVD = "not-dvd"
    ALREADY_FORMATTED = "already-formatted"
    FORMAT_FAILED = "format-failed"
    CANNOT_PROCEED = "cannot-proceed"
    SIGNALED = "signaled"
    GENERIC = "generic"


class FfmpegErrorKind(StrEnum):
    FILE_NOT_FOUND = "file-not-found"
    INVALID_DATA = "invalid-data"
    CODEC_NOT_FOUND = "codec-not-found"
    OUTPUT_EXISTS = "output-exists"
    PERMISSION_DENIED = "permission-denied"
    UNSUPPORTED_FORMAT = "unsupported-format"
    SIGNALED = "signaled"
    GENERIC = "generic"


class MkisofsErrorKind(StrEnum):
    FILE_NOT_FOUND = "file-not-found"
    NO_SPACE = "no-space"
    INVALID_LABEL = "invalid-label"
    PERMISSION_DENIED = "permission-denied"
    SIGNALED = "signaled"
    GENERIC = "generic"


class XorrisoErrorKind(StrEnum):
    NO_MEDIA = "no-media"
    MEDIA_NOT_BLANK = "media-not-blank"
    DEVICE_BUSY = "device-busy"
    IMAGE_TOO_LARGE = "image-too-large"
    WRITE_FAILED = "write-failed"
    SIGNALED = "signaled"
    GENERIC = "generic"


class DdErrorKind(StrEnum):
    NO_MEDIA = "no-media"
    READ_ERROR = "read-error"
    NO_SPACE = "no-space"
    PERMISSION_DENIED = "permission-denied"
    SIGNALED = "signaled"
    GENERIC = "generic"


@dataclass(frozen=True)
class ToolError:
    """A classified tool failure."""

    tool: Tool
    kind: StrEnum
    code: int
    message: str
    exit_code: int
    signal: int | None = None
    detail: str = ""


@dataclass(frozen=True)
class ErrorTable:
    """Ordered pattern table and code/message catalogue for one tool."""

    tool: Tool
    kinds: type[StrEnum]
    patterns: tuple[tuple[str, StrEnum], ...]
    codes: dict[StrEnum, int] = field(default_factory=dict)
    messages: dict[StrEnum, str] = field(default_factory=dict)

    def match(self, text: str) -> StrEnum | None:
        lowered = text.lower()
        for pattern, kind in self.patterns:
            if pattern.lower() in lowered:
                return kind
        return None


_C = CdrdaoErrorKind
CDRDAO_ERRORS = ErrorTable(
    tool=Tool.CDRDAO,
    kinds=CdrdaoErrorKind,
    patterns=(
        ("Cannot open SCSI", _C.DEVICE_NOT_FOUND),
        ("No disk in drive", _C.NO_DISC),
        ("Medium not present", _C.NO_DISC),
        ("Disk is not empty", _C.DISC_NOT_EMPTY),
        ("Cannot determine disk", _C.CANNOT_READ_DISC),
        ("Write data failed", _C.WRITE_ERROR),
        ("Write error", _C.WRITE_ERROR),
        ("Buffer under run", _C.BUFFER_UNDERRUN),
        ("Incompatible medium", _C.INCOMPATIBLE_MEDIUM),
        ("Cannot open toc", _C.TOC_NOT_FOUND),
        ("Could not open input file", _C.TOC_NOT_FOUND),
        ("Illegal toc", _C.TOC_INVALID),
        ("Illegal cue", _C.TOC_INVALID),
        ("Syntax error", _C.TOC_INVALID),
        ("Blanking failed", _C.BLANK_FAILED),
        ("SCSI command failed", _C.SCSI_ERROR),
        ("exceeds", _C.CAPACITY_EXCEEDED),
        ("Cannot setup device", _C.DEVICE_SETUP_FAILED),
        ("giving up", _C.DEVICE_SETUP_FAILED),
    ),
    codes={
        _C.DEVICE_NOT_FOUND: 10,
        _C.NO_DISC: 11,
        _C.DISC_NOT_EMPTY: 12,
        _C.CANNOT_READ_DISC: 13,
        _C.WRITE_ERROR: 14,
        _C.BUFFER_UNDERRUN: 15,
        _C.INCOMPATIBLE_MEDIUM: 16,
        _C.TOC_NOT_FOUND: 17,
        _C.TOC_INVALID: 18,
        _C.BLANK_FAILED: 19,
        _C.SCSI_ERROR: 20,
        _C.CAPACITY_EXCEEDED: 21,
        _C.DEVICE_SETUP_FAILED: 22,
    },
    messages={
        _C.DEVICE_NOT_FOUND: "Drive not found.",
        _C.NO_DISC: "No disc in the drive.",
        _C.DISC_NOT_EMPTY: "Disc is not empty.",
        _C.CANNOT_READ_DISC: "Unable to read disc.",
        _C.WRITE_ERROR: "Write error.",
        _C.BUFFER_UNDERRUN: "Buffer underrun, try a lower speed.",
        _C.INCOMPATIBLE_MEDIUM: "Incompatible media for this drive.",
        _C.TOC_NOT_FOUND: "TOC file not found.",
        _C.TOC_INVALID: "Invalid TOC file.",
        _C.BLANK_FAILED: "Disc erase failed.",
        _C.SCSI_ERROR: "SCSI communication error.",
        _C.CAPACITY_EXCEEDED: "Total duration exceeds disc capacity.",
        _C.DEVICE_SETUP_FAILED: (
            "Unable to initialize drive. Unplug and reconnect the drive."
        ),
    },
)

_G = GrowisofsErrorKind
GROWISOFS_ERRORS = ErrorTable(
    tool=Tool.GROWISOFS,
    kinds=GrowisofsErrorKind,
    patterns=(
        ("no media present", _G.NO_MEDIA),
        ("media is not blank", _G.MEDIA_NOT_BLANK),
        ("media is not appendable", _G.NOT_APPENDABLE),
        ("unsupported media", _G.UNSUPPORTED_MEDIA),
        ("unable to open", _G.DEVICE_ERROR),
        ("write failed", _G.WRITE_FAILED),
        ("no free space", _G.NO_FREE_SPACE),
    ),
    codes={
        _G.NO_MEDIA: 10,
        _G.MEDIA_NOT_BLANK: 11,
        _G.NOT_APPENDABLE: 12,
        _G.UNSUPPORTED_MEDIA: 13,
        _G.DEVICE_ERROR: 14,
        _G.WRITE_FAILED: 15,
        _G.NO_FREE_SPACE: 16,
    },
    messages={
        _G.NO_MEDIA: "No disc in the drive.",
        _G.MEDIA_NOT_BLANK: "Disc is not blank.",
        _G.NOT_APPENDABLE: "Disc cannot be appended to.",
        _G.UNSUPPORTED_MEDIA: "Unsupported media type.",
        _G.DEVICE_ERROR: "Unable to access the drive.",
        _G.WRITE_FAILED: "Write failed.",
        _G.NO_FREE_SPACE: "Not enough space on the disc.",
    },
)

_D = DvdRwFormatErrorKind
DVD_RW_FORMAT_ERRORS = ErrorTable(
    tool=Tool.DVD_RW_FORMAT,
    kinds=DvdRwFormatErrorKind,
    patterns=(
        ("not a dvd", _D.NOT_DVD),
        ("already formatted", _D.ALREADY_FORMATTED),
        ("format failed", _D.FORMAT_FAILED),
        ("unable to proceed", _D.CANNOT_PROCEED),
    ),
    codes={
        _D.NOT_DVD: 10,
        _D.ALREADY_FORMATTED: 11,
        _D.FORMAT_FAILED: 12,
        _D.CANNOT_PROCEED: 13,
    },
    messages={
        _D.NOT_DVD: "Media is not a DVD or BD.",
        _D.ALREADY_FORMATTED: "Media is already formatted.",
        _D.FORMAT_FAILED: "Format failed.",
        _D.CANNOT_PROCEED: "Unable to proceed with formatting.",
    },
)

_F = FfmpegErrorKind
FFMPEG_ERRORS = ErrorTable(
    tool=Tool.FFMPEG,
    kinds=FfmpegErrorKind,
    patterns=(
        ("no such file or directory", _F.FILE_NOT_FOUND),
        ("invalid data found", _F.INVALID_DATA),
        ("unknown encoder", _F.CODEC_NOT_FOUND),
        ("unknown decoder", _F.CODEC_NOT_FOUND),
        ("already exists", _F.OUTPUT_EXISTS),
        ("permission denied", _F.PERMISSION_DENIED),
        ("not supported", _F.UNSUPPORTED_FORMAT),
    ),
    codes={
        _F.FILE_NOT_FOUND: 10,
        _F.INVALID_DATA: 11,
        _F.CODEC_NOT_FOUND: 12,
        _F.OUTPUT_EXISTS: 13,
        _F.PERMISSION_DENIED: 14,
        _F.UNSUPPORTED_FORMAT: 15,
    },
    messages={
        _F.FILE_NOT_FOUND: "Audio file not found.",
        _F.INVALID_DATA: "Invalid or corrupt audio file.",
        _F.CODEC_NOT_FOUND: "Audio codec not available.",
        _F.OUTPUT_EXISTS: "Output file already exists.",
        _F.PERMISSION_DENIED: "Permission denied.",
        _F.UNSUPPORTED_FORMAT: "Unsupported audio format.",
    },
)

_M = MkisofsErrorKind
MKISOFS_ERRORS = ErrorTable(
    tool=Tool.MKISOFS,
    kinds=MkisofsErrorKind,
    patterns=(
        ("no such file or directory", _M.FILE_NOT_FOUND),
        ("no space left on device", _M.NO_SPACE),
        ("volume id string too long", _M.INVALID_LABEL),
        ("permission denied", _M.PERMISSION_DENIED),
    ),
    codes={
        _M.FILE_NOT_FOUND: 10,
        _M.NO_SPACE: 11,
        _M.INVALID_LABEL: 12,
        _M.PERMISSION_DENIED: 13,
    },
    messages={
        _M.FILE_NOT_FOUND: "Source file not found.",
        _M.NO_SPACE: "Not enough space to build the disc image.",
        _M.INVALID_LABEL: "Volume label is too long.",
        _M.PERMISSION_DENIED: "Permission denied.",
    },
)

_X = XorrisoErrorKind
XORRISO_ERRORS = ErrorTable(
    tool=Tool.XORRISO,
    kinds=XorrisoErrorKind,
    patterns=(
        ("no media", _X.NO_MEDIA),
        ("is not blank", _X.MEDIA_NOT_BLANK),
        ("cannot acquire drive", _X.DEVICE_BUSY),
        ("device or resource busy", _X.DEVICE_BUSY),
        ("image size exceeds", _X.IMAGE_TOO_LARGE),
        ("not enough free space", _X.IMAGE_TOO_LARGE),
        ("write error", _X.WRITE_FAILED),
    ),
    codes={
        _X.NO_MEDIA: 10,
        _X.MEDIA_NOT_BLANK: 11,
        _X.DEVICE_BUSY: 12,
        _X.IMAGE_TOO_LARGE: 13,
        _X.WRITE_FAILED: 14,
    },
    messages={
        _X.NO_MEDIA: "No disc in the drive.",
        _X.MEDIA_NOT_BLANK: "Disc is not blank.",
        _X.DEVICE_BUSY: "Drive is in use by another program.",
        _X.IMAGE_TOO_LARGE: "Image does not fit on the disc.",
        _X.WRITE_FAILED: "Write failed.",
    },
)

_DD = DdErrorKind
DD_ERRORS = ErrorTable(
    tool=Tool.DD,
    kinds=DdErrorKind,
    patterns=(
        ("no medium found", _DD.NO_MEDIA),
        ("device not configured", _DD.NO_MEDIA),
        ("input/output error", _DD.READ_ERROR),
        ("no space left on device", _DD.NO_SPACE),
        ("permission denied", _DD.PERMISSION_DENIED),
    ),
    codes={
        _DD.NO_MEDIA: 10,
        _DD.READ_ERROR: 11,
        _DD.NO_SPACE: 12,
        _DD.PERMISSION_DENIED: 13,
    },
    messages={
        _DD.NO_MEDIA: "No disc in the drive.",
        _DD.READ_ERROR: "Read error, the disc may be damaged.",
        _DD.NO_SPACE: "Not enough space to store the disc image.",
        _DD.PERMISSION_DENIED: "Permission denied.",
    },
)

ERROR_TABLES: dict[Tool, ErrorTable] = {
    table.tool: table
    for table in (
        CDRDAO_ERRORS,
        GROWISOFS_ERRORS,
        DVD_RW_FORMAT_ERRORS,
        FFMPEG_ERRORS,
        MKISOFS_ERRORS,
        XORRISO_ERRORS,
        DD_ERRORS,
    )
}

# Result codes reported by the executor itself
EXECUTOR_ERRORS: dict[int, tuple[ExecutorErrorKind, str]] = {
    -1: (ExecutorErrorKind.INVALID_TOOL_PATH, "Invalid tool path."),
    -2: (ExecutorErrorKind.INVALID_ARGUMENTS, "Invalid tool arguments."),
    -3: (ExecutorErrorKind.INVALID_WORKING_DIRECTORY, "Invalid working directory."),
    -4: (ExecutorErrorKind.INVALID_LOG_PATH, "Invalid log file path."),
    -5: (ExecutorErrorKind.LAUNCH_FAILED, "Failed to launch the tool."),
}

SIGNAL_EXIT_BASE = 128
SIGINT = 2
SIGTERM = 15


def _signal_message(tool: Tool, signal: int) -> str:
    if signal in (SIGINT, SIGTERM):
        return f"{tool} interrupted (signal {signal})."
    return f"{tool} terminated by signal {signal}."


def classify(tool: Tool, exit_code: int, stderr_text: str) -> ToolError:
    """Map an exit code and captured output to a typed tool error.

    Never raises. ``detail`` keeps the last non-empty output line for
    diagnostics.
    """
    detail = next(
        (line.strip() for line in reversed(stderr_text.splitlines()) if line.strip()),
        "",
    )

    if exit_code < 0:
        kind, message = EXECUTOR_ERRORS.get(
            exit_code,
            (ExecutorErrorKind.EXECUTOR_FAILED, f"Executor failed (code {exit_code})."),
        )
        return ToolError(
            tool=tool,
            kind=kind,
            code=exit_code,
            message=message,
            exit_code=exit_code,
            detail=detail,
        )

    table = ERROR_TABLES[tool]
    kind = table.match(stderr_text)
    if kind is not None:
        return ToolError(
            tool=tool,
            kind=kind,
            code=table.codes[kind],
            message=table.messages[kind],
            exit_code=exit_code,
            detail=detail,
        )

    if exit_code >= SIGNAL_EXIT_BASE:
        signal = exit_code - SIGNAL_EXIT_BASE
        return ToolError(
            tool=tool,
            kind=table.kinds("signaled"),
            code=SIGNAL_EXIT_BASE + signal,
            message=_signal_message(tool, signal),
            exit_code=exit_code,
            signal=signal,
            detail=detail,
        )

    return ToolError(
        tool=tool,
        kind=table.kinds("generic"),
        code=1,
        message=f"{tool} error (code {exit_code})",
        exit_code=exit_code,
        detail=detail,
    )
