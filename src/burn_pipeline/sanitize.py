"""Filename and volume label sanitization."""

import re
from pathlib import Path

from loguru import logger

log = logger.bind(stage="sanitize")

MAX_NAME_BYTES = 255
MAX_VOLUME_LABEL = 32


def sanitize_filename(filename: str) -> str:
    """Sanitize a filename component (not a full path).

    Replaces unsafe chars with underscores, strips leading/trailing dots and
    underscores, collapses repeats, truncates to 255 bytes keeping the
    extension.
    """
    sanitized = re.sub(r'[/\\:"*?<>|;\x00-\x1f]+', "_", filename)
    sanitized = re.sub(r"^[._ ]+|[._ ]+$", "", sanitized)
    sanitized = re.sub(r"__+", "_", sanitized)

    if len(sanitized.encode("utf-8")) > MAX_NAME_BYTES:
        ext = Path(sanitized).suffix
        stem = sanitized[: -len(ext)] if ext else sanitized
        while len((stem + ext).encode("utf-8")) > MAX_NAME_BYTES and stem:
            stem = stem[:-1]
        log.debug(f"Truncated long filename to '{stem + ext}'")
        sanitized = stem + ext

    return sanitized


def track_filename(number: int, extension: str, prefix: str = "Track") -> str:
    """Name for an extracted track: "Track 03.flac"."""
    base = sanitize_filename(prefix) or "Track"
    return f"{base} {number:02d}.{extension}"


def converted_filename(source: Path, extension: str) -> str:
    """Name for a converted file: the source stem with the new extension."""
    return f"{sanitize_filename(source.stem) or 'audio'}.{extension}"


def sanitize_volume_label(label: str) -> str:
    """ISO9660 volume id: uppercase A-Z, 0-9 and underscore, 32 chars max."""
    cleaned = re.sub(r"[^A-Z0-9_]+", "_", label.upper()).strip("_")
    return cleaned[:MAX_VOLUME_LABEL] or "DISC"
