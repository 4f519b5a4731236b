"""cdrdao TOC and CUE sheet helpers.

generate_toc   -- Build a CD_DA TOC file (with optional CD-TEXT) for cdrdao.
generate_data_toc -- Wrap an ISO image in a CD_ROM TOC.
stage_cue      -- Copy a CUE sheet and its BIN files into a work directory,
                  rewriting FILE directives to bare file names.
parse_toc_tracks -- Read track offsets out of a TOC written by ``cdrdao read-cd``.
"""

from __future__ import annotations

import os
import re
import shutil
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from .errors import ValidationCode, ValidationError
from .models import CD_SECTORS_PER_SECOND
from .params import AudioTrackSpec, CDText

log = logger.bind(stage="descriptors")

CUE_FILE_RE = re.compile(r'^(\s*FILE\s+)(?:"([^"]+)"|(\S+))(\s+.*)?$', re.IGNORECASE)
TOC_FILE_RE = re.compile(
    r'^\s*(?:FILE|AUDIOFILE|DATAFILE)\s+"([^"]+)"\s+(\S+)(?:\s+(\S+))?'
)
TOC_START_RE = re.compile(r"^\s*START\s+(\d+:\d+:\d+)")
MSF_RE = re.compile(r"^(\d+):(\d+):(\d+)$")

# CD-TEXT fields in the order cdrdao documents them
_CD_TEXT_FIELDS = (
    ("title", "TITLE"),
    ("performer", "PERFORMER"),
    ("songwriter", "SONGWRITER"),
    ("composer", "COMPOSER"),
    ("arranger", "ARRANGER"),
    ("message", "MESSAGE"),
)


def escape_toc_string(value: str) -> str:
    """Escape a CD-TEXT value for a TOC file.

    cdrdao treats an empty string as "not defined", so empty values become a
    single space.
    """
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return escaped or " "


def seconds_to_msf(seconds: float) -> str:
    """Format seconds as cdrdao's MM:SS:FF (75 frames per second)."""
    frames = int(round(seconds * CD_SECTORS_PER_SECOND))
    minutes, rem = divmod(frames, 60 * CD_SECTORS_PER_SECOND)
    secs, ff = divmod(rem, CD_SECTORS_PER_SECOND)
    return f"{minutes:02d}:{secs:02d}:{ff:02d}"


def msf_to_seconds(value: str) -> float | None:
    """Parse MM:SS:FF into seconds. A bare integer is a frame count."""
    if value.isdigit():
        return int(value) / CD_SECTORS_PER_SECOND
    m = MSF_RE.match(value)
    if not m:
        return None
    minutes, secs, frames = (int(g) for g in m.groups())
    return minutes * 60 + secs + frames / CD_SECTORS_PER_SECOND


def generate_toc(tracks: list[tuple[str, AudioTrackSpec]], cd_text: CDText) -> str:
    """Build a CD_DA TOC for ``(wav_file_name, track)`` pairs.

    A CD-TEXT field used by the disc or any track is emitted for the disc and
    for every track.
    """
    used = [
        (attr, keyword)
        for attr, keyword in _CD_TEXT_FIELDS
        if getattr(cd_text, attr) or any(getattr(t, attr) for _, t in tracks)
    ]

    lines = ["CD_DA", ""]

    if used:
        lines.append("CD_TEXT {")
        lines.append("  LANGUAGE_MAP { 0 : EN }")
        lines.append("  LANGUAGE 0 {")
        for attr, keyword in used:
            lines.append(f'    {keyword} "{escape_toc_string(getattr(cd_text, attr))}"')
        if cd_text.upc_ean:
            lines.append(f'    UPC_EAN "{escape_toc_string(cd_text.upc_ean)}"')
        lines.append("  }")
        lines.append("}")
        lines.append("")

    for wav_name, track in tracks:
        lines.append("TRACK AUDIO")
        if track.isrc:
            lines.append(f'  ISRC "{track.isrc}"')
        if used:
            lines.append("  CD_TEXT {")
            lines.append("    LANGUAGE 0 {")
            for attr, keyword in used:
                lines.append(
                    f'      {keyword} "{escape_toc_string(getattr(track, attr))}"'
                )
            lines.append("    }")
            lines.append("  }")
        if track.pregap_seconds > 0:
            lines.append(f"  PREGAP {seconds_to_msf(track.pregap_seconds)}")
        lines.append(f'  AUDIOFILE "{escape_toc_string(wav_name)}" 0')
        lines.append("")

    return "\n".join(lines)


def generate_data_toc(image_name: str) -> str:
    """Single MODE1 track TOC for writing an ISO image to CD with cdrdao."""
    return f'CD_ROM\n\nTRACK MODE1\n  DATAFILE "{escape_toc_string(image_name)}"\n'


def cue_referenced_files(cue_text: str) -> list[str]:
    """File names referenced by FILE directives, in order."""
    names = []
    for line in cue_text.splitlines():
        m = CUE_FILE_RE.match(line)
        if m:
            names.append(m.group(2) or m.group(3))
    return names


def rewrite_cue_files(cue_text: str) -> str:
    """Rewrite FILE directives to bare, quoted file names."""
    out = []
    for line in cue_text.splitlines():
        m = CUE_FILE_RE.match(line)
        if m:
            name = (m.group(2) or m.group(3)).replace("\\", "/")
            line = f'{m.group(1)}"{Path(name).name}"{m.group(4) or ""}'
        out.append(line)
    return "\n".join(out) + "\n"


def place_file(source: Path, dest: Path) -> None:
    """Hard-link ``source`` to ``dest``, copying when linking is impossible."""
    try:
        os.link(source, dest)
    except OSError:
        shutil.copy2(source, dest)


def stage_cue(cue_path: Path, dest_dir: Path) -> Path:
    """Stage a CUE sheet and its data files into ``dest_dir``.

    Returns the path of the rewritten CUE sheet.
    Raises ValidationError if a referenced file is missing.
    """
    cue_text = cue_path.read_text(errors="replace")
    names = cue_referenced_files(cue_text)
    if not names:
        raise ValidationError(
            f"CUE sheet references no data files: {cue_path.name}",
            ValidationCode.UNSUPPORTED_IMAGE,
        )

    for name in names:
        ref = Path(name.replace("\\", "/"))
        source = ref if ref.is_absolute() else cue_path.parent / ref
        if not source.is_file():
            raise ValidationError(
                f"File referenced by CUE sheet not found: {name}",
                ValidationCode.MISSING_SOURCE,
            )
        dest = dest_dir / ref.name
        if not dest.exists():
            place_file(source, dest)
            log.debug(f"Staged {source} -> {dest}")

    staged = dest_dir / cue_path.name
    staged.write_text(rewrite_cue_files(cue_text))
    return staged


@dataclass(frozen=True)
class TocTrack:
    """One track of a TOC, located by time offsets into its data file."""

    number: int
    data_file: str
    start_seconds: float
    length_seconds: float
    is_audio: bool = True


def _toc_track(entry: dict) -> TocTrack | None:
    if entry.get("length") is None:
        return None
    offset = entry.get("offset") or 0.0
    return TocTrack(
        number=entry["number"],
        data_file=entry["file"],
        start_seconds=round(entry["start"] + offset, 6),
        length_seconds=round(max(entry["length"] - offset, 0.0), 6),
        is_audio=entry["audio"],
    )


def parse_toc_tracks(toc_text: str) -> list[TocTrack]:
    """Parse tracks from a TOC file.

    Tracks without an explicit length are skipped. A START marker moves the
    track start past its pre-gap.
    """
    entries: list[dict] = []

    for line in toc_text.splitlines():
        stripped = line.strip()
        if stripped.startswith("//"):
            continue
        if stripped.startswith("TRACK "):
            entries.append(
                {
                    "number": len(entries) + 1,
                    "audio": stripped.split()[1] == "AUDIO",
                    "length": None,
                }
            )
            continue
        if not entries:
            continue
        entry = entries[-1]
        if m := TOC_FILE_RE.match(line):
            length = msf_to_seconds(m.group(3)) if m.group(3) else None
            entry["file"] = m.group(1)
            entry["start"] = msf_to_seconds(m.group(2)) or 0.0
            entry["length"] = length
        elif m := TOC_START_RE.match(line):
            entry["offset"] = msf_to_seconds(m.group(1))

    return [t for t in (_toc_track(e) for e in entries) if t is not None]
