"""cdrdao output parser -- write, simulate, blank and read-cd progress lines."""

from __future__ import annotations

import re

from ..models import OutputEvent, Phase, PhaseKind

WRITING_TRACK_RE = re.compile(r"Writing track\s+(\d+)")
WROTE_RE = re.compile(r"Wrote\s+(\d+)\s+of\s+(\d+)\s+MB")
BUFFERS_RE = re.compile(r"Buffers\s+(\d+)%\s+(\d+)%")
STARTING_RE = re.compile(r"Starting write\s+(simulation\s+)?at speed\s+(\d+)")
PAUSING_RE = re.compile(r"Pausing\s+\d+\s+seconds", re.IGNORECASE)
WARNING_RE = re.compile(r"^WARNING:\s*(.+)", re.IGNORECASE)

# Known warnings and the text shown for them; other warnings are noise.
# Needles here and in ERROR_MESSAGES match case-insensitively.
WARNING_MESSAGES: tuple[tuple[str, str], ...] = (
    ("seems to be written", "The disc appears to be already written."),
    ("Speed value not supported", "Requested speed is not supported by the drive."),
)

# Friendly text for ERROR: lines, first match wins
ERROR_MESSAGES: tuple[tuple[str, str], ...] = (
    ("Cannot open disk", "Unable to open the disc image."),
    ("Cannot open SCSI", "Unable to access the drive."),
    ("Cannot open", "Unable to open a required file."),
    ("Cannot determine length", "Unable to determine the length of an audio file."),
    ("Unit not ready", "Drive is not ready, insert a disc."),
    ("Medium not present", "No disc in the drive."),
    ("Write data failed", "Write failed, the disc may be damaged."),
    ("Illegal cue sheet", "Invalid CUE sheet."),
    ("Power calibration", "Laser power calibration failed."),
    ("Medium write protected", "The disc is write protected."),
    ("Incompatible medium", "Incompatible media for this drive."),
    ("Could not read disk", "Unable to read the disc."),
    ("Invalid track mode", "Invalid track mode."),
    ("Blanking failed", "Disc erase failed."),
    ("exceeds", "Data exceeds disc capacity."),
    ("Cannot setup device", "Unable to initialize the drive."),
    ("giving up", "Drive not responding. Unplug and reconnect the drive."),
)

_SIMPLE_PHASES: tuple[tuple[tuple[str, ...], PhaseKind], ...] = (
    (("Blanking",), PhaseKind.BLANKING),
    (("Power calibration", "calibration area"), PhaseKind.CALIBRATING),
    (("Writing lead-in",), PhaseKind.WRITING_LEAD_IN),
    (("Writing lead-out",), PhaseKind.WRITING_LEAD_OUT),
    (("Flushing",), PhaseKind.FLUSHING),
)


def friendly_error(line: str) -> str:
    """Translate a cdrdao error line into user-facing text."""
    lowered = line.lower()
    for needle, message in ERROR_MESSAGES:
        if needle.lower() in lowered:
            return message
    return f"cdrdao error: {line.strip()}"


class CdrdaoParser:
    """Stateless cdrdao line parser."""

    tool_name = "cdrdao"

    def parse_line(self, line: str) -> list[OutputEvent]:
        events: list[OutputEvent] = []
        is_error = "ERROR:" in line or "Write data failed" in line

        if m := WRITING_TRACK_RE.search(line):
            track = int(m.group(1))
            events.append(OutputEvent.track_changed(track))
            events.append(OutputEvent.phase_changed(Phase.writing_track(track)))

        if m := WROTE_RE.search(line):
            events.append(
                OutputEvent.progress(float(m.group(1)), float(m.group(2)), "MB")
            )

        if m := BUFFERS_RE.search(line):
            events.append(OutputEvent.buffer_stats(int(m.group(1)), int(m.group(2))))

        if m := STARTING_RE.search(line):
            simulation = m.group(1) is not None
            events.append(OutputEvent.speed_negotiated(f"{m.group(2)}x", simulation))
            events.append(OutputEvent.phase_changed(Phase(PhaseKind.STARTING)))

        if PAUSING_RE.search(line):
            events.append(OutputEvent.phase_changed(Phase(PhaseKind.PAUSING)))

        # Error lines mention phase words ("Blanking failed") without entering them
        if not is_error:
            for needles, kind in _SIMPLE_PHASES:
                if any(needle in line for needle in needles):
                    events.append(OutputEvent.phase_changed(Phase(kind)))
                    break

        if m := WARNING_RE.search(line):
            text = m.group(1).lower()
            for needle, message in WARNING_MESSAGES:
                if needle.lower() in text:
                    events.append(OutputEvent.warning(message))
                    break

        if is_error:
            events.append(OutputEvent.tool_error(friendly_error(line)))

        return events
