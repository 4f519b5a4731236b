"""growisofs output parser.

Typical progress line::

     4784128/4700372992 ( 0.1%) @0.0x, remaining 26:11 RBU 100.0% UBU   2.1%

RBU is the ring (FIFO) buffer fill, UBU the drive's unit buffer fill.
"""

from __future__ import annotations

import re

from ..models import OutputEvent, Phase, PhaseKind

BYTES_PER_MB = 1024 * 1024

PROGRESS_RE = re.compile(
    r"^\s*(\d+)/(\d+)\s*\(\s*[\d.]+%\)\s*@([\d.]+)x"
    r"(?:,\s*remaining\s+\S+)?"
    r"(?:\s+RBU\s+([\d.]+)%)?"
    r"(?:\s+UBU\s+([\d.]+)%)?"
)
WRITE_SPEED_RE = re.compile(r'"Current Write Speed" is ([\d.]+)x')
FINALIZING_MARKERS = (
    "flushing cache",
    "closing track",
    "closing session",
    "closing disc",
    "writing lead-out",
    "reloading tray",
)


class GrowisofsParser:
    """Stateless growisofs line parser."""

    tool_name = "growisofs"

    def parse_line(self, line: str) -> list[OutputEvent]:
        if m := PROGRESS_RE.search(line):
            events = [
                OutputEvent.progress(
                    round(int(m.group(1)) / BYTES_PER_MB, 1),
                    round(int(m.group(2)) / BYTES_PER_MB, 1),
                    "MB",
                ),
                OutputEvent.speed_negotiated(f"{m.group(3)}x"),
            ]
            if m.group(4) is not None and m.group(5) is not None:
                events.append(
                    OutputEvent.buffer_stats(
                        int(float(m.group(4))), int(float(m.group(5)))
                    )
                )
            return events

        if m := WRITE_SPEED_RE.search(line):
            return [OutputEvent.speed_negotiated(f"{m.group(1)}x")]

        if "Executing 'builtin_dd" in line:
            return [OutputEvent.phase_changed(Phase.writing_track(1))]

        lowered = line.lower()
        if any(marker in lowered for marker in FINALIZING_MARKERS):
            return [OutputEvent.phase_changed(Phase(PhaseKind.FLUSHING))]

        # growisofs prefixes fatal diagnostics with ":-(" and warnings with ":-["
        stripped = line.strip()
        if stripped.startswith(":-("):
            return [OutputEvent.tool_error(stripped[3:].strip())]
        if stripped.startswith(":-["):
            return [OutputEvent.warning(stripped[3:].strip())]

        return []
