"""xorriso (cdrecord emulation) output parser."""

from __future__ import annotations

import re

from ..models import OutputEvent, Phase

PROGRESS_RE = re.compile(
    r"(\d+)\s+of\s+(\d+)\s+MB written \(fifo\s+(\d+)%\) \[buf\s+(\d+)%\]"
    r"(?:\s+([\d.]+)x)?"
)


class XorrisoParser:
    """Stateless xorriso line parser."""

    tool_name = "xorriso"

    def parse_line(self, line: str) -> list[OutputEvent]:
        if m := PROGRESS_RE.search(line):
            events = [
                OutputEvent.progress(float(m.group(1)), float(m.group(2)), "MB"),
                OutputEvent.buffer_stats(int(m.group(3)), int(m.group(4))),
            ]
            if m.group(5):
                events.append(OutputEvent.speed_negotiated(f"{m.group(5)}x"))
            return events

        if "Beginning to write" in line:
            return [OutputEvent.phase_changed(Phase.writing_track(1))]

        if "FAILURE :" in line:
            return [OutputEvent.tool_error(line.split("FAILURE :", 1)[1].strip())]

        if "WARNING :" in line:
            return [OutputEvent.warning(line.split("WARNING :", 1)[1].strip())]

        return []
