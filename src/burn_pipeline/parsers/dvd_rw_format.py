"""dvd+rw-format output parser.

The tool redraws its percentage with backspaces, so a single line can hold
several readings; the last one wins.
"""

from __future__ import annotations

import re

from ..models import OutputEvent

PERCENT_RE = re.compile(r"([\d.]+)%")


class DvdRwFormatParser:
    """Stateless dvd+rw-format line parser."""

    tool_name = "dvd+rw-format"

    def parse_line(self, line: str) -> list[OutputEvent]:
        lowered = line.lower()
        if "blanking" in lowered or "formatting" in lowered:
            readings = PERCENT_RE.findall(line)
            if not readings:
                return []
            try:
                percent = float(readings[-1])
            except ValueError:
                return []
            return [OutputEvent.progress(min(percent, 100.0), 100.0, "%")]

        if line.startswith(":-("):
            return [OutputEvent.tool_error(line[3:].strip())]

        return []
