"""mkisofs / genisoimage output parser."""

from __future__ import annotations

import re

from ..models import OutputEvent

PERCENT_RE = re.compile(r"^\s*([\d.]+)%\s+done")
EXTENTS_RE = re.compile(r"(\d+)\s+extents written\s+\((\d+)\s+MB\)")


class MkisofsParser:
    """Stateless mkisofs line parser.

    Progress is reported in percent; the final "extents written" summary
    completes the measurement.
    """

    tool_name = "mkisofs"

    def parse_line(self, line: str) -> list[OutputEvent]:
        if m := PERCENT_RE.search(line):
            try:
                percent = float(m.group(1))
            except ValueError:
                return []
            return [OutputEvent.progress(percent, 100.0, "%")]

        if EXTENTS_RE.search(line):
            return [OutputEvent.progress(100.0, 100.0, "%")]

        if "mkisofs:" in line or "genisoimage:" in line:
            if "error" in line.lower():
                return [OutputEvent.tool_error(line.strip())]
            if "warning" in line.lower():
                return [OutputEvent.warning(line.split(":", 1)[1].strip())]

        return []
