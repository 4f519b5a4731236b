"""dd ``status=progress`` output parser (GNU and BSD forms)."""

from __future__ import annotations

import re

from ..models import OutputEvent

BYTES_PER_MB = 1024 * 1024

COPIED_RE = re.compile(r"^\s*(\d+)\s+bytes\b.*\b(?:copied|transferred)")


class DdParser:
    """Turn dd byte counters into MB progress against an expected size."""

    tool_name = "dd"

    def __init__(self, total_bytes: int = 0) -> None:
        self.total_bytes = total_bytes

    def parse_line(self, line: str) -> list[OutputEvent]:
        if m := COPIED_RE.search(line):
            if self.total_bytes <= 0:
                return []
            copied = int(m.group(1))
            return [
                OutputEvent.progress(
                    round(copied / BYTES_PER_MB, 1),
                    round(self.total_bytes / BYTES_PER_MB, 1),
                    "MB",
                )
            ]

        if line.startswith("dd:"):
            return [OutputEvent.tool_error(line[3:].strip())]

        return []
