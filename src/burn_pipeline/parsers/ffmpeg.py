"""ffmpeg ``-progress pipe:1`` key=value output parser."""

from __future__ import annotations

from ..models import OutputEvent


class FfmpegParser:
    """Parse ffmpeg progress lines into seconds-based progress events.

    ``total_seconds`` is the duration of the input, known before ffmpeg
    starts. It is configuration, not state carried between lines.
    """

    tool_name = "ffmpeg"

    def __init__(self, total_seconds: float = 0.0) -> None:
        self.total_seconds = total_seconds

    def parse_line(self, line: str) -> list[OutputEvent]:
        key, sep, value = line.strip().partition("=")
        if not sep:
            if line.lstrip().lower().startswith("error"):
                return [OutputEvent.tool_error(line.strip())]
            return []

        value = value.strip()
        if key == "out_time_us":
            try:
                seconds = int(value) / 1_000_000
            except ValueError:
                return []
            if seconds < 0 or self.total_seconds <= 0:
                return []
            return [
                OutputEvent.progress(
                    round(min(seconds, self.total_seconds), 2), self.total_seconds, "s"
                )
            ]

        if key == "speed":
            if not value.endswith("x"):
                return []
            try:
                float(value[:-1])
            except ValueError:
                return []
            return [OutputEvent.speed_negotiated(value)]

        if key == "progress" and value == "end" and self.total_seconds > 0:
            return [OutputEvent.progress(self.total_seconds, self.total_seconds, "s")]

        return []
