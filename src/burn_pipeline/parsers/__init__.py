"""Parser registry -- maps Tool values to line parsers.

Every parser exposes ``parse_line(line) -> list[OutputEvent]``. Parsers are
pure: they do no I/O, keep no state between lines, return ``[]`` for lines
they do not recognise, and drop a match whose numbers fail to convert rather
than raising.

Parsers:
    cdrdao        -- Track changes, MB progress, FIFO/drive buffers, write
                     speed and simulation flag, writer phases (pausing,
                     blanking, calibrating, lead-in/out, flushing), known
                     warnings and ERROR lines mapped to friendly text.
    growisofs     -- Byte progress with RBU/UBU buffer fill and speed,
                     "Current Write Speed", builtin_dd start, finalizing
                     markers, ":-(" diagnostics.
    xorriso       -- cdrecord-style "N of M MB written (fifo F%) [buf D%]".
    mkisofs       -- "% done" mastering progress and error lines.
    ffmpeg        -- ``-progress pipe:1`` out_time_us against a known
                     input duration, speed, progress=end.
    dd            -- status=progress byte counters against an expected size.
    dvd+rw-format -- blanking/formatting percentage.
"""

from __future__ import annotations

from typing import Protocol

from ..models import OutputEvent, Tool


class LineParser(Protocol):
    def parse_line(self, line: str) -> list[OutputEvent]: ...


def get_parser(tool: Tool, **options) -> LineParser:
    """Return a line parser for a tool.

    ``options`` carries per-invocation configuration: ``total_seconds`` for
    ffmpeg, ``total_bytes`` for dd.
    """
    if tool == Tool.CDRDAO:
        from .cdrdao import CdrdaoParser

        return CdrdaoParser()

    if tool == Tool.GROWISOFS:
        from .growisofs import GrowisofsParser

        return GrowisofsParser()

    if tool == Tool.XORRISO:
        from .xorriso import XorrisoParser

        return XorrisoParser()

    if tool == Tool.MKISOFS:
        from .mkisofs import MkisofsParser

        return MkisofsParser()

    if tool == Tool.FFMPEG:
        from .ffmpeg import FfmpegParser

        return FfmpegParser(total_seconds=options.get("total_seconds", 0.0))

    if tool == Tool.DD:
        from .dd import DdParser

        return DdParser(total_bytes=options.get("total_bytes", 0))

    if tool == Tool.DVD_RW_FORMAT:
        from .dvd_rw_format import DvdRwFormatParser

        return DvdRwFormatParser()

    raise NotImplementedError(f"No output parser for tool '{tool}'")
