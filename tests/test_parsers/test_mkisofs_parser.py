"""Tests for the mkisofs output parser."""

from burn_pipeline.models import OutputEvent
from burn_pipeline.parsers.mkisofs import MkisofsParser


def parse(line):
    return MkisofsParser().parse_line(line)


class TestMkisofsParser:
    def test_percent_done(self):
        assert parse(" 45.67% done, estimate finish Mon Jan  1 10:00:00 2024") == [
            OutputEvent.progress(45.67, 100.0, "%")
        ]

    def test_extents_written_completes(self):
        assert parse("231456 extents written (452 MB)") == [
            OutputEvent.progress(100.0, 100.0, "%")
        ]

    def test_error_line(self):
        line = "mkisofs: Error: /data/missing: No such file or directory"
        assert parse(line) == [OutputEvent.tool_error(line)]

    def test_warning_line(self):
        assert parse("genisoimage: Warning: creating filesystem with Joliet") == [
            OutputEvent.warning("Warning: creating filesystem with Joliet")
        ]

    def test_unrecognized(self):
        assert parse("Total translation table size: 0") == []
