"""Tests for the cdrdao output parser."""

from burn_pipeline.models import EventKind, OutputEvent, Phase, PhaseKind, Tool
from burn_pipeline.parsers import get_parser
from burn_pipeline.parsers.cdrdao import CdrdaoParser, friendly_error


def parse(line):
    return CdrdaoParser().parse_line(line)


class TestTrackAndProgress:
    def test_writing_track(self):
        events = parse("Writing track 02 (mode AUDIO/AUDIO )...")
        assert events == [
            OutputEvent.track_changed(2),
            OutputEvent.phase_changed(Phase.writing_track(2)),
        ]

    def test_wrote_progress_with_buffers(self):
        events = parse("Wrote 12 of 350 MB (Buffers 100%  98%).")
        assert events == [
            OutputEvent.progress(12.0, 350.0, "MB"),
            OutputEvent.buffer_stats(100, 98),
        ]

    def test_buffers_only(self):
        assert parse("Buffers 87%  100%") == [OutputEvent.buffer_stats(87, 100)]


class TestStarting:
    def test_write(self):
        events = parse("Starting write at speed 16...")
        assert events == [
            OutputEvent.speed_negotiated("16x", False),
            OutputEvent.phase_changed(Phase(PhaseKind.STARTING)),
        ]

    def test_simulation(self):
        events = parse("Starting write simulation at speed 8...")
        assert events[0] == OutputEvent.speed_negotiated("8x", True)


class TestPhases:
    def test_pausing(self):
        assert parse("Pausing 10 seconds - hit CTRL-C to abort.") == [
            OutputEvent.phase_changed(Phase(PhaseKind.PAUSING))
        ]

    def test_blanking(self):
        assert parse("Blanking disk...") == [
            OutputEvent.phase_changed(Phase(PhaseKind.BLANKING))
        ]

    def test_calibration(self):
        assert parse("Executing power calibration area...") == [
            OutputEvent.phase_changed(Phase(PhaseKind.CALIBRATING))
        ]
        assert parse("Power calibration successful.") == [
            OutputEvent.phase_changed(Phase(PhaseKind.CALIBRATING))
        ]

    def test_lead_in_and_out(self):
        assert parse("Writing lead-in and gap...")[0].phase.kind == (
            PhaseKind.WRITING_LEAD_IN
        )
        assert parse("Writing lead-out...")[0].phase.kind == PhaseKind.WRITING_LEAD_OUT

    def test_flushing(self):
        assert parse("Flushing cache...") == [
            OutputEvent.phase_changed(Phase(PhaseKind.FLUSHING))
        ]

    def test_error_line_does_not_enter_phase(self):
        events = parse("ERROR: Blanking failed")
        assert [e.kind for e in events] == [EventKind.TOOL_ERROR]
        assert events[0].text == "Disc erase failed."


class TestWarningsAndErrors:
    def test_known_warning(self):
        assert parse("WARNING: Disk seems to be written") == [
            OutputEvent.warning("The disc appears to be already written.")
        ]

    def test_unknown_warning_ignored(self):
        assert parse("WARNING: Some drive quirk") == []

    def test_error_with_friendly_text(self):
        assert parse("ERROR: Unit not ready, giving up.") == [
            OutputEvent.tool_error("Drive is not ready, insert a disc.")
        ]

    def test_write_data_failed_without_prefix(self):
        events = parse("Write data failed.")
        assert events == [
            OutputEvent.tool_error("Write failed, the disc may be damaged.")
        ]

    def test_unknown_error_keeps_line(self):
        assert friendly_error("ERROR: Weird thing") == "cdrdao error: ERROR: Weird thing"

    def test_cannot_open_disk_before_generic(self):
        assert friendly_error("ERROR: Cannot open disk image") == (
            "Unable to open the disc image."
        )

    def test_warning_matched_regardless_of_case(self):
        assert parse("Warning: Disk Seems To Be Written") == [
            OutputEvent.warning("The disc appears to be already written.")
        ]
        assert parse("WARNING: speed value not supported by drive") == [
            OutputEvent.warning("Requested speed is not supported by the drive.")
        ]

    def test_error_matched_regardless_of_case(self):
        assert friendly_error("ERROR: MEDIUM NOT PRESENT") == "No disc in the drive."
        assert parse("ERROR: cannot open SCSI device") == [
            OutputEvent.tool_error("Unable to access the drive.")
        ]


class TestUnrecognized:
    def test_empty(self):
        assert parse("") == []

    def test_banner(self):
        assert parse("Cdrdao version 1.2.4 - (C) Andreas Mueller") == []

    def test_registry(self):
        assert isinstance(get_parser(Tool.CDRDAO), CdrdaoParser)
