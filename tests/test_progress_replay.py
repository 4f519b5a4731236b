"""Replay recorded tool logs through the parsers and the run state.

The logs are fed the way a live run sees them: raw bytes with carriage-return
redraws, normalized by the executor and split by the tailer.
"""

import pytest

from burn_pipeline.executor import _normalize_newlines
from burn_pipeline.models import OperationKind, Phase, PhaseKind, Stage, Tool, phase_order
from burn_pipeline.parsers import get_parser
from burn_pipeline.state import RunState
from burn_pipeline.tailer import _decode


def _wrote(first, last, total=48):
    return "".join(
        f"Wrote {mb} of {total} MB (Buffers 100%  9{mb % 10}%).\r"
        for mb in range(first, last + 1)
    )


CDRDAO_AUDIO_LOG = (
    "Cdrdao version 1.2.4 - (C) Andreas Mueller <andreas@daneb.de>\n"
    "/dev/sr0: HL-DT-ST DVDRAM GH24NSD1\tRev: LG00\n"
    "Using driver: Generic SCSI-3/MMC - Version 2.0 (options 0x0000)\n"
    "\n"
    "Starting write at speed 16...\n"
    "Pausing 10 seconds - hit CTRL-C to abort.\n"
    "Process can be aborted with QUIT signal (usually CTRL-\\).\n"
    "Turning BURN-Proof on\n"
    "Executing power calibration...\n"
    "Power calibration successful.\n"
    "Writing lead-in and gap...\n"
    "Writing track 01 (mode AUDIO/AUDIO )...\n"
    + _wrote(1, 20)
    + "\nWriting track 02 (mode AUDIO/AUDIO )...\n"
    # redraw of the last figure before the counter moves on
    + "Wrote 20 of 48 MB (Buffers 100%  99%).\r"
    + _wrote(21, 48)
    + "\nWriting lead-out...\n"
    "Flushing cache...\n"
    "Writing finished successfully.\n"
).encode()

GROWISOFS_ISO_LOG = (
    "Executing 'builtin_dd if=/tmp/disc.iso of=/dev/sr0 obs=32k seek=0'\n"
    '/dev/sr0: "Current Write Speed" is 4.1x1352KBps.\n'
    + "".join(
        f"  {done}/4700372992 ({done / 4700372992 * 100:4.1f}%) @4.0x, "
        f"remaining 12:{59 - i:02d} RBU 100.0% UBU  9{i % 10}.0%\r"
        for i, done in enumerate(range(0, 4700372992, 235018649))
    )
    + "\nbuiltin_dd: 2295104*2KB out @ average 3.9x1352KBps\n"
    "/dev/sr0: flushing cache\n"
    "/dev/sr0: closing track\n"
    "/dev/sr0: reloading tray\n"
).encode()


def replay(operation, tool, raw):
    state = RunState(operation)
    state.begin_stage(Stage.WRITE, Phase(PhaseKind.STARTING))
    parser = get_parser(tool)
    snapshots = []
    for line in _decode(_normalize_newlines(raw)):
        state.apply(parser.parse_line(line))
        snapshots.append(state.snapshot())
    return snapshots


def assert_progress_never_decreases(snapshots):
    currents = [s.current for s in snapshots]
    for before, after in zip(currents, currents[1:]):
        assert after >= before


def assert_phases_forward(operation, snapshots):
    order = phase_order(operation)
    ranks = [order.index(s.phase.kind) for s in snapshots]
    assert ranks == sorted(ranks)
    tracks = [s.phase.track or 0 for s in snapshots if s.phase.kind == PhaseKind.WRITING_TRACK]
    assert tracks == sorted(tracks)


class TestCdrdaoReplay:
    @pytest.fixture
    def snapshots(self):
        return replay(OperationKind.BURN_AUDIO, Tool.CDRDAO, CDRDAO_AUDIO_LOG)

    def test_progress_never_decreases(self, snapshots):
        assert_progress_never_decreases(snapshots)
        assert snapshots[-1].current == 48
        assert snapshots[-1].total == 48

    def test_phases_move_forward(self, snapshots):
        assert_phases_forward(OperationKind.BURN_AUDIO, snapshots)
        kinds = {s.phase.kind for s in snapshots}
        assert {
            PhaseKind.PAUSING,
            PhaseKind.CALIBRATING,
            PhaseKind.WRITING_LEAD_IN,
            PhaseKind.WRITING_TRACK,
            PhaseKind.WRITING_LEAD_OUT,
            PhaseKind.FLUSHING,
        } <= kinds

    def test_final_snapshot(self, snapshots):
        final = snapshots[-1]
        assert final.current_track == 2
        assert final.write_speed == "16x"
        assert final.phase.kind == PhaseKind.FLUSHING


class TestGrowisofsReplay:
    @pytest.fixture
    def snapshots(self):
        return replay(OperationKind.BURN_IMAGE, Tool.GROWISOFS, GROWISOFS_ISO_LOG)

    def test_progress_never_decreases(self, snapshots):
        assert_progress_never_decreases(snapshots)
        assert snapshots[-1].total == pytest.approx(4482.6, abs=0.1)
        assert snapshots[-1].current > 4000

    def test_phases_move_forward(self, snapshots):
        assert_phases_forward(OperationKind.BURN_IMAGE, snapshots)
        assert snapshots[-1].phase.kind == PhaseKind.FLUSHING
        assert snapshots[-1].buffer_fifo == 100
