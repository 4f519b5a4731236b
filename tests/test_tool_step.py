"""Tests for tool_step.py -- running one tool with live log parsing."""

import queue

import pytest

from burn_pipeline.errors import (
    CdrdaoErrorKind,
    ExecutorErrorKind,
    InfrastructureError,
    PipelineCancelled,
    ToolFailure,
)
from burn_pipeline.models import Phase, PhaseKind, Stage, Tool
from burn_pipeline.params import BurnAudioParams, EraseParams
from burn_pipeline.parsers import get_parser
from burn_pipeline.pipeline_run import PipelineRun
from burn_pipeline.tool_step import _drain, run_tool

from conftest import Step


@pytest.fixture
def pipeline_run(config, executor):
    config.ensure_dirs()
    run = PipelineRun.create(EraseParams(device="/dev/sr0"), config, executor)
    run.open_workspace()
    run.state.begin_stage(Stage.BLANK, Phase(PhaseKind.BLANKING))
    yield run
    run.release_workspace()


class TestRunTool:
    def test_events_applied(self, pipeline_run, executor):
        executor.script(
            Step(lines=["Blanking disk...", "Wrote 5 of 10 MB (Buffers 100%  97%)."])
        )
        result = run_tool(
            pipeline_run, Tool.CDRDAO, ["blank"], get_parser(Tool.CDRDAO)
        )
        assert result.exit_code == 0
        snap = pipeline_run.state.snapshot()
        assert snap.current == 5
        assert snap.total == 10
        assert snap.buffer_drive == 97

    def test_unterminated_last_line_delivered(self, pipeline_run, executor):
        executor.script(Step(trailing="Wrote 9 of 10 MB"))
        run_tool(pipeline_run, Tool.CDRDAO, ["blank"], get_parser(Tool.CDRDAO))
        assert pipeline_run.state.snapshot().current == 9

    def test_progress_callback(self, pipeline_run, executor):
        seen = []
        pipeline_run.on_progress = seen.append
        executor.script(Step(lines=["Wrote 1 of 2 MB"]))
        run_tool(pipeline_run, Tool.CDRDAO, ["blank"], get_parser(Tool.CDRDAO))
        assert seen
        assert seen[-1].current == 1

    def test_log_truncated_between_steps(self, pipeline_run, executor):
        executor.script(Step(lines=["Wrote 8 of 10 MB"]), Step(lines=[]))
        run_tool(pipeline_run, Tool.CDRDAO, ["blank"], get_parser(Tool.CDRDAO))
        pipeline_run.state.begin_step(2, 2)
        run_tool(pipeline_run, Tool.CDRDAO, ["blank"], get_parser(Tool.CDRDAO))
        assert pipeline_run.state.snapshot().current == 0
        assert pipeline_run.log_path.read_text() == ""

    def test_nonzero_exit_classified(self, pipeline_run, executor):
        executor.script(Step(lines=["ERROR: Blanking failed"], exit_code=1))
        with pytest.raises(ToolFailure) as exc:
            run_tool(pipeline_run, Tool.CDRDAO, ["blank"], get_parser(Tool.CDRDAO))
        assert exc.value.error.kind == CdrdaoErrorKind.BLANK_FAILED
        assert pipeline_run.state.snapshot().tool_errors == ["Disc erase failed."]
        # tool-error events never change the phase
        assert pipeline_run.state.phase.kind == PhaseKind.BLANKING

    def test_zero_exit_with_error_text_succeeds(self, pipeline_run, executor):
        executor.script(Step(lines=["WARNING: Buffer under run"], exit_code=0))
        result = run_tool(
            pipeline_run, Tool.CDRDAO, ["blank"], get_parser(Tool.CDRDAO)
        )
        assert result.exit_code == 0

    def test_executor_error(self, pipeline_run, executor):
        executor.script(Step(exit_code=-1, error_text="cdrdao not found"))
        with pytest.raises(ToolFailure) as exc:
            run_tool(pipeline_run, Tool.CDRDAO, ["blank"], get_parser(Tool.CDRDAO))
        assert exc.value.error.kind == ExecutorErrorKind.INVALID_TOOL_PATH
        assert exc.value.error.detail == "cdrdao not found"

    def test_cancel_before_start(self, pipeline_run, executor):
        pipeline_run.token.cancel()
        with pytest.raises(PipelineCancelled):
            run_tool(pipeline_run, Tool.CDRDAO, ["blank"], get_parser(Tool.CDRDAO))
        assert executor.calls == []

    def test_cancel_while_running(self, pipeline_run, executor):
        executor.script(Step(lines=["Blanking disk..."], block=True))

        def cancel_once_started(snap):
            if executor.started.is_set():
                pipeline_run.token.cancel()

        pipeline_run.on_progress = cancel_once_started
        with pytest.raises(PipelineCancelled):
            run_tool(pipeline_run, Tool.CDRDAO, ["blank"], get_parser(Tool.CDRDAO))
        assert pipeline_run.state.phase.kind == PhaseKind.CANCELLING

    def test_workspace_required(self, config, executor):
        run = PipelineRun.create(EraseParams(device="/dev/sr0"), config, executor)
        with pytest.raises(InfrastructureError, match="Workspace"):
            run_tool(run, Tool.CDRDAO, ["blank"], get_parser(Tool.CDRDAO))


class TestDrain:
    def test_every_phase_in_one_batch_published(self, config, executor):
        config.ensure_dirs()
        run = PipelineRun.create(
            BurnAudioParams(tracks=[], device="/dev/sr0"), config, executor
        )
        run.state.begin_stage(Stage.WRITE, Phase(PhaseKind.STARTING))
        seen = []
        run.on_progress = seen.append
        batches = queue.Queue()
        batches.put(
            [
                "Writing lead-in and gap...",
                "Writing track 01 (mode AUDIO/AUDIO )...",
                "Wrote 5 of 20 MB (Buffers 100%  99%).",
                "Writing track 02 (mode AUDIO/AUDIO )...",
                "Writing lead-out...",
                "Flushing cache...",
            ]
        )
        captured = []

        assert _drain(batches, get_parser(Tool.CDRDAO), run, captured)

        phases = [(s.phase.kind, s.phase.track) for s in seen]
        assert phases == [
            (PhaseKind.WRITING_LEAD_IN, None),
            (PhaseKind.WRITING_TRACK, 1),
            (PhaseKind.WRITING_TRACK, 2),
            (PhaseKind.WRITING_LEAD_OUT, None),
            (PhaseKind.FLUSHING, None),
        ]
        assert len(captured) == 6

    def test_progress_only_batch_not_published(self, config, executor):
        config.ensure_dirs()
        run = PipelineRun.create(EraseParams(device="/dev/sr0"), config, executor)
        run.state.begin_stage(Stage.BLANK, Phase(PhaseKind.BLANKING))
        seen = []
        run.on_progress = seen.append
        batches = queue.Queue()
        batches.put(["Wrote 1 of 2 MB", "Wrote 2 of 2 MB"])
        _drain(batches, get_parser(Tool.CDRDAO), run, [])
        assert seen == []
        assert run.state.snapshot().current == 2
