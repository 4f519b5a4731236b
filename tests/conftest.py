"""Shared fixtures: a scripted executor and a tmp_path-based config."""

import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

import pytest

from burn_pipeline.config import PipelineConfig
from burn_pipeline.executor import INVALID_ARGUMENTS, ExecResult, check_arguments


@dataclass
class Step:
    """What one scripted tool invocation does."""

    lines: list[str] = field(default_factory=list)
    exit_code: int = 0
    error_text: str = ""
    action: Callable[[list[str], Path | None], None] | None = None
    block: bool = False
    trailing: str = ""


@dataclass
class Call:
    tool: str
    args: list[str]
    cwd: Path | None


class FakeExecutor:
    """Executor double: writes scripted output to the log and records calls.

    Arguments go through the same checks as the real executor.

    A blocking step waits until ``cancel()`` and then exits like a tool
    killed by SIGINT.
    """

    def __init__(self):
        self.steps: list[Step] = []
        self.calls: list[Call] = []
        self.started = threading.Event()
        self._cancelled = threading.Event()
        self._running = False

    def script(self, *steps: Step) -> "FakeExecutor":
        self.steps.extend(steps)
        return self

    def invoke(self, tool, args, working_directory, log_path):
        self.calls.append(Call(tool, list(args), working_directory))
        if (problem := check_arguments(tool, args)) is not None:
            return ExecResult(INVALID_ARGUMENTS, problem)
        step = self.steps.pop(0) if self.steps else Step()
        with open(log_path, "a") as fh:
            for line in step.lines:
                fh.write(line + "\n")
            fh.write(step.trailing)
        if step.action is not None:
            step.action(list(args), working_directory)

        if step.block:
            self._running = True
            self.started.set()
            self._cancelled.wait(10)
            self._running = False
            return ExecResult(130)
        return ExecResult(step.exit_code, step.error_text)

    def cancel(self):
        if not self._running:
            return False
        self._cancelled.set()
        return True

    @property
    def tools(self):
        return [c.tool for c in self.calls]


def write_output(args, cwd):
    """Step action: create the file named by the last argument."""
    Path(args[-1]).write_bytes(b"\x00" * 1024)


@pytest.fixture
def config(tmp_path):
    return PipelineConfig(
        _env_file=None,
        work_dir=tmp_path / "work",
        tool_log_dir=tmp_path / "toollogs",
        lock_dir=tmp_path / "locks",
        log_dir=tmp_path / "logs",
        poll_interval_ms=10,
        image_writer="growisofs",
        unlock_after_failure=True,
    )


@pytest.fixture
def executor():
    return FakeExecutor()


@pytest.fixture
def plenty_of_space(monkeypatch):
    monkeypatch.setattr(
        "burn_pipeline.stages.validate.check_disk_space", lambda *a, **k: True
    )
