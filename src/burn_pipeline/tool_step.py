"""Run one external tool inside a pipeline stage.

The tool writes to the run's log file; a LogTailer feeds new lines through a
queue back to this thread, which parses them and applies the events to the
run state while the executor works on a helper thread. Cancellation is
forwarded to the executor and the step keeps waiting until the tool has
actually exited. The tailer is always stopped (with a final flush) before the
step returns or raises.
"""

from __future__ import annotations

import queue
from concurrent.futures import ThreadPoolExecutor, wait
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from .errors import InfrastructureError, PipelineCancelled, ToolFailure, classify
from .tailer import LogTailer

if TYPE_CHECKING:
    from .executor import ExecResult
    from .models import Tool
    from .parsers import LineParser
    from .pipeline_run import PipelineRun

log = logger.bind(stage="tool")


def _drain(
    batches: queue.Queue,
    parser: LineParser,
    run: PipelineRun,
    captured: list[str],
) -> bool:
    """Apply all queued line batches. Returns True if anything was applied.

    A snapshot is published after every line that moved the phase, so a
    batch spanning several phases still reports each of them.
    """
    applied = False
    while True:
        try:
            lines = batches.get_nowait()
        except queue.Empty:
            return applied
        captured.extend(lines)
        for line in lines:
            log.debug(line)
            if run.state.apply(parser.parse_line(line)):
                run.notify()
        applied = True


def run_tool(
    run: PipelineRun,
    tool: Tool,
    args: list[str],
    parser: LineParser,
    working_directory: Path | None = None,
) -> ExecResult:
    """Invoke ``tool`` and wait for it, streaming its output into the state.

    Raises PipelineCancelled if the run was cancelled while the tool ran,
    ToolFailure with a classified error on a non-zero exit code.
    """
    run.token.raise_if_cancelled()

    log_path = run.log_path
    if log_path is None:
        raise InfrastructureError("Workspace not opened")
    try:
        log_path.write_bytes(b"")
    except OSError as e:
        raise InfrastructureError(f"Cannot create log file {log_path}: {e}")

    batches: queue.Queue[list[str]] = queue.Queue()
    captured: list[str] = []
    tailer = LogTailer(run.config.poll_interval)
    cancel_requested = False
    cancel_delivered = False

    log.info(f"Starting {tool}")
    tailer.start(log_path, batches.put)
    try:
        with ThreadPoolExecutor(
            max_workers=1, thread_name_prefix=f"exec-{tool}"
        ) as pool:
            future = pool.submit(
                run.executor.invoke, tool, args, working_directory, log_path
            )
            while not future.done():
                _drain(batches, parser, run, captured)
                run.state.tick()
                if run.token.is_cancelled and not cancel_delivered:
                    if not cancel_requested:
                        log.info(f"Cancelling {tool}")
                        run.state.request_cancel()
                        cancel_requested = True
                    # False until the process exists, retried next tick
                    cancel_delivered = run.executor.cancel()
                run.notify()
                wait([future], timeout=run.config.poll_interval)
            result = future.result()
    finally:
        tailer.stop(log_path, batches.put)
        _drain(batches, parser, run, captured)
        run.notify()

    if run.token.is_cancelled:
        log.info(f"{tool} stopped after cancellation (exit code {result.exit_code})")
        raise PipelineCancelled("Cancelled by user")

    if result.exit_code != 0:
        output = "\n".join(captured)
        if result.error_text:
            output = f"{output}\n{result.error_text}"
        error = classify(tool, result.exit_code, output)
        log.error(
            f"{tool} failed with exit code {result.exit_code}: "
            f"{error.kind} ({error.message})"
        )
        raise ToolFailure(error)

    log.info(f"{tool} finished successfully")
    return result
