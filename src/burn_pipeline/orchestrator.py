"""Pipeline orchestrator -- runs an operation's stages in order.

The orchestrator owns one run at a time. It locks the run's drives, creates
the temp workspace, executes the stages of STAGE_ORDER sequentially with a
cancellation checkpoint before each one, and turns whatever ended the run
(success, validation error, tool failure, infrastructure error, cancellation,
unexpected exception) into a terminal phase. Temp files, the log file and an
aborted cdrdao drive lock are released on every path before that terminal
phase is published.
"""

from __future__ import annotations

import queue
import threading
from collections.abc import Iterator
from concurrent.futures import ThreadPoolExecutor

from loguru import logger

from .concurrency import DeviceLock, acquire_device_lock
from .config import PipelineConfig
from .errors import (
    DeviceBusyError,
    InfrastructureError,
    PipelineCancelled,
    PipelineError,
    ToolFailure,
    ValidationError,
)
from .executor import Executor, SubprocessExecutor
from .models import CANCELLED_REASON, STAGE_ORDER, STAGE_PHASES, Phase
from .params import OperationParams
from .pipeline_run import PipelineRun, ProgressCallback
from .stages import get_stage_runner
from .stages.cleanup import release_resources
from .state import ProgressSnapshot

log = logger.bind(stage="orchestrator")


class PipelineOrchestrator:
    """Run disc operations one at a time with progress and cancellation.

    Attributes:
        config: Pipeline configuration (directories, tool paths, polling)
        executor: Tool executor shared by all runs of this orchestrator
    """

    def __init__(self, config: PipelineConfig, executor: Executor | None = None) -> None:
        self.config = config
        self.executor = executor or SubprocessExecutor(config)
        self._lock = threading.Lock()
        self._run: PipelineRun | None = None
        self._last: ProgressSnapshot | None = None

    # -- Caller API --

    def run(
        self,
        params: OperationParams,
        on_progress: ProgressCallback | None = None,
    ) -> ProgressSnapshot:
        """Execute an operation to completion and return its final snapshot.

        Failures are reported through the snapshot's terminal phase, not
        raised. Raises PipelineError only if this orchestrator is busy.
        """
        with self._lock:
            if self._run is not None:
                raise PipelineError("A run is already in progress")
            run = PipelineRun.create(params, self.config, self.executor, on_progress)
            self._run = run
            self._last = None

        try:
            self._execute(run)
        finally:
            final = run.state.snapshot()
            with self._lock:
                self._run = None
                self._last = final
        return final

    def stream(self, params: OperationParams) -> Iterator[ProgressSnapshot]:
        """Run an operation on a worker thread, yielding snapshots as they change.

        The last snapshot yielded is terminal. Closing the generator early
        cancels the run and waits for its cleanup.
        """
        updates: queue.Queue[ProgressSnapshot] = queue.Queue()
        with ThreadPoolExecutor(max_workers=1, thread_name_prefix="pipeline-run") as pool:
            future = pool.submit(self.run, params, updates.put)
            last: ProgressSnapshot | None = None
            try:
                while not future.done() or not updates.empty():
                    try:
                        last = updates.get(timeout=self.config.poll_interval)
                    except queue.Empty:
                        continue
                    yield last
                final = future.result()
                if last is None or not last.phase.is_terminal:
                    yield final
            finally:
                if not future.done():
                    log.info("Stream closed early, cancelling run")
                    self.cancel()

    def snapshot(self) -> ProgressSnapshot:
        """Current progress, or the last terminal snapshot until acknowledged."""
        with self._lock:
            run, last = self._run, self._last
        if run is not None:
            return run.state.snapshot()
        if last is not None:
            return last.copy()
        return ProgressSnapshot()

    def acknowledge(self) -> None:
        """Discard the last terminal snapshot."""
        with self._lock:
            self._last = None

    def cancel(self) -> None:
        """Request cancellation of the active run. No-op when idle."""
        with self._lock:
            run = self._run
        if run is None:
            log.debug("cancel() with no active run")
            return
        log.info(f"Cancellation requested for run {run.run_id}")
        run.token.cancel()
        run.state.request_cancel()

    # -- Execution --

    def _execute(self, run: PipelineRun) -> None:
        operation = run.operation
        stages = STAGE_ORDER[operation]
        locks: list[DeviceLock] = []
        succeeded = False
        reason = ""
        tool_error = None

        devices = ", ".join(run.params.devices) or "no drive"
        log.info(f"Run {run.run_id}: {operation} on {devices}")
        run.notify()

        try:
            try:
                self.config.ensure_dirs()
            except OSError as e:
                raise InfrastructureError(f"Cannot create pipeline directories: {e}")
            for device in run.params.devices:
                if device:
                    locks.append(acquire_device_lock(self.config.lock_dir, device))
            run.open_workspace()

            for stage in stages:
                run.token.raise_if_cancelled()
                run.state.begin_stage(stage, Phase(STAGE_PHASES[stage]))
                run.notify()
                log.info(f"Stage {stage} ({stages.index(stage) + 1}/{len(stages)})")
                get_stage_runner(stage)(run)
            succeeded = True

        except PipelineCancelled:
            log.info(f"Run {run.run_id} cancelled")
            run.state.request_cancel()
            reason = CANCELLED_REASON
        except ToolFailure as e:
            tool_error = e.error
            reason = e.error.message
        except (ValidationError, DeviceBusyError, InfrastructureError) as e:
            log.warning(f"Run {run.run_id} failed: {e}")
            reason = str(e)
        except OSError as e:
            log.error(f"Run {run.run_id} I/O error: {e}")
            reason = f"I/O error: {e}"
        except Exception as e:
            log.exception(f"Run {run.run_id} failed unexpectedly")
            reason = f"Unexpected error: {e}"
        finally:
            if not succeeded:
                try:
                    release_resources(run, failed=True)
                except Exception:
                    log.exception(f"Cleanup after failed run {run.run_id} raised")
            for lock in locks:
                lock.release()

        if succeeded and run.state.complete():
            log.info(f"Run {run.run_id} completed")
        else:
            run.state.fail(reason or CANCELLED_REASON, tool_error)
            log.info(f"Run {run.run_id} ended: {run.state.phase}")
        run.notify()
