"""PipelineRun -- the state owned by one execution of an operation."""

from __future__ import annotations

import shutil
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from loguru import logger

from .concurrency import CancellationToken
from .errors import InfrastructureError
from .params import is_simulation
from .state import ProgressSnapshot, RunState

if TYPE_CHECKING:
    from .config import PipelineConfig
    from .executor import Executor
    from .models import OperationKind
    from .params import OperationParams

log = logger.bind(stage="run")

ProgressCallback = Callable[[ProgressSnapshot], None]


@dataclass
class PipelineRun:
    """One run: parameters, cancellation token, temp resources and state.

    ``artifacts`` carries values from one stage to the next (staged image
    path, converted WAV files, TOC path, ...).
    """

    params: OperationParams
    config: PipelineConfig
    executor: Executor
    state: RunState
    token: CancellationToken = field(default_factory=CancellationToken)
    run_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    on_progress: ProgressCallback | None = None
    temp_dir: Path | None = None
    log_path: Path | None = None
    artifacts: dict[str, Any] = field(default_factory=dict)
    needs_unlock: bool = False

    @classmethod
    def create(
        cls,
        params: OperationParams,
        config: PipelineConfig,
        executor: Executor,
        on_progress: ProgressCallback | None = None,
    ) -> PipelineRun:
        state = RunState(params.operation, simulation=is_simulation(params))
        return cls(
            params=params,
            config=config,
            executor=executor,
            state=state,
            on_progress=on_progress,
        )

    @property
    def operation(self) -> OperationKind:
        return self.params.operation

    def notify(self) -> None:
        """Push the current snapshot to the progress callback."""
        if self.on_progress is not None:
            self.on_progress(self.state.snapshot())

    def open_workspace(self) -> None:
        """Create the run's temp directory and reserve its log file path."""
        temp_dir = self.config.work_dir / f"burn-pipeline-{self.run_id}"
        try:
            temp_dir.mkdir(parents=True)
        except OSError as e:
            raise InfrastructureError(f"Cannot create temp directory {temp_dir}: {e}")
        self.temp_dir = temp_dir
        self.log_path = self.config.tool_log_dir / f"burn-pipeline-{self.run_id}.log"
        log.debug(f"Workspace {temp_dir}, log {self.log_path}")

    def release_workspace(self) -> list[str]:
        """Delete the temp directory and log file.

        Returns a description of each removal that failed.
        """
        failures = []
        if self.temp_dir is not None and self.temp_dir.exists():
            try:
                shutil.rmtree(self.temp_dir)
                log.debug(f"Removed temp dir: {self.temp_dir}")
            except OSError as e:
                log.error(f"Failed to remove temp dir {self.temp_dir}: {e}")
                failures.append(f"temp directory {self.temp_dir}: {e}")
        if self.log_path is not None:
            try:
                self.log_path.unlink(missing_ok=True)
            except OSError as e:
                log.error(f"Failed to remove log file {self.log_path}: {e}")
                failures.append(f"log file {self.log_path}: {e}")
        return failures
