"""Cleanup stage -- unlock the drive and remove the run's temp files."""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

from .. import commands
from ..errors import InfrastructureError
from ..models import Tool

if TYPE_CHECKING:
    from ..pipeline_run import PipelineRun

log = logger.bind(stage="cleanup")


def unlock_drive(pipeline_run: PipelineRun) -> None:
    """Release the tray lock cdrdao can leave behind after an aborted write.

    Failures are logged only; they never change the run's outcome.
    """
    if pipeline_run.log_path is None:
        return
    device = pipeline_run.params.device
    result = pipeline_run.executor.invoke(
        Tool.CDRDAO,
        commands.cdrdao_unlock(device),
        None,
        pipeline_run.log_path,
    )
    if result.exit_code == 0:
        log.info(f"Unlocked {device}")
    else:
        log.warning(f"cdrdao unlock on {device} exited with {result.exit_code}")


def release_resources(pipeline_run: PipelineRun, failed: bool) -> list[str]:
    """Unconditional end-of-run cleanup.

    Unlocks the drive after a failed or cancelled cdrdao run, then deletes
    the temp directory and the log file. Returns the removals that failed.
    """
    try:
        if (
            failed
            and pipeline_run.needs_unlock
            and pipeline_run.config.unlock_after_failure
        ):
            pipeline_run.needs_unlock = False
            unlock_drive(pipeline_run)
    finally:
        failures = pipeline_run.release_workspace()
    return failures


def run(pipeline_run: PipelineRun) -> None:
    """Cleanup stage -- success path; raises if the temp files could not be removed."""
    failures = release_resources(pipeline_run, failed=False)
    if failures:
        raise InfrastructureError(f"Cleanup failed: {'; '.join(failures)}")
    log.debug("Cleanup complete")
