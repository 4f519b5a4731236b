"""Run state machine and progress snapshot.

``RunState`` owns the snapshot of one run. Phases only move forward along the
operation's phase order; a backward move is ignored and logged. ``cancelling``
can be entered from any active phase and afterwards only resolves to
``failed("Cancelled by user")``. Terminal phases accept nothing.

Progress regressions within a step are dropped: a lower ``current`` for the
same total and unit keeps the previous value. A new total or unit starts a
new measurement. Counters reset at every stage and step boundary.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Iterable
from dataclasses import dataclass, field, replace

from loguru import logger

from .errors import ToolError
from .models import (
    CANCELLED_REASON,
    IDLE,
    EventKind,
    OperationKind,
    OutputEvent,
    Phase,
    PhaseKind,
    STAGE_ORDER,
    Stage,
    phase_order,
)

log = logger.bind(stage="state")

ETA_MIN_ELAPSED = 2.0


@dataclass
class ProgressSnapshot:
    """Point-in-time view of a run's progress."""

    operation: OperationKind | None = None
    phase: Phase = IDLE
    stage: Stage | None = None
    stage_index: int = 0
    stage_count: int = 0
    step: int = 0
    step_count: int = 0
    current: float = 0.0
    total: float = 0.0
    unit: str = ""
    current_track: int = 1
    elapsed_seconds: float = 0.0
    buffer_fifo: int = 0
    buffer_drive: int = 0
    is_simulation: bool = False
    write_speed: str = ""
    warnings: list[str] = field(default_factory=list)
    tool_errors: list[str] = field(default_factory=list)
    error: ToolError | None = None

    @property
    def percent(self) -> float:
        if self.total <= 0:
            return 0.0
        return min(self.current / self.total * 100, 100.0)

    @property
    def eta_seconds(self) -> float | None:
        if self.current <= 0 or self.elapsed_seconds <= ETA_MIN_ELAPSED:
            return None
        remaining = max(self.total - self.current, 0.0)
        return remaining * self.elapsed_seconds / self.current

    @property
    def overall_percent(self) -> float:
        """Progress across all stages, weighting each stage equally."""
        if self.phase.kind == PhaseKind.COMPLETED:
            return 100.0
        if self.stage_count <= 0:
            return 0.0
        done = max(self.stage_index - 1, 0)
        fraction = self.percent / 100
        if self.step_count > 0:
            fraction = (max(self.step - 1, 0) + fraction) / self.step_count
        return min((done + fraction) / self.stage_count * 100, 100.0)

    @property
    def elapsed_formatted(self) -> str:
        total = int(self.elapsed_seconds)
        return f"{total // 60}:{total % 60:02d}"

    def copy(self) -> ProgressSnapshot:
        return replace(
            self, warnings=list(self.warnings), tool_errors=list(self.tool_errors)
        )


class RunState:
    """Owns and mutates the snapshot of a single run."""

    def __init__(self, operation: OperationKind, simulation: bool = False) -> None:
        self.operation = operation
        self._order = phase_order(operation)
        self._stages = STAGE_ORDER[operation]
        self._lock = threading.Lock()
        self._started_at: float | None = None
        self._stage_started_at: float | None = None
        self._snapshot = ProgressSnapshot(
            operation=operation,
            stage_count=len(self._stages),
            is_simulation=simulation,
        )

    # -- Reads --

    def snapshot(self) -> ProgressSnapshot:
        with self._lock:
            return self._snapshot.copy()

    @property
    def phase(self) -> Phase:
        with self._lock:
            return self._snapshot.phase

    # -- Transitions --

    def transition(self, phase: Phase) -> bool:
        """Move to ``phase`` if the move is legal. Returns True if applied."""
        with self._lock:
            return self._transition(phase)

    def begin_stage(self, stage: Stage, phase: Phase) -> None:
        """Enter a stage: reset counters and move to its entry phase."""
        with self._lock:
            now = time.monotonic()
            if self._started_at is None:
                self._started_at = now
            self._stage_started_at = now
            snap = self._snapshot
            snap.stage = stage
            snap.stage_index = self._stages.index(stage) + 1
            snap.step = 0
            snap.step_count = 0
            self._reset_counters()
            self._transition(phase)

    def begin_step(self, step: int, step_count: int) -> None:
        """Start a sub-step of the current stage (e.g. one track)."""
        with self._lock:
            self._snapshot.step = step
            self._snapshot.step_count = step_count
            self._stage_started_at = time.monotonic()
            self._reset_counters()

    def request_cancel(self) -> bool:
        """Enter ``cancelling`` from any active phase."""
        with self._lock:
            return self._transition(Phase(PhaseKind.CANCELLING))

    def complete(self) -> bool:
        with self._lock:
            return self._transition(Phase(PhaseKind.COMPLETED))

    def fail(self, reason: str, error: ToolError | None = None) -> bool:
        """Resolve to ``failed``. A cancelling run always fails as cancelled."""
        with self._lock:
            if self._snapshot.phase.kind == PhaseKind.CANCELLING:
                reason = CANCELLED_REASON
            applied = self._transition(Phase.failed(reason))
            if applied and error is not None:
                self._snapshot.error = error
            return applied

    def tick(self) -> None:
        """Refresh the elapsed time of the current stage or step."""
        with self._lock:
            if self._stage_started_at is not None and self._snapshot.phase.is_active:
                self._snapshot.elapsed_seconds = round(
                    time.monotonic() - self._stage_started_at, 1
                )

    def apply(self, events: Iterable[OutputEvent]) -> bool:
        """Apply parsed events in order. Returns True if the phase changed."""
        changed = False
        with self._lock:
            for event in events:
                changed = self._apply(event) or changed
        return changed

    # -- Internals (lock held) --

    def _reset_counters(self) -> None:
        snap = self._snapshot
        snap.current = 0.0
        snap.total = 0.0
        snap.unit = ""
        snap.elapsed_seconds = 0.0

    def _rank(self, phase: Phase) -> int:
        try:
            return self._order.index(phase.kind)
        except ValueError:
            return -1

    def _transition(self, phase: Phase) -> bool:
        current = self._snapshot.phase

        if current.is_terminal:
            log.debug(f"Ignoring {phase} after terminal {current}")
            return False

        if current.kind == PhaseKind.CANCELLING:
            if phase.kind == PhaseKind.FAILED:
                self._snapshot.phase = Phase.failed(CANCELLED_REASON)
                return True
            log.debug(f"Ignoring {phase} while cancelling")
            return False

        if phase.kind in (PhaseKind.CANCELLING, PhaseKind.FAILED):
            self._snapshot.phase = phase
            return True

        if phase.kind == PhaseKind.COMPLETED:
            if current.kind == PhaseKind.IDLE:
                log.debug("Ignoring completion of a run that never started")
                return False
            self._snapshot.phase = phase
            return True

        if phase == current:
            return False

        new_rank = self._rank(phase)
        old_rank = self._rank(current)
        if new_rank < 0:
            log.debug(f"Ignoring {phase}: not part of {self.operation}")
            return False
        if new_rank < old_rank:
            log.debug(f"Ignoring backward transition {current} -> {phase}")
            return False
        if (
            new_rank == old_rank
            and phase.kind == PhaseKind.WRITING_TRACK
            and (phase.track or 0) < (current.track or 0)
        ):
            log.debug(f"Ignoring backward transition {current} -> {phase}")
            return False

        log.debug(f"Phase {current} -> {phase}")
        self._snapshot.phase = phase
        return True

    def _apply(self, event: OutputEvent) -> bool:
        snap = self._snapshot
        if snap.phase.is_terminal:
            return False

        if event.kind == EventKind.PHASE_CHANGED and event.phase is not None:
            return self._transition(event.phase)

        elif event.kind == EventKind.PROGRESS:
            current, total = event.current or 0.0, event.total or 0.0
            unit = event.unit or ""
            if total == snap.total and unit == snap.unit and current < snap.current:
                log.debug(
                    f"Ignoring progress regression {current} < {snap.current} {unit}"
                )
                return False
            snap.current, snap.total, snap.unit = current, total, unit

        elif event.kind == EventKind.BUFFER_STATS:
            snap.buffer_fifo = event.fifo or 0
            snap.buffer_drive = event.drive or 0

        elif event.kind == EventKind.TRACK_CHANGED and event.track is not None:
            if event.track >= snap.current_track:
                snap.current_track = event.track

        elif event.kind == EventKind.SPEED_NEGOTIATED:
            snap.write_speed = event.speed or snap.write_speed
            if event.simulation is not None:
                snap.is_simulation = event.simulation

        elif event.kind == EventKind.WARNING and event.text:
            if event.text not in snap.warnings:
                snap.warnings.append(event.text)

        elif event.kind == EventKind.TOOL_ERROR and event.text:
            snap.tool_errors.append(event.text)
        return False
