"""Offset-based log file tailer.

A tailer polls one log file on a background thread and delivers batches of
complete lines to a callback. It remembers the byte offset of the last
complete line it delivered, so a partially written line is held back and
re-read on the next poll. ``stop()`` joins the thread and performs a final
read that also delivers a trailing unterminated line, leaving the offset at
the file's length.

Only one tailer may be active per path in the process.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from pathlib import Path

from loguru import logger

from .errors import InfrastructureError

log = logger.bind(stage="tailer")

LinesCallback = Callable[[list[str]], None]

_active_paths: set[Path] = set()
_active_lock = threading.Lock()


def _decode(data: bytes) -> list[str]:
    text = data.decode("utf-8", errors="replace")
    return [line.rstrip("\r") for line in text.split("\n") if line.strip()]


class LogTailer:
    """Poll a log file for appended lines."""

    def __init__(self, poll_interval: float = 0.2) -> None:
        self.poll_interval = poll_interval
        self.offset = 0
        self._path: Path | None = None
        self._on_lines: LinesCallback | None = None
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._read_lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._thread is not None

    def start(
        self,
        path: Path,
        on_lines: LinesCallback,
        poll_interval: float | None = None,
    ) -> None:
        """Start polling ``path`` from offset 0.

        Raises InfrastructureError if this tailer is already running or
        another tailer is active on the same path.
        """
        path = Path(path)
        if self._thread is not None:
            raise InfrastructureError(f"Tailer already running on {self._path}")

        with _active_lock:
            if path in _active_paths:
                raise InfrastructureError(f"Log file already tailed: {path}")
            _active_paths.add(path)

        if poll_interval is not None:
            self.poll_interval = poll_interval
        self._path = path
        self._on_lines = on_lines
        self.offset = 0
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._poll_loop, name=f"tailer:{path.name}", daemon=True
        )
        self._thread.start()
        log.debug(f"Tailing {path} every {self.poll_interval:.3f}s")

    def stop(self, path: Path, on_lines: LinesCallback | None = None) -> None:
        """Stop polling and deliver everything left in the file.

        ``on_lines`` receives the final batch (defaults to the start callback).
        Stopping a tailer that is not running is a no-op.
        """
        path = Path(path)
        if self._thread is None or path != self._path:
            return

        self._stop_event.set()
        self._thread.join()
        self._thread = None

        try:
            lines = self.read_new_lines(final=True)
            if lines:
                (on_lines or self._on_lines)(lines)
        finally:
            with _active_lock:
                _active_paths.discard(path)
            log.debug(f"Stopped tailing {path} at offset {self.offset}")
            self._path = None
            self._on_lines = None

    def read_new_lines(self, final: bool = False) -> list[str]:
        """Read complete lines appended since the last read.

        A missing file yields no lines. With ``final`` set, a trailing line
        without a terminator is delivered too.
        """
        if self._path is None:
            return []

        with self._read_lock:
            try:
                with open(self._path, "rb") as fh:
                    size = fh.seek(0, 2)
                    if size < self.offset:
                        log.warning(f"{self._path} shrank, re-reading from start")
                        self.offset = 0
                    fh.seek(self.offset)
                    data = fh.read()
            except FileNotFoundError:
                return []
            except OSError as e:
                log.warning(f"Failed to read {self._path}: {e}")
                return []

            if not data:
                return []

            if final:
                self.offset += len(data)
                return _decode(data)

            end = data.rfind(b"\n")
            if end < 0:
                return []
            complete = data[: end + 1]
            self.offset += len(complete)
            return _decode(complete)

    def _poll_loop(self) -> None:
        while not self._stop_event.wait(self.poll_interval):
            lines = self.read_new_lines()
            if lines and self._on_lines is not None:
                self._on_lines(lines)
