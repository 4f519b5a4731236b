"""Tool executors -- run an external tool with its output redirected to a log.

The orchestrator only depends on the ``Executor`` protocol. The executor
writes the tool's combined stdout/stderr to ``log_path`` (carriage returns
become newlines so progress redraws turn into separate lines) and returns the
exit code once the process has terminated.

Negative exit codes are reported by the executor itself:
    -1 invalid tool path, -2 invalid arguments, -3 invalid working directory,
    -4 invalid log path, -5 launch failed.
A tool killed by signal N reports 128 + N.
"""

from __future__ import annotations

import shutil
import signal
import subprocess
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

import psutil
from loguru import logger

from .models import Tool

if TYPE_CHECKING:
    from .config import PipelineConfig

log = logger.bind(stage="executor")

INVALID_TOOL_PATH = -1
INVALID_ARGUMENTS = -2
INVALID_WORKING_DIRECTORY = -3
INVALID_LOG_PATH = -4
LAUNCH_FAILED = -5

# Every argument is refused if it carries one of these
CONTROL_CHARS = frozenset("\x00\n\r")
# Drive tools also refuse shell metacharacters; ffmpeg and mkisofs arguments
# carry user file names and are held to CONTROL_CHARS only
SHELL_METACHARS = frozenset("|;&`$><") | CONTROL_CHARS
DRIVE_TOOLS = frozenset(
    {Tool.CDRDAO, Tool.GROWISOFS, Tool.DVD_RW_FORMAT, Tool.XORRISO, Tool.DD}
)

CDRDAO_COMMANDS = frozenset(
    {
        "write", "simulate", "copy", "read-toc", "read-cd", "read-test",
        "show-toc", "scanbus", "disk-info", "blank", "unlock",
    }
)
# Accepted prefixes of the first argument
FIRST_ARG_PREFIXES: dict[Tool, tuple[str, ...]] = {
    Tool.GROWISOFS: ("-Z", "-M", "-dry-run"),
    Tool.DVD_RW_FORMAT: ("-force", "-blank", "-lead-out", "-ssa"),
    Tool.XORRISO: ("-as",),
    Tool.DD: ("if=",),
}
READ_CHUNK = 4096


@dataclass(frozen=True)
class ExecResult:
    exit_code: int
    error_text: str = ""


class Executor(Protocol):
    def invoke(
        self,
        tool: Tool,
        args: list[str],
        working_directory: Path | None,
        log_path: Path,
    ) -> ExecResult: ...

    def cancel(self) -> bool: ...


def check_arguments(tool: Tool, args: list[str]) -> str | None:
    """Return why ``args`` are refused for ``tool``, or None if acceptable."""
    forbidden = SHELL_METACHARS if tool in DRIVE_TOOLS else CONTROL_CHARS
    for arg in args:
        if any(ch in forbidden for ch in arg):
            return f"Forbidden character in argument {arg!r}"

    first = args[0] if args else ""
    if tool == Tool.CDRDAO and first not in CDRDAO_COMMANDS:
        return f"Unknown cdrdao command: {first or '(none)'}"
    prefixes = FIRST_ARG_PREFIXES.get(tool)
    if prefixes and not first.startswith(prefixes):
        return f"Unexpected first argument for {tool}: {first or '(none)'}"
    return None


def _normalize_newlines(chunk: bytes) -> bytes:
    return chunk.replace(b"\r\n", b"\n").replace(b"\r", b"\n")


class SubprocessExecutor:
    """Run tools as local child processes.

    One tool at a time per executor; ``cancel()`` interrupts the running
    process tree with SIGINT, the same signal an interactive Ctrl-C sends.
    """

    def __init__(self, config: PipelineConfig) -> None:
        self.config = config
        self._process: subprocess.Popen | None = None
        self._lock = threading.Lock()

    def invoke(
        self,
        tool: Tool,
        args: list[str],
        working_directory: Path | None,
        log_path: Path,
    ) -> ExecResult:
        executable = shutil.which(self.config.tool_path(tool))
        if executable is None:
            return ExecResult(
                INVALID_TOOL_PATH, f"{tool} not found: {self.config.tool_path(tool)}"
            )
        if (problem := check_arguments(tool, args)) is not None:
            log.error(f"Refusing to run {tool}: {problem}")
            return ExecResult(INVALID_ARGUMENTS, problem)
        if working_directory is not None and not working_directory.is_dir():
            return ExecResult(
                INVALID_WORKING_DIRECTORY,
                f"Working directory does not exist: {working_directory}",
            )
        if not log_path.parent.is_dir():
            return ExecResult(INVALID_LOG_PATH, f"Log directory missing: {log_path}")

        cmd = [executable, *args]
        log.debug(f"Running: {' '.join(cmd)}")

        with open(log_path, "ab") as log_fh:
            try:
                proc = subprocess.Popen(
                    cmd,
                    cwd=working_directory,
                    stdin=subprocess.DEVNULL,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.STDOUT,
                    bufsize=0,
                )
            except OSError as e:
                log_fh.write(f"EXECUTOR_ERROR: {e}\n".encode())
                log.error(f"Failed to launch {tool}: {e}")
                return ExecResult(LAUNCH_FAILED, str(e))

            with self._lock:
                self._process = proc
            try:
                while chunk := proc.stdout.read(READ_CHUNK):
                    log_fh.write(_normalize_newlines(chunk))
                    log_fh.flush()
                returncode = proc.wait()
            finally:
                proc.stdout.close()
                with self._lock:
                    self._process = None

        if returncode < 0:
            returncode = 128 - returncode
        log.debug(f"{tool} exited with code {returncode}")
        return ExecResult(returncode)

    def cancel(self) -> bool:
        """Send SIGINT to the running tool and its children.

        Returns False if nothing is running.
        """
        with self._lock:
            proc = self._process
        if proc is None or proc.poll() is not None:
            return False

        try:
            parent = psutil.Process(proc.pid)
            children = parent.children(recursive=True)
        except psutil.NoSuchProcess:
            return False

        for child in children:
            try:
                child.send_signal(signal.SIGINT)
            except psutil.NoSuchProcess:
                continue
        try:
            parent.send_signal(signal.SIGINT)
        except psutil.NoSuchProcess:
            return False
        log.info(f"Sent SIGINT to pid {proc.pid} ({len(children)} children)")
        return True
