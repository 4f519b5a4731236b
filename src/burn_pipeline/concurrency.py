"""Device locking, cancellation tokens, and disk space checks."""

from __future__ import annotations

import re
import shutil
import sys
import threading
from pathlib import Path

from loguru import logger

from .errors import DeviceBusyError, PipelineCancelled

log = logger.bind(stage="concurrency")

# Devices held by runs in this process
_held_devices: set[str] = set()
_held_lock = threading.Lock()


class CancellationToken:
    """One-shot cancellation flag shared by the orchestrator and its stages."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise PipelineCancelled("Cancelled by user")


def _lock_name(device: str) -> str:
    return re.sub(r"[^A-Za-z0-9_.-]+", "_", device).strip("_") or "device"


class DeviceLock:
    """Exclusive hold on one optical device for the duration of a run."""

    def __init__(self, device: str, handle) -> None:
        self.device = device
        self._handle = handle

    def release(self) -> None:
        if self._handle is None:
            return
        self._handle.close()
        self._handle = None
        with _held_lock:
            _held_devices.discard(self.device)
        log.debug(f"Released device lock for {self.device}")

    def __enter__(self) -> DeviceLock:
        return self

    def __exit__(self, *exc) -> None:
        self.release()


def acquire_device_lock(lock_dir: Path, device: str) -> DeviceLock:
    """Acquire an exclusive file lock for a device.

    Raises DeviceBusyError if another run (in this or another process) holds
    the device.
    """
    log.debug(f"acquire_device_lock(lock_dir={lock_dir}, device={device})")

    with _held_lock:
        if device in _held_devices:
            log.warning(f"Device {device} already in use by this process")
            raise DeviceBusyError(device)
        _held_devices.add(device)

    try:
        lock_dir.mkdir(parents=True, exist_ok=True)
        lock_file = lock_dir / f"{_lock_name(device)}.lock"
        fh = open(lock_file, "w")
    except OSError:
        with _held_lock:
            _held_devices.discard(device)
        raise

    try:
        if sys.platform == "win32":
            import msvcrt

            msvcrt.locking(fh.fileno(), msvcrt.LK_NBLCK, 1)
        else:
            import fcntl

            fcntl.flock(fh.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
    except OSError:
        fh.close()
        with _held_lock:
            _held_devices.discard(device)
        log.warning(f"Failed to acquire lock at {lock_file}")
        raise DeviceBusyError(device)

    log.info(f"Device lock acquired for {device} at {lock_file}")
    return DeviceLock(device, fh)


def check_disk_space(required_bytes: int, work_dir: Path, margin: float = 1.1) -> bool:
    """Check that work_dir has room for ``required_bytes`` times ``margin``.

    Returns True if sufficient, False otherwise.
    """
    log.debug(
        f"check_disk_space(required_bytes={required_bytes}, "
        f"work_dir={work_dir}, margin={margin})"
    )

    required = int(required_bytes * margin)
    usage = shutil.disk_usage(work_dir)
    result = usage.free >= required

    log.debug(
        f"Disk space check: required={required:,} bytes, "
        f"free={usage.free:,} bytes, sufficient={result}"
    )

    return result


def path_size(path: Path) -> int:
    """Total size in bytes of a file or a directory tree."""
    if path.is_file():
        return path.stat().st_size
    return sum(f.stat().st_size for f in path.rglob("*") if f.is_file())
