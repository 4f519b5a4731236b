"""Tests for device locks, cancellation tokens and disk space checks."""

from unittest.mock import patch

import pytest

from burn_pipeline.concurrency import (
    CancellationToken,
    acquire_device_lock,
    check_disk_space,
    path_size,
)
from burn_pipeline.errors import DeviceBusyError, PipelineCancelled


class TestCancellationToken:
    def test_initially_clear(self):
        token = CancellationToken()
        assert not token.is_cancelled
        token.raise_if_cancelled()

    def test_cancel(self):
        token = CancellationToken()
        token.cancel()
        assert token.is_cancelled
        with pytest.raises(PipelineCancelled, match="Cancelled by user"):
            token.raise_if_cancelled()


class TestDeviceLock:
    def test_creates_lock_file(self, tmp_path):
        lock_dir = tmp_path / "locks"
        lock = acquire_device_lock(lock_dir, "/dev/sr0")
        assert (lock_dir / "dev_sr0.lock").exists()
        lock.release()

    def test_second_lock_raises(self, tmp_path):
        lock = acquire_device_lock(tmp_path, "/dev/sr0")
        with pytest.raises(DeviceBusyError, match="/dev/sr0"):
            acquire_device_lock(tmp_path, "/dev/sr0")
        lock.release()

    def test_different_devices(self, tmp_path):
        a = acquire_device_lock(tmp_path, "/dev/sr0")
        b = acquire_device_lock(tmp_path, "/dev/sr1")
        a.release()
        b.release()

    def test_released_lock_can_be_reacquired(self, tmp_path):
        acquire_device_lock(tmp_path, "/dev/sr0").release()
        lock = acquire_device_lock(tmp_path, "/dev/sr0")
        lock.release()

    def test_release_twice(self, tmp_path):
        lock = acquire_device_lock(tmp_path, "/dev/sr0")
        lock.release()
        lock.release()

    def test_context_manager(self, tmp_path):
        with acquire_device_lock(tmp_path, "/dev/sr0") as lock:
            assert lock.device == "/dev/sr0"
        acquire_device_lock(tmp_path, "/dev/sr0").release()

    def test_held_by_other_process(self, tmp_path):
        with patch("fcntl.flock", side_effect=BlockingIOError):
            with pytest.raises(DeviceBusyError):
                acquire_device_lock(tmp_path, "/dev/sr0")
        # Registry entry was rolled back
        acquire_device_lock(tmp_path, "/dev/sr0").release()


class TestCheckDiskSpace:
    def test_sufficient_space(self, tmp_path):
        assert check_disk_space(1000, tmp_path) is True

    def test_insufficient_space(self, tmp_path):
        fake_usage = type("Usage", (), {"free": 100, "total": 1000, "used": 900})()
        with patch(
            "burn_pipeline.concurrency.shutil.disk_usage", return_value=fake_usage
        ):
            assert check_disk_space(1000, tmp_path) is False

    def test_margin_applied(self, tmp_path):
        fake_usage = type("Usage", (), {"free": 1050, "total": 2000, "used": 950})()
        with patch(
            "burn_pipeline.concurrency.shutil.disk_usage", return_value=fake_usage
        ):
            assert check_disk_space(1000, tmp_path, margin=1.0) is True
            assert check_disk_space(1000, tmp_path, margin=1.1) is False


class TestPathSize:
    def test_file(self, tmp_path):
        f = tmp_path / "a.bin"
        f.write_bytes(b"x" * 300)
        assert path_size(f) == 300

    def test_directory_tree(self, tmp_path):
        (tmp_path / "sub").mkdir()
        (tmp_path / "a").write_bytes(b"x" * 100)
        (tmp_path / "sub" / "b").write_bytes(b"x" * 50)
        assert path_size(tmp_path) == 150
