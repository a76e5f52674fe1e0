"""
Unit tests for temp file cleanup and its scheduler wrapper.
"""

import os
import time

from app.services.cache_service import cleanup_temp_files
from scripts import temp_cleanup_scheduler


def _aged_file(directory, name, age_minutes, content=b"data"):
    path = directory / name
    path.write_bytes(content)
    stamp = time.time() - age_minutes * 60
    os.utime(path, (stamp, stamp))
    return path


def test_cleanup_removes_only_old_files(tmp_path):
    old = _aged_file(tmp_path, "old.mp3", 90, b"12345")
    fresh = _aged_file(tmp_path, "fresh.mp3", 5)

    result = cleanup_temp_files(max_age_minutes=60, temp_dir=str(tmp_path))

    assert result == {"deleted": 1, "freed_bytes": 5, "errors": []}
    assert not old.exists()
    assert fresh.exists()


def test_cleanup_ignores_subdirectories(tmp_path):
    (tmp_path / "nested").mkdir()
    result = cleanup_temp_files(max_age_minutes=0, temp_dir=str(tmp_path))
    assert result["deleted"] == 0
    assert (tmp_path / "nested").exists()


def test_cleanup_missing_directory(tmp_path):
    result = cleanup_temp_files(temp_dir=str(tmp_path / "gone"))
    assert result == {"deleted": 0, "freed_bytes": 0, "errors": []}


def test_manual_cleanup_records_last_result(tmp_path, monkeypatch):
    _aged_file(tmp_path, "stale.mp3", 600)
    monkeypatch.setattr(
        temp_cleanup_scheduler,
        "cleanup_temp_files",
        lambda max_age_minutes: cleanup_temp_files(max_age_minutes, temp_dir=str(tmp_path)),
    )

    result = temp_cleanup_scheduler.trigger_manual_cleanup()

    assert result["deleted"] == 1
    assert "timestamp" in result
    status = temp_cleanup_scheduler.get_scheduler_status()
    assert status["running"] is False
    assert status["last_cleanup_result"]["deleted"] == 1
