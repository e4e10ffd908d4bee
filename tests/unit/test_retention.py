"""Tests for image retention and the full purge."""

from __future__ import annotations

from datetime import datetime, timedelta
from unittest.mock import patch

import pytest

from daytrace.retention import RetentionManager

NOW = datetime(2024, 6, 30, 12, 0)


def _image(root, day: str, name: str, size: int = 100):
    folder = root / day
    folder.mkdir(parents=True, exist_ok=True)
    path = folder / name
    path.write_bytes(b"x" * size)
    return path


def test_days_must_be_positive(repo):
    with pytest.raises(ValueError):
        RetentionManager(repo, days=0)


def test_cutoff(repo):
    assert RetentionManager(repo, days=7).cutoff(NOW) == NOW - timedelta(days=7)


def test_cleanup_deletes_old_images_keeps_rows(repo, snapshot, tmp_path):
    old_path = _image(tmp_path, "2024-05-01", "a.webp", size=250)
    new_path = _image(tmp_path, "2024-06-29", "b.webp")
    old = snapshot(datetime(2024, 5, 1, 9), image_path=str(old_path))
    new = snapshot(datetime(2024, 6, 29, 9), image_path=str(new_path))
    repo.add_snapshot(old)
    repo.add_snapshot(new)

    result = RetentionManager(repo, days=30).cleanup(NOW)

    assert result.deleted_files == 1
    assert result.reclaimed_bytes == 250
    assert result.cleared == 1
    assert not old_path.exists()
    assert not old_path.parent.exists()
    assert new_path.exists()
    assert repo.get_snapshot(old.id).image_path == ""
    assert repo.get_snapshot(old.id).app_name == "Code"
    assert repo.get_snapshot(new.id).image_path == str(new_path)


def test_cleanup_is_idempotent(repo, snapshot, tmp_path):
    path = _image(tmp_path, "2024-05-01", "a.webp")
    repo.add_snapshot(snapshot(datetime(2024, 5, 1, 9), image_path=str(path)))
    manager = RetentionManager(repo, days=30)

    manager.cleanup(NOW)
    again = manager.cleanup(NOW)

    assert again.deleted_files == 0
    assert again.cleared == 0


def test_cleanup_clears_missing_files(repo, snapshot, tmp_path):
    snap = snapshot(datetime(2024, 5, 1, 9), image_path=str(tmp_path / "gone.webp"))
    repo.add_snapshot(snap)

    result = RetentionManager(repo, days=30).cleanup(NOW)

    assert result.deleted_files == 0
    assert result.cleared == 1
    assert repo.get_snapshot(snap.id).image_path == ""


def test_cleanup_retries_undeletable_files(repo, snapshot, tmp_path):
    path = _image(tmp_path, "2024-05-01", "a.webp")
    snap = snapshot(datetime(2024, 5, 1, 9), image_path=str(path))
    repo.add_snapshot(snap)

    with patch("daytrace.retention.Path.unlink", side_effect=PermissionError("busy")):
        result = RetentionManager(repo, days=30).cleanup(NOW)

    assert result.cleared == 0
    assert repo.get_snapshot(snap.id).image_path == str(path)


def test_cleanup_keeps_non_empty_folders(repo, snapshot, tmp_path):
    old_path = _image(tmp_path, "2024-05-01", "a.webp")
    _image(tmp_path, "2024-05-01", "unrelated.txt")
    repo.add_snapshot(snapshot(datetime(2024, 5, 1, 9), image_path=str(old_path)))

    RetentionManager(repo, days=30).cleanup(NOW)

    assert (tmp_path / "2024-05-01").is_dir()


def test_purge_removes_everything(repo, vectors, snapshot, tmp_path):
    image_dir = tmp_path / "snapshots"
    path = _image(image_dir, "2024-06-29", "a.webp")
    snap = snapshot(datetime(2024, 6, 29, 9), image_path=str(path), text="hello")
    repo.add_snapshot(snap)
    vectors.upsert(snap.id, "hello", [1.0, 0.0])

    result = RetentionManager(repo).purge(vectors, image_dir)

    assert result.snapshots == 1
    assert result.embeddings == 1
    assert result.image_dir_removed is True
    assert repo.count_snapshots() == 0
    assert vectors.count() == 0
    assert not image_dir.exists()


def test_purge_missing_image_dir(repo, tmp_path):
    result = RetentionManager(repo).purge(None, tmp_path / "never-created")
    assert result.image_dir_removed is False
