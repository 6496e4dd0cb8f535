import errno
import os
from unittest.mock import patch

from diskwarden.tmp_reaper import SweepResult, TmpReaper, sweep
from tests.factories import NOW, failing_on, make_deep_tree, make_file, set_age

HOUR = 60 * 60


def test_deletes_only_stale_file(tmp_path) -> None:
    old = make_file(tmp_path / "old.log", 123, age=2 * HOUR)
    fresh = make_file(tmp_path / "fresh.log", 45, age=10 * 60)

    result = sweep(tmp_path, max_age=HOUR, now=NOW)

    assert result == SweepResult(deleted_count=1, deleted_bytes=123, error_count=0)
    assert not old.exists()
    assert fresh.exists()


def test_future_mtime_is_never_deleted(tmp_path) -> None:
    future = make_file(tmp_path / "future", 10, age=-10 * 24 * HOUR)

    result = sweep(tmp_path, max_age=0, now=NOW)

    assert result == SweepResult()
    assert future.exists()


def test_exact_max_age_is_kept(tmp_path) -> None:
    edge = make_file(tmp_path / "edge", 1, age=HOUR)
    assert sweep(tmp_path, max_age=HOUR, now=NOW) == SweepResult()
    assert edge.exists()


def test_missing_root_is_empty_result(tmp_path) -> None:
    assert sweep(tmp_path / "missing", max_age=HOUR, now=NOW) == SweepResult()


def test_root_is_never_removed(tmp_path) -> None:
    root = tmp_path / "root"
    root.mkdir()
    set_age(root, 10 * HOUR)

    assert sweep(root, max_age=HOUR, now=NOW) == SweepResult()
    assert root.exists()


def test_stale_directory_emptied_and_removed(tmp_path) -> None:
    make_file(tmp_path / "a" / "b" / "old1", 10, age=5 * HOUR)
    make_file(tmp_path / "a" / "old2", 20, age=5 * HOUR)
    set_age(tmp_path / "a" / "b", 5 * HOUR)
    set_age(tmp_path / "a", 5 * HOUR)

    result = sweep(tmp_path, max_age=HOUR, now=NOW)

    # Two files plus two directories
    assert result == SweepResult(deleted_count=4, deleted_bytes=30, error_count=0)
    assert os.listdir(tmp_path) == []


def test_directory_with_fresh_content_is_kept(tmp_path) -> None:
    make_file(tmp_path / "dir" / "old", 10, age=5 * HOUR)
    make_file(tmp_path / "dir" / "new", 10, age=60)
    set_age(tmp_path / "dir", 5 * HOUR)

    result = sweep(tmp_path, max_age=HOUR, now=NOW)

    assert result == SweepResult(deleted_count=1, deleted_bytes=10)
    assert (tmp_path / "dir" / "new").exists()


def test_fresh_empty_directory_is_kept(tmp_path) -> None:
    (tmp_path / "recent").mkdir()
    set_age(tmp_path / "recent", 60)

    assert sweep(tmp_path, max_age=HOUR, now=NOW) == SweepResult()
    assert (tmp_path / "recent").exists()


def test_symlinks_are_left_alone(tmp_path) -> None:
    outside = tmp_path / "outside"
    target = make_file(outside / "precious", 50, age=10 * HOUR)
    root = tmp_path / "root"
    root.mkdir()
    os.symlink(outside, root / "dir_link")
    os.symlink(target, root / "file_link")

    result = sweep(root, max_age=HOUR, now=NOW)

    assert result == SweepResult()
    assert target.exists()
    assert (root / "file_link").is_symlink()


def test_undeletable_file_counts_error_and_continues(tmp_path) -> None:
    stuck = make_file(tmp_path / "locked" / "stuck", 5, age=5 * HOUR)
    other = make_file(tmp_path / "other", 7, age=5 * HOUR)
    set_age(tmp_path / "locked", 60)
    denied = PermissionError(errno.EACCES, "Permission denied")

    with patch("diskwarden.tmp_reaper.os.unlink", failing_on(os.unlink, stuck, denied)):
        result = sweep(tmp_path, max_age=HOUR, now=NOW)

    assert result == SweepResult(deleted_count=1, deleted_bytes=7, error_count=1)
    assert stuck.exists()
    assert not other.exists()


def test_undeletable_directory_counts_error(tmp_path) -> None:
    make_file(tmp_path / "stale" / "old", 4, age=5 * HOUR)
    set_age(tmp_path / "stale", 5 * HOUR)
    denied = OSError(errno.EACCES, "Permission denied")

    with patch("diskwarden.tmp_reaper.os.rmdir", failing_on(os.rmdir, tmp_path / "stale", denied)):
        result = sweep(tmp_path, max_age=HOUR, now=NOW)

    assert result == SweepResult(deleted_count=1, deleted_bytes=4, error_count=1)
    assert (tmp_path / "stale").is_dir()


def test_unlistable_directory_is_skipped_silently(tmp_path) -> None:
    hidden = make_file(tmp_path / "hidden" / "old", 5, age=5 * HOUR)
    other = make_file(tmp_path / "other", 7, age=5 * HOUR)
    set_age(tmp_path / "hidden", 60)
    denied = PermissionError(errno.EACCES, "Permission denied")

    with patch("diskwarden.tmp_reaper.os.scandir", failing_on(os.scandir, tmp_path / "hidden", denied)):
        result = sweep(tmp_path, max_age=HOUR, now=NOW)

    assert result == SweepResult(deleted_count=1, deleted_bytes=7, error_count=0)
    assert hidden.exists()
    assert not other.exists()


def test_deep_tree_is_swept(tmp_path) -> None:
    dirs = make_deep_tree(tmp_path, 1100)
    make_file(dirs[-1] / "bottom", 9, age=5 * HOUR)
    for directory in dirs:
        set_age(directory, 5 * HOUR)

    result = sweep(tmp_path, max_age=HOUR, now=NOW)

    assert result == SweepResult(deleted_count=1101, deleted_bytes=9, error_count=0)
    assert os.listdir(tmp_path) == []


def test_sweep_results_add() -> None:
    total = SweepResult(1, 10, 0) + SweepResult(2, 5, 1)
    assert total == SweepResult(deleted_count=3, deleted_bytes=15, error_count=1)


def test_reaper_uses_hours(tmp_path) -> None:
    make_file(tmp_path / "day_old", 3, age=25 * HOUR)
    make_file(tmp_path / "hour_old", 3, age=HOUR)

    result = TmpReaper(tmp_path, max_age_hours=24).run(now=NOW)

    assert result.deleted_count == 1
    assert (tmp_path / "hour_old").exists()
