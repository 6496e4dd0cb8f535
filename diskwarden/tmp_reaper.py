"""Stale temporary file cleanup - deletes files older than a maximum age."""

import errno
import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .byte_size import ByteSize

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SweepResult:
    """Counters for one sweep over a directory tree."""
    deleted_count: int = 0
    deleted_bytes: int = 0
    error_count: int = 0

    def __add__(self, other: "SweepResult") -> "SweepResult":
        return SweepResult(
            deleted_count=self.deleted_count + other.deleted_count,
            deleted_bytes=self.deleted_bytes + other.deleted_bytes,
            error_count=self.error_count + other.error_count,
        )


_ONE_ERROR = SweepResult(error_count=1)


def sweep(root, max_age: float, now: Optional[float] = None) -> SweepResult:
    """
    Delete stale files and stale empty directories under root.

    Files are stale when older than max_age; files modified after now are
    never touched. Subdirectories are emptied first, then removed if empty
    and stale themselves. Symlinks and special files are left alone. The
    root directory is never removed.

    Args:
        root: Directory to clean
        max_age: Maximum age in seconds
        now: Reference timestamp, defaults to the current time

    Returns:
        Counters for the sweep
    """
    if now is None:
        now = time.time()
    if not os.path.isdir(root) or os.path.islink(root):
        logger.debug(f"Nothing to clean at {root}")
        return SweepResult()
    return _sweep_dir(root, max_age, now)


def _is_stale(mtime: float, max_age: float, now: float) -> bool:
    age = now - mtime
    # Negative age means a timestamp in the future
    return age >= 0 and age > max_age


def _sweep_dir(root, max_age: float, now: float) -> SweepResult:
    result = SweepResult()
    # (path, mtime): mtime is None to list the directory, otherwise the
    # directory's mtime as seen before its contents changed, to try rmdir
    pending = [(root, None)]
    while pending:
        directory, dir_mtime = pending.pop()
        if dir_mtime is not None:
            if _is_stale(dir_mtime, max_age, now):
                result += _remove_dir(directory)
            continue

        try:
            with os.scandir(directory) as it:
                entries = list(it)
        except OSError as e:
            logger.debug(f"Cannot list {directory}: {e}")
            continue

        for entry in entries:
            try:
                if entry.is_dir(follow_symlinks=False):
                    # Removal is popped only after everything below it
                    pending.append((entry.path, entry.stat(follow_symlinks=False).st_mtime))
                    pending.append((entry.path, None))
                elif entry.is_file(follow_symlinks=False):
                    st = entry.stat(follow_symlinks=False)
                    if _is_stale(st.st_mtime, max_age, now):
                        result += _remove_file(entry.path, st.st_size)
            except FileNotFoundError:
                # Vanished between listing and stat
                continue
            except OSError as e:
                logger.debug(f"Cannot stat {entry.path}: {e}")
                result += _ONE_ERROR

    return result


def _remove_file(path: str, size: int) -> SweepResult:
    try:
        os.unlink(path)
    except FileNotFoundError:
        return SweepResult()
    except OSError as e:
        logger.warning(f"Failed to delete {path}: {e}")
        return _ONE_ERROR
    logger.debug(f"Deleted {path} ({size} bytes)")
    return SweepResult(deleted_count=1, deleted_bytes=size)


def _remove_dir(path: str) -> SweepResult:
    try:
        os.rmdir(path)
    except OSError as e:
        if e.errno in (errno.ENOTEMPTY, errno.EEXIST, errno.ENOENT):
            return SweepResult()
        logger.warning(f"Failed to remove directory {path}: {e}")
        return _ONE_ERROR
    logger.debug(f"Removed empty directory {path}")
    return SweepResult(deleted_count=1)


class TmpReaper:
    """Periodically cleans a temporary directory."""

    def __init__(self, path: Path, max_age_hours: float = 24):
        """
        Args:
            path: Directory to clean
            max_age_hours: Files older than this are deleted
        """
        self.path = Path(path)
        self.max_age = max_age_hours * 60 * 60

    def run(self, now: Optional[float] = None) -> SweepResult:
        """Run one sweep and log its summary."""
        logger.info(f"Cleaning {self.path} (max age {self.max_age / 3600:g}h)")
        result = sweep(self.path, self.max_age, now)
        logger.info(
            f"Cleaned {self.path}: deleted {result.deleted_count} entries "
            f"({ByteSize(result.deleted_bytes)}), {result.error_count} errors"
        )
        return result
