"""Directory tree size measurement."""

import logging
import os

logger = logging.getLogger(__name__)


def dir_size(path) -> int:
    """
    Sum the sizes of all regular files under a directory tree.

    Symlinks below the root are neither followed nor counted. Entries
    that vanish or cannot be read are skipped, so the result only covers
    what could be measured. A missing path measures 0.

    Args:
        path: Directory (or single file) to measure

    Returns:
        Total size in bytes
    """
    try:
        if os.path.isfile(path):
            return os.stat(path).st_size
    except OSError as e:
        logger.debug(f"Skipping {path}: {e}")
        return 0

    if not os.path.isdir(path):
        return 0

    return _walk(path)


def _walk(root) -> int:
    total = 0
    pending = [root]
    while pending:
        directory = pending.pop()
        try:
            with os.scandir(directory) as entries:
                for entry in entries:
                    try:
                        if entry.is_dir(follow_symlinks=False):
                            pending.append(entry.path)
                        elif entry.is_file(follow_symlinks=False):
                            total += entry.stat(follow_symlinks=False).st_size
                    except OSError as e:
                        logger.debug(f"Skipping {entry.path}: {e}")
        except OSError as e:
            logger.debug(f"Cannot list {directory}: {e}")
    return total
