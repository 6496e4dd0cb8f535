"""Threshold ladder for disk usage alerts.

Usage is alerted once per rung per excursion. The highest rung alerted so
far is remembered in a marker that survives restarts; dropping below the
reset floor clears it and re-arms every rung.
"""

import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol

logger = logging.getLogger(__name__)

LADDER = (50, 60, 70, 80, 90, 95)
RESET_FLOOR = 45


@dataclass(frozen=True)
class ThresholdDecision:
    """Outcome of evaluating one usage sample."""
    alert_rung: Optional[int]  # Rung to alert for, None for no alert
    marker: Optional[int]  # Marker value after this sample

    @property
    def should_alert(self) -> bool:
        return self.alert_rung is not None


def highest_rung(usage: int) -> Optional[int]:
    """Highest ladder rung at or below usage, if any."""
    for rung in reversed(LADDER):
        if rung <= usage:
            return rung
    return None


def evaluate(usage: int, marker: Optional[int]) -> ThresholdDecision:
    """
    Decide whether a usage sample warrants an alert.

    Args:
        usage: Current usage percentage
        marker: Highest rung already alerted for this excursion, or None

    Returns:
        The alert decision and the marker to keep afterwards
    """
    if usage < RESET_FLOOR:
        return ThresholdDecision(alert_rung=None, marker=None)

    rung = highest_rung(usage)
    if rung is None:
        # Between the reset floor and the lowest rung
        return ThresholdDecision(alert_rung=None, marker=marker)

    if marker is None or rung > marker:
        return ThresholdDecision(alert_rung=rung, marker=rung)

    return ThresholdDecision(alert_rung=None, marker=marker)


class RungStore(Protocol):
    """Durable storage for the last alerted rung."""

    def get(self) -> Optional[int]: ...

    def set(self, rung: int) -> None: ...

    def clear(self) -> None: ...


class MemoryRungStore:
    """Rung store kept in process memory."""

    def __init__(self, rung: Optional[int] = None):
        self.rung = rung

    def get(self) -> Optional[int]:
        return self.rung

    def set(self, rung: int) -> None:
        self.rung = rung

    def clear(self) -> None:
        self.rung = None


class FileRungStore:
    """Rung store backed by a small text file holding the decimal rung."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def get(self) -> Optional[int]:
        """Read the marker. A missing or unreadable marker counts as absent."""
        try:
            text = self.path.read_text().strip()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning(f"Cannot read alert marker {self.path}: {e}")
            return None

        try:
            return int(text)
        except ValueError:
            logger.warning(f"Ignoring malformed alert marker {self.path}: {text!r}")
            return None

    def set(self, rung: int) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.")
        try:
            with os.fdopen(fd, "w") as f:
                f.write(str(rung))
            os.replace(tmp_path, self.path)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise

    def clear(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
