import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .byte_size import ByteSize
from .dir_size import dir_size
from .errors import CapacityQueryError, SinkError
from .telegram_bot import AlertSink
from .thresholds import RungStore, evaluate

logger = logging.getLogger(__name__)


@dataclass
class BudgetStatus:
    """Result of one state directory size check."""
    size: ByteSize
    budget: ByteSize
    alert_sent: bool = False

    @property
    def over_budget(self) -> bool:
        return self.size > self.budget


@dataclass
class UsageStatus:
    """Result of one filesystem usage check."""
    usage: int
    rung: Optional[int] = None  # Rung alerted for in this check
    alert_sent: bool = False


def filesystem_usage(mount: str) -> int:
    """
    Get the used percentage of a mounted filesystem.

    Raises:
        CapacityQueryError: if the filesystem cannot be queried
    """
    try:
        st = os.statvfs(mount)
    except OSError as e:
        raise CapacityQueryError(f"Cannot query filesystem at {mount}: {e}") from e

    total = st.f_blocks
    available = st.f_bavail
    if total <= 0:
        raise CapacityQueryError(f"Filesystem at {mount} reports no blocks")

    return (total - available) * 100 // total


class DiskMonitor:
    """Checks disk consumption and decides when to alert."""

    def __init__(
        self,
        sink: AlertSink,
        store: RungStore,
        state_dir: Path,
        max_size: ByteSize,
        mount: str = "/",
    ):
        """
        Args:
            sink: Where alerts are delivered
            store: Durable memory of the last alerted usage rung
            state_dir: Directory whose total size is budgeted
            max_size: Size budget for state_dir
            mount: Filesystem whose usage percentage is watched
        """
        self.sink = sink
        self.store = store
        self.state_dir = Path(state_dir)
        self.max_size = max_size
        self.mount = mount

    async def check_state_dir(self) -> BudgetStatus:
        """Measure the state directory and alert while it is over budget."""
        status = BudgetStatus(size=ByteSize(dir_size(self.state_dir)), budget=self.max_size)
        logger.info(f"{self.state_dir} size: {status.size} (threshold: {status.budget})")

        if status.over_budget:
            message = (
                f"⚠️ Server Alert: {self.state_dir} is {status.size}, "
                f"exceeds threshold of {status.budget}"
            )
            logger.warning(message)
            status.alert_sent = await self._send(message)
        return status

    async def check_filesystem(self) -> UsageStatus:
        """
        Sample filesystem usage and alert on newly crossed rungs.

        The marker is only advanced after the alert was delivered, so a
        failed send is retried on the next poll that still qualifies.

        Raises:
            CapacityQueryError: if the filesystem cannot be queried
        """
        usage = filesystem_usage(self.mount)
        marker = self.store.get()
        decision = evaluate(usage, marker)
        status = UsageStatus(usage=usage)
        logger.info(f"Disk usage of {self.mount}: {usage}% (last alerted rung: {marker})")

        if decision.marker is None:
            if marker is not None:
                logger.info(f"Disk usage back to {usage}%, re-arming alerts")
            self.store.clear()

        if decision.should_alert:
            status.rung = decision.alert_rung
            message = (
                f"⚠️ Server Alert: {self.mount} is at {usage}% disk usage "
                f"(crossed {decision.alert_rung}% threshold)"
            )
            logger.warning(message)
            status.alert_sent = await self._send(message)
            if status.alert_sent:
                self.store.set(decision.alert_rung)

        return status

    async def _send(self, message: str) -> bool:
        try:
            await self.sink.send_alert(message)
        except SinkError as e:
            logger.error(f"Alert not delivered: {e}")
            return False
        logger.info("Alert sent")
        return True
