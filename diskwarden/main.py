#!/usr/bin/env python3
"""diskwarden - Main application."""

import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import Optional

import click

from .byte_size import ByteSize
from .config import expand_path, load_config, marker_path, state_dir, validate_config
from .disk_monitor import DiskMonitor
from .errors import ConfigurationError
from .telegram_bot import TelegramAlerter
from .thresholds import FileRungStore
from .tmp_reaper import TmpReaper

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class Scheduler:
    """Paces a loop at a fixed interval; stop() ends it early."""

    def __init__(self, interval: float):
        self.interval = interval
        self._stop_event = asyncio.Event()

    def stop(self) -> None:
        """Stop after the current tick, waking any pending wait."""
        self._stop_event.set()

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    async def wait(self) -> None:
        """Sleep for one interval, returning early when stopped."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval)
        except asyncio.TimeoutError:
            pass


class DiskWarden:
    """Monitor mode: state directory budget and filesystem usage alerts."""

    def __init__(self, config: dict):
        self.config = config
        monitor_config = config["monitor"]
        telegram_config = config["telegram"]

        self.alerter = TelegramAlerter(
            token=telegram_config["bot_token"],
            chat_id=str(telegram_config["alerts_chat"]),
            topic_id=telegram_config.get("topic_id"),
        )
        watched_dir = monitor_config.get("state_dir")
        self.monitor = DiskMonitor(
            sink=self.alerter,
            store=FileRungStore(marker_path()),
            state_dir=Path(expand_path(watched_dir)) if watched_dir else state_dir(),
            max_size=ByteSize.parse(monitor_config["max_size"]),
            mount=monitor_config.get("mount", "/"),
        )
        self.scheduler = Scheduler(monitor_config["check_interval"])

    async def check_once(self) -> None:
        """Run both disk checks; a failing check never stops the other."""
        try:
            await self.monitor.check_state_dir()
        except Exception as e:
            logger.error(f"Error checking state directory: {e}")

        try:
            await self.monitor.check_filesystem()
        except Exception as e:
            logger.error(f"Error checking filesystem usage: {e}")

    async def run(self, once: bool = False) -> None:
        """Run the monitoring loop."""
        await self.alerter.start()
        try:
            while not self.scheduler.stopped:
                await self.check_once()
                if once:
                    break
                await self.scheduler.wait()
        except asyncio.CancelledError:
            logger.info("Monitoring cancelled")
        finally:
            await self.alerter.stop()
            logger.info("Monitor stopped")

    def stop(self) -> None:
        """Stop the monitoring loop."""
        self.scheduler.stop()


class TmpCleaner:
    """Clean-tmp mode: a single sweep or a sweep every interval."""

    def __init__(self, reaper: TmpReaper, interval: float):
        self.reaper = reaper
        self.scheduler = Scheduler(interval)

    def clean_once(self) -> None:
        try:
            self.reaper.run()
        except Exception as e:
            logger.error(f"Error cleaning {self.reaper.path}: {e}")

    async def run(self, daemon: bool = False) -> None:
        try:
            while not self.scheduler.stopped:
                self.clean_once()
                if not daemon:
                    break
                await self.scheduler.wait()
        except asyncio.CancelledError:
            logger.info("Cleanup cancelled")

    def stop(self) -> None:
        self.scheduler.stop()


def setup_logging(level: str) -> None:
    """Configure the root logger."""
    logging.basicConfig(level=getattr(logging, level.upper()), format=LOG_FORMAT)


def run_app(app, **kwargs) -> None:
    """Run app.run() on a fresh event loop, stopping it on SIGINT/SIGTERM."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    # Handle signals
    def signal_handler():
        logger.info("Received shutdown signal")
        app.stop()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    try:
        loop.run_until_complete(app.run(**kwargs))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    finally:
        loop.close()


def _load(config_path: Optional[str], require_telegram: bool) -> dict:
    try:
        config = load_config(Path(config_path) if config_path else None)
        validate_config(config, require_telegram=require_telegram)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)
    return config


@click.group()
@click.option("--config", "-c", "config_path", help="Path to configuration file")
@click.option(
    "--log-level",
    default="INFO",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging level",
)
@click.pass_context
def cli(ctx, config_path: Optional[str], log_level: str):
    """diskwarden - disk usage alerts and temp file cleanup."""
    ctx.ensure_object(dict)
    setup_logging(log_level)
    ctx.obj["config_path"] = config_path


@cli.command()
@click.option("--once", is_flag=True, help="Run a single check and exit")
@click.pass_context
def monitor(ctx, once: bool):
    """Monitor state directory size and disk usage, alerting over Telegram."""
    config = _load(ctx.obj.get("config_path"), require_telegram=True)
    run_app(DiskWarden(config), once=once)


@cli.command("clean-tmp")
@click.option("--daemon", is_flag=True, help="Keep cleaning every cleanup interval")
@click.option("--path", "path", type=click.Path(file_okay=False), help="Directory to clean")
@click.option("--max-age-hours", type=click.FloatRange(min=0, min_open=True), help="Delete files older than this")
@click.pass_context
def clean_tmp(ctx, daemon: bool, path: Optional[str], max_age_hours: Optional[float]):
    """Delete stale temporary files and empty directories."""
    config = _load(ctx.obj.get("config_path"), require_telegram=False)
    cleanup_config = config["cleanup"]
    reaper = TmpReaper(
        path=Path(expand_path(path or cleanup_config["path"])),
        max_age_hours=max_age_hours or cleanup_config["max_age_hours"],
    )
    run_app(TmpCleaner(reaper, cleanup_config["interval"]), daemon=daemon)


def main():
    """Entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
