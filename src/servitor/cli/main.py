"""
CLI Main - Entry point for the `servitor` command.

Runs a heartbeat daemon: every iteration logs a heartbeat, SIGHUP logs
the number of beats so far, SIGUSR1 requests a clean shutdown. Any other
signal ends the loop as well.

Usage:
    servitor [--once] [--sleep SECONDS] [--pid-file FILE] [-d] [--user USER] [-v]
"""

import argparse
import signal
import sys

import structlog

from ..daemon import Daemon

__all__ = ["HeartbeatDaemon", "main"]

logger = structlog.get_logger(__name__)


class HeartbeatDaemon(Daemon):
    """Logs one heartbeat per main loop iteration."""

    defaults = {"sleep": 5.0}

    def __init__(self, **kwargs) -> None:
        kwargs.setdefault("prog", "servitor")
        kwargs.setdefault("description", "Heartbeat daemon built on the servitor lifecycle")
        super().__init__(**kwargs)
        self.beats = 0

    def add_arguments(self, parser: argparse.ArgumentParser) -> None:
        parser.add_argument(
            "--message",
            default="heartbeat",
            help="text logged on every beat (default: %(default)s)",
        )

    def hook_pre_main(self) -> None:
        self.on_signal("HUP", self.report)
        self.on_signal("USR1", self.shutdown)
        logger.info("heartbeat_started", interval=self.next_sleep_time())

    def hook_main(self) -> None:
        self.beats += 1
        logger.info(self.options["message"], beat=self.beats)

    def hook_post_main(self) -> None:
        logger.info("heartbeat_stopped", beats=self.beats)

    def report(self, sig: signal.Signals) -> None:
        logger.info("heartbeat_report", beats=self.beats, signal=sig.name)

    def shutdown(self, sig: signal.Signals) -> None:
        self.stop()


def main(args: list[str] | None = None) -> int:
    """Main entry point for the servitor CLI.

    Args:
        args: Command line arguments (uses sys.argv if None)

    Returns:
        Exit code
    """
    if args is None:
        args = sys.argv[1:]
    return HeartbeatDaemon().run(args)


if __name__ == "__main__":
    sys.exit(main())
