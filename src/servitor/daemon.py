"""
Daemon - Lifecycle controller for long-running background services.

Phases, in order:
    parse arguments -> daemonize (optional) -> chdir / -> create pidfile
    -> hook_privileged -> drop privileges (optional) -> hook_pre_main
    -> main loop (hook_main, sleep) -> hook_post_main -> delete pidfile

Example:
    class Worker(Daemon):
        def hook_privileged(self):
            self.sock = open_privileged_listener()

        def hook_pre_main(self):
            self.on_signal("HUP", self.reload)

        def hook_main(self):
            self.process_batch()

        def reload(self, sig):
            ...

    sys.exit(Worker(prog="worker").run())
"""

import argparse
import contextlib
import time
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, ClassVar

import structlog

from . import __version__
from .cli.parser import create_parser
from .config import DaemonConfig
from .config import config as default_config
from .errors import ExitCode, PIDFileError
from .lifecycle import (
    Handler,
    PIDFile,
    SignalBrokers,
    change_root_dir,
    daemonize,
    drop_privileges,
)
from .logging import LogLevel, configure_logging, set_level

__all__ = ["Daemon"]

logger = structlog.get_logger(__name__)


class Daemon:
    """Base class for servitor daemons.

    Subclasses override the hook_* methods. Construction traps the
    signal set (every trappable signal except SIGCHLD by default); any
    drained signal without a handler ends the main loop gracefully.
    """

    #: Option defaults applied on top of the built-in ones
    defaults: ClassVar[Mapping[str, Any]] = {}

    def __init__(
        self,
        prog: str | None = None,
        description: str | None = None,
        version: str | None = None,
        defaults: Mapping[str, Any] | None = None,
        signals: Iterable[Any] | None = None,
        config: DaemonConfig | None = None,
        configure_logs: bool = True,
    ) -> None:
        """Initialize the daemon.

        Args:
            prog: Program name for usage and version output
            description: Usage description
            version: Version string (default: servitor version)
            defaults: Option default overrides, e.g. {"sleep": 5}
            signals: Signals to trap instead of the default set
            config: Configuration (default: environment-derived singleton)
            configure_logs: Set up structlog output at config.log_level
        """
        self.config = config or default_config
        if configure_logs:
            configure_logging(self.config.log_level)

        self._continue = True
        self.options: dict[str, Any] = {}

        self.signals = SignalBrokers()
        self.signals.register_brokers(signals)

        option_defaults = {
            "sleep": self.config.sleep,
            "pid_file": self.config.pid_file,
            **self.defaults,
            **(defaults or {}),
        }
        self.parser = create_parser(
            prog=prog,
            description=description,
            version=f"%(prog)s {version or __version__}",
            defaults=option_defaults,
        )
        self.add_arguments(self.parser)

    # ─────────────────────────────────────────────────────────────────
    # Extension points
    # ─────────────────────────────────────────────────────────────────

    def add_arguments(self, parser: argparse.ArgumentParser) -> None:
        """Add application flags. Parsed values land in self.options."""

    def hook_privileged(self) -> None:
        """Runs before privileges are dropped, after the pidfile is written."""

    def hook_pre_main(self) -> None:
        """Runs once before the main loop."""

    def hook_main(self) -> None:
        """One unit of work; runs once per loop iteration."""

    def hook_post_main(self) -> None:
        """Runs once after the main loop, however it ended."""

    def next_sleep_time(self) -> float:
        """Seconds to wait after each hook_main call."""
        return self.options["sleep"]

    def hook_continue(self) -> bool:
        """Dispatch queued signals and decide whether to keep looping.

        Unhandled signals request termination; handled ones leave the
        decision to their handlers (see stop()).
        """
        handled, unhandled = self.signals.handle_queued_signals()
        if unhandled:
            self._continue = False
        return self._continue and not self.options.get("once", False)

    # ─────────────────────────────────────────────────────────────────
    # Public API
    # ─────────────────────────────────────────────────────────────────

    @property
    def should_continue(self) -> bool:
        """False once termination was requested. Never flips back."""
        return self._continue

    def stop(self) -> None:
        """Request termination at the next check. Safe to call from handlers."""
        if self._continue:
            logger.info("termination_requested")
        self._continue = False

    def on_signal(self, sig: Any, handler: Handler) -> None:
        """Register a one-argument handler for a trapped signal."""
        self.signals.register_handler(sig, handler)

    def parse_arguments(self, argv: Sequence[str] | None = None) -> dict[str, Any]:
        """Parse argv into self.options.

        Raises:
            SystemExit: On help, version or usage errors (argparse)
        """
        namespace = self.parser.parse_args(argv)
        self.options = vars(namespace)
        return self.options

    def run(self, argv: Sequence[str] | None = None) -> int:
        """Run the whole lifecycle.

        Args:
            argv: Arguments (uses sys.argv[1:] if None)

        Returns:
            Process exit code
        """
        try:
            try:
                self.parse_arguments(argv)
            except SystemExit as e:
                return _exit_code(e)

            if self.options["verbose"]:
                set_level(LogLevel.DEBUG)
            for key, value in self.options.items():
                logger.debug("option", name=key, value=value)

            if self.options["daemonize"]:
                daemonize()
            change_root_dir()

            pid_path = self.options["pid_file"]
            pid_file = PIDFile(pid_path) if pid_path else None
            try:
                with pid_file or contextlib.nullcontext():
                    self._run_phases()
            except PIDFileError as e:
                logger.error("pid_file_error", path=e.path, error=str(e))
                return e.exit_code

            return ExitCode.OK
        finally:
            self.close()

    def close(self) -> None:
        """Restore signal dispositions and release the notification pipe."""
        self.signals.close()

    # ─────────────────────────────────────────────────────────────────
    # Phases
    # ─────────────────────────────────────────────────────────────────

    def _run_phases(self) -> None:
        self.hook_privileged()

        user = self.options["user"]
        if user is not None:
            drop_privileges(user)

        self.hook_pre_main()
        while True:
            self.hook_main()
            self._sleep(self.next_sleep_time())
            if not self.hook_continue():
                break
        self.hook_post_main()

    def _sleep(self, seconds: float) -> None:
        """Wait up to `seconds`, stopping early once termination is requested.

        Waits in slices of config.tick through the signal-aware select, so
        a signal arrival ends the current slice at once.
        """
        deadline = time.monotonic() + seconds
        while self.hook_continue():
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            self.signals.select(timeout=min(self.config.tick, remaining))


def _exit_code(exc: SystemExit) -> int:
    if exc.code is None:
        return ExitCode.OK
    if isinstance(exc.code, int):
        return exc.code
    return ExitCode.USAGE
