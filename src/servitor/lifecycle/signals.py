"""
Signal Handling - Deferred, synchronous dispatch of OS signals.

Uses the self-pipe trick: the handler installed with the OS writes the
signal number into a non-blocking pipe and returns. All real work
(handler callbacks, logging) happens later, when the main flow drains the
pipe through `SignalBrokers.handle_queued_signals`.

Example:
    brokers = SignalBrokers()
    brokers.register_brokers()          # every trappable signal except SIGCHLD
    brokers.register_handler("HUP", reload_config)

    while running:
        readable, _, _ = brokers.select([sock], timeout=1.0)
        handled, unhandled = brokers.handle_queued_signals()
        if unhandled:
            break

    brokers.close()
"""

import inspect
import os
import select
import signal
from collections.abc import Callable, Iterable
from typing import Any

import structlog

from ..errors import HandlerArityError, UnknownSignalError

__all__ = [
    "DEFAULT_EXCLUDED",
    "Handler",
    "SignalBroker",
    "SignalBrokers",
    "SignalNotifier",
    "resolve_signal",
]

logger = structlog.get_logger(__name__)

# Handlers receive the signal that fired
Handler = Callable[[signal.Signals], Any]

# SIGCHLD keeps its default disposition unless an application asks for it
DEFAULT_EXCLUDED = frozenset({"SIGCHLD", "SIGCLD"})

# Faults are raised synchronously by the faulting instruction; a deferred
# handler returns to that instruction and faults again.
UNTRAPPABLE = frozenset({"SIGKILL", "SIGSTOP", "SIGSEGV", "SIGBUS", "SIGFPE", "SIGILL"})


def resolve_signal(sig: "signal.Signals | str | int") -> signal.Signals:
    """Canonicalize a signal name or number.

    Accepts "hup", "SIGHUP", "Hup", 1 and signal.SIGHUP alike. Aliases
    resolve to their canonical member ("CLD" -> SIGCHLD).

    Raises:
        UnknownSignalError: If the OS has no such signal
    """
    if isinstance(sig, signal.Signals):
        return sig
    if isinstance(sig, int):
        try:
            return signal.Signals(sig)
        except ValueError:
            raise UnknownSignalError(f"unknown signal {sig}") from None

    name = str(sig).strip().upper()
    if not name.startswith("SIG"):
        name = "SIG" + name
    try:
        return signal.Signals[name]
    except KeyError:
        raise UnknownSignalError(f"unknown signal '{sig}'") from None


def _arity(handler: Callable) -> int:
    """Positional arity: n when exactly n are required, -(n+1) when the call shape is open."""
    params = inspect.signature(handler).parameters.values()
    positional = [
        p for p in params
        if p.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
    ]
    required = [p for p in positional if p.default is inspect.Parameter.empty]
    variadic = any(p.kind is inspect.Parameter.VAR_POSITIONAL for p in params)
    # Required keyword-only parameters cannot be satisfied by a positional call
    keyword_required = any(
        p.kind is inspect.Parameter.KEYWORD_ONLY and p.default is inspect.Parameter.empty for p in params
    )
    if variadic or keyword_required or len(required) != len(positional):
        return -(len(required) + 1)
    return len(required)


class SignalNotifier:
    """Self-pipe written from signal context, read from the main flow.

    `notify` is what gets installed with `signal.signal`. It performs one
    `os.write` of a single byte and nothing else.
    """

    def __init__(self) -> None:
        self._reader, self._writer = os.pipe()
        os.set_blocking(self._reader, False)
        os.set_blocking(self._writer, False)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def fileno(self) -> int:
        """Read end, so the notifier can take part in select()."""
        return self._reader

    def notify(self, signum: int, frame: Any = None) -> None:
        try:
            os.write(self._writer, bytes((signum,)))
        except BlockingIOError:
            pass  # pipe full, the reader is already due to wake up

    def read_pending(self) -> list[int]:
        """Drain every signal number written so far, in arrival order.

        Never blocks; returns an empty list when nothing is pending.
        """
        pending: list[int] = []
        while True:
            try:
                chunk = os.read(self._reader, 4096)
            except BlockingIOError:
                break
            if not chunk:
                break
            pending.extend(chunk)
        return pending

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        os.close(self._reader)
        os.close(self._writer)


class SignalBroker:
    """Ordered handler list for one signal.

    Handlers run synchronously, in registration order, when the signal is
    drained. Registering the same handler twice keeps one entry.
    """

    def __init__(self, sig: "signal.Signals | str | int") -> None:
        self.signal = resolve_signal(sig)
        self.handlers: list[Handler] = []

    @property
    def name(self) -> str:
        return self.signal.name

    def add_handler(self, handler: Handler) -> None:
        """Append a handler.

        Raises:
            HandlerArityError: If handler does not take exactly one argument
        """
        try:
            arity = _arity(handler)
        except (TypeError, ValueError):
            raise HandlerArityError(f"{handler!r} has no inspectable signature") from None
        if arity != 1:
            raise HandlerArityError(f"{handler!r} has arity {arity} instead of 1")

        if handler in self.handlers:
            logger.debug("signal_handler_duplicate", signal=self.name, handler=repr(handler))
            return
        self.handlers.append(handler)
        logger.debug("signal_handler_registered", signal=self.name, handler=repr(handler))

    def handle_signal(self) -> bool:
        """Run all handlers.

        Returns:
            True if at least one handler ran
        """
        for handler in self.handlers:
            logger.debug("signal_handler_calling", signal=self.name, handler=repr(handler))
            handler(self.signal)
        return len(self.handlers) > 0

    def __repr__(self) -> str:
        return f"SignalBroker({self.name}, handlers={len(self.handlers)})"


class SignalBrokers:
    """Registry of one SignalBroker per signal, fed by one SignalNotifier.

    Owns the OS-level dispositions it installs and restores them on
    `close()`.
    """

    def __init__(self, notifier: SignalNotifier | None = None) -> None:
        self.notifier = notifier or SignalNotifier()
        self._brokers: dict[signal.Signals, SignalBroker] = {}
        self._previous: dict[signal.Signals, Any] = {}
        self._initialized = False

    def __contains__(self, sig: object) -> bool:
        try:
            return resolve_signal(sig) in self._brokers
        except UnknownSignalError:
            return False

    def __getitem__(self, sig: "signal.Signals | str | int") -> SignalBroker:
        resolved = resolve_signal(sig)
        try:
            return self._brokers[resolved]
        except KeyError:
            raise UnknownSignalError(f"unknown signal '{resolved.name}'") from None

    def __len__(self) -> int:
        return len(self._brokers)

    @property
    def signals(self) -> list[signal.Signals]:
        """Trapped signals, in registration order."""
        return list(self._brokers)

    @staticmethod
    def default_signals() -> list[signal.Signals]:
        """Every signal the OS exposes, minus child termination."""
        return [s for s in signal.Signals if s.name not in DEFAULT_EXCLUDED]

    def register_brokers(self, signals: Iterable["signal.Signals | str | int"] | None = None) -> None:
        """Trap signals and create their brokers. Idempotent per signal.

        Args:
            signals: Signals to trap. None means the default set, which is
                skipped entirely once any broker has been registered.
        """
        if signals is None:
            if self._initialized:
                return
            signals = self.default_signals()
        self._initialized = True

        for sig in signals:
            try:
                resolved = resolve_signal(sig)
            except UnknownSignalError:
                continue
            if resolved in self._brokers or resolved.name in UNTRAPPABLE:
                continue
            try:
                previous = signal.signal(resolved, self.notifier.notify)
            except (OSError, ValueError):
                # Not permitted to trap this one
                continue
            self._previous[resolved] = previous
            self._brokers[resolved] = SignalBroker(resolved)
            logger.debug("signal_broker_registered", signal=resolved.name)

    def register_handler(self, sig: "signal.Signals | str | int", handler: Handler) -> None:
        """Attach a handler to the broker of `sig`.

        Raises:
            UnknownSignalError: If no broker exists for the signal
            HandlerArityError: If handler does not take exactly one argument
        """
        self[sig].add_handler(handler)

    def handle_queued_signals(self) -> tuple[list[signal.Signals], list[signal.Signals]]:
        """Dispatch every signal delivered since the last call.

        Returns:
            (handled, unhandled) signals, each in arrival order
        """
        handled: list[signal.Signals] = []
        unhandled: list[signal.Signals] = []

        for signum in self.notifier.read_pending():
            try:
                sig = signal.Signals(signum)
            except ValueError:
                logger.warning("signal_unknown_number", signum=signum)
                continue
            broker = self._brokers.get(sig)
            if broker is not None and broker.handle_signal():
                logger.info("signal_handled", signal=sig.name)
                handled.append(sig)
            else:
                logger.info("signal_unhandled", signal=sig.name)
                unhandled.append(sig)

        return handled, unhandled

    def select(
        self,
        rlist: Iterable[Any] | None = None,
        wlist: Iterable[Any] = (),
        xlist: Iterable[Any] = (),
        timeout: float | None = None,
    ) -> tuple[list[Any], list[Any], list[Any]]:
        """select.select() that also wakes up when a signal arrives.

        The notifier is removed from the readable list before returning;
        pending signals stay queued for `handle_queued_signals`.
        """
        rlist = list(rlist or [])
        rlist.append(self.notifier)
        readable, writable, errored = select.select(rlist, list(wlist), list(xlist), timeout)
        readable = [r for r in readable if r is not self.notifier]
        return readable, writable, errored

    def close(self) -> None:
        """Restore previous signal dispositions and close the pipe."""
        for sig, previous in self._previous.items():
            try:
                signal.signal(sig, previous if previous is not None else signal.SIG_DFL)
            except (OSError, ValueError) as e:
                logger.warning("signal_restore_failed", signal=sig.name, error=str(e))
        self._previous.clear()
        self._brokers.clear()
        self.notifier.close()
