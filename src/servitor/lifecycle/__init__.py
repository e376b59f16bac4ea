"""
Lifecycle - Process-level building blocks of a daemon.

Handles:
- Signal brokering (self-pipe capture, synchronous dispatch)
- PID file management (prevent duplicate instances)
- Detaching, chdir and privilege drop

Example:
    from servitor.lifecycle import PIDFile, SignalBrokers, drop_privileges, resolve_user

    brokers = SignalBrokers()
    brokers.register_brokers(["TERM", "HUP"])
    brokers.register_handler("HUP", lambda sig: reload())

    with PIDFile("/run/worker.pid"):
        drop_privileges(resolve_user("nobody"))
        while not brokers.handle_queued_signals()[1]:
            brokers.select(timeout=1.0)

    brokers.close()
"""

from .pid import PIDFile
from .process import change_root_dir, daemonize, drop_privileges, resolve_user
from .signals import Handler, SignalBroker, SignalBrokers, SignalNotifier, resolve_signal

__all__ = [
    "Handler",
    "PIDFile",
    "SignalBroker",
    "SignalBrokers",
    "SignalNotifier",
    "change_root_dir",
    "daemonize",
    "drop_privileges",
    "resolve_signal",
    "resolve_user",
]
