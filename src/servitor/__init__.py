"""
Servitor - Process lifecycle framework for long-running background services.

Parses startup flags, optionally detaches into the background, guards
against duplicate instances with a pidfile, drops privileges after
privileged setup, runs a polling main loop and delivers OS signals to
application handlers outside of signal context.
"""

__version__ = "1.0.0"

from .config import DaemonConfig, config
from .daemon import Daemon
from .errors import ExitCode, HandlerArityError, PIDFileError, ServitorError, UnknownSignalError

__all__ = [
    "__version__",
    "Daemon",
    "DaemonConfig",
    "ExitCode",
    "HandlerArityError",
    "PIDFileError",
    "ServitorError",
    "UnknownSignalError",
    "config",
]
