"""
Errors - Exception taxonomy and process exit codes.

Contract violations (programmer errors) propagate to the caller.
Pidfile failures carry the exit code the daemon terminates with.
"""

from enum import IntEnum

__all__ = [
    "ExitCode",
    "HandlerArityError",
    "PIDFileAccessError",
    "PIDFileConflictError",
    "PIDFileError",
    "PIDFileWriteError",
    "ServitorError",
    "UnknownSignalError",
]


class ExitCode(IntEnum):
    """Process exit codes. Stable, visible to init systems and scripts."""

    OK = 0
    PID_FILE_INACCESSIBLE = 1
    USAGE = 2
    PID_FILE_CONFLICT = 3
    PID_FILE_UNWRITABLE = 4


class ServitorError(Exception):
    """Base class for all servitor errors."""


class UnknownSignalError(ServitorError, KeyError):
    """No broker exists for the requested signal."""

    def __str__(self) -> str:
        # KeyError quotes its argument, keep the plain message
        return str(self.args[0]) if self.args else ""


class HandlerArityError(ServitorError, TypeError):
    """Signal handler does not accept exactly one argument."""


class PIDFileError(ServitorError):
    """Fatal pidfile condition."""

    exit_code: ExitCode = ExitCode.PID_FILE_INACCESSIBLE

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class PIDFileAccessError(PIDFileError):
    """Pidfile or its owning process could not be probed."""

    exit_code = ExitCode.PID_FILE_INACCESSIBLE


class PIDFileConflictError(PIDFileError):
    """Pidfile belongs to another live process."""

    exit_code = ExitCode.PID_FILE_CONFLICT

    def __init__(self, message: str, path: str | None = None, pid: int | None = None) -> None:
        super().__init__(message, path)
        self.pid = pid


class PIDFileWriteError(PIDFileError):
    """Pidfile could not be written."""

    exit_code = ExitCode.PID_FILE_UNWRITABLE
