"""
PID File Management - Single-instance guard.

Handles:
- Detecting a live owner (duplicate instance) vs. a stale file
- Writing the current PID
- Removing the file only while this process owns it
"""

import os
from pathlib import Path

import structlog

from ..errors import PIDFileAccessError, PIDFileConflictError, PIDFileWriteError

__all__ = ["PIDFile"]

logger = structlog.get_logger(__name__)


class PIDFile:
    """Manages a pidfile for the daemon process.

    Ownership is never cached: every call re-reads the file and probes the
    recorded process.

    Example:
        pid_file = PIDFile("/run/worker.pid")

        with pid_file:          # create() on entry, delete() on exit
            run_daemon()
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def read(self) -> int | None:
        """Read the recorded PID.

        Returns:
            Positive PID, or None if the file is missing or holds no valid PID

        Raises:
            PIDFileAccessError: If the file exists but cannot be read
        """
        try:
            content = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.debug("pid_file_missing", path=str(self.path))
            return None
        except UnicodeDecodeError:
            content = ""
        except OSError as e:
            raise PIDFileAccessError(f"pidfile {self.path} could not be accessed: {e}", str(self.path)) from e

        try:
            pid = int(content.strip())
        except ValueError:
            pid = 0
        if pid <= 0:
            logger.debug("pid_file_invalid", path=str(self.path))
            return None
        return pid

    def check(self) -> int | None:
        """Return the PID of the live process owning the file.

        Returns:
            Owning PID, or None if missing, invalid or stale

        Raises:
            PIDFileAccessError: If the file or the recorded process cannot be probed
        """
        pid = self.read()
        if pid is None:
            return None

        try:
            os.kill(pid, 0)
        except (ProcessLookupError, OverflowError):
            # OverflowError: beyond pid_t, no such process can exist
            logger.debug("pid_file_stale", path=str(self.path), pid=pid)
            return None
        except OSError as e:
            raise PIDFileAccessError(
                f"pidfile {self.path} contains inaccessible pid ({pid}): {e}", str(self.path)
            ) from e

        logger.debug("pid_file_valid", path=str(self.path), pid=pid)
        return pid

    def is_running(self) -> bool:
        """Check whether another live process owns the file."""
        pid = self.check()
        return pid is not None and pid != os.getpid()

    def create(self) -> None:
        """Write the current PID, refusing to clobber a live foreign owner.

        Raises:
            PIDFileConflictError: If another live process owns the file
            PIDFileWriteError: If the file could not be written
            PIDFileAccessError: If ownership could not be determined
        """
        pid = self.check()
        if pid is not None and pid != os.getpid():
            raise PIDFileConflictError(
                f"pidfile {self.path} belongs to another valid process ({pid}), refusing to overwrite it",
                str(self.path),
                pid,
            )

        own_pid = os.getpid()
        tmp_path = self.path.with_name(f".{self.path.name}.{own_pid}.tmp")
        try:
            tmp_path.write_text(f"{own_pid}\n", encoding="utf-8")
            tmp_path.replace(self.path)
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            raise PIDFileWriteError(
                f"could not write pid {own_pid} to pidfile {self.path}: {e}", str(self.path)
            ) from e

        logger.info("pid_file_created", path=str(self.path), pid=own_pid)

    def delete(self) -> bool:
        """Remove the file if it still records the current process.

        Returns:
            True if the file was removed

        Raises:
            PIDFileAccessError: If ownership could not be determined
        """
        pid = self.check()
        if pid is not None and pid != os.getpid():
            logger.warning(
                "pid_file_foreign_owner",
                path=str(self.path),
                pid=pid,
                message="refusing to delete pidfile of another valid process",
            )
            return False

        try:
            self.path.unlink()
        except FileNotFoundError:
            logger.debug("pid_file_missing", path=str(self.path))
            return False
        except OSError as e:
            logger.warning("pid_file_remove_failed", path=str(self.path), error=str(e))
            return False

        logger.info("pid_file_removed", path=str(self.path))
        return True

    def __enter__(self) -> "PIDFile":
        """Context manager: create pidfile on entry."""
        self.create()
        return self

    def __exit__(self, *args) -> None:
        """Context manager: delete pidfile on exit."""
        self.delete()

    def __repr__(self) -> str:
        return f"PIDFile({str(self.path)!r})"
