"""
Process Control - Detaching, working directory and identity changes.

All functions act on the current process. They are POSIX primitives;
where the platform lacks them, `daemonize` degrades to a logged no-op.
"""

import os
import pwd
import sys

import structlog

__all__ = ["change_root_dir", "daemonize", "drop_privileges", "resolve_user"]

logger = structlog.get_logger(__name__)


def _flush_std_streams() -> None:
    for stream in (sys.stdout, sys.stderr):
        try:
            stream.flush()
        except (AttributeError, OSError, ValueError):
            pass


def _redirect_std_streams() -> None:
    """Point fds 0, 1 and 2 at the null device.

    Works at descriptor level so sys.stdin/stdout/stderr stay usable.
    Other descriptors are left open on purpose.
    """
    devnull = os.open(os.devnull, os.O_RDWR)
    try:
        for fd in (0, 1, 2):
            os.dup2(devnull, fd)
    finally:
        if devnull > 2:
            os.close(devnull)


def daemonize() -> bool:
    """Detach from the controlling terminal (double fork).

    The original process and the intermediate session leader exit with
    status 0; only the grandchild returns. It cannot reacquire a
    controlling terminal since it is not a session leader.

    Returns:
        True in the detached process, False if the platform cannot fork
    """
    if not hasattr(os, "fork") or not hasattr(os, "setsid"):
        logger.warning("daemonize_unsupported", platform=sys.platform)
        return False

    # First fork
    _flush_std_streams()
    if os.fork() > 0:
        os._exit(0)

    # Child - new session, no controlling terminal
    os.setsid()

    # Second fork
    _flush_std_streams()
    if os.fork() > 0:
        os._exit(0)

    # Grandchild - actual daemon
    _redirect_std_streams()
    logger.debug("daemonized", pid=os.getpid())
    return True


def change_root_dir() -> None:
    """chdir to / so no mount point is kept busy."""
    os.chdir("/")


def resolve_user(name: str) -> pwd.struct_passwd:
    """Look up a system user by login name or numeric uid.

    Raises:
        KeyError: If no such user exists
    """
    if name.isdigit():
        return pwd.getpwuid(int(name))
    return pwd.getpwnam(name)


def drop_privileges(user: pwd.struct_passwd) -> None:
    """Permanently switch to `user`.

    Order matters: supplementary groups and gid must change while the
    process still has the privilege to change them, i.e. before the uid.
    HOME and USER are updated to match the new identity.
    """
    os.initgroups(user.pw_name, user.pw_gid)
    os.setgid(user.pw_gid)
    os.setuid(user.pw_uid)

    os.environ["HOME"] = user.pw_dir
    os.environ["USER"] = user.pw_name

    logger.info("privileges_dropped", user=user.pw_name, uid=user.pw_uid, gid=user.pw_gid)
