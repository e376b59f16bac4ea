"""
CLI Parser - Built-in daemon flags.

Defines the flags every servitor daemon understands and the validators
behind them. Applications add their own flags to the returned parser.
"""

import argparse
import math
import os
import pwd
from collections.abc import Mapping
from typing import Any

from ..lifecycle.process import resolve_user

__all__ = ["BUILTIN_DEFAULTS", "create_parser", "non_negative_float", "pid_file_path", "system_user"]

BUILTIN_DEFAULTS: dict[str, Any] = {
    "daemonize": False,
    "once": False,
    "pid_file": None,
    "sleep": 0.0,
    "user": None,
    "verbose": False,
}


def non_negative_float(value: str) -> float:
    """argparse type: float >= 0."""
    try:
        result = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid float value: {value!r}") from None
    if math.isnan(result) or result < 0:
        raise argparse.ArgumentTypeError("sleep time must be greater than or equal to zero")
    return result


def system_user(value: str) -> pwd.struct_passwd:
    """argparse type: resolve a login name (or uid) to its passwd entry."""
    try:
        return resolve_user(value)
    except KeyError as e:
        raise argparse.ArgumentTypeError(f"user must be a valid system user: {e}") from None


def pid_file_path(value: str) -> str:
    """argparse type: absolute pidfile path (the daemon chdirs to / later)."""
    if not value:
        raise argparse.ArgumentTypeError("pidfile path must not be empty")
    return os.path.abspath(value)


def _describe_user(user: Any) -> str:
    if isinstance(user, pwd.struct_passwd):
        return user.pw_name
    return str(user)


def create_parser(
    prog: str | None = None,
    description: str | None = None,
    version: str | None = None,
    defaults: Mapping[str, Any] | None = None,
) -> argparse.ArgumentParser:
    """Create the argument parser with the built-in flags.

    Args:
        prog: Program name shown in usage
        description: Text shown above the arguments
        version: Text printed by -V/--version
        defaults: Overrides for the built-in option defaults

    Returns:
        Parser whose namespace holds daemonize, once, pid_file, sleep,
        user and verbose
    """
    opts = {**BUILTIN_DEFAULTS, **(defaults or {})}

    parser = argparse.ArgumentParser(prog=prog, description=description, add_help=False)
    args = parser.add_argument_group("arguments")

    args.add_argument(
        "-h", "-?", "--help",
        action="help",
        help="show application usage information",
    )

    default = "daemonize to background" if opts["daemonize"] else "stay in the foreground"
    args.add_argument(
        "-d", "--daemonize",
        action="store_true",
        default=opts["daemonize"],
        help=f"daemonize to background (default: {default})",
    )

    default = "execute only once" if opts["once"] else "loop execution until interrupted"
    args.add_argument(
        "--once",
        action="store_true",
        default=opts["once"],
        help=f"only execute the main program loop once, do not repeat (default: {default})",
    )

    default = opts["pid_file"] or "no pidfile will be created"
    args.add_argument(
        "--pid-file",
        metavar="FILE",
        type=pid_file_path,
        default=opts["pid_file"],
        help=f"specify a pidfile that will be overwritten to contain the PID of this process (default: {default})",
    )

    args.add_argument(
        "--sleep",
        metavar="SECONDS",
        type=non_negative_float,
        default=opts["sleep"],
        help=f"sleep this many seconds in-between main program loop runs (default: {opts['sleep']}s)",
    )

    default = _describe_user(opts["user"]) if opts["user"] else "do not drop privileges"
    args.add_argument(
        "--user",
        metavar="USER",
        type=system_user,
        default=opts["user"],
        help=f"drop privileges to user USER after initialization (default: {default})",
    )

    default = "enabled" if opts["verbose"] else "disabled"
    args.add_argument(
        "-v", "--verbose",
        action="store_true",
        default=opts["verbose"],
        help=f"enable verbose output (default: {default})",
    )

    args.add_argument(
        "-V", "--version",
        action="version",
        version=version or "%(prog)s",
        help="display application version information",
    )

    return parser
