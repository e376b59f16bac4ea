"""
CLI - Command-line interface for servitor.

The built-in flags live in `parser`; `main.main` runs the demo heartbeat
daemon behind the `servitor` command.

Example:
    $ servitor --once -v
    $ servitor --sleep 2 --pid-file /tmp/servitor.pid -d
    $ kill -HUP $(cat /tmp/servitor.pid)     # log beat count
    $ kill -USR1 $(cat /tmp/servitor.pid)    # clean shutdown
"""
