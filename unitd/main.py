import sys
import logging
from pathlib import Path
from typing import List, Optional

from unitd.local.config import effective_settings as config
from unitd.local.errors import EXIT_FAILURE, EXIT_OK, EXIT_USAGE
from unitd.local.console import run_args
from unitd.local.supervisor import ProcessSupervisor
from unitd.log.setup import setup_logging

log = logging.getLogger("unitd")

USAGE = """\
usage: unitd [--verbose] [--remote] <command> [<unit|path>]

commands:
  add <path-or-name>   Add a unit file, or read unit content from stdin for <name>.
  remove <unit>        Remove a unit definition.
  start <unit>         Start a unit (no-op if it is already running).
  stop <unit>          Stop a unit and its process tree.
  restart <unit>       Stop then start a unit.
  status <unit>        Show whether a unit is running.
  is-active <unit>     Print 'active' or 'inactive'.
  daemon-reload        List the units that can be loaded.
  serve                Run the command daemon on the loopback interface.

options:
  --verbose            Log debug output to stderr.
  --remote             Send the command to a running daemon instead of running it here.
                       ('add' is local only: unit content cannot be sent to the daemon.)

exit codes: 0 success, 1 not found / not running, 2 bad usage,
            3 operational failure, 4 status check error"""


def _read_stdin() -> Optional[str]:
    """Returns piped stdin content, or None when stdin is a terminal."""
    if sys.stdin is None or sys.stdin.isatty():
        return None
    return sys.stdin.read()


def _run_remote(args: List[str]) -> int:
    """Forwards a command to the daemon and prints its reply."""
    from unitd.daemon.client import send_command

    line = " ".join(args)
    try:
        print(send_command(line))
    except OSError as e:
        print(f"Failed to send command to unitd daemon: {e}", file=sys.stderr)
        return EXIT_USAGE
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    """The main entry point for the unitd command line."""
    args = list(sys.argv[1:] if argv is None else argv)

    verbose = "--verbose" in args
    remote = "--remote" in args
    args = [a for a in args if a not in ("--verbose", "--remote")]
    if verbose:
        config.VERBOSE_LOGGING = True
    setup_logging(logging.DEBUG if verbose else logging.WARNING)

    if not args:
        print(USAGE, file=sys.stderr)
        return EXIT_USAGE

    command = args[0].lower()
    if command in ("help", "-h", "--help"):
        print(USAGE)
        return EXIT_OK

    if command == "serve":
        from unitd.daemon.server import run_daemon
        run_daemon()
        return EXIT_OK

    if remote:
        if command == "add":
            # The line protocol has no channel for unit content
            print("usage: add is not supported with --remote; run 'unitd add' locally", file=sys.stderr)
            return EXIT_USAGE
        return _run_remote(args)

    content = None
    if command == "add" and len(args) > 1 and not Path(args[1]).expanduser().is_file():
        content = _read_stdin()

    try:
        result = run_args(args, ProcessSupervisor(), content)
    except Exception as e:
        log.critical(f"Unexpected error while running '{' '.join(args)}': {e}", exc_info=True)
        print(f"error: {e}", file=sys.stderr)
        return EXIT_FAILURE

    print(result.message, file=sys.stderr if result.is_error else sys.stdout)
    return result.exit_code


if __name__ == "__main__":
    sys.exit(main())
