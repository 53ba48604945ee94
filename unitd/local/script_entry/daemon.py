"""
This is a minimal entry point script for the daemon process.

Its sole responsibility is to start the line-protocol daemon, so the daemon
can be launched with `python -m unitd.local.script_entry.daemon` (for example
as a unit of its own, or from a container entrypoint).
"""
from unitd.daemon import run_daemon


if __name__ == "__main__":
    run_daemon()
