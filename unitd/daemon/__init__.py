"""
Daemon package for unitd.

This package contains the persistent line-protocol server and its client.
"""

from .server import UnitDaemon, run_daemon
from .client import send_command

__all__ = ["UnitDaemon", "run_daemon", "send_command"]
