"""
Logging module for unitd.
This module provides the root logger configuration used by the CLI and the daemon.
"""

from .setup import setup_logging, default_log_file

__all__ = ["setup_logging", "default_log_file"]
