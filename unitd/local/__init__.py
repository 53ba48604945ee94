"""
Local package for unitd.

This package holds the unit registry, the process supervisor and the command
channel, and exposes the effective configuration.
"""

from .config import effective_settings

__all__ = ["effective_settings"]
