"""unitd: a minimal userspace service supervisor."""

__version__ = "0.1.0"
