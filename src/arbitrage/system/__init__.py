# System Package
"""Logging and other process-wide plumbing."""

from .logging import Logger, configure_logging

__all__ = ["Logger", "configure_logging"]
