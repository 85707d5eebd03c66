"""
Shared utility functions.

This package contains utility code used across multiple
pipeline stages.
"""

from .logging import EventConsoleFormatter, JsonlFormatter, event_fields, get_logger, log_event, setup_logging

__all__ = [
    "setup_logging",
    "get_logger",
    "log_event",
    "event_fields",
    "EventConsoleFormatter",
    "JsonlFormatter",
]
