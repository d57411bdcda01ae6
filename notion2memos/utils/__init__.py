"""
Utility helpers used by the migration tool.

This subpackage exposes the error taxonomy, structured run reports, tag
sanitizing and the durable migration state.
"""

from .errors import ERRORS, MigrationError, report_error, report_ok
from .state import StateTracker
from .tags import normalize_known_tags, sanitize_tag

__all__ = [
    "ERRORS",
    "MigrationError",
    "report_error",
    "report_ok",
    "StateTracker",
    "normalize_known_tags",
    "sanitize_tag",
]
