"""
Shared utility functions.

This package contains logging helpers used across the fetch, translation,
and session layers.
"""

from .logging import (
    JsonlFormatter,
    log_event,
    redact_text,
    sanitize_text,
    setup_llm_logger,
    setup_logging,
    truncate_text,
)

__all__ = [
    "setup_logging",
    "setup_llm_logger",
    "log_event",
    "redact_text",
    "sanitize_text",
    "truncate_text",
    "JsonlFormatter",
]
