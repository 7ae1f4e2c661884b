"""Shared modules for nri-e2e.

This module provides functionality used by both the CLI and the runtime:
- Logging (structlog configuration)
"""

from .logging import configure_logging, get_logger, is_debug_enabled

__all__ = [
    "configure_logging",
    "get_logger",
    "is_debug_enabled",
]
