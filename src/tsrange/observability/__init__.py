"""Observability module for tsrange.

Provides loguru configuration and round-trip timing instrumentation.
"""

from .loguru_config import (
                      COMPONENTS,
                      configure_from_settings,
                      configure_loguru,
                      get_logger,
                      timing_context,
)

__all__ = [
    "COMPONENTS",
    "configure_from_settings",
    "configure_loguru",
    "get_logger",
    "timing_context",
]
