"""
kvcache - Observability Module

Structured logging helpers. Provider counters live on the providers
themselves (get_stats()).
"""

from .logging import JSONFormatter, configure_logging, setup_logging

__all__ = [
    "JSONFormatter",
    "configure_logging",
    "setup_logging",
]
