"""
Observability Module.

Structured logging for the benchmark harness. Log events go to stderr so
they never interleave with the report written to stdout.
"""

from src.observability.logging import (
    LogContext,
    configure_logging,
)

__all__ = [
    "configure_logging",
    "LogContext",
]
