"""Request tracing and logging helpers for ranked directory queries."""

from .instrumentation import instrument_stage, timed_stage
from .trace import (
    QueryTrace,
    get_current_trace,
    reset_current_trace,
    set_current_trace,
)

__all__ = [
    "QueryTrace",
    "get_current_trace",
    "instrument_stage",
    "reset_current_trace",
    "set_current_trace",
    "timed_stage",
]
