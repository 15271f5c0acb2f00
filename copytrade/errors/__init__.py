"""
Error handling and exception classes.

Collaborator failures are converted to pass-level outcomes by the scheduler;
only ConfigurationInvalid and SchedulerStateError reach callers of start().

Example usage:
    from copytrade.errors import SourceUnavailable

    raise SourceUnavailable("clearinghouseState timed out", address=addr, venue="hyperliquid")
"""

from copytrade.errors.exceptions import (
    CopyTradeError, ConfigurationInvalid, SourceUnavailable,
    ExecutionFailure, SchedulerStateError
)

__all__ = [
    "CopyTradeError", "ConfigurationInvalid", "SourceUnavailable",
    "ExecutionFailure", "SchedulerStateError"
]
