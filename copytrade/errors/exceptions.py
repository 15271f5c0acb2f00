"""Custom exception hierarchy."""
from typing import Any, Dict, Optional


class CopyTradeError(Exception):
    """Base exception for all copy trading errors."""
    code: str = "SYS_001"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "details": self.details}


class ConfigurationInvalid(CopyTradeError):
    """Configuration rejected before the sync loop starts."""
    code = "CFG_001"

    def __init__(self, message: str, fields: Optional[list] = None):
        super().__init__(message, {"fields": fields or []})
        self.fields = fields or []


class SourceUnavailable(CopyTradeError):
    """A position source could not produce a snapshot."""
    code = "SRC_001"

    def __init__(self, message: str, address: str = None, venue: str = None):
        super().__init__(message, {"address": address, "venue": venue})
        self.address = address
        self.venue = venue


class ExecutionFailure(CopyTradeError):
    """A single open/close submission failed."""
    code = "EXEC_001"

    def __init__(self, message: str, symbol: str = None, reference: str = None):
        super().__init__(message, {"symbol": symbol, "reference": reference})
        self.symbol = symbol
        self.reference = reference


class SchedulerStateError(CopyTradeError):
    """Scheduler lifecycle misuse (e.g. starting twice)."""
    code = "SCHED_001"
