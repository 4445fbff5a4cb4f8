"""Console reporting and structured run logging."""

from .audit import AuditEvent, AuditWriteError, JsonlAuditLogger, new_run_id, utc_timestamp
from .console import ConsoleReporter

__all__ = [
    "AuditEvent",
    "AuditWriteError",
    "ConsoleReporter",
    "JsonlAuditLogger",
    "new_run_id",
    "utc_timestamp",
]
