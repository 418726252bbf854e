"""Structured logging utilities."""

from .audit import JsonlAuditLogger, SyncEvent, new_run_id, sanitize_metadata, utc_timestamp

__all__ = ["JsonlAuditLogger", "SyncEvent", "new_run_id", "sanitize_metadata", "utc_timestamp"]
