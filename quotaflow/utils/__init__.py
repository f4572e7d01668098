"""Utility functions."""

from quotaflow.utils.audit import audit_entry_payload, log_action

__all__ = [
    "log_action",
    "audit_entry_payload",
]
