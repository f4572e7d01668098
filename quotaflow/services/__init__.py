"""Business logic services."""

from quotaflow.services.attio_client import AttioClient
from quotaflow.services.attio_sync import run_attio_sync
from quotaflow.services.commission import compute_quarter_statement
from quotaflow.services.statements import build_commission_summary

__all__ = [
    "AttioClient",
    "run_attio_sync",
    "compute_quarter_statement",
    "build_commission_summary",
]
