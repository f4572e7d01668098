"""
Service-layer exceptions.
"""

from datetime import datetime
from typing import Optional


class QuotaflowError(Exception):
    """Base class for service errors."""


class NoActivePlanError(QuotaflowError):
    """No commission plan covers a deal's close date."""

    def __init__(self, close_date: Optional[datetime]):
        self.close_date = close_date
        when = close_date.isoformat() if close_date else "unknown date"
        super().__init__(f"No active commission plan found for deal close date {when}")


class AttioError(QuotaflowError):
    """Base class for Attio CRM failures."""


class AttioNotConfiguredError(AttioError):
    """ATTIO_API_KEY is not set."""

    def __init__(self):
        super().__init__("ATTIO_API_KEY is not set")


class AttioAPIError(AttioError):
    """Attio returned a non-2xx response or the request failed in transit."""

    def __init__(self, status_code: Optional[int], body: str):
        self.status_code = status_code
        self.body = body
        if status_code is None:
            super().__init__(f"Attio request failed: {body}")
        else:
            super().__init__(f"Attio API error {status_code}: {body}")

    @property
    def is_filter_rejection(self) -> bool:
        """Attio rejects malformed filters with 400/422."""
        return self.status_code in (400, 422)
