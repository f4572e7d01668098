"""
Database models for Quotaflow.

All models are exported here for convenient imports:
    from quotaflow.models import Deal, AEProfile, CommissionPlan, etc.
"""

from quotaflow.models.attio import AttioWorkspaceMember
from quotaflow.models.audit import AuditAction, AuditLog
from quotaflow.models.base import Base, BaseModel, TimestampMixin
from quotaflow.models.commission import (
    BonusRule,
    CommissionPlan,
    FxRate,
    PerformanceAccelerator,
)
from quotaflow.models.deal import Deal
from quotaflow.models.user import AEProfile, AEProfileStatus, User, UserRole

__all__ = [
    # Base
    "Base",
    "BaseModel",
    "TimestampMixin",
    # User
    "User",
    "UserRole",
    "AEProfile",
    "AEProfileStatus",
    # Attio
    "AttioWorkspaceMember",
    # Commission
    "CommissionPlan",
    "BonusRule",
    "PerformanceAccelerator",
    "FxRate",
    # Deal
    "Deal",
    # Audit
    "AuditLog",
    "AuditAction",
]
