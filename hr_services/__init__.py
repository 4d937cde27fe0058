"""
hr_services -- approval gate and notification outbox shared by all flows.
"""

from hr_services.approval_gate import (
    SYSTEM_APPROVER_NO,
    ApprovalDecision,
    ApprovalFlow,
    ApprovalGate,
    BaseApprovalFlow,
)
from hr_services.factory import build_engine
from hr_services.notifications import (
    DispatchReport,
    LoggingNotificationPublisher,
    NotificationDispatcher,
    NotificationOutbox,
    NotificationPriority,
    NotificationPublisher,
)

__all__ = [
    "SYSTEM_APPROVER_NO",
    "ApprovalDecision",
    "ApprovalFlow",
    "ApprovalGate",
    "BaseApprovalFlow",
    "DispatchReport",
    "LoggingNotificationPublisher",
    "NotificationDispatcher",
    "NotificationOutbox",
    "NotificationPriority",
    "NotificationPublisher",
    "build_engine",
]
