"""Dashboard metrics module."""
from .metrics import (
    ATTENDANCE_HIGH_THRESHOLD,
    ATTENDANCE_MEDIUM_THRESHOLD,
    attendance_priority,
    attendance_rate,
    attendance_rate_by_class,
    attendance_trends,
    pending_assignment_counts,
    pending_fee_count,
    principal_alerts,
    teacher_alerts,
    teacher_class_ids,
    teacher_pending_tasks,
    unread_message_count,
    upcoming_event_count,
)

__all__ = [
    "ATTENDANCE_HIGH_THRESHOLD",
    "ATTENDANCE_MEDIUM_THRESHOLD",
    "attendance_priority",
    "attendance_rate",
    "attendance_rate_by_class",
    "attendance_trends",
    "pending_assignment_counts",
    "pending_fee_count",
    "principal_alerts",
    "teacher_alerts",
    "teacher_class_ids",
    "teacher_pending_tasks",
    "unread_message_count",
    "upcoming_event_count",
]
