"""API module for the EduTrack system."""
from .routes import users_router, authz_router, dashboard_router, audit_router
from .schemas import (
    AuthorizeRequest,
    DecisionResponse,
    UserResponse,
    AlertsResponse,
    TasksResponse,
    AttendanceTrendsResponse,
    ClassAttendanceResponse,
    AuditLogResponse,
    ErrorResponse,
)

__all__ = [
    "users_router",
    "authz_router",
    "dashboard_router",
    "audit_router",
    "AuthorizeRequest",
    "DecisionResponse",
    "UserResponse",
    "AlertsResponse",
    "TasksResponse",
    "AttendanceTrendsResponse",
    "ClassAttendanceResponse",
    "AuditLogResponse",
    "ErrorResponse",
]
