"""Database module."""
from .models import (
    Base,
    School,
    User,
    SchoolClass,
    TeacherAssignment,
    Enrollment,
    EnrollmentStatus,
    Guardianship,
    AttendanceSession,
    Attendance,
    AttendanceStatus,
    Assignment,
    AssignmentSubmission,
    Message,
    Event,
    FeeRecord,
    FeeStatus,
    AuditLog,
)
from .connection import engine, SessionLocal, get_db, get_db_context, init_db

__all__ = [
    "Base",
    "School",
    "User",
    "SchoolClass",
    "TeacherAssignment",
    "Enrollment",
    "EnrollmentStatus",
    "Guardianship",
    "AttendanceSession",
    "Attendance",
    "AttendanceStatus",
    "Assignment",
    "AssignmentSubmission",
    "Message",
    "Event",
    "FeeRecord",
    "FeeStatus",
    "AuditLog",
    "engine",
    "SessionLocal",
    "get_db",
    "get_db_context",
    "init_db",
]
