"""
Database models for the EduTrack system.
Defines the SQLAlchemy models the access control and analytics layers read.
"""
from enum import Enum as PyEnum
from sqlalchemy import (
    Boolean, Column, Integer, String, Float, DateTime, Enum, ForeignKey,
    Text, UniqueConstraint,
)
from sqlalchemy.orm import relationship, declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class EnrollmentStatus(str, PyEnum):
    """Lifecycle of a student's enrollment in a class."""
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    COMPLETED = "COMPLETED"


class AttendanceStatus(str, PyEnum):
    PRESENT = "PRESENT"
    ABSENT = "ABSENT"
    LATE = "LATE"
    EXCUSED = "EXCUSED"


class FeeStatus(str, PyEnum):
    PENDING = "PENDING"
    PAID = "PAID"
    OVERDUE = "OVERDUE"


class School(Base):
    """
    Schools table - the tenant boundary.
    
    Attributes:
        id: Unique identifier
        name: School name
    """
    __tablename__ = "schools"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    
    users = relationship("User", back_populates="school")
    classes = relationship("SchoolClass", back_populates="school")
    
    def __repr__(self):
        return f"<School(id={self.id}, name='{self.name}')>"


class User(Base):
    """
    Users table - every actor of the system.
    
    The role column is stored as a plain string: it is written by the
    identity provider sync and is validated on every read before use.
    
    Attributes:
        id: Unique identifier
        name: Display name
        email: Contact email (personal data, never logged)
        phone: Contact phone (personal data, never logged)
        role: STUDENT | TEACHER | PARENT | PRINCIPAL | CLERK | ADMIN
        school_id: Tenant the user belongs to
        is_active: Deactivated users are denied every action
    """
    __tablename__ = "users"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True, unique=True)
    phone = Column(String(50), nullable=True)
    role = Column(String(32), nullable=False)
    school_id = Column(Integer, ForeignKey("schools.id", ondelete="SET NULL"), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=func.now())
    
    school = relationship("School", back_populates="users")
    
    def __repr__(self):
        return f"<User(id={self.id}, name='{self.name}', role='{self.role}')>"


class SchoolClass(Base):
    """
    Classes (groups of students) table.
    
    Attributes:
        id: Unique identifier
        name: Class name (e.g., "10A", "Grade 5B")
        school_id: Owning school
    """
    __tablename__ = "classes"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    school_id = Column(Integer, ForeignKey("schools.id", ondelete="CASCADE"), nullable=False)
    
    school = relationship("School", back_populates="classes")
    teacher_assignments = relationship("TeacherAssignment", back_populates="school_class")
    enrollments = relationship("Enrollment", back_populates="school_class")
    
    def __repr__(self):
        return f"<SchoolClass(id={self.id}, name='{self.name}')>"


class TeacherAssignment(Base):
    """
    Links a teacher to a class (and the subject taught there).
    A teacher owns a class while an active assignment exists.
    """
    __tablename__ = "teacher_assignments"
    __table_args__ = (UniqueConstraint("teacher_id", "class_id", "subject", name="uq_teacher_class_subject"),)
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    teacher_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    class_id = Column(Integer, ForeignKey("classes.id", ondelete="CASCADE"), nullable=False, index=True)
    subject = Column(String(255), nullable=False, default="General")
    is_active = Column(Boolean, nullable=False, default=True)
    
    teacher = relationship("User")
    school_class = relationship("SchoolClass", back_populates="teacher_assignments")
    
    def __repr__(self):
        return f"<TeacherAssignment(teacher_id={self.teacher_id}, class_id={self.class_id})>"


class Enrollment(Base):
    """
    Student enrollment in a class.
    Only ACTIVE enrollments grant access to class data.
    """
    __tablename__ = "enrollments"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    student_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    class_id = Column(Integer, ForeignKey("classes.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(
        Enum(EnrollmentStatus, name="enrollment_status"),
        nullable=False,
        default=EnrollmentStatus.ACTIVE,
    )
    enrolled_at = Column(DateTime, nullable=False, default=func.now())
    
    student = relationship("User")
    school_class = relationship("SchoolClass", back_populates="enrollments")
    
    def __repr__(self):
        return f"<Enrollment(student_id={self.student_id}, class_id={self.class_id}, status='{self.status}')>"


class Guardianship(Base):
    """Parent/guardian to child link (many-to-many)."""
    __tablename__ = "guardianships"
    
    parent_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    child_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    relationship_type = Column(String(50), nullable=False, default="GUARDIAN")
    
    def __repr__(self):
        return f"<Guardianship(parent_id={self.parent_id}, child_id={self.child_id})>"


class AttendanceSession(Base):
    """One roll call for a class on a given date."""
    __tablename__ = "attendance_sessions"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    class_id = Column(Integer, ForeignKey("classes.id", ondelete="CASCADE"), nullable=False, index=True)
    teacher_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    date = Column(DateTime, nullable=False, default=func.now())
    
    school_class = relationship("SchoolClass")
    attendances = relationship("Attendance", back_populates="session")


class Attendance(Base):
    """A single student's mark within an attendance session."""
    __tablename__ = "attendances"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(Integer, ForeignKey("attendance_sessions.id", ondelete="CASCADE"), nullable=False)
    student_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    status = Column(Enum(AttendanceStatus, name="attendance_status"), nullable=False)
    
    session = relationship("AttendanceSession", back_populates="attendances")


class Assignment(Base):
    __tablename__ = "assignments"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    class_id = Column(Integer, ForeignKey("classes.id", ondelete="CASCADE"), nullable=False, index=True)
    teacher_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    title = Column(String(255), nullable=False)
    due_date = Column(DateTime, nullable=True)
    
    school_class = relationship("SchoolClass")
    submissions = relationship("AssignmentSubmission", back_populates="assignment")


class AssignmentSubmission(Base):
    """A student's submission; grade stays NULL until graded."""
    __tablename__ = "assignment_submissions"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    assignment_id = Column(Integer, ForeignKey("assignments.id", ondelete="CASCADE"), nullable=False)
    student_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    grade = Column(Float, nullable=True)
    submitted_at = Column(DateTime, nullable=False, default=func.now())
    
    assignment = relationship("Assignment", back_populates="submissions")


class Message(Base):
    __tablename__ = "messages"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    sender_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    recipient_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    body = Column(Text, nullable=False)
    is_read = Column(Boolean, nullable=False, default=False)
    sent_at = Column(DateTime, nullable=False, default=func.now())


class Event(Base):
    """
    School calendar event.
    
    Attributes:
        audience: SCHOOL | TEACHERS | STUDENTS | PARENTS
    """
    __tablename__ = "events"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    school_id = Column(Integer, ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    start_date = Column(DateTime, nullable=False)
    audience = Column(String(32), nullable=False, default="SCHOOL")


class FeeRecord(Base):
    __tablename__ = "fee_records"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    school_id = Column(Integer, ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    amount = Column(Float, nullable=False)
    status = Column(Enum(FeeStatus, name="fee_status"), nullable=False, default=FeeStatus.PENDING)
    due_date = Column(DateTime, nullable=True)


class AuditLog(Base):
    """
    Persisted authorization decisions.
    Holds identifiers and reason codes only, no personal data.
    """
    __tablename__ = "audit_logs"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    trace_id = Column(String(64), nullable=False, index=True)
    actor_id = Column(Integer, nullable=True, index=True)
    role = Column(String(32), nullable=True)
    school_id = Column(Integer, nullable=True, index=True)
    resource = Column(String(64), nullable=False)
    action = Column(String(64), nullable=False)
    allowed = Column(Boolean, nullable=False)
    reason = Column(String(64), nullable=True)
    target_school_id = Column(Integer, nullable=True)
    target_class_id = Column(Integer, nullable=True)
    target_student_id = Column(Integer, nullable=True)
    created_at = Column(DateTime, nullable=False, default=func.now())
    
    def to_dict(self):
        """Convert audit entry to dictionary for API responses."""
        return {
            "id": self.id,
            "trace_id": self.trace_id,
            "actor_id": self.actor_id,
            "role": self.role,
            "school_id": self.school_id,
            "resource": self.resource,
            "action": self.action,
            "allowed": self.allowed,
            "reason": self.reason,
            "target_school_id": self.target_school_id,
            "target_class_id": self.target_class_id,
            "target_student_id": self.target_student_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
