"""
Shared fixtures for the EduTrack tests.

Points the application at a throwaway SQLite database before any project
module is imported.
"""
import os
import sys
import tempfile
from datetime import datetime, timedelta
from types import SimpleNamespace

_DB_DIR = tempfile.mkdtemp(prefix="edutrack-tests-")
os.environ["DATABASE_URL"] = "sqlite:///" + os.path.join(_DB_DIR, "edutrack-test.db")
os.environ["AUDIT_PERSIST"] = "true"

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from database import (
    init_db, get_db_context, SessionLocal,
    School, User, SchoolClass, TeacherAssignment, Enrollment, EnrollmentStatus, Guardianship,
    AttendanceSession, Attendance, AttendanceStatus, Assignment, AssignmentSubmission,
    Message, Event, FeeRecord, FeeStatus,
)
from database.seed import clear_database


@pytest.fixture
def world():
    """
    Two schools with one user per role plus the relationship facts the
    ownership checks read.
    """
    init_db()
    
    with get_db_context() as db:
        clear_database(db)
        
        north = School(name="North High")
        south = School(name="South High")
        db.add_all([north, south])
        db.flush()
        
        principal = User(name="Principal North", email="principal@north.test", role="PRINCIPAL", school_id=north.id)
        clerk = User(name="Clerk North", role="CLERK", school_id=north.id)
        admin = User(name="Admin", role="ADMIN", school_id=None)
        teacher = User(name="Teacher One", email="t1@north.test", role="TEACHER", school_id=north.id)
        other_teacher = User(name="Teacher Two", role="TEACHER", school_id=north.id)
        inactive_teacher = User(name="Teacher Gone", role="TEACHER", school_id=north.id, is_active=False)
        student = User(name="Student One", role="STUDENT", school_id=north.id)
        classmate = User(name="Student Two", role="STUDENT", school_id=north.id)
        alumnus = User(name="Student Done", role="STUDENT", school_id=north.id)
        parent = User(name="Parent One", phone="555-0100", role="PARENT", school_id=north.id)
        bogus = User(name="Mystery", role="JANITOR", school_id=north.id)
        foreign_teacher = User(name="Teacher South", role="TEACHER", school_id=south.id)
        db.add_all([
            principal, clerk, admin, teacher, other_teacher, inactive_teacher,
            student, classmate, alumnus, parent, bogus, foreign_teacher,
        ])
        db.flush()
        
        class_a = SchoolClass(name="10A", school_id=north.id)
        class_b = SchoolClass(name="10B", school_id=north.id)
        class_c = SchoolClass(name="9C", school_id=south.id)
        db.add_all([class_a, class_b, class_c])
        db.flush()
        
        db.add_all([
            TeacherAssignment(teacher_id=teacher.id, class_id=class_a.id, subject="Mathematics"),
            TeacherAssignment(teacher_id=other_teacher.id, class_id=class_b.id, subject="History"),
            TeacherAssignment(teacher_id=teacher.id, class_id=class_b.id, subject="Art", is_active=False),
            TeacherAssignment(teacher_id=foreign_teacher.id, class_id=class_c.id, subject="Biology"),
            Enrollment(student_id=student.id, class_id=class_a.id, status=EnrollmentStatus.ACTIVE),
            Enrollment(student_id=classmate.id, class_id=class_a.id, status=EnrollmentStatus.ACTIVE),
            Enrollment(student_id=classmate.id, class_id=class_b.id, status=EnrollmentStatus.INACTIVE),
            Enrollment(student_id=alumnus.id, class_id=class_a.id, status=EnrollmentStatus.COMPLETED),
            Guardianship(parent_id=parent.id, child_id=student.id),
        ])
        db.flush()
        
        ids = SimpleNamespace(
            north=north.id,
            south=south.id,
            principal=principal.id,
            clerk=clerk.id,
            admin=admin.id,
            teacher=teacher.id,
            other_teacher=other_teacher.id,
            inactive_teacher=inactive_teacher.id,
            student=student.id,
            classmate=classmate.id,
            alumnus=alumnus.id,
            parent=parent.id,
            bogus=bogus.id,
            foreign_teacher=foreign_teacher.id,
            class_a=class_a.id,
            class_b=class_b.id,
            class_c=class_c.id,
        )
    
    return ids


@pytest.fixture
def db(world):
    """Database session over the seeded world."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def activity(world):
    """
    Dashboard activity on top of the seeded world, relative to ``now``.
    
    Class A: one session two days ago at 50% attendance.
    Class B: one session yesterday at 80% attendance.
    """
    now = datetime.now().replace(microsecond=0)
    
    with get_db_context() as db:
        session_a = AttendanceSession(class_id=world.class_a, teacher_id=world.teacher, date=now - timedelta(days=2))
        session_b = AttendanceSession(class_id=world.class_b, teacher_id=world.other_teacher, date=now - timedelta(days=1))
        session_c = AttendanceSession(class_id=world.class_c, teacher_id=world.foreign_teacher, date=now - timedelta(days=1))
        db.add_all([session_a, session_b, session_c])
        db.flush()
        
        db.add_all([
            Attendance(session_id=session_a.id, student_id=world.student, status=AttendanceStatus.PRESENT),
            Attendance(session_id=session_a.id, student_id=world.classmate, status=AttendanceStatus.ABSENT),
        ])
        for status in ["PRESENT", "PRESENT", "LATE", "PRESENT", "EXCUSED"]:
            db.add(Attendance(session_id=session_b.id, student_id=world.classmate, status=AttendanceStatus(status)))
        db.add(Attendance(session_id=session_c.id, student_id=world.student, status=AttendanceStatus.ABSENT))
        
        essay = Assignment(class_id=world.class_a, teacher_id=world.teacher, title="Essay", due_date=now - timedelta(days=10))
        quiz = Assignment(class_id=world.class_a, teacher_id=world.teacher, title="Quiz", due_date=now + timedelta(days=2))
        timeline = Assignment(class_id=world.class_b, teacher_id=world.other_teacher, title="Timeline", due_date=now - timedelta(days=10))
        db.add_all([essay, quiz, timeline])
        db.flush()
        
        db.add_all([
            AssignmentSubmission(assignment_id=essay.id, student_id=world.student),
            AssignmentSubmission(assignment_id=essay.id, student_id=world.classmate),
            AssignmentSubmission(assignment_id=essay.id, student_id=world.alumnus, grade=88.0),
            AssignmentSubmission(assignment_id=quiz.id, student_id=world.student),
            AssignmentSubmission(assignment_id=timeline.id, student_id=world.classmate),
        ])
        
        for i in range(6):
            db.add(Message(sender_id=world.parent, recipient_id=world.teacher, body=f"Question {i}", sent_at=now - timedelta(hours=1)))
        db.add_all([
            Message(sender_id=world.parent, recipient_id=world.teacher, body="Old", sent_at=now - timedelta(days=3)),
            Message(sender_id=world.parent, recipient_id=world.teacher, body="Seen", is_read=True, sent_at=now - timedelta(hours=2)),
        ])
        
        db.add_all([
            Event(school_id=world.north, title="Science Fair", start_date=now + timedelta(days=1), audience="SCHOOL"),
            Event(school_id=world.north, title="Parents Evening", start_date=now + timedelta(days=3), audience="PARENTS"),
            Event(school_id=world.north, title="Sports Day", start_date=now - timedelta(days=1), audience="SCHOOL"),
            Event(school_id=world.north, title="Graduation", start_date=now + timedelta(days=30), audience="SCHOOL"),
            Event(school_id=world.south, title="South Open Day", start_date=now + timedelta(days=1), audience="SCHOOL"),
        ])
        
        db.add_all([
            FeeRecord(school_id=world.north, student_id=world.student, amount=250.0, status=FeeStatus.PENDING),
            FeeRecord(school_id=world.north, student_id=world.classmate, amount=250.0, status=FeeStatus.OVERDUE),
            FeeRecord(school_id=world.north, student_id=world.alumnus, amount=250.0, status=FeeStatus.PAID),
        ])
        
        ids = SimpleNamespace(now=now, essay=essay.id, quiz=quiz.id, timeline=timeline.id)
    
    return ids
