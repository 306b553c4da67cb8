"""
Seed data script for the EduTrack system.
Creates a demo school (and a second school for tenant isolation checks).
"""
from datetime import datetime, timedelta
import random
from database import (
    get_db_context, init_db,
    School, User, SchoolClass, TeacherAssignment, Enrollment, EnrollmentStatus,
    Guardianship, AttendanceSession, Attendance, AttendanceStatus,
    Assignment, AssignmentSubmission, Message, Event, FeeRecord, FeeStatus, AuditLog,
)

SEEDED_MODELS = [
    AuditLog, FeeRecord, Event, Message, AssignmentSubmission, Assignment,
    Attendance, AttendanceSession, Guardianship, Enrollment, TeacherAssignment,
    SchoolClass, User, School,
]


def clear_database(db):
    """Delete all rows, children first."""
    for model in SEEDED_MODELS:
        db.query(model).delete()


def seed_database():
    """Populate database with sample data."""
    
    with get_db_context() as db:
        clear_database(db)
        
        # Schools
        demo = School(name="EduTrack Demo School")
        other = School(name="Riverside Academy")
        db.add_all([demo, other])
        db.flush()
        
        # Staff
        principal = User(name="Grace Okafor", email="principal@demo.edutrack", role="PRINCIPAL", school_id=demo.id)
        clerk = User(name="Sam Reyes", email="office@demo.edutrack", role="CLERK", school_id=demo.id)
        teachers = [
            User(name="Maria Silva", email="m.silva@demo.edutrack", role="TEACHER", school_id=demo.id),
            User(name="David Chen", email="d.chen@demo.edutrack", role="TEACHER", school_id=demo.id),
        ]
        admin = User(name="System Admin", email="admin@edutrack", role="ADMIN", school_id=None)
        other_principal = User(name="Lena Novak", email="principal@riverside.edu", role="PRINCIPAL", school_id=other.id)
        db.add_all([principal, clerk, admin, other_principal, *teachers])
        db.flush()
        
        # Students and parents
        students = [
            User(name="Miguel Ferreira", role="STUDENT", school_id=demo.id),
            User(name="Ana Costa", role="STUDENT", school_id=demo.id),
            User(name="Pedro Almeida", role="STUDENT", school_id=demo.id),
            User(name="Sofia Rodrigues", role="STUDENT", school_id=demo.id),
        ]
        parents = [
            User(name="Carla Ferreira", phone="555-0101", role="PARENT", school_id=demo.id),
            User(name="Rui Costa", phone="555-0102", role="PARENT", school_id=demo.id),
        ]
        db.add_all(students + parents)
        db.flush()
        
        # Classes
        classes = [
            SchoolClass(name="10A", school_id=demo.id),
            SchoolClass(name="10B", school_id=demo.id),
        ]
        other_class = SchoolClass(name="9C", school_id=other.id)
        db.add_all(classes + [other_class])
        db.flush()
        
        db.add_all([
            TeacherAssignment(teacher_id=teachers[0].id, class_id=classes[0].id, subject="Mathematics"),
            TeacherAssignment(teacher_id=teachers[1].id, class_id=classes[1].id, subject="History"),
        ])
        
        # Enrollments: the last one is completed and must not grant access
        db.add_all([
            Enrollment(student_id=students[0].id, class_id=classes[0].id),
            Enrollment(student_id=students[1].id, class_id=classes[0].id),
            Enrollment(student_id=students[2].id, class_id=classes[1].id),
            Enrollment(student_id=students[3].id, class_id=classes[1].id),
            Enrollment(student_id=students[3].id, class_id=classes[0].id, status=EnrollmentStatus.COMPLETED),
        ])
        
        # Guardianships: Carla has one child, Rui has two
        db.add_all([
            Guardianship(parent_id=parents[0].id, child_id=students[0].id),
            Guardianship(parent_id=parents[1].id, child_id=students[1].id),
            Guardianship(parent_id=parents[1].id, child_id=students[2].id),
        ])
        db.flush()
        
        # Attendance for the last 10 school days
        now = datetime.now()
        statuses = list(AttendanceStatus)
        for offset in range(1, 11):
            for school_class, weights in ((classes[0], [90, 4, 4, 2]), (classes[1], [65, 25, 5, 5])):
                session = AttendanceSession(class_id=school_class.id, date=now - timedelta(days=offset))
                db.add(session)
                db.flush()
                enrolled = [e.student_id for e in school_class.enrollments if e.status == EnrollmentStatus.ACTIVE]
                for student_id in enrolled:
                    db.add(Attendance(
                        session_id=session.id,
                        student_id=student_id,
                        status=random.choices(statuses, weights=weights)[0],
                    ))
        
        # Assignments and submissions
        essay = Assignment(class_id=classes[0].id, teacher_id=teachers[0].id, title="Algebra Worksheet", due_date=now - timedelta(days=10))
        quiz = Assignment(class_id=classes[0].id, teacher_id=teachers[0].id, title="Geometry Quiz", due_date=now + timedelta(days=2))
        db.add_all([essay, quiz])
        db.flush()
        db.add_all([
            AssignmentSubmission(assignment_id=essay.id, student_id=students[0].id),
            AssignmentSubmission(assignment_id=essay.id, student_id=students[1].id, grade=17.5),
            AssignmentSubmission(assignment_id=quiz.id, student_id=students[1].id),
        ])
        
        # Messages, events, fees
        db.add_all([
            Message(sender_id=parents[0].id, recipient_id=teachers[0].id, body="Question about homework"),
            Message(sender_id=principal.id, recipient_id=teachers[0].id, body="Staff meeting moved", is_read=True),
            Event(school_id=demo.id, title="Parent-Teacher Meeting", start_date=now + timedelta(days=3), audience="SCHOOL"),
            Event(school_id=demo.id, title="Staff Training", start_date=now + timedelta(days=5), audience="TEACHERS"),
            FeeRecord(school_id=demo.id, student_id=students[0].id, amount=350.0, status=FeeStatus.PENDING),
            FeeRecord(school_id=demo.id, student_id=students[1].id, amount=350.0, status=FeeStatus.PAID),
        ])
        db.commit()
        
        print("Database seeded successfully!")
        print(f"Created:")
        print(f"  - 2 schools")
        print(f"  - {len(teachers)} teachers, {len(students)} students, {len(parents)} parents")
        print(f"  - {len(classes) + 1} classes")
        
        # Print some IDs for reference
        print("\nReference IDs (send as X-User-Id):")
        print(f"  Principal: {principal.id}  Clerk: {clerk.id}  Admin: {admin.id}")
        print(f"  Teachers: {[(t.id, t.name) for t in teachers]}")
        print(f"  Students: {[(s.id, s.name) for s in students]}")
        print(f"  Parents: {[(p.id, p.name) for p in parents]}")


if __name__ == "__main__":
    print("Initializing database...")
    init_db()
    print("Seeding database...")
    seed_database()
