"""
Ownership resolver for the EduTrack system.

Answers the relationship questions the decision procedure needs:
teacher teaches class, student actively enrolled in class, parent is
guardian of child (or of a child actively enrolled in a class), actor and
target share a school.

Every store-backed check is a single point lookup read fresh from the
database. A store failure is reported as ``Ownership.UNKNOWN`` so callers
can tell "could not verify" apart from "verified absent".
"""
import logging
from enum import Enum
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from database import Enrollment, EnrollmentStatus, Guardianship, TeacherAssignment
from .roles import Role

logger = logging.getLogger(__name__)


class Ownership(str, Enum):
    """Outcome of an ownership check."""
    CONFIRMED = "confirmed"
    ABSENT = "absent"
    UNKNOWN = "unknown"


def same_tenant(actor_school_id: Optional[int], target_school_id: Optional[int], role: Optional[Role] = None) -> bool:
    """
    Check tenant isolation between an actor and a target.
    
    ADMIN bypasses the check entirely. Otherwise both school ids must be
    present and equal; an actor without a school never matches.
    """
    if role is Role.ADMIN:
        return True
    return actor_school_id is not None and actor_school_id == target_school_id


class OwnershipResolver:
    """
    Relationship lookups against the relational store.
    Side-effect free; every call reads the current state of the store.
    """
    
    def __init__(self, db: Session):
        self.db = db
    
    def _exists(self, check: str, query) -> Ownership:
        try:
            row = query.first()
        except SQLAlchemyError as exc:
            logger.warning("Ownership check '%s' could not reach the store: %s", check, type(exc).__name__)
            return Ownership.UNKNOWN
        return Ownership.CONFIRMED if row is not None else Ownership.ABSENT
    
    def teacher_owns_class(self, teacher_id: int, class_id: int) -> Ownership:
        """
        Check that the teacher has an active assignment to the class.
        
        Args:
            teacher_id: The teacher's user ID
            class_id: The class ID
            
        Returns:
            CONFIRMED, ABSENT, or UNKNOWN when the store is unavailable
        """
        query = (
            self.db.query(TeacherAssignment.id)
            .filter(TeacherAssignment.teacher_id == teacher_id)
            .filter(TeacherAssignment.class_id == class_id)
            .filter(TeacherAssignment.is_active.is_(True))
        )
        return self._exists("teacher_owns_class", query)
    
    def student_enrolled_in_class(self, student_id: int, class_id: int) -> Ownership:
        """
        Check that the student holds an ACTIVE enrollment in the class.
        
        INACTIVE and COMPLETED enrollments never count, even when they are
        the only records for the pair.
        """
        query = (
            self.db.query(Enrollment.id)
            .filter(Enrollment.student_id == student_id)
            .filter(Enrollment.class_id == class_id)
            .filter(Enrollment.status == EnrollmentStatus.ACTIVE)
        )
        return self._exists("student_enrolled_in_class", query)
    
    def parent_of_child(self, parent_id: int, child_id: int) -> Ownership:
        """Check that a guardianship link exists between parent and child."""
        query = (
            self.db.query(Guardianship.parent_id)
            .filter(Guardianship.parent_id == parent_id)
            .filter(Guardianship.child_id == child_id)
        )
        return self._exists("parent_of_child", query)
    
    def guardian_of_student_in_class(self, parent_id: int, class_id: int) -> Ownership:
        """
        Check that one of the parent's children holds an ACTIVE enrollment
        in the class.
        
        Args:
            parent_id: The parent's user ID
            class_id: The class ID
        
        Returns:
            CONFIRMED, ABSENT, or UNKNOWN when the store is unavailable
        """
        query = (
            self.db.query(Guardianship.child_id)
            .join(Enrollment, Enrollment.student_id == Guardianship.child_id)
            .filter(Guardianship.parent_id == parent_id)
            .filter(Enrollment.class_id == class_id)
            .filter(Enrollment.status == EnrollmentStatus.ACTIVE)
        )
        return self._exists("guardian_of_student_in_class", query)
    
    def same_tenant(self, actor_school_id: Optional[int], target_school_id: Optional[int], role: Optional[Role] = None) -> bool:
        """Tenant check; see the module level ``same_tenant``."""
        return same_tenant(actor_school_id, target_school_id, role)
