"""
Authorization decision procedure for the EduTrack system.

Combines the permission matrix, tenant isolation and ownership checks into
a single allow/deny decision with a specific denial reason.

Evaluation order (first failing step wins):
1. Inactive account            -> ACCOUNT_INACTIVE
2. Unrecognized role claim     -> INVALID_ROLE
3. Matrix denies the role      -> ROLE_LACKS_PERMISSION
4. Target in another school    -> CROSS_TENANT
5. Ownership not confirmed     -> NOT_OWNER / NOT_ENROLLED / NOT_GUARDIAN,
                                  or OWNERSHIP_CHECK_FAILED if unverifiable
6. Otherwise                   -> allowed

PRINCIPAL and CLERK are never ownership-checked. ADMIN skips both the
tenant and ownership steps.
"""
import logging
from typing import List, NamedTuple, Optional, Tuple

from sqlalchemy.orm import Session

from config.settings import settings
from database import SessionLocal
from .audit import AuditSink
from .exceptions import AccessDenied, UnsupportedActionError
from .models import Actor, Decision, DenialReason, Target
from .ownership import Ownership, OwnershipResolver, same_tenant
from .permissions import PermissionMatrix, get_permission_matrix
from .roles import Action, Resource, Role, actions_for, parse_role

logger = logging.getLogger(__name__)

# Resources whose records hang off a class
CLASS_SCOPED_RESOURCES = frozenset({
    Resource.GRADES,
    Resource.ATTENDANCE,
    Resource.ASSIGNMENTS,
    Resource.ENROLLMENTS,
    Resource.CLASSES,
    Resource.STUDENTS,
    Resource.SCHEDULE,
    Resource.ANNOUNCEMENTS,
    Resource.REPORTS,
    Resource.ANALYTICS,
})

# Resources whose records belong to one student
CHILD_SCOPED_RESOURCES = frozenset({
    Resource.GRADES,
    Resource.ATTENDANCE,
    Resource.ASSIGNMENTS,
    Resource.ENROLLMENTS,
    Resource.SCHEDULE,
    Resource.FINANCIALS,
    Resource.STUDENTS,
})

SELF_SCOPED_READS = frozenset({Action.READ, Action.LIST})

SELF = "self"


class OwnershipCheck(NamedTuple):
    """One relationship that must hold for the request to proceed."""
    relation: str
    subject_id: int
    object_id: int
    denial: DenialReason


def ownership_requirements(
    role: Role,
    resource: Resource,
    action: Action,
    actor_id: int,
    target: Optional[Target],
) -> List[OwnershipCheck]:
    """
    Relationships to verify for a request, in evaluation order.
    
    Only instance-level targets need them: a target without a class or
    student describes a collection, which the matrix and tenant steps
    already cover.
    """
    if target is None:
        return []
    
    checks = []
    
    if role is Role.TEACHER:
        if resource in CLASS_SCOPED_RESOURCES and target.class_id is not None:
            checks.append(OwnershipCheck("teacher_owns_class", actor_id, target.class_id, DenialReason.NOT_OWNER))
    
    elif role is Role.STUDENT:
        if resource in CHILD_SCOPED_RESOURCES and target.student_id is not None:
            checks.append(OwnershipCheck(SELF, actor_id, target.student_id, DenialReason.NOT_OWNER))
        if (
            resource in CLASS_SCOPED_RESOURCES
            and action in SELF_SCOPED_READS
            and target.class_id is not None
        ):
            checks.append(OwnershipCheck("student_enrolled_in_class", actor_id, target.class_id, DenialReason.NOT_ENROLLED))
    
    elif role is Role.PARENT:
        child_target = resource in CHILD_SCOPED_RESOURCES and target.student_id is not None
        if child_target:
            checks.append(OwnershipCheck("parent_of_child", actor_id, target.student_id, DenialReason.NOT_GUARDIAN))
        # Class-wide data is reachable only through a child enrolled in that class
        if resource in CLASS_SCOPED_RESOURCES and target.class_id is not None and not child_target:
            checks.append(OwnershipCheck("guardian_of_student_in_class", actor_id, target.class_id, DenialReason.NOT_GUARDIAN))
    
    return checks


def _normalize(outcome) -> Ownership:
    if isinstance(outcome, Ownership):
        return outcome
    if outcome is True:
        return Ownership.CONFIRMED
    if outcome is False:
        return Ownership.ABSENT
    return Ownership.UNKNOWN


class AuthorizationService:
    """
    Single authorization gate.
    
    Stateless between calls: the matrix is read-only and every ownership
    fact is looked up again on each decision. Without an explicit sink,
    decisions are logged to ``edutrack.audit`` but not persisted.
    """
    
    def __init__(
        self,
        resolver,
        matrix: Optional[PermissionMatrix] = None,
        audit: Optional[AuditSink] = None,
    ):
        self.resolver = resolver
        self.matrix = matrix or get_permission_matrix()
        self.audit = audit if audit is not None else AuditSink()
    
    @staticmethod
    def _validate_request(resource, action) -> Tuple[Resource, Action]:
        """Reject malformed requests loudly instead of denying them."""
        if resource is None or action is None:
            raise TypeError("resource and action are required")
        resource = Resource(resource)
        action = Action(action)
        if action not in actions_for(resource):
            raise UnsupportedActionError(resource.value, action.value)
        return resource, action
    
    def decide(
        self,
        actor: Actor,
        resource: Resource,
        action: Action,
        target: Optional[Target] = None,
        trace_id: Optional[str] = None,
    ) -> Decision:
        """
        Decide whether an actor may perform an action.
        
        Args:
            actor: The authenticated subject, freshly loaded
            resource: The protected resource
            action: The requested action
            target: The entity acted upon, if any
            trace_id: Optional correlation id for the audit record
            
        Returns:
            Decision with allowed flag and denial reason
            
        Raises:
            ValueError: If resource or action are not recognized values
            UnsupportedActionError: If the action does not exist for the resource
        """
        resource, action = self._validate_request(resource, action)
        decision = self._evaluate(actor, resource, action, target)
        
        if decision.reason is DenialReason.INVALID_ROLE:
            logger.warning("Unrecognized role claim for user %s", actor.id)
        
        self.audit.record(actor, resource, action, target, decision, trace_id)
        return decision
    
    def _evaluate(
        self,
        actor: Actor,
        resource: Resource,
        action: Action,
        target: Optional[Target],
    ) -> Decision:
        if not actor.is_active:
            return Decision.deny(DenialReason.ACCOUNT_INACTIVE)
        
        role = parse_role(actor.role)
        if role is None:
            return Decision.deny(DenialReason.INVALID_ROLE)
        
        if not self.matrix.is_allowed_by_role(role, resource, action):
            return Decision.deny(DenialReason.ROLE_LACKS_PERMISSION)
        
        if role is Role.ADMIN:
            return Decision.allow()
        
        if target is not None and target.school_id is not None:
            if not same_tenant(actor.school_id, target.school_id, role):
                return Decision.deny(DenialReason.CROSS_TENANT)
        
        for check in ownership_requirements(role, resource, action, actor.id, target):
            outcome = self._verify(check)
            if outcome is Ownership.UNKNOWN:
                return Decision.deny(DenialReason.OWNERSHIP_CHECK_FAILED)
            if outcome is Ownership.ABSENT:
                return Decision.deny(check.denial)
        
        return Decision.allow()
    
    def _verify(self, check: OwnershipCheck) -> Ownership:
        if check.relation == SELF:
            return Ownership.CONFIRMED if check.subject_id == check.object_id else Ownership.ABSENT
        lookup = getattr(self.resolver, check.relation)
        return _normalize(lookup(check.subject_id, check.object_id))
    
    def is_allowed(
        self,
        actor: Actor,
        resource: Resource,
        action: Action,
        target: Optional[Target] = None,
    ) -> bool:
        """Convenience wrapper returning only the allowed flag."""
        return self.decide(actor, resource, action, target).allowed
    
    def enforce(
        self,
        actor: Actor,
        resource: Resource,
        action: Action,
        target: Optional[Target] = None,
        trace_id: Optional[str] = None,
    ) -> Decision:
        """
        Decide and raise on denial.
        
        Raises:
            AccessDenied: If the decision denies; carries the Decision
        """
        decision = self.decide(actor, resource, action, target, trace_id)
        if not decision.allowed:
            raise AccessDenied(
                decision,
                user_id=actor.id,
                action=f"{Resource(resource).value}:{Action(action).value}",
            )
        return decision


def get_authorization_service(db: Session, audit: Optional[AuditSink] = None) -> AuthorizationService:
    """Factory function to create an AuthorizationService bound to a session."""
    if audit is None:
        audit = AuditSink(SessionLocal if settings.audit_persist else None)
    return AuthorizationService(OwnershipResolver(db), audit=audit)
