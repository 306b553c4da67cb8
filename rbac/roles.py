"""
Role registry: the closed sets of roles, resources and actions.

Role values arriving from the identity provider are untrusted strings and
must go through ``parse_role`` before any permission lookup.
"""
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional


class Role(str, Enum):
    """Actor roles. Exactly one per actor."""
    STUDENT = "STUDENT"
    TEACHER = "TEACHER"
    PARENT = "PARENT"
    PRINCIPAL = "PRINCIPAL"
    CLERK = "CLERK"
    ADMIN = "ADMIN"


class Resource(str, Enum):
    """Protected domain object categories."""
    GRADES = "grades"
    ATTENDANCE = "attendance"
    ASSIGNMENTS = "assignments"
    ENROLLMENTS = "enrollments"
    CLASSES = "classes"
    STUDENTS = "students"
    STAFF = "staff"
    FINANCIALS = "financials"
    EVENTS = "events"
    ANNOUNCEMENTS = "announcements"
    MESSAGES = "messages"
    SCHEDULE = "schedule"
    REPORTS = "reports"
    AUDIT_LOG = "audit_log"
    ANALYTICS = "analytics"


class Action(str, Enum):
    """Operation classes on a resource."""
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    LIST = "list"
    EXPORT = "export"
    PROCESS_PAYMENT = "process_payment"


_CRUD = frozenset({Action.CREATE, Action.READ, Action.UPDATE, Action.DELETE, Action.LIST, Action.EXPORT})

# Actions that exist for each resource. Anything outside this map is a
# programming error, not a denial.
RESOURCE_ACTIONS: Dict[Resource, FrozenSet[Action]] = {
    Resource.GRADES: _CRUD,
    Resource.ATTENDANCE: _CRUD,
    Resource.ASSIGNMENTS: _CRUD,
    Resource.ENROLLMENTS: _CRUD,
    Resource.CLASSES: _CRUD,
    Resource.STUDENTS: _CRUD,
    Resource.STAFF: _CRUD,
    Resource.FINANCIALS: _CRUD | {Action.PROCESS_PAYMENT},
    Resource.EVENTS: _CRUD,
    Resource.ANNOUNCEMENTS: _CRUD,
    Resource.MESSAGES: _CRUD,
    Resource.SCHEDULE: _CRUD,
    Resource.REPORTS: _CRUD,
    Resource.AUDIT_LOG: frozenset({Action.READ, Action.LIST, Action.EXPORT}),
    Resource.ANALYTICS: frozenset({Action.READ, Action.LIST, Action.EXPORT}),
}


def all_roles() -> FrozenSet[Role]:
    """Return every recognized role."""
    return frozenset(Role)


def parse_role(value: Any) -> Optional[Role]:
    """
    Normalize a raw role claim.
    
    Args:
        value: A ``Role`` member or the string stored by the identity provider
        
    Returns:
        The matching Role, or None when the claim is not recognized
    """
    if isinstance(value, Role):
        return value
    if not isinstance(value, str):
        return None
    try:
        return Role(value.strip().upper())
    except ValueError:
        return None


def is_valid_role(value: Any) -> bool:
    """Check if a raw role claim names a recognized role."""
    return parse_role(value) is not None


def actions_for(resource: Resource) -> FrozenSet[Action]:
    """Actions that exist for a resource."""
    return RESOURCE_ACTIONS[resource]
