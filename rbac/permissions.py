"""
Permission matrix for the EduTrack system.

The table below lists, for every (resource, action) pair that exists, the
roles that are granted it. Every role not listed for a pair is denied that
pair; there are no wildcards and no role inheritance, so each grant can be
audited by reading a single line.
"""
from functools import lru_cache
from typing import Dict, FrozenSet, List, Mapping, Tuple

from .exceptions import PermissionMatrixError, UnsupportedActionError
from .roles import RESOURCE_ACTIONS, Action, Resource, Role

STUDENT = Role.STUDENT
TEACHER = Role.TEACHER
PARENT = Role.PARENT
PRINCIPAL = Role.PRINCIPAL
CLERK = Role.CLERK
ADMIN = Role.ADMIN


def _roles(*roles: Role) -> FrozenSet[Role]:
    return frozenset(roles)


EVERYONE = _roles(STUDENT, TEACHER, PARENT, PRINCIPAL, CLERK, ADMIN)

PermissionTable = Mapping[Resource, Mapping[Action, FrozenSet[Role]]]

PERMISSION_TABLE: PermissionTable = {
    Resource.GRADES: {
        Action.CREATE: _roles(TEACHER, ADMIN),
        Action.READ: EVERYONE,
        Action.UPDATE: _roles(TEACHER, ADMIN),
        Action.DELETE: _roles(ADMIN),
        Action.LIST: EVERYONE,
        Action.EXPORT: _roles(TEACHER, PRINCIPAL, ADMIN),
    },
    Resource.ATTENDANCE: {
        Action.CREATE: _roles(TEACHER, CLERK, ADMIN),
        Action.READ: EVERYONE,
        Action.UPDATE: _roles(TEACHER, CLERK, ADMIN),
        Action.DELETE: _roles(ADMIN),
        Action.LIST: EVERYONE,
        Action.EXPORT: _roles(PRINCIPAL, CLERK, ADMIN),
    },
    Resource.ASSIGNMENTS: {
        Action.CREATE: _roles(TEACHER, ADMIN),
        Action.READ: _roles(STUDENT, TEACHER, PARENT, PRINCIPAL, ADMIN),
        Action.UPDATE: _roles(TEACHER, ADMIN),
        Action.DELETE: _roles(TEACHER, ADMIN),
        Action.LIST: _roles(STUDENT, TEACHER, PARENT, PRINCIPAL, ADMIN),
        Action.EXPORT: _roles(TEACHER, PRINCIPAL, ADMIN),
    },
    Resource.ENROLLMENTS: {
        Action.CREATE: _roles(PRINCIPAL, CLERK, ADMIN),
        Action.READ: EVERYONE,
        Action.UPDATE: _roles(PRINCIPAL, CLERK, ADMIN),
        Action.DELETE: _roles(PRINCIPAL, CLERK, ADMIN),
        Action.LIST: EVERYONE,
        Action.EXPORT: _roles(PRINCIPAL, CLERK, ADMIN),
    },
    Resource.CLASSES: {
        Action.CREATE: _roles(PRINCIPAL, ADMIN),
        Action.READ: EVERYONE,
        Action.UPDATE: _roles(PRINCIPAL, ADMIN),
        Action.DELETE: _roles(PRINCIPAL, ADMIN),
        Action.LIST: EVERYONE,
        Action.EXPORT: _roles(PRINCIPAL, ADMIN),
    },
    Resource.STUDENTS: {
        Action.CREATE: _roles(PRINCIPAL, CLERK, ADMIN),
        Action.READ: EVERYONE,
        Action.UPDATE: _roles(PRINCIPAL, CLERK, ADMIN),
        Action.DELETE: _roles(PRINCIPAL, ADMIN),
        Action.LIST: _roles(TEACHER, PRINCIPAL, CLERK, ADMIN),
        Action.EXPORT: _roles(PRINCIPAL, CLERK, ADMIN),
    },
    Resource.STAFF: {
        Action.CREATE: _roles(PRINCIPAL, ADMIN),
        Action.READ: _roles(TEACHER, PRINCIPAL, CLERK, ADMIN),
        Action.UPDATE: _roles(PRINCIPAL, ADMIN),
        Action.DELETE: _roles(PRINCIPAL, ADMIN),
        Action.LIST: _roles(PRINCIPAL, CLERK, ADMIN),
        Action.EXPORT: _roles(PRINCIPAL, ADMIN),
    },
    Resource.FINANCIALS: {
        Action.CREATE: _roles(CLERK, ADMIN),
        Action.READ: _roles(STUDENT, PARENT, PRINCIPAL, CLERK, ADMIN),
        Action.UPDATE: _roles(CLERK, ADMIN),
        Action.DELETE: _roles(ADMIN),
        Action.LIST: _roles(PRINCIPAL, CLERK, ADMIN),
        Action.EXPORT: _roles(PRINCIPAL, CLERK, ADMIN),
        Action.PROCESS_PAYMENT: _roles(PARENT, CLERK, ADMIN),
    },
    Resource.EVENTS: {
        Action.CREATE: _roles(TEACHER, PRINCIPAL, ADMIN),
        Action.READ: EVERYONE,
        Action.UPDATE: _roles(TEACHER, PRINCIPAL, ADMIN),
        Action.DELETE: _roles(PRINCIPAL, ADMIN),
        Action.LIST: EVERYONE,
        Action.EXPORT: _roles(PRINCIPAL, ADMIN),
    },
    Resource.ANNOUNCEMENTS: {
        Action.CREATE: _roles(TEACHER, PRINCIPAL, CLERK, ADMIN),
        Action.READ: EVERYONE,
        Action.UPDATE: _roles(TEACHER, PRINCIPAL, ADMIN),
        Action.DELETE: _roles(PRINCIPAL, ADMIN),
        Action.LIST: EVERYONE,
        Action.EXPORT: _roles(PRINCIPAL, ADMIN),
    },
    Resource.MESSAGES: {
        Action.CREATE: EVERYONE,
        Action.READ: EVERYONE,
        Action.UPDATE: EVERYONE,
        Action.DELETE: _roles(TEACHER, PRINCIPAL, ADMIN),
        Action.LIST: EVERYONE,
        Action.EXPORT: _roles(PRINCIPAL, ADMIN),
    },
    Resource.SCHEDULE: {
        Action.CREATE: _roles(PRINCIPAL, ADMIN),
        Action.READ: EVERYONE,
        Action.UPDATE: _roles(PRINCIPAL, ADMIN),
        Action.DELETE: _roles(PRINCIPAL, ADMIN),
        Action.LIST: EVERYONE,
        Action.EXPORT: _roles(PRINCIPAL, ADMIN),
    },
    Resource.REPORTS: {
        Action.CREATE: _roles(TEACHER, PRINCIPAL, CLERK, ADMIN),
        Action.READ: _roles(TEACHER, PRINCIPAL, CLERK, ADMIN),
        Action.UPDATE: _roles(PRINCIPAL, ADMIN),
        Action.DELETE: _roles(PRINCIPAL, ADMIN),
        Action.LIST: _roles(TEACHER, PRINCIPAL, CLERK, ADMIN),
        Action.EXPORT: _roles(TEACHER, PRINCIPAL, CLERK, ADMIN),
    },
    Resource.AUDIT_LOG: {
        Action.READ: _roles(PRINCIPAL, ADMIN),
        Action.LIST: _roles(PRINCIPAL, ADMIN),
        Action.EXPORT: _roles(ADMIN),
    },
    # READ: dashboards scoped to the caller or one class; LIST: school-wide
    Resource.ANALYTICS: {
        Action.READ: _roles(TEACHER, PRINCIPAL, ADMIN),
        Action.LIST: _roles(PRINCIPAL, ADMIN),
        Action.EXPORT: _roles(PRINCIPAL, ADMIN),
    },
}


def _name(value) -> str:
    return getattr(value, "value", value)


def validate_table(table: PermissionTable) -> List[str]:
    """
    Check a permission table against the resource/action vocabulary.
    
    Args:
        table: Mapping of resource -> action -> granted roles
        
    Returns:
        List of human readable problems; empty when the table is complete
    """
    problems = []
    
    for resource, actions in RESOURCE_ACTIONS.items():
        entries = table.get(resource)
        if entries is None:
            problems.append(f"missing resource '{resource.value}'")
            continue
        for action in sorted(actions, key=lambda a: a.value):
            if action not in entries:
                problems.append(f"missing entry '{resource.value}:{action.value}'")
    
    for resource, entries in table.items():
        if resource not in RESOURCE_ACTIONS:
            problems.append(f"unknown resource '{_name(resource)}'")
            continue
        for action, roles in entries.items():
            if action not in RESOURCE_ACTIONS[resource]:
                problems.append(f"action '{_name(action)}' does not exist for '{_name(resource)}'")
            for role in roles:
                if not isinstance(role, Role):
                    problems.append(f"'{_name(resource)}:{_name(action)}' grants unknown role '{role}'")
    
    return problems


class PermissionMatrix:
    """
    Static (role, resource, action) -> allow/deny lookup.
    Built once; raises at construction if the table is not complete.
    """
    
    def __init__(self, table: PermissionTable = None):
        table = PERMISSION_TABLE if table is None else table
        problems = validate_table(table)
        if problems:
            raise PermissionMatrixError(
                f"Permission table has {len(problems)} problem(s): {'; '.join(problems)}",
                problems,
            )
        self._grants: Dict[Tuple[Resource, Action], FrozenSet[Role]] = {
            (resource, action): frozenset(roles)
            for resource, entries in table.items()
            for action, roles in entries.items()
        }
    
    def is_allowed_by_role(self, role: Role, resource: Resource, action: Action) -> bool:
        """
        Look up whether a role is granted an action on a resource.
        
        Args:
            role: The actor's role; anything that is not a Role is denied
            resource: The protected resource
            action: The requested action
            
        Returns:
            True if the table grants the pair to the role
            
        Raises:
            ValueError: If resource or action are not recognized values
            UnsupportedActionError: If the action does not exist for the resource
        """
        resource = Resource(resource)
        action = Action(action)
        roles = self._grants.get((resource, action))
        if roles is None:
            raise UnsupportedActionError(resource.value, action.value)
        return isinstance(role, Role) and role in roles
    
    def roles_allowed(self, resource: Resource, action: Action) -> FrozenSet[Role]:
        """Roles granted an action on a resource."""
        resource = Resource(resource)
        action = Action(action)
        if (resource, action) not in self._grants:
            raise UnsupportedActionError(resource.value, action.value)
        return self._grants[(resource, action)]
    
    def grants_for(self, role: Role) -> List[str]:
        """Permission strings ('resource:action') granted to a role, sorted."""
        return sorted(
            f"{resource.value}:{action.value}"
            for (resource, action), roles in self._grants.items()
            if role in roles
        )


@lru_cache()
def get_permission_matrix() -> PermissionMatrix:
    """Get the cached default permission matrix."""
    return PermissionMatrix()
