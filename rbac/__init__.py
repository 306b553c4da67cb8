"""
Access control module for the EduTrack system.

Role registry, permission matrix, ownership resolver and the single
authorization decision procedure every protected operation goes through.
"""
from .exceptions import (
    AccessDenied,
    InvalidUserError,
    PermissionMatrixError,
    UnsupportedActionError,
)

from .roles import (
    Role,
    Resource,
    Action,
    RESOURCE_ACTIONS,
    all_roles,
    is_valid_role,
    parse_role,
)

from .permissions import (
    PERMISSION_TABLE,
    PermissionMatrix,
    get_permission_matrix,
    validate_table,
)

from .models import (
    Actor,
    Target,
    Decision,
    DenialReason,
)

from .ownership import (
    Ownership,
    OwnershipResolver,
    same_tenant,
)

from .audit import (
    AuditRecord,
    AuditSink,
    sanitize_for_log,
)

from .authorization import (
    AuthorizationService,
    get_authorization_service,
    ownership_requirements,
)

from .identity import (
    get_user,
    load_actor,
)

__all__ = [
    # Exceptions
    "AccessDenied",
    "InvalidUserError",
    "PermissionMatrixError",
    "UnsupportedActionError",
    # Registry
    "Role",
    "Resource",
    "Action",
    "RESOURCE_ACTIONS",
    "all_roles",
    "is_valid_role",
    "parse_role",
    # Matrix
    "PERMISSION_TABLE",
    "PermissionMatrix",
    "get_permission_matrix",
    "validate_table",
    # Models
    "Actor",
    "Target",
    "Decision",
    "DenialReason",
    # Ownership
    "Ownership",
    "OwnershipResolver",
    "same_tenant",
    # Audit
    "AuditRecord",
    "AuditSink",
    "sanitize_for_log",
    # Decision procedure
    "AuthorizationService",
    "get_authorization_service",
    "ownership_requirements",
    # Identity
    "get_user",
    "load_actor",
]
