"""
Custom exceptions for the EduTrack access control layer.

Denials are returned as data (see ``DenialReason``); the exceptions below
cover configuration mistakes, programming errors at the call site, and the
``enforce`` helper used by routes that prefer raising.
"""


class PermissionMatrixError(Exception):
    """Raised when the permission table is incomplete or inconsistent."""
    
    def __init__(self, message: str, problems: list = None):
        self.message = message
        self.problems = problems or []
        super().__init__(self.message)


class UnsupportedActionError(Exception):
    """Raised when an action is requested on a resource that does not define it."""
    
    def __init__(self, resource, action):
        self.resource = resource
        self.action = action
        super().__init__(f"Action '{action}' does not exist for resource '{resource}'")


class InvalidUserError(Exception):
    """Raised when a user is not found."""
    
    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__(f"User with id {user_id} not found")


class AccessDenied(Exception):
    """Raised by ``AuthorizationService.enforce`` when a decision denies."""
    
    def __init__(self, decision, user_id: int = None, action: str = None):
        self.decision = decision
        self.reason = decision.reason
        self.user_id = user_id
        self.action = action
        super().__init__(f"Access denied: {decision.reason.value}")
