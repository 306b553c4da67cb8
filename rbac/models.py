"""
Authorization protocol objects: who is asking, what they act on, and the
resulting decision.
"""
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class DenialReason(str, Enum):
    """Machine readable reason attached to every denial."""
    ACCOUNT_INACTIVE = "ACCOUNT_INACTIVE"
    INVALID_ROLE = "INVALID_ROLE"
    ROLE_LACKS_PERMISSION = "ROLE_LACKS_PERMISSION"
    CROSS_TENANT = "CROSS_TENANT"
    NOT_OWNER = "NOT_OWNER"
    NOT_ENROLLED = "NOT_ENROLLED"
    NOT_GUARDIAN = "NOT_GUARDIAN"
    OWNERSHIP_CHECK_FAILED = "OWNERSHIP_CHECK_FAILED"


OWNERSHIP_REASONS = frozenset({
    DenialReason.NOT_OWNER,
    DenialReason.NOT_ENROLLED,
    DenialReason.NOT_GUARDIAN,
    DenialReason.OWNERSHIP_CHECK_FAILED,
})


class Actor(BaseModel):
    """The authenticated subject. ``role`` is the raw, unvalidated claim."""
    model_config = ConfigDict(frozen=True)
    
    id: int = Field(..., description="User ID")
    role: str = Field(..., description="Role claim as stored by the identity provider")
    school_id: Optional[int] = Field(default=None, description="Tenant the actor belongs to")
    is_active: bool = Field(default=True, description="Deactivated actors are denied everything")


class Target(BaseModel):
    """
    The entity an action is aimed at.
    
    All fields are optional: a target without ``class_id``/``student_id``
    describes a school-wide collection rather than a specific instance.
    """
    model_config = ConfigDict(frozen=True)
    
    school_id: Optional[int] = Field(default=None, description="Tenant owning the entity")
    class_id: Optional[int] = Field(default=None, description="Class the entity is scoped to")
    student_id: Optional[int] = Field(default=None, description="Student (child) the entity belongs to")


class Decision(BaseModel):
    """Result of an authorization decision."""
    model_config = ConfigDict(frozen=True)
    
    allowed: bool
    reason: Optional[DenialReason] = None
    
    @classmethod
    def allow(cls) -> "Decision":
        return cls(allowed=True, reason=None)
    
    @classmethod
    def deny(cls, reason: DenialReason) -> "Decision":
        return cls(allowed=False, reason=reason)
    
    @property
    def retryable(self) -> bool:
        """Only a failed ownership lookup is worth retrying."""
        return self.reason is DenialReason.OWNERSHIP_CHECK_FAILED
