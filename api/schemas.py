"""
Pydantic schemas for API requests and responses.
"""
from typing import Optional, List, Any
from pydantic import BaseModel, Field

from rbac import Action, DenialReason, Resource


# Request schemas
class AuthorizeRequest(BaseModel):
    """Ask whether the current user may perform an action."""
    resource: Resource = Field(..., description="Protected resource, e.g. 'grades'")
    action: Action = Field(..., description="Requested action, e.g. 'update'")
    school_id: Optional[int] = Field(None, description="School owning the target")
    class_id: Optional[int] = Field(None, description="Class the target is scoped to")
    student_id: Optional[int] = Field(None, description="Student the target belongs to")


# Response schemas
class DecisionResponse(BaseModel):
    """Authorization decision."""
    allowed: bool
    reason: Optional[DenialReason] = None
    retryable: bool = False


class UserResponse(BaseModel):
    """User information response."""
    id: int
    name: str
    role: str
    school_id: Optional[int]
    is_active: bool
    permissions: List[str] = Field(default_factory=list)


class AlertResponse(BaseModel):
    """A dashboard alert."""
    id: Optional[str] = None
    type: str
    title: str
    message: str
    priority: str
    count: Optional[int] = None


class AlertsResponse(BaseModel):
    alerts: List[AlertResponse]


class TaskResponse(BaseModel):
    """A pending task for a teacher."""
    id: str
    type: str
    title: str
    description: str
    priority: str
    count: int
    due_date: Optional[str] = None
    overdue: Optional[bool] = None


class TasksResponse(BaseModel):
    tasks: List[TaskResponse]


class TrendPoint(BaseModel):
    date: str
    rate: Optional[float]


class AttendanceTrendsResponse(BaseModel):
    """Daily attendance rates with the recent average."""
    trends: List[TrendPoint]
    current_average: Optional[float]
    days_with_data: int


class ClassAttendanceResponse(BaseModel):
    class_id: int
    class_name: str
    total_records: int
    attended: int
    rate: Optional[float]
    priority: Optional[str]


class AuditLogResponse(BaseModel):
    """Persisted audit entries."""
    total: int
    summary: dict
    entries: List[dict]


class ErrorResponse(BaseModel):
    """Error response."""
    detail: Any
