"""
API routes for the EduTrack system.

Every protected route loads the actor fresh, calls the authorization
decision procedure exactly once, and maps a denial to a status code.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.orm import Session

from analytics import (
    attendance_rate_by_class,
    attendance_trends,
    principal_alerts,
    teacher_alerts,
    teacher_pending_tasks,
)
from config.settings import settings
from database import AuditLog, SchoolClass, get_db
from rbac import (
    Action,
    Actor,
    Decision,
    DenialReason,
    InvalidUserError,
    Resource,
    Target,
    UnsupportedActionError,
    get_authorization_service,
    get_permission_matrix,
    get_user,
    load_actor,
    parse_role,
)
from rbac.audit import audit_summary
from .schemas import (
    AlertsResponse,
    AttendanceTrendsResponse,
    AuditLogResponse,
    AuthorizeRequest,
    ClassAttendanceResponse,
    DecisionResponse,
    ErrorResponse,
    TasksResponse,
    UserResponse,
)

logger = logging.getLogger(__name__)

# Documented denial responses shared by protected routes
DENIAL_RESPONSES = {
    401: {"model": ErrorResponse, "description": "Missing or unknown user"},
    403: {"model": ErrorResponse, "description": "Denied, with a reason code"},
    503: {"model": ErrorResponse, "description": "Ownership could not be verified"},
}

# Router for the current user
users_router = APIRouter(prefix="/users", tags=["Users"], responses=DENIAL_RESPONSES)

# Router for authorization checks
authz_router = APIRouter(tags=["Authorization"], responses=DENIAL_RESPONSES)

# Router for dashboards
dashboard_router = APIRouter(tags=["Dashboards"], responses=DENIAL_RESPONSES)

# Router for audit log access
audit_router = APIRouter(prefix="/audit-logs", tags=["Audit"], responses=DENIAL_RESPONSES)


# ============== Helpers ==============

def get_current_actor(
    x_user_id: Optional[int] = Header(None),
    db: Session = Depends(get_db),
) -> Actor:
    """Resolve the authenticated user; 401 if missing or unknown."""
    if x_user_id is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    try:
        return load_actor(db, x_user_id)
    except InvalidUserError:
        raise HTTPException(status_code=401, detail="Not authenticated")


def status_for(reason: DenialReason) -> int:
    """Transport status for a denial reason."""
    if reason is DenialReason.OWNERSHIP_CHECK_FAILED:
        return 503
    return 403


def authorize(
    db: Session,
    actor: Actor,
    resource: Resource,
    action: Action,
    target: Optional[Target] = None,
) -> Decision:
    """Run the single authorization decision for a request or raise HTTPException."""
    decision = get_authorization_service(db).decide(actor, resource, action, target)
    if not decision.allowed:
        raise HTTPException(
            status_code=status_for(decision.reason),
            detail={"error": "Forbidden", "reason": decision.reason.value},
        )
    return decision


# ============== User Endpoints ==============

@users_router.get("/me", response_model=UserResponse)
def get_me(actor: Actor = Depends(get_current_actor), db: Session = Depends(get_db)):
    """Current user with the permission strings granted to their role."""
    user = get_user(db, actor.id)
    role = parse_role(actor.role)
    permissions = get_permission_matrix().grants_for(role) if role and actor.is_active else []
    return UserResponse(**user, permissions=permissions)


# ============== Authorization Endpoints ==============

@authz_router.post("/authorize", response_model=DecisionResponse)
def authorize_endpoint(
    request: AuthorizeRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """
    Evaluate a decision for the current user without performing anything.
    
    Lets clients hide controls the user cannot use.
    """
    target = None
    if request.school_id is not None or request.class_id is not None or request.student_id is not None:
        target = Target(school_id=request.school_id, class_id=request.class_id, student_id=request.student_id)
    try:
        decision = get_authorization_service(db).decide(actor, request.resource, request.action, target)
    except UnsupportedActionError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return DecisionResponse(allowed=decision.allowed, reason=decision.reason, retryable=decision.retryable)


# ============== Dashboard Endpoints ==============

@dashboard_router.get("/dashboard/principal/alerts", response_model=AlertsResponse)
def get_principal_alerts(actor: Actor = Depends(get_current_actor), db: Session = Depends(get_db)):
    """School-wide alerts: low attendance classes, pending fees, upcoming events."""
    authorize(db, actor, Resource.ANALYTICS, Action.LIST, Target(school_id=actor.school_id))
    alerts = principal_alerts(db, actor.school_id, settings.attendance_lookback_days)
    return AlertsResponse(alerts=alerts)


@dashboard_router.get("/dashboard/principal/attendance-trends", response_model=AttendanceTrendsResponse)
def get_attendance_trends(
    days: Optional[int] = None,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Daily school attendance rate over the trend window."""
    authorize(db, actor, Resource.ANALYTICS, Action.LIST, Target(school_id=actor.school_id))
    window = settings.trend_days if days is None else days
    if window < 1 or window > 730:
        raise HTTPException(status_code=400, detail="days must be between 1 and 730")
    return AttendanceTrendsResponse(**attendance_trends(db, actor.school_id, window))


@dashboard_router.get("/teacher/alerts", response_model=AlertsResponse)
def get_teacher_alerts(actor: Actor = Depends(get_current_actor), db: Session = Depends(get_db)):
    """Alerts for the current teacher's own classes."""
    authorize(db, actor, Resource.ANALYTICS, Action.READ, Target(school_id=actor.school_id))
    return AlertsResponse(alerts=teacher_alerts(db, actor.id, actor.school_id))


@dashboard_router.get("/teacher/tasks/pending", response_model=TasksResponse)
def get_teacher_tasks(actor: Actor = Depends(get_current_actor), db: Session = Depends(get_db)):
    """Grading and messaging backlog for the current teacher."""
    authorize(db, actor, Resource.ANALYTICS, Action.READ, Target(school_id=actor.school_id))
    return TasksResponse(tasks=teacher_pending_tasks(db, actor.id))


@dashboard_router.get("/classes/{class_id}/attendance-rate", response_model=ClassAttendanceResponse)
def get_class_attendance_rate(
    class_id: int,
    days: Optional[int] = None,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Attendance rate for one class; teachers must teach it."""
    school_class = db.query(SchoolClass).filter(SchoolClass.id == class_id).first()
    if not school_class:
        raise HTTPException(status_code=404, detail="Class not found")
    
    authorize(
        db, actor, Resource.ANALYTICS, Action.READ,
        Target(school_id=school_class.school_id, class_id=school_class.id),
    )
    window = settings.attendance_lookback_days if days is None else days
    if window < 1 or window > 730:
        raise HTTPException(status_code=400, detail="days must be between 1 and 730")
    report = attendance_rate_by_class(
        db,
        school_class.school_id,
        window,
        class_ids=[school_class.id],
    )
    return ClassAttendanceResponse(**report[0])


# ============== Audit Endpoints ==============

@audit_router.get("", response_model=AuditLogResponse)
def list_audit_logs(
    school_id: Optional[int] = None,
    limit: int = 50,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """
    Recent authorization decisions for a school.
    
    Defaults to the caller's school; only ADMIN can reach other schools.
    """
    school_id = school_id if school_id is not None else actor.school_id
    authorize(db, actor, Resource.AUDIT_LOG, Action.LIST, Target(school_id=school_id))
    
    limit = max(1, min(limit, 500))
    entries = (
        db.query(AuditLog)
        .filter(AuditLog.school_id == school_id)
        .order_by(AuditLog.id.desc())
        .limit(limit)
        .all()
    )
    return AuditLogResponse(
        total=len(entries),
        summary=audit_summary(entries),
        entries=[e.to_dict() for e in entries],
    )
