"""
Audit sink for authorization decisions.

One structured record per decision: actor id, role, resource, action,
outcome, reason code and target identifiers. Records carry identifiers
only; personal fields never reach the audit log.
"""
import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from pydantic import BaseModel, Field

from database import AuditLog
from .models import Actor, Decision, DenialReason, Target

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("edutrack.audit")

SENSITIVE_FIELDS = (
    "password",
    "token",
    "secret",
    "apikey",
    "email",
    "phone",
    "ssn",
    "salary",
    "medical",
    "emergencycontact",
    "address",
)

REDACTED = "[REDACTED]"


def sanitize_for_log(data: Any) -> Any:
    """
    Redact personal fields from a structure before it is logged.
    
    Keys are matched case-insensitively, ignoring underscores, against
    ``SENSITIVE_FIELDS``; nested dicts and lists are walked.
    """
    if isinstance(data, dict):
        sanitized = {}
        for key, value in data.items():
            normalized = str(key).lower().replace("_", "")
            if any(field in normalized for field in SENSITIVE_FIELDS):
                sanitized[key] = REDACTED
            else:
                sanitized[key] = sanitize_for_log(value)
        return sanitized
    if isinstance(data, (list, tuple)):
        return [sanitize_for_log(item) for item in data]
    return data


class AuditRecord(BaseModel):
    """Structured audit entry for one decision."""
    trace_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    actor_id: Optional[int] = None
    role: Optional[str] = None
    school_id: Optional[int] = None
    resource: str
    action: str
    allowed: bool
    reason: Optional[str] = None
    target_school_id: Optional[int] = None
    target_class_id: Optional[int] = None
    target_student_id: Optional[int] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    
    @classmethod
    def from_decision(
        cls,
        actor: Actor,
        resource: str,
        action: str,
        target: Optional[Target],
        decision: Decision,
        trace_id: Optional[str] = None,
    ) -> "AuditRecord":
        target = target or Target()
        fields = dict(
            actor_id=actor.id,
            role=actor.role,
            school_id=actor.school_id,
            resource=str(getattr(resource, "value", resource)),
            action=str(getattr(action, "value", action)),
            allowed=decision.allowed,
            reason=decision.reason.value if decision.reason else None,
            target_school_id=target.school_id,
            target_class_id=target.class_id,
            target_student_id=target.student_id,
        )
        if trace_id:
            fields["trace_id"] = trace_id
        return cls(**fields)


class AuditSink:
    """
    Emits audit records to the ``edutrack.audit`` logger and, when a
    session factory is given, persists them to the ``audit_logs`` table.
    """
    
    def __init__(self, session_factory: Optional[Callable] = None):
        self.session_factory = session_factory
    
    def record(
        self,
        actor: Actor,
        resource: str,
        action: str,
        target: Optional[Target],
        decision: Decision,
        trace_id: Optional[str] = None,
    ) -> AuditRecord:
        entry = AuditRecord.from_decision(actor, resource, action, target, decision, trace_id)
        self.emit(entry)
        return entry
    
    def emit(self, entry: AuditRecord) -> None:
        payload = json.dumps(entry.model_dump(mode="json"), sort_keys=True)
        if entry.reason == DenialReason.INVALID_ROLE.value:
            # Corrupted or forged role claims are security events
            audit_logger.warning("security_event %s", payload)
        elif entry.allowed:
            audit_logger.info("decision %s", payload)
        else:
            audit_logger.info("denied %s", payload)
        
        if self.session_factory is not None:
            self._persist(entry)
    
    def _persist(self, entry: AuditRecord) -> None:
        db = self.session_factory()
        try:
            db.add(AuditLog(
                trace_id=entry.trace_id,
                actor_id=entry.actor_id,
                role=entry.role,
                school_id=entry.school_id,
                resource=entry.resource,
                action=entry.action,
                allowed=entry.allowed,
                reason=entry.reason,
                target_school_id=entry.target_school_id,
                target_class_id=entry.target_class_id,
                target_student_id=entry.target_student_id,
                created_at=entry.timestamp.replace(tzinfo=None),
            ))
            db.commit()
        except Exception:
            db.rollback()
            # The decision itself stands; a lost audit row is reported, not raised
            logger.exception("Failed to persist audit record %s", entry.trace_id)
        finally:
            db.close()


def audit_summary(entries) -> Dict[str, int]:
    """Count persisted audit rows by outcome."""
    summary = {"allowed": 0, "denied": 0}
    for entry in entries:
        summary["allowed" if entry.allowed else "denied"] += 1
    return summary
