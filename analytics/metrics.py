"""
Derived metrics for the EduTrack dashboards.

Read-side arithmetic over query results: attendance rates and trends,
pending and overdue grading, unread messages, upcoming events and the
alert lists built from them. Authorization happens in the caller; these
functions assume the request was already allowed.
"""
from collections import defaultdict
from datetime import datetime, timedelta
from statistics import mean
from typing import Dict, Any, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from database import (
    Assignment,
    AssignmentSubmission,
    Attendance,
    AttendanceSession,
    AttendanceStatus,
    Event,
    FeeRecord,
    FeeStatus,
    Message,
    SchoolClass,
    TeacherAssignment,
)

# Attendance rate thresholds (percent)
ATTENDANCE_MEDIUM_THRESHOLD = 85.0
ATTENDANCE_HIGH_THRESHOLD = 75.0
ATTENDED_STATUSES = frozenset({AttendanceStatus.PRESENT, AttendanceStatus.LATE})

OVERDUE_GRADING_DAYS = 7
DUE_SOON_DAYS = 3
UPCOMING_EVENT_DAYS = 7
TEACHER_ATTENDANCE_LOOKBACK_DAYS = 14
UNREAD_ALERT_THRESHOLD = 5
UNREAD_ALERT_WINDOW_HOURS = 24
LARGE_GRADING_BATCH = 10
TREND_AVERAGE_DAYS = 7

PRIORITY_ORDER = {"high": 3, "medium": 2, "low": 1}


def _now(now: Optional[datetime]) -> datetime:
    return now or datetime.now()


def _plural(count: int, word: str, suffix: str = "s") -> str:
    return f"{count} {word}{'' if count == 1 else suffix}"


def sort_by_priority(items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Sort alerts or tasks high -> medium -> low, keeping insertion order within a level."""
    return sorted(items, key=lambda item: PRIORITY_ORDER.get(item.get("priority"), 0), reverse=True)


def attendance_rate(statuses: Iterable) -> Optional[float]:
    """
    Percentage of attended marks (PRESENT or LATE).
    
    Args:
        statuses: Attendance statuses
        
    Returns:
        Rate rounded to one decimal, or None when there are no marks
    """
    statuses = list(statuses)
    if not statuses:
        return None
    attended = sum(1 for s in statuses if AttendanceStatus(s) in ATTENDED_STATUSES)
    return round(attended / len(statuses) * 100, 1)


def attendance_priority(rate: Optional[float]) -> Optional[str]:
    """
    Alert priority for an attendance rate.
    
    Returns:
        "high" below 75%, "medium" below 85%, None otherwise or without data
    """
    if rate is None:
        return None
    if rate < ATTENDANCE_HIGH_THRESHOLD:
        return "high"
    if rate < ATTENDANCE_MEDIUM_THRESHOLD:
        return "medium"
    return None


def teacher_class_ids(db: Session, teacher_id: int) -> List[int]:
    """IDs of the classes a teacher is actively assigned to."""
    rows = (
        db.query(TeacherAssignment.class_id)
        .filter(TeacherAssignment.teacher_id == teacher_id)
        .filter(TeacherAssignment.is_active.is_(True))
        .distinct()
        .all()
    )
    return [class_id for (class_id,) in rows]


def attendance_rate_by_class(
    db: Session,
    school_id: int,
    days: int,
    now: Optional[datetime] = None,
    class_ids: Optional[List[int]] = None,
) -> List[Dict[str, Any]]:
    """
    Attendance rate per class over the last ``days`` days.
    
    Args:
        db: Database session
        school_id: Tenant to compute for
        days: Lookback window in days
        now: Reference time (defaults to the current time)
        class_ids: Restrict to these classes (optional)
        
    Returns:
        One entry per class with total marks, attended marks, rate and
        alert priority; classes without marks have rate None
    """
    since = _now(now) - timedelta(days=days)
    
    classes_query = db.query(SchoolClass).filter(SchoolClass.school_id == school_id)
    if class_ids is not None:
        classes_query = classes_query.filter(SchoolClass.id.in_(class_ids))
    classes = classes_query.order_by(SchoolClass.id).all()
    
    rows = (
        db.query(AttendanceSession.class_id, Attendance.status)
        .join(Attendance, Attendance.session_id == AttendanceSession.id)
        .join(SchoolClass, SchoolClass.id == AttendanceSession.class_id)
        .filter(SchoolClass.school_id == school_id)
        .filter(AttendanceSession.date >= since)
        .all()
    )
    statuses_by_class = defaultdict(list)
    for class_id, status in rows:
        statuses_by_class[class_id].append(status)
    
    report = []
    for school_class in classes:
        statuses = statuses_by_class.get(school_class.id, [])
        rate = attendance_rate(statuses)
        report.append({
            "class_id": school_class.id,
            "class_name": school_class.name,
            "total_records": len(statuses),
            "attended": sum(1 for s in statuses if AttendanceStatus(s) in ATTENDED_STATUSES),
            "rate": rate,
            "priority": attendance_priority(rate),
        })
    return report


def attendance_trends(
    db: Session,
    school_id: int,
    days: int,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Daily school-wide attendance rate for the last ``days`` days.
    
    Days without any marks report rate None and are left out of the
    current average, which covers the most recent seven days.
    """
    today = _now(now).replace(hour=0, minute=0, second=0, microsecond=0)
    start = today - timedelta(days=days - 1)
    
    rows = (
        db.query(AttendanceSession.date, Attendance.status)
        .join(Attendance, Attendance.session_id == AttendanceSession.id)
        .join(SchoolClass, SchoolClass.id == AttendanceSession.class_id)
        .filter(SchoolClass.school_id == school_id)
        .filter(AttendanceSession.date >= start)
        .filter(AttendanceSession.date < today + timedelta(days=1))
        .all()
    )
    statuses_by_day = defaultdict(list)
    for session_date, status in rows:
        statuses_by_day[session_date.date()].append(status)
    
    trends = []
    for offset in range(days):
        day = (start + timedelta(days=offset)).date()
        trends.append({
            "date": day.isoformat(),
            "rate": attendance_rate(statuses_by_day.get(day, [])),
        })
    
    recent = [point["rate"] for point in trends[-TREND_AVERAGE_DAYS:] if point["rate"] is not None]
    return {
        "trends": trends,
        "current_average": round(mean(recent), 1) if recent else None,
        "days_with_data": sum(1 for point in trends if point["rate"] is not None),
    }


def _ungraded_submissions_query(db: Session, class_ids: Optional[List[int]] = None, school_id: Optional[int] = None):
    query = (
        db.query(AssignmentSubmission, Assignment)
        .join(Assignment, Assignment.id == AssignmentSubmission.assignment_id)
        .filter(AssignmentSubmission.grade.is_(None))
    )
    if class_ids is not None:
        query = query.filter(Assignment.class_id.in_(class_ids))
    if school_id is not None:
        query = query.join(SchoolClass, SchoolClass.id == Assignment.class_id).filter(SchoolClass.school_id == school_id)
    return query


def pending_assignment_counts(
    db: Session,
    school_id: Optional[int] = None,
    teacher_id: Optional[int] = None,
    now: Optional[datetime] = None,
) -> Dict[str, int]:
    """
    Count ungraded submissions, and those overdue for grading.
    
    A submission is overdue when its assignment was due more than seven
    days ago and it still has no grade.
    
    Args:
        db: Database session
        school_id: Restrict to a school (optional)
        teacher_id: Restrict to the classes a teacher is assigned to (optional)
        now: Reference time
        
    Returns:
        Dictionary with pending, overdue and assignments_with_pending counts
    """
    class_ids = teacher_class_ids(db, teacher_id) if teacher_id is not None else None
    overdue_before = _now(now) - timedelta(days=OVERDUE_GRADING_DAYS)
    
    pending = 0
    overdue = 0
    assignment_ids = set()
    for _, assignment in _ungraded_submissions_query(db, class_ids, school_id).all():
        pending += 1
        assignment_ids.add(assignment.id)
        if assignment.due_date is not None and assignment.due_date < overdue_before:
            overdue += 1
    
    return {
        "pending": pending,
        "overdue": overdue,
        "assignments_with_pending": len(assignment_ids),
    }


def unread_message_count(db: Session, recipient_id: int, since: Optional[datetime] = None) -> int:
    """Unread messages for a recipient, optionally only those sent after ``since``."""
    query = (
        db.query(func.count(Message.id))
        .filter(Message.recipient_id == recipient_id)
        .filter(Message.is_read.is_(False))
    )
    if since is not None:
        query = query.filter(Message.sent_at >= since)
    return query.scalar() or 0


def upcoming_events(
    db: Session,
    school_id: int,
    days: int = UPCOMING_EVENT_DAYS,
    audiences: Optional[List[str]] = None,
    now: Optional[datetime] = None,
) -> List[Event]:
    """Events starting within the next ``days`` days, soonest first."""
    start = _now(now)
    query = (
        db.query(Event)
        .filter(Event.school_id == school_id)
        .filter(Event.start_date >= start)
        .filter(Event.start_date <= start + timedelta(days=days))
    )
    if audiences:
        query = query.filter(Event.audience.in_(audiences))
    return query.order_by(Event.start_date).all()


def upcoming_event_count(
    db: Session,
    school_id: int,
    days: int = UPCOMING_EVENT_DAYS,
    audiences: Optional[List[str]] = None,
    now: Optional[datetime] = None,
) -> int:
    return len(upcoming_events(db, school_id, days, audiences, now))


def pending_fee_count(db: Session, school_id: int) -> int:
    """Fee records still awaiting payment (PENDING or OVERDUE)."""
    return (
        db.query(func.count(FeeRecord.id))
        .filter(FeeRecord.school_id == school_id)
        .filter(FeeRecord.status.in_([FeeStatus.PENDING, FeeStatus.OVERDUE]))
        .scalar()
    ) or 0


def format_time_until(moment: datetime, now: Optional[datetime] = None) -> str:
    """Human friendly distance to a future date ("today", "tomorrow", "in 3 days")."""
    days_until = (moment.date() - _now(now).date()).days
    if days_until <= 0:
        return "today"
    if days_until == 1:
        return "tomorrow"
    return f"in {days_until} days"


def principal_alerts(
    db: Session,
    school_id: int,
    lookback_days: int,
    now: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    """
    Alerts for the principal dashboard.
    
    Args:
        db: Database session
        school_id: The principal's school
        lookback_days: Attendance window in days
        now: Reference time
        
    Returns:
        Alerts sorted by priority: low attendance per class, pending fees,
        upcoming events
    """
    now = _now(now)
    alerts = []
    
    for entry in attendance_rate_by_class(db, school_id, lookback_days, now):
        if entry["priority"] is None:
            continue
        alerts.append({
            "id": f"attendance-{entry['class_id']}",
            "type": "warning",
            "title": "Low Attendance Alert",
            "message": (
                f"{entry['class_name']} has attendance of {entry['rate']}% "
                f"over the last {_plural(lookback_days, 'day')}"
            ),
            "priority": entry["priority"],
        })
    
    pending_fees = pending_fee_count(db, school_id)
    if pending_fees > 0:
        alerts.append({
            "id": "fees-pending",
            "type": "warning",
            "title": "Pending Fees",
            "message": f"{_plural(pending_fees, 'fee record')} awaiting payment",
            "priority": "medium",
        })
    
    events = upcoming_events(db, school_id, now=now)
    if events:
        alerts.append({
            "id": "events-upcoming",
            "type": "info",
            "title": "Upcoming Event",
            "message": f"{events[0].title} is scheduled {format_time_until(events[0].start_date, now)}",
            "priority": "low",
            "count": len(events),
        })
    
    return sort_by_priority(alerts)


def teacher_alerts(
    db: Session,
    teacher_id: int,
    school_id: int,
    now: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    """
    Alerts for a teacher, scoped to the classes they are assigned to.
    
    Returns:
        Alerts sorted by priority: overdue grading, low attendance sessions,
        many unread messages, assignments due soon with ungraded work,
        upcoming events
    """
    now = _now(now)
    class_ids = teacher_class_ids(db, teacher_id)
    alerts = []
    
    counts = pending_assignment_counts(db, teacher_id=teacher_id, now=now)
    if counts["overdue"] > 0:
        alerts.append({
            "type": "error",
            "title": "Overdue Grading",
            "message": (
                f"{_plural(counts['overdue'], 'submission')} overdue for grading "
                f"(more than {OVERDUE_GRADING_DAYS} days past due)"
            ),
            "priority": "high",
        })
    
    sessions = (
        db.query(AttendanceSession)
        .filter(AttendanceSession.class_id.in_(class_ids))
        .filter(AttendanceSession.date >= now - timedelta(days=TEACHER_ATTENDANCE_LOOKBACK_DAYS))
        .all()
    ) if class_ids else []
    low_sessions = [
        priority for priority in (
            attendance_priority(attendance_rate(a.status for a in session.attendances))
            for session in sessions
        )
        if priority is not None
    ]
    if low_sessions:
        alerts.append({
            "type": "warning",
            "title": "Low Attendance Alert",
            "message": (
                f"{_plural(len(low_sessions), 'recent class session')} had attendance "
                f"below {ATTENDANCE_MEDIUM_THRESHOLD:g}%"
            ),
            "priority": "high" if "high" in low_sessions else "medium",
        })
    
    unread = unread_message_count(db, teacher_id, since=now - timedelta(hours=UNREAD_ALERT_WINDOW_HOURS))
    if unread > UNREAD_ALERT_THRESHOLD:
        alerts.append({
            "type": "warning",
            "title": "Many Unread Messages",
            "message": f"You have {unread} unread messages from the last {UNREAD_ALERT_WINDOW_HOURS} hours",
            "priority": "medium",
        })
    
    due_soon = set()
    if class_ids:
        for _, assignment in _ungraded_submissions_query(db, class_ids).all():
            if assignment.due_date is not None and now <= assignment.due_date <= now + timedelta(days=DUE_SOON_DAYS):
                due_soon.add(assignment.id)
    if due_soon:
        alerts.append({
            "type": "info",
            "title": "Assignments Due Soon",
            "message": (
                f"{_plural(len(due_soon), 'assignment')} due in the next {DUE_SOON_DAYS} days "
                f"have ungraded submissions"
            ),
            "priority": "low",
        })
    
    events = upcoming_events(db, school_id, audiences=["SCHOOL", "TEACHERS"], now=now)
    if events:
        alerts.append({
            "type": "info",
            "title": "Upcoming School Event",
            "message": f"{events[0].title} is scheduled {format_time_until(events[0].start_date, now)}",
            "priority": "low",
        })
    
    return sort_by_priority(alerts)


def grading_priority(count: int, due_date: Optional[datetime], now: datetime) -> str:
    """Overdue grading is high priority, large batches medium, the rest low."""
    if due_date is not None and now > due_date:
        return "high"
    if count > LARGE_GRADING_BATCH:
        return "medium"
    return "low"


def teacher_pending_tasks(
    db: Session,
    teacher_id: int,
    now: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    """
    Pending work for a teacher: one grading task per assignment with
    ungraded submissions, plus unread messages.
    """
    now = _now(now)
    class_ids = teacher_class_ids(db, teacher_id)
    tasks = []
    
    by_assignment: Dict[int, Dict[str, Any]] = {}
    if class_ids:
        for _, assignment in _ungraded_submissions_query(db, class_ids).all():
            entry = by_assignment.setdefault(assignment.id, {"assignment": assignment, "count": 0})
            entry["count"] += 1
    
    for entry in by_assignment.values():
        assignment = entry["assignment"]
        count = entry["count"]
        priority = grading_priority(count, assignment.due_date, now)
        tasks.append({
            "id": f"grading-{assignment.id}",
            "type": "grading",
            "title": f"Grade {assignment.title}",
            "description": f"{_plural(count, 'submission')} need grading",
            "priority": priority,
            "count": count,
            "due_date": assignment.due_date.isoformat() if assignment.due_date else None,
            "overdue": priority == "high",
        })
    
    unread = unread_message_count(db, teacher_id)
    if unread > 0:
        tasks.append({
            "id": "messages-unread",
            "type": "message",
            "title": "Unread Messages",
            "description": f"{_plural(unread, 'unread message')} from parents and students",
            "priority": "high" if unread > UNREAD_ALERT_THRESHOLD else "medium",
            "count": unread,
        })
    
    return sort_by_priority(tasks)
