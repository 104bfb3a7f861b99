"""
Per-(student, class) watch state.

Writes are flushed, never committed: the route commits the progress row
together with whatever the enrollment aggregator changes.
"""

import logging
import math

from flask import current_app
from sqlalchemy.exc import IntegrityError

from app.extensions import db
from app.models import CourseClass, Progress
from app.services.access import find_enrollment
from app.utils.clock import utcnow
from app.utils.errors import Forbidden, NotFound, ValidationError, fetch_or_404

logger = logging.getLogger(__name__)

COMPLETION_THRESHOLD = 90


def completion_threshold():
    return current_app.config.get("COMPLETION_THRESHOLD", COMPLETION_THRESHOLD)


def clamp_watch_progress(value):
    return max(0.0, min(100.0, value))


def _as_number(value, field):
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not math.isfinite(number):
        raise ValidationError(f"{field} must be a finite number")
    return number


def _find(student_id, class_id):
    return Progress.query.filter_by(user_id=student_id, class_id=class_id).first()


def _get_or_create(student_id, class_record, enrollment=None):
    progress = _find(student_id, class_record.id)
    if progress:
        return progress

    if enrollment is None:
        enrollment = find_enrollment(student_id, class_record.course_id, statuses=None)
    if enrollment is None:
        raise Forbidden("Not enrolled in this course")

    progress = Progress(
        user_id=student_id,
        course_id=class_record.course_id,
        class_id=class_record.id,
        enrollment_id=enrollment.id,
        status="in_progress",
        started_at=utcnow(),
        watch_progress=0,
        last_position=0,
        total_watch_time=0,
        access_count=0,
    )
    try:
        with db.session.begin_nested():
            db.session.add(progress)
    except IntegrityError:
        # A concurrent request inserted the row first; use theirs.
        logger.info("Progress row for user=%s class=%s created concurrently", student_id, class_record.id)
        progress = _find(student_id, class_record.id)
        if progress is None:
            raise
    return progress


def record_access(student_id, class_id, enrollment=None):
    """Load or create the progress row and count one more access."""
    class_record = fetch_or_404(CourseClass, class_id, "Class")
    progress = _get_or_create(student_id, class_record, enrollment)

    now = utcnow()
    progress.access_count = (progress.access_count or 0) + 1
    progress.last_accessed_at = now

    if enrollment is not None:
        enrollment.last_accessed_class_id = class_record.id
        enrollment.last_accessed_at = now

    db.session.flush()
    return progress


def mark_completed_if_due(progress, now=None):
    """Complete ``progress`` once it crosses the threshold. Returns True only on that transition."""
    if progress.status == "completed":
        return False
    if progress.watch_progress >= completion_threshold():
        progress.status = "completed"
        progress.completed_at = now or utcnow()
        return True
    return False


def update_progress(student_id, class_id, watch_progress=None, last_position=None,
                    total_watch_time=None, enrollment=None):
    """Apply a progress ping. Returns ``(progress, newly_completed)``."""
    class_record = db.session.get(CourseClass, class_id)
    if class_record is None:
        raise NotFound("Class not found")

    updates = {}
    if watch_progress is not None:
        updates["watch_progress"] = clamp_watch_progress(_as_number(watch_progress, "watchProgress"))
    for field, value, label in (
        ("last_position", last_position, "lastPosition"),
        ("total_watch_time", total_watch_time, "totalWatchTime"),
    ):
        if value is None:
            continue
        number = _as_number(value, label)
        if number < 0:
            raise ValidationError(f"{label} cannot be negative")
        updates[field] = number

    progress = _get_or_create(student_id, class_record, enrollment)
    for field, value in updates.items():
        setattr(progress, field, value)

    now = utcnow()
    progress.last_accessed_at = now
    newly_completed = mark_completed_if_due(progress, now)
    db.session.flush()

    if newly_completed:
        logger.info("User %s completed class %s", student_id, class_id)
    return progress, newly_completed
