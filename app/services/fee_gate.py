"""
Fee-driven access blocking.

A student is a defaulter when any of their fee records is still ``pending``
after its due date. Blocking is per enrollment; the access guard checks the
block before it looks at any class lock.
"""

import logging

from flask import current_app

from app.extensions import db
from app.models import Enrollment, FeeRecord, User
from app.utils.clock import utcnow
from app.utils.errors import fetch_or_404

logger = logging.getLogger(__name__)


def overdue_pending_query(student_id, now=None):
    return FeeRecord.query.filter(
        FeeRecord.student_id == student_id,
        FeeRecord.status == "pending",
        FeeRecord.due_date < (now or utcnow()),
    )


def evaluate(student_id, now=None):
    """True if the student has at least one overdue pending fee."""
    return bool(db.session.query(overdue_pending_query(student_id, now).exists()).scalar())


def _apply_block(enrollment, reason, blocked_by, now):
    enrollment.access_blocked = True
    enrollment.blocked_reason = reason
    enrollment.blocked_at = now
    enrollment.blocked_by = blocked_by


def block_access(enrollment_id, reason=None, blocked_by=None):
    """Block the enrollment. Re-blocking overwrites reason, time and actor."""
    enrollment = fetch_or_404(Enrollment, enrollment_id, "Enrollment")
    reason = reason or current_app.config.get("MANUAL_BLOCK_REASON", "Fee defaulter")
    _apply_block(enrollment, reason, blocked_by, utcnow())
    db.session.flush()
    logger.info("Blocked enrollment %s: %s", enrollment.id, reason)
    return enrollment


def unblock_access(enrollment_id):
    """Clear the block and reset the student's defaulter status."""
    enrollment = fetch_or_404(Enrollment, enrollment_id, "Enrollment")
    enrollment.access_blocked = False
    enrollment.blocked_reason = None
    enrollment.blocked_at = None
    enrollment.blocked_by = None

    student = db.session.get(User, enrollment.user_id)
    if student and student.fee_status == "defaulter":
        student.fee_status = "active"

    db.session.flush()
    logger.info("Unblocked enrollment %s", enrollment.id)
    return enrollment


def toggle_access(enrollment_id, reason=None, actor_id=None):
    enrollment = fetch_or_404(Enrollment, enrollment_id, "Enrollment")
    if enrollment.access_blocked:
        return unblock_access(enrollment.id)
    return block_access(enrollment.id, reason, actor_id)


def bulk_block_defaulters(course_id, blocked_by=None, now=None):
    """Block every not-yet-blocked defaulter enrolled in the course.

    Already blocked enrollments are skipped, so a manual block keeps its
    reason. Returns the number of enrollments newly blocked.
    """
    now = now or utcnow()
    reason = current_app.config.get("AUTO_BLOCK_REASON", "Fee defaulter - automatic block")

    blocked_count = 0
    for enrollment in Enrollment.query.filter_by(course_id=course_id).all():
        if enrollment.access_blocked:
            continue
        if not evaluate(enrollment.user_id, now):
            continue

        _apply_block(enrollment, reason, blocked_by, now)
        student = db.session.get(User, enrollment.user_id)
        if student and student.fee_status == "active":
            student.fee_status = "defaulter"
        blocked_count += 1

    db.session.flush()
    logger.info("Blocked %s fee defaulters in course %s", blocked_count, course_id)
    return blocked_count
