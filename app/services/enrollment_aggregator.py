"""
Course-level progress for an enrollment, always recomputed from the
progress and class tables rather than from stored counters.
"""

import logging

from sqlalchemy import func

from app.extensions import db
from app.models import CourseClass, Enrollment, Progress
from app.utils.clock import utcnow
from app.utils.errors import fetch_or_404

logger = logging.getLogger(__name__)


def compute_percentage(completed, total):
    if total <= 0:
        return 0
    return min(100, round(completed / total * 100))


def count_published_classes(course_id):
    return CourseClass.query.filter_by(course_id=course_id, is_published=True).count()


def count_completed_classes(enrollment_id):
    # Only published classes count, so unpublished leftovers cannot push past 100%.
    return (
        db.session.query(func.count(Progress.id))
        .join(CourseClass, CourseClass.id == Progress.class_id)
        .filter(
            Progress.enrollment_id == enrollment_id,
            Progress.status == "completed",
            CourseClass.is_published.is_(True),
        )
        .scalar()
    ) or 0


def recompute(enrollment, now=None):
    """Refresh the progress snapshot; returns True if the course was just completed."""
    completed = count_completed_classes(enrollment.id)
    total = count_published_classes(enrollment.course_id)

    enrollment.completed_classes = completed
    enrollment.total_classes = total
    enrollment.percentage = compute_percentage(completed, total)

    newly_completed = False
    if enrollment.percentage >= 100:
        if enrollment.status == "active":
            enrollment.status = "completed"
            newly_completed = True
        if enrollment.status == "completed" and enrollment.completed_at is None:
            enrollment.completed_at = now or utcnow()

    db.session.flush()

    if newly_completed:
        logger.info("Enrollment %s completed (user=%s course=%s)",
                    enrollment.id, enrollment.user_id, enrollment.course_id)
    return newly_completed


def recompute_on_completion(enrollment_id):
    enrollment = fetch_or_404(Enrollment, enrollment_id, "Enrollment")
    return recompute(enrollment)
