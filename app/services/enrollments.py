import logging
from datetime import datetime

from app.extensions import db
from app.models import Course, Enrollment, User
from app.services import fee_gate
from app.services.enrollment_aggregator import count_published_classes
from app.utils.errors import Conflict, ValidationError, fetch_or_404

logger = logging.getLogger(__name__)

ENROLLMENT_TYPES = ("paid", "free", "granted")


def _parse_expiry(value):
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).replace(tzinfo=None)
    except ValueError:
        raise ValidationError("expiresAt must be an ISO date")


def enroll_student(user_id, course_id, enrollment_type="granted", enrolled_by=None, notes="",
                   expires_at=None):
    user = fetch_or_404(User, user_id, "User")
    course = fetch_or_404(Course, course_id, "Course")

    enrollment_type = enrollment_type or "granted"
    if enrollment_type not in ENROLLMENT_TYPES:
        raise ValidationError(f"enrollmentType must be one of: {', '.join(ENROLLMENT_TYPES)}")

    if Enrollment.query.filter_by(user_id=user.id, course_id=course.id).first():
        raise Conflict("Student already enrolled in this course")

    enrollment = Enrollment(
        user_id=user.id,
        course_id=course.id,
        status="active",
        enrollment_type=enrollment_type,
        enrolled_by=enrolled_by,
        notes=notes or "",
        expires_at=_parse_expiry(expires_at),
        total_classes=count_published_classes(course.id),
        completed_classes=0,
        percentage=0,
    )
    db.session.add(enrollment)
    db.session.flush()
    logger.info("Enrolled user=%s in course=%s (%s)", user.id, course.id, enrollment_type)
    return enrollment


def remove_enrollment(enrollment_id):
    enrollment = fetch_or_404(Enrollment, enrollment_id, "Enrollment")
    db.session.delete(enrollment)
    db.session.flush()
    logger.info("Removed enrollment %s", enrollment_id)


def my_enrollments(user_id):
    rows = (
        Enrollment.query.filter_by(user_id=user_id)
        .order_by(Enrollment.enrolled_at.desc())
        .all()
    )
    result = []
    for e in rows:
        data = e.to_dict()
        data["course"] = e.course.to_dict() if e.course else None
        data["canAccess"] = e.can_access()
        result.append(data)
    return result


def course_enrollments(course_id, now=None):
    """Admin roster: every enrollment with the student's defaulter state."""
    course = fetch_or_404(Course, course_id, "Course")
    result = []
    for e in Enrollment.query.filter_by(course_id=course.id).order_by(Enrollment.enrolled_at).all():
        data = e.to_dict()
        data["student"] = e.student.to_dict() if e.student else None
        data["feeDefaulter"] = bool(fee_gate.evaluate(e.user_id, now))
        result.append(data)
    return result
