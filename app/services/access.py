import logging

from app.models import Enrollment, ClassAccessOverride
from app.services import lock_resolver
from app.utils.clock import utcnow
from app.utils.errors import Forbidden

logger = logging.getLogger(__name__)

VIEWABLE_STATUSES = ("active", "completed")


def find_enrollment(user_id, course_id, statuses=VIEWABLE_STATUSES):
    query = Enrollment.query.filter_by(user_id=user_id, course_id=course_id)
    if statuses:
        query = query.filter(Enrollment.status.in_(statuses))
    return query.first()


def require_enrollment(user_id, course_id):
    """Return the student's viewable enrollment or raise Forbidden.

    Blocked and expired enrollments are rejected here, before any class lock
    is looked at, so a blocked student cannot open previews either.
    """
    enrollment = find_enrollment(user_id, course_id)
    if not enrollment:
        raise Forbidden("You are not enrolled in this course")

    if enrollment.access_blocked:
        logger.info("Blocked enrollment %s denied (user=%s)", enrollment.id, user_id)
        raise Forbidden(
            "Your access to this course has been blocked. Please contact admin.",
            blocked=True,
            reason=enrollment.blocked_reason,
        )

    if enrollment.expires_at and enrollment.expires_at < utcnow():
        raise Forbidden("Your enrollment in this course has expired", expired=True)

    return enrollment


def override_for(enrollment, class_id):
    row = ClassAccessOverride.query.filter_by(enrollment_id=enrollment.id, class_id=class_id).first()
    return row.state if row else None


def require_class_access(user_id, class_record):
    enrollment = require_enrollment(user_id, class_record.course_id)

    if not class_record.is_published:
        raise Forbidden("This class is not available yet", locked=True)

    if lock_resolver.is_locked(class_record, override_for(enrollment, class_record.id)):
        raise Forbidden(
            "This class is locked. It will be unlocked by the instructor soon.",
            locked=True,
        )
    return enrollment
