"""
Per-student class overrides and the admin view of a student's classes.
"""

import logging

from app.extensions import db
from app.models import ClassAccessOverride, CourseClass, Enrollment, Progress
from app.services import lock_resolver
from app.utils.errors import ValidationError, fetch_or_404

logger = logging.getLogger(__name__)

ACTIONS = {
    "lock": lock_resolver.LOCKED,
    "unlock": lock_resolver.UNLOCKED,
    "inherit": lock_resolver.INHERIT,
}


def _state_for(action):
    try:
        return ACTIONS[action]
    except KeyError:
        raise ValidationError("action must be one of: lock, unlock, inherit")


def _apply(enrollment, class_id, state, actor_id):
    row = next((o for o in enrollment.class_overrides if o.class_id == class_id), None)
    if state == lock_resolver.INHERIT:
        if row is not None:
            # delete-orphan removes the row on flush
            enrollment.class_overrides.remove(row)
        return
    if row is not None:
        row.state = state
        row.updated_by = actor_id
    else:
        enrollment.class_overrides.append(ClassAccessOverride(
            class_id=class_id,
            state=state,
            updated_by=actor_id,
        ))


def override_lists(enrollment):
    rows = sorted(enrollment.class_overrides, key=lambda r: r.class_id)
    return {
        "unlockedClasses": [r.class_id for r in rows if r.state == lock_resolver.UNLOCKED],
        "lockedClasses": [r.class_id for r in rows if r.state == lock_resolver.LOCKED],
    }


def set_class_override(enrollment_id, class_id, action, actor_id=None):
    state = _state_for(action)
    enrollment = fetch_or_404(Enrollment, enrollment_id, "Enrollment")
    class_record = fetch_or_404(CourseClass, class_id, "Class")
    if class_record.course_id != enrollment.course_id:
        raise ValidationError("Class does not belong to this enrollment's course")

    _apply(enrollment, class_record.id, state, actor_id)
    db.session.flush()
    logger.info("Enrollment %s class %s set to %s", enrollment.id, class_record.id, state)
    return override_lists(enrollment)


def bulk_set_class_overrides(enrollment_id, class_ids, action, actor_id=None):
    state = _state_for(action)
    if not isinstance(class_ids, list) or not class_ids:
        raise ValidationError("classIds must be a non-empty list")

    enrollment = fetch_or_404(Enrollment, enrollment_id, "Enrollment")
    try:
        wanted = {int(c) for c in class_ids}
    except (TypeError, ValueError):
        raise ValidationError("classIds must contain class ids")

    found = {
        c.id for c in CourseClass.query.filter(
            CourseClass.id.in_(wanted),
            CourseClass.course_id == enrollment.course_id,
        ).all()
    }
    missing = sorted(wanted - found)
    if missing:
        raise ValidationError("Classes not found in this course", classIds=missing)

    for class_id in sorted(wanted):
        _apply(enrollment, class_id, state, actor_id)
    db.session.flush()

    logger.info("Enrollment %s: %s classes set to %s", enrollment.id, len(wanted), state)
    return override_lists(enrollment)


def enrollment_classes(enrollment_id):
    """All classes of the enrollment's course with the student's resolved lock state."""
    enrollment = fetch_or_404(Enrollment, enrollment_id, "Enrollment")
    classes = (
        CourseClass.query.filter_by(course_id=enrollment.course_id)
        .order_by(CourseClass.section, CourseClass.order)
        .all()
    )
    overrides = enrollment.override_map()
    progress = {
        p.class_id: {"status": p.status, "watchProgress": p.watch_progress}
        for p in Progress.query.filter_by(user_id=enrollment.user_id, course_id=enrollment.course_id)
    }

    items = []
    for cls in classes:
        state = overrides.get(cls.id)
        items.append({
            "id": cls.id,
            "title": cls.title,
            "section": cls.section,
            "order": cls.order,
            "duration": cls.duration,
            "isPublished": cls.is_published,
            "isPreview": cls.is_preview,
            "globalLocked": cls.is_locked,
            "isLockedForStudent": lock_resolver.is_locked(cls, state),
            "isUnlockedForStudent": state == lock_resolver.UNLOCKED,
            "isManuallyLocked": state == lock_resolver.LOCKED,
            "progress": progress.get(cls.id, {"status": "not_started", "watchProgress": 0}),
        })

    return {
        "enrollment": {
            "id": enrollment.id,
            "user": enrollment.student.to_dict() if enrollment.student else None,
            "course_id": enrollment.course_id,
            "progress": enrollment.progress_dict(),
            "accessBlocked": enrollment.access_blocked,
        },
        "classes": items,
    }
