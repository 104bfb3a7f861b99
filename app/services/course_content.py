"""
Admin management of courses and their classes, plus the student-facing
course and class views.
"""

import logging
import re

from flask import current_app
from sqlalchemy import func

from app.extensions import db
from app.models import Course, CourseClass, Progress
from app.services import lock_resolver
from app.services.access import override_for, require_class_access, require_enrollment
from app.services.certificate_issuer import TEMPLATES
from app.services.progress_store import record_access
from app.utils.errors import ValidationError, fetch_or_404

logger = logging.getLogger(__name__)

YOUTUBE_PATTERNS = (
    re.compile(r"(?:youtube\.com/watch\?v=|youtu\.be/|youtube\.com/embed/|youtube\.com/v/|youtube\.com/watch\?.*&v=)([^#&?]*)"),
    re.compile(r"^([a-zA-Z0-9_-]{11})$"),
)

COURSE_FIELDS = {
    "title": "title",
    "category": "category",
    "description": "description",
    "isPublished": "is_published",
    "certificateEnabled": "certificate_enabled",
    "certificateTemplate": "certificate_template",
}

CLASS_FIELDS = {
    "title": "title",
    "description": "description",
    "section": "section",
    "order": "order",
    "videoUrl": "video_url",
    "duration": "duration",
    "notes": "notes",
    "isLocked": "is_locked",
    "isPublished": "is_published",
    "isPreview": "is_preview",
}


def extract_video_id(url):
    if not url:
        return None
    for pattern in YOUTUBE_PATTERNS:
        match = pattern.search(url)
        if match and match.group(1):
            return match.group(1)
    return None


def _class_defaults():
    return current_app.config.get("CLASS_DEFAULTS", {})


def _apply_course_fields(course, data):
    for key, attr in COURSE_FIELDS.items():
        if key in data:
            setattr(course, attr, data[key])
    if course.certificate_template not in TEMPLATES:
        raise ValidationError(f"certificateTemplate must be one of: {', '.join(TEMPLATES)}")


def create_course(data):
    if not data.get("title"):
        raise ValidationError("title is required")
    course = Course(certificate_template="islamic", certificate_enabled=True, is_published=False)
    _apply_course_fields(course, data)
    db.session.add(course)
    db.session.flush()
    logger.info("Created course %s", course.id)
    return course


def update_course(course_id, data):
    course = fetch_or_404(Course, course_id, "Course")
    _apply_course_fields(course, data)
    if not course.title:
        raise ValidationError("title cannot be empty")
    db.session.flush()
    return course


def next_order(course_id, section):
    highest = (
        db.session.query(func.max(CourseClass.order))
        .filter(CourseClass.course_id == course_id, CourseClass.section == section)
        .scalar()
    )
    return (highest or 0) + 1


def create_class(course_id, data, created_by=None):
    course = fetch_or_404(Course, course_id, "Course")
    if not data.get("title") or not data.get("videoUrl"):
        raise ValidationError("title and videoUrl are required")

    defaults = _class_defaults()
    section = data.get("section") or defaults.get("section", "Main Content")

    class_record = CourseClass(
        course_id=course.id,
        title=data["title"],
        description=data.get("description") or "",
        section=section,
        order=data.get("order") or next_order(course.id, section),
        video_url=data["videoUrl"],
        video_id=extract_video_id(data["videoUrl"]),
        duration=data.get("duration") or 0,
        notes=data.get("notes") or "",
        is_locked=bool(data.get("isLocked", defaults.get("is_locked", False))),
        is_published=bool(data.get("isPublished", defaults.get("is_published", True))),
        is_preview=bool(data.get("isPreview", defaults.get("is_preview", False))),
        created_by=created_by,
    )
    db.session.add(class_record)
    db.session.flush()
    logger.info("Added class %s to course %s", class_record.id, course.id)
    return class_record


def update_class(class_id, data, updated_by=None):
    class_record = fetch_or_404(CourseClass, class_id, "Class")
    for key, attr in CLASS_FIELDS.items():
        if key in data:
            setattr(class_record, attr, data[key])
    if "videoUrl" in data:
        class_record.video_id = extract_video_id(class_record.video_url)
    if not class_record.title or not class_record.video_url:
        raise ValidationError("title and videoUrl cannot be empty")
    class_record.updated_by = updated_by
    db.session.flush()
    return class_record


def delete_class(class_id):
    # Progress rows and overrides go with the class through the ORM cascade.
    class_record = fetch_or_404(CourseClass, class_id, "Class")
    db.session.delete(class_record)
    db.session.flush()
    logger.info("Deleted class %s", class_id)


def toggle_lock(class_id, updated_by=None):
    class_record = fetch_or_404(CourseClass, class_id, "Class")
    class_record.is_locked = not class_record.is_locked
    class_record.updated_by = updated_by
    db.session.flush()
    return class_record


def toggle_publish(class_id, updated_by=None):
    class_record = fetch_or_404(CourseClass, class_id, "Class")
    class_record.is_published = not class_record.is_published
    class_record.updated_by = updated_by
    db.session.flush()
    return class_record


def set_lock_all(course_id, locked):
    """Set the global lock flag on every class of the course; returns the count."""
    course = fetch_or_404(Course, course_id, "Course")
    count = (
        CourseClass.query.filter_by(course_id=course.id)
        .update({CourseClass.is_locked: locked}, synchronize_session="fetch")
    )
    db.session.flush()
    logger.info("Course %s: %s classes %s", course.id, count, "locked" if locked else "unlocked")
    return count


def _progress_map(user_id, course_id):
    return {
        str(p.class_id): {
            "status": p.status,
            "watchProgress": p.watch_progress,
            "lastPosition": p.last_position,
        }
        for p in Progress.query.filter_by(user_id=user_id, course_id=course_id)
    }


def _published_classes(course_id):
    return (
        CourseClass.query.filter_by(course_id=course_id, is_published=True)
        .order_by(CourseClass.section, CourseClass.order)
        .all()
    )


def course_for_student(user_id, course_id):
    enrollment = require_enrollment(user_id, course_id)
    course = fetch_or_404(Course, course_id, "Course")
    published = _published_classes(course.id)
    locks = lock_resolver.resolve_many(published, enrollment.override_map())

    classes = []
    for cls in published:
        data = cls.to_dict(full=False)
        data["isLocked"] = locks[cls.id]
        classes.append(data)

    return {
        "course": course.to_dict(),
        "enrollment": {
            "id": enrollment.id,
            "status": enrollment.status,
            "progress": enrollment.progress_dict(),
            "certificateIssued": enrollment.certificate_issued,
            "certificateId": enrollment.certificate_id,
        },
        "classes": classes,
        "progressMap": _progress_map(user_id, course.id),
    }


def watch_class(user_id, class_id):
    """Open a class for the student, counting the access."""
    class_record = fetch_or_404(CourseClass, class_id, "Class")
    enrollment = require_class_access(user_id, class_record)
    progress = record_access(user_id, class_record.id, enrollment)
    published = _published_classes(class_record.course_id)
    locks = lock_resolver.resolve_many(published, enrollment.override_map())

    siblings = []
    for cls in published:
        siblings.append({
            "id": cls.id,
            "title": cls.title,
            "section": cls.section,
            "order": cls.order,
            "isLocked": locks[cls.id],
        })

    return {
        "class": class_record.to_dict(),
        "progress": progress.to_dict(),
        "enrollment": {"id": enrollment.id, "progress": enrollment.progress_dict()},
        "allClasses": siblings,
        "progressMap": _progress_map(user_id, class_record.course_id),
    }


def my_course_progress(user_id, course_id):
    enrollment = require_enrollment(user_id, course_id)
    records = (
        Progress.query.filter_by(user_id=user_id, course_id=course_id)
        .order_by(Progress.last_accessed_at.desc())
        .all()
    )
    return {
        "enrollment": enrollment.progress_dict(),
        "status": enrollment.status,
        "classes": [p.to_dict() for p in records],
        "lockedForMe": [
            cls.id for cls in _published_classes(course_id)
            if lock_resolver.is_locked(cls, override_for(enrollment, cls.id))
        ],
    }
