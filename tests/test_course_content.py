import pytest

from app.extensions import db
from app.models import CourseClass, Progress
from app.services import course_content, progress_store
from app.utils.errors import ValidationError


@pytest.mark.parametrize("url,expected", [
    ("https://www.youtube.com/watch?v=L86pSu3ozTc", "L86pSu3ozTc"),
    ("https://youtu.be/o17kvE6QaCQ", "o17kvE6QaCQ"),
    ("https://www.youtube.com/embed/npJWT1XBAUY?start=4", "npJWT1XBAUY"),
    ("https://www.youtube.com/watch?feature=share&v=d4jdFLvHE7o", "d4jdFLvHE7o"),
    ("oi8tTQJq7vw", "oi8tTQJq7vw"),
    ("https://vimeo.com/12345", None),
    ("", None),
])
def test_extract_video_id(url, expected):
    assert course_content.extract_video_id(url) == expected


def test_create_class_uses_configured_defaults(app, make_course):
    course = make_course()
    first = course_content.create_class(course.id, {"title": "Intro", "videoUrl": "https://youtu.be/o17kvE6QaCQ"})
    second = course_content.create_class(course.id, {"title": "Next", "videoUrl": "https://youtu.be/o17kvE6QaCQ"})
    other = course_content.create_class(course.id, {"title": "Q&A", "videoUrl": "x", "section": "Extras"})

    assert first.section == "Main Content"
    assert first.is_locked is False
    assert first.is_published is True
    assert first.is_preview is False
    assert first.video_id == "o17kvE6QaCQ"
    assert (first.order, second.order, other.order) == (1, 2, 1)


def test_create_class_honours_config_change(app, make_course):
    app.config["CLASS_DEFAULTS"] = dict(app.config["CLASS_DEFAULTS"], is_locked=True)
    course = make_course()
    cls = course_content.create_class(course.id, {"title": "Intro", "videoUrl": "x"})
    assert cls.is_locked is True


def test_create_class_requires_title_and_url(make_course):
    course = make_course()
    with pytest.raises(ValidationError):
        course_content.create_class(course.id, {"title": "No video"})


def test_toggle_and_lock_all(make_course, make_class):
    course = make_course()
    a, b = make_class(course), make_class(course)

    assert course_content.toggle_lock(a.id).is_locked is True
    assert course_content.toggle_publish(b.id).is_published is False

    assert course_content.set_lock_all(course.id, True) == 2
    db.session.commit()
    assert all(c.is_locked for c in CourseClass.query.filter_by(course_id=course.id))

    course_content.set_lock_all(course.id, False)
    db.session.commit()
    assert not any(c.is_locked for c in CourseClass.query.filter_by(course_id=course.id))


def test_delete_class_cascades_progress(make_user, make_course, make_class, enroll):
    student = make_user()
    course = make_course()
    cls = make_class(course)
    enroll(student, course)
    progress_store.update_progress(student.id, cls.id, watch_progress=30)
    db.session.commit()

    course_content.delete_class(cls.id)
    db.session.commit()
    assert Progress.query.count() == 0


def test_update_course_rejects_unknown_template(make_course):
    course = make_course()
    with pytest.raises(ValidationError):
        course_content.update_course(course.id, {"certificateTemplate": "gold"})


def test_course_for_student_resolves_locks(make_user, make_course, make_class, enroll):
    student = make_user()
    course = make_course()
    locked = make_class(course, is_locked=True)
    preview = make_class(course, is_locked=True, is_preview=True)
    make_class(course, is_published=False)
    enroll(student, course)

    data = course_content.course_for_student(student.id, course.id)
    flags = {c["id"]: c["isLocked"] for c in data["classes"]}
    assert flags == {locked.id: True, preview.id: False}
