import itertools
from datetime import timedelta

import pytest
from flask_jwt_extended import create_access_token

from app import create_app
from app.config import TestConfig
from app.extensions import db
from app.models import Course, CourseClass, Enrollment, FeeRecord, User
from app.utils.clock import utcnow


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    seq = itertools.count(1)

    def _make(role="student", **kwargs):
        n = next(seq)
        kwargs.setdefault("full_name", f"Student {n}")
        kwargs.setdefault("email", f"user{n}@example.com")
        user = User(role=role, **kwargs)
        db.session.add(user)
        db.session.commit()
        return user

    return _make


@pytest.fixture
def admin(make_user):
    return make_user(role="admin", full_name="Admin", email="admin@example.com")


@pytest.fixture
def make_course(app):
    def _make(**kwargs):
        kwargs.setdefault("title", "Tasawwuf Basics")
        kwargs.setdefault("category", "spirituality")
        course = Course(**kwargs)
        db.session.add(course)
        db.session.commit()
        return course

    return _make


@pytest.fixture
def make_class(app):
    seq = itertools.count(1)

    def _make(course, **kwargs):
        n = next(seq)
        kwargs.setdefault("title", f"Class {n}")
        kwargs.setdefault("section", "Main Content")
        kwargs.setdefault("order", n)
        kwargs.setdefault("video_url", "https://youtu.be/abcdefghijk")
        kwargs.setdefault("is_locked", False)
        kwargs.setdefault("is_published", True)
        kwargs.setdefault("is_preview", False)
        class_record = CourseClass(course_id=course.id, **kwargs)
        db.session.add(class_record)
        db.session.commit()
        return class_record

    return _make


@pytest.fixture
def enroll(app):
    def _enroll(user, course, **kwargs):
        enrollment = Enrollment(user_id=user.id, course_id=course.id, **kwargs)
        db.session.add(enrollment)
        db.session.commit()
        return enrollment

    return _enroll


@pytest.fixture
def make_fee(app):
    def _make(student, month=1, year=2026, status="pending", days_overdue=5, amount=5000):
        fee = FeeRecord(
            student_id=student.id,
            month=month,
            year=year,
            amount=amount,
            status=status,
            due_date=utcnow() - timedelta(days=days_overdue),
        )
        db.session.add(fee)
        db.session.commit()
        return fee

    return _make


@pytest.fixture
def auth_headers(app):
    def _headers(user):
        token = create_access_token(identity=str(user.id))
        return {"Authorization": f"Bearer {token}"}

    return _headers
