import pytest

from app.extensions import db
from app.models import User
from app.services import fee_gate
from app.services.access import require_enrollment
from app.utils.errors import Forbidden, NotFound


def test_evaluate(make_user, make_fee):
    overdue = make_user()
    make_fee(overdue)
    upcoming = make_user()
    make_fee(upcoming, days_overdue=-5)
    under_review = make_user()
    make_fee(under_review, status="submitted")

    assert fee_gate.evaluate(overdue.id) is True
    assert fee_gate.evaluate(upcoming.id) is False
    assert fee_gate.evaluate(under_review.id) is False


def test_bulk_block_counts_only_new_defaulters(make_user, make_course, enroll, make_fee, admin):
    course = make_course()
    defaulter, paid_up, manual = make_user(), make_user(), make_user()
    e_defaulter = enroll(defaulter, course)
    e_paid = enroll(paid_up, course)
    e_manual = enroll(manual, course)
    make_fee(defaulter)
    make_fee(manual)
    fee_gate.block_access(e_manual.id, "Misconduct", blocked_by=admin.id)
    db.session.commit()

    count = fee_gate.bulk_block_defaulters(course.id, blocked_by=admin.id)
    db.session.commit()

    assert count == 1
    assert e_defaulter.access_blocked is True
    assert e_defaulter.blocked_reason == "Fee defaulter - automatic block"
    assert e_paid.access_blocked is False
    assert e_manual.blocked_reason == "Misconduct"
    assert db.session.get(User, defaulter.id).fee_status == "defaulter"


def test_bulk_block_is_repeatable(make_user, make_course, enroll, make_fee):
    course = make_course()
    student = make_user()
    enroll(student, course)
    make_fee(student)

    assert fee_gate.bulk_block_defaulters(course.id) == 1
    assert fee_gate.bulk_block_defaulters(course.id) == 0


def test_block_overwrites_and_guard_denies(make_user, make_course, enroll):
    student = make_user()
    course = make_course()
    enrollment = enroll(student, course)

    fee_gate.block_access(enrollment.id)
    assert enrollment.blocked_reason == "Fee defaulter"
    fee_gate.block_access(enrollment.id, "Second notice")
    assert enrollment.blocked_reason == "Second notice"
    db.session.commit()

    with pytest.raises(Forbidden) as exc:
        require_enrollment(student.id, course.id)
    assert exc.value.payload["blocked"] is True
    assert exc.value.payload["reason"] == "Second notice"


def test_unblock_resets_fee_status(make_user, make_course, enroll):
    student = make_user(fee_status="defaulter")
    course = make_course()
    enrollment = enroll(student, course, access_blocked=True, blocked_reason="Fee defaulter")

    fee_gate.unblock_access(enrollment.id)
    db.session.commit()

    assert enrollment.access_blocked is False
    assert enrollment.blocked_reason is None
    assert enrollment.blocked_at is None
    assert db.session.get(User, student.id).fee_status == "active"
    assert require_enrollment(student.id, course.id).id == enrollment.id


def test_toggle_access(make_user, make_course, enroll):
    enrollment = enroll(make_user(), make_course())
    assert fee_gate.toggle_access(enrollment.id, "Late").access_blocked is True
    assert fee_gate.toggle_access(enrollment.id).access_blocked is False


def test_block_unknown_enrollment(app):
    with pytest.raises(NotFound):
        fee_gate.block_access(404)
