import re

import pytest

from app.extensions import db
from app.models import Certificate, Enrollment
from app.services import certificate_issuer
from app.utils.clock import utcnow
from app.utils.errors import Conflict, NotFound, ValidationError


@pytest.fixture
def completed(make_user, make_course, enroll):
    student = make_user(full_name="Aisha Khan", student_code="SAT-001")
    course = make_course(title="Seerah")
    enrollment = enroll(student, course, status="completed", completed_at=utcnow(), percentage=100)
    return student, course, enrollment


def test_issue_numbers_and_snapshots(completed, admin):
    student, course, enrollment = completed
    cert, created = certificate_issuer.issue(student.id, course.id, issued_by=admin.id)
    db.session.commit()

    assert created
    assert cert.certificate_number == f"CERT-SAT-{utcnow().year}-00001"
    assert re.fullmatch(re.escape(cert.certificate_number) + r"-[A-Z0-9]{8}", cert.verification_code)
    assert cert.student_name == "Aisha Khan"
    assert cert.course_title == "Seerah"
    assert cert.status == "issued"
    assert cert.grade == "pass"
    assert cert.template == "islamic"
    assert enrollment.certificate_issued is True
    assert enrollment.certificate_id == cert.id


def test_double_issue_returns_existing(completed):
    student, course, _ = completed
    first, created = certificate_issuer.issue(student.id, course.id)
    second, created_again = certificate_issuer.issue(student.id, course.id)

    assert created and not created_again
    assert first.certificate_number == second.certificate_number
    assert Certificate.query.count() == 1


def test_sequence_increments(completed, make_user, enroll):
    student, course, _ = completed
    other = make_user()
    enroll(other, course, status="completed")

    a, _ = certificate_issuer.issue(student.id, course.id)
    b, _ = certificate_issuer.issue(other.id, course.id)
    assert a.certificate_number.endswith("-00001")
    assert b.certificate_number.endswith("-00002")


def test_disabled_course_rejected(completed):
    student, course, _ = completed
    course.certificate_enabled = False
    db.session.commit()
    with pytest.raises(ValidationError):
        certificate_issuer.issue(student.id, course.id)


def test_invalid_grade_rejected(completed):
    student, course, _ = completed
    with pytest.raises(ValidationError):
        certificate_issuer.issue(student.id, course.id, grade="excellent")


def test_admin_issue_completes_enrollment(make_user, make_course, enroll):
    student = make_user()
    course = make_course()
    enrollment = enroll(student, course)

    certificate_issuer.issue(student.id, course.id)
    assert enrollment.status == "completed"
    assert enrollment.completed_at is not None


def test_generate_requires_completion(make_user, make_course, enroll):
    student = make_user()
    course = make_course()
    enroll(student, course)
    with pytest.raises(ValidationError):
        certificate_issuer.generate(student.id, course.id)


def test_generate_after_completion(completed):
    student, course, _ = completed
    cert, created = certificate_issuer.generate(student.id, course.id)
    assert created
    assert cert.grade == "pass"


def test_revoke_and_restore(completed, admin):
    student, course, enrollment = completed
    cert, _ = certificate_issuer.issue(student.id, course.id)

    certificate_issuer.revoke(cert.id, "Plagiarism", admin.id)
    assert cert.status == "revoked"
    assert cert.revocation_reason == "Plagiarism"
    assert cert.revoked_by == admin.id
    assert enrollment.certificate_issued is False

    with pytest.raises(ValidationError):
        certificate_issuer.revoke(cert.id, "again", admin.id)

    certificate_issuer.restore(cert.id)
    assert cert.status == "issued"
    assert cert.revoked_at is None
    assert cert.revoked_by is None
    assert cert.revocation_reason is None
    assert enrollment.certificate_issued is True

    with pytest.raises(ValidationError):
        certificate_issuer.restore(cert.id)


def test_reissue_after_revoke_then_restore_conflicts(completed, admin):
    student, course, _ = completed
    old, _ = certificate_issuer.issue(student.id, course.id)
    certificate_issuer.revoke(old.id, "Error in name", admin.id)

    new, created = certificate_issuer.issue(student.id, course.id)
    assert created
    assert new.certificate_number != old.certificate_number

    with pytest.raises(Conflict):
        certificate_issuer.restore(old.id)


def test_verify(completed, admin):
    student, course, _ = completed
    cert, _ = certificate_issuer.issue(student.id, course.id)

    result = certificate_issuer.verify(cert.verification_code)
    assert result["valid"] is True
    assert result["data"]["studentName"] == "Aisha Khan"

    by_number = certificate_issuer.verify(cert.certificate_number)
    assert by_number["valid"] is True

    certificate_issuer.revoke(cert.id, "Fraud", admin.id)
    revoked = certificate_issuer.verify(cert.verification_code)
    assert revoked["valid"] is False
    assert revoked["data"]["status"] == "revoked"
    assert revoked["data"]["revocationReason"] == "Fraud"
    assert "studentName" not in revoked["data"]


def test_verify_unknown_code(app):
    with pytest.raises(NotFound) as exc:
        certificate_issuer.verify("CERT-SAT-1999-00001")
    assert exc.value.payload == {"valid": False}


def test_purge_clears_enrollment(completed):
    student, course, enrollment = completed
    cert, _ = certificate_issuer.issue(student.id, course.id)
    expected = cert.certificate_number

    number = certificate_issuer.purge(cert.id)
    db.session.commit()

    assert number == expected
    assert Certificate.query.count() == 0
    refreshed = db.session.get(Enrollment, enrollment.id)
    assert refreshed.certificate_issued is False
    assert refreshed.certificate_id is None


def test_listing_only_shows_issued(completed, admin):
    student, course, _ = completed
    cert, _ = certificate_issuer.issue(student.id, course.id)
    assert certificate_issuer.certificates_for_user(student.id) == [cert]

    certificate_issuer.revoke(cert.id, "x", admin.id)
    assert certificate_issuer.certificates_for_user(student.id) == []
    assert certificate_issuer.all_certificates() == [cert]
