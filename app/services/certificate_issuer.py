"""
Completion certificates: issue, revoke, restore, verify, purge.

Invariant: at most one certificate per (user, course) has status "issued".
Revoked certificates stay around as history and never block a new issue.
"""

import logging
import secrets
import string

from flask import current_app
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from app.extensions import db
from app.models import Certificate, CertificateSequence, Course, Enrollment, User
from app.utils.clock import utcnow
from app.utils.errors import Conflict, NotFound, ValidationError, fetch_or_404

logger = logging.getLogger(__name__)

GRADES = ("distinction", "merit", "pass", "none")
TEMPLATES = ("default", "premium", "islamic")
CODE_ALPHABET = string.ascii_uppercase + string.digits


def find_issued(user_id, course_id):
    return Certificate.query.filter_by(user_id=user_id, course_id=course_id, status="issued").first()


def find_by_code(code):
    return Certificate.query.filter(
        or_(Certificate.certificate_number == code, Certificate.verification_code == code)
    ).first()


def next_certificate_number(year):
    seq = db.session.get(CertificateSequence, year, with_for_update=True)
    if seq is None:
        seq = CertificateSequence(year=year, last_value=0)
        db.session.add(seq)
    seq.last_value += 1
    db.session.flush()
    prefix = current_app.config.get("CERTIFICATE_NUMBER_PREFIX", "CERT-SAT")
    return f"{prefix}-{year}-{seq.last_value:05d}"


def make_verification_code(certificate_number):
    suffix = "".join(secrets.choice(CODE_ALPHABET) for _ in range(8))
    return f"{certificate_number}-{suffix}"


def _enrollment_for(certificate):
    if certificate.enrollment_id:
        return db.session.get(Enrollment, certificate.enrollment_id)
    return Enrollment.query.filter_by(user_id=certificate.user_id, course_id=certificate.course_id).first()


def _resolve_enrollment(user_id, course_id, enrollment_id):
    if enrollment_id is None:
        return Enrollment.query.filter_by(user_id=user_id, course_id=course_id).first()
    enrollment = fetch_or_404(Enrollment, enrollment_id, "Enrollment")
    if enrollment.user_id != user_id or enrollment.course_id != course_id:
        raise ValidationError("Enrollment does not belong to this student and course")
    return enrollment


def issue(user_id, course_id, enrollment_id=None, grade="pass", template=None, issued_by=None,
          instructor_name=None, instructor_title=None):
    """Issue a certificate, or return the one already issued.

    Returns ``(certificate, created)``. Issuing also marks the related
    enrollment completed if it was not, so an admin can certify a student
    before automatic completion detection catches up.
    """
    user = fetch_or_404(User, user_id, "User")
    course = fetch_or_404(Course, course_id, "Course")

    if not course.certificate_enabled:
        raise ValidationError("Certificate not enabled for this course")

    existing = find_issued(user.id, course.id)
    if existing:
        return existing, False

    grade = grade or "pass"
    if grade not in GRADES:
        raise ValidationError(f"grade must be one of: {', '.join(GRADES)}")
    template = template or course.certificate_template or "islamic"
    if template not in TEMPLATES:
        raise ValidationError(f"template must be one of: {', '.join(TEMPLATES)}")

    enrollment = _resolve_enrollment(user.id, course.id, enrollment_id)
    now = utcnow()
    number = next_certificate_number(now.year)

    certificate = Certificate(
        certificate_number=number,
        verification_code=make_verification_code(number),
        user_id=user.id,
        course_id=course.id,
        enrollment_id=enrollment.id if enrollment else None,
        student_name=user.full_name,
        student_code=user.student_code,
        course_title=course.title,
        course_category=course.category,
        completion_date=(enrollment.completed_at if enrollment and enrollment.completed_at else now),
        issued_at=now,
        issued_by=issued_by,
        template=template,
        grade=grade,
        instructor_name=instructor_name or current_app.config.get("CERTIFICATE_INSTRUCTOR_NAME"),
        instructor_title=instructor_title or current_app.config.get("CERTIFICATE_INSTRUCTOR_TITLE"),
        status="issued",
    )
    try:
        with db.session.begin_nested():
            db.session.add(certificate)
    except IntegrityError:
        existing = find_issued(user.id, course.id)
        if existing:
            logger.info("Certificate for user=%s course=%s issued concurrently", user.id, course.id)
            return existing, False
        raise

    if enrollment:
        enrollment.certificate_issued = True
        enrollment.certificate_id = certificate.id
        if enrollment.status != "completed":
            enrollment.status = "completed"
        if enrollment.completed_at is None:
            enrollment.completed_at = now
        db.session.flush()

    logger.info("Issued certificate %s to user=%s course=%s", number, user.id, course.id)
    return certificate, True


def generate(user_id, course_id):
    """Student-initiated issue; only allowed once the course is completed."""
    enrollment = Enrollment.query.filter_by(user_id=user_id, course_id=course_id, status="completed").first()
    if not enrollment:
        raise ValidationError("Course not completed or not enrolled")

    course = fetch_or_404(Course, course_id, "Course")
    # Automatic path: there is no scoring, every completion is a pass.
    return issue(
        user_id,
        course_id,
        enrollment_id=enrollment.id,
        grade="pass",
        template=course.certificate_template,
    )


def revoke(certificate_id, reason, revoked_by):
    certificate = fetch_or_404(Certificate, certificate_id, "Certificate")
    if certificate.status == "revoked":
        raise ValidationError("Certificate is already revoked")

    certificate.status = "revoked"
    certificate.revoked_at = utcnow()
    certificate.revoked_by = revoked_by
    certificate.revocation_reason = reason

    enrollment = _enrollment_for(certificate)
    if enrollment and enrollment.certificate_id == certificate.id:
        enrollment.certificate_issued = False

    db.session.flush()
    logger.info("Revoked certificate %s (%s)", certificate.certificate_number, reason)
    return certificate


def restore(certificate_id):
    certificate = fetch_or_404(Certificate, certificate_id, "Certificate")
    if certificate.status == "issued":
        raise ValidationError("Certificate is already active")

    other = find_issued(certificate.user_id, certificate.course_id)
    if other:
        raise Conflict(
            f"Certificate {other.certificate_number} is already issued for this student and course"
        )

    certificate.status = "issued"
    certificate.revoked_at = None
    certificate.revoked_by = None
    certificate.revocation_reason = None

    enrollment = _enrollment_for(certificate)
    if enrollment:
        enrollment.certificate_issued = True
        enrollment.certificate_id = certificate.id

    db.session.flush()
    logger.info("Restored certificate %s", certificate.certificate_number)
    return certificate


def verify(code):
    """Public verification by certificate number or verification code."""
    certificate = find_by_code(code)
    if certificate is None:
        raise NotFound("Certificate not found", valid=False)

    if certificate.status == "revoked":
        return {
            "valid": False,
            "message": "This certificate has been revoked",
            "data": {
                "certificateNumber": certificate.certificate_number,
                "status": "revoked",
                "revokedAt": certificate.revoked_at.isoformat() if certificate.revoked_at else None,
                "revocationReason": certificate.revocation_reason,
            },
        }

    return {
        "valid": True,
        "data": {
            "certificateNumber": certificate.certificate_number,
            "studentName": certificate.student_name,
            "courseTitle": certificate.course_title,
            "completionDate": certificate.completion_date.isoformat(),
            "issuedAt": certificate.issued_at.isoformat() if certificate.issued_at else None,
            "grade": certificate.grade,
            "status": certificate.status,
        },
    }


def purge(certificate_id):
    certificate = fetch_or_404(Certificate, certificate_id, "Certificate")
    enrollment = _enrollment_for(certificate)
    if enrollment and enrollment.certificate_id == certificate.id:
        enrollment.certificate_issued = False
        enrollment.certificate_id = None

    number = certificate.certificate_number
    db.session.delete(certificate)
    db.session.flush()
    logger.info("Purged certificate %s", number)
    return number


def certificates_for_user(user_id):
    return (
        Certificate.query.filter_by(user_id=user_id, status="issued")
        .order_by(Certificate.issued_at.desc())
        .all()
    )


def all_certificates():
    return Certificate.query.order_by(Certificate.issued_at.desc()).all()
