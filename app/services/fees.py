import logging
from datetime import datetime

from flask import current_app

from app.extensions import db
from app.models import FeeRecord, User
from app.utils.clock import utcnow
from app.utils.errors import Conflict, Forbidden, NotFound, ValidationError, fetch_or_404

logger = logging.getLogger(__name__)

PAYMENT_METHODS = ("bank_transfer", "jazzcash", "easypaisa", "other")


def _validate_period(month, year):
    try:
        month, year = int(month), int(year)
    except (TypeError, ValueError):
        raise ValidationError("month and year must be numbers")
    if not 1 <= month <= 12:
        raise ValidationError("month must be between 1 and 12")
    return month, year


def default_due_date(month, year):
    return datetime(year, month, current_app.config.get("FEE_DUE_DAY", 10))


def create_fee(student_id, month, year, amount=None, due_date=None):
    student = fetch_or_404(User, student_id, "Student")
    month, year = _validate_period(month, year)

    if FeeRecord.query.filter_by(student_id=student.id, month=month, year=year).first():
        raise Conflict("Fee record already exists for this month")

    if amount is None:
        amount = student.monthly_fee or current_app.config.get("DEFAULT_MONTHLY_FEE", 5000)
    try:
        amount = float(amount)
    except (TypeError, ValueError):
        raise ValidationError("amount must be a number")
    if amount <= 0:
        raise ValidationError("amount must be greater than 0")

    fee = FeeRecord(
        student_id=student.id,
        month=month,
        year=year,
        amount=amount,
        status="pending",
        due_date=due_date or default_due_date(month, year),
    )
    db.session.add(fee)
    db.session.flush()
    return fee


def generate_monthly_fees(month=None, year=None):
    """Create the month's fee record for every paid, non-suspended student."""
    now = utcnow()
    month, year = _validate_period(month or now.month, year or now.year)

    students = User.query.filter(
        User.is_paid_student.is_(True),
        User.fee_status != "suspended",
    ).all()

    created = skipped = 0
    for student in students:
        if FeeRecord.query.filter_by(student_id=student.id, month=month, year=year).first():
            skipped += 1
            continue
        db.session.add(FeeRecord(
            student_id=student.id,
            month=month,
            year=year,
            amount=student.monthly_fee or current_app.config.get("DEFAULT_MONTHLY_FEE", 5000),
            status="pending",
            due_date=default_due_date(month, year),
        ))
        created += 1

    db.session.flush()
    logger.info("Generated fees for %02d/%s: created=%s skipped=%s", month, year, created, skipped)
    return {"created": created, "skipped": skipped, "month": month, "year": year}


def submit_payment(fee_id, student_id, transaction_id, payment_method="bank_transfer",
                   proof_url=None, notes=None):
    fee = db.session.get(FeeRecord, fee_id)
    if fee is None:
        raise NotFound("Fee record not found")
    if fee.student_id != student_id:
        raise Forbidden("Not authorized")
    if fee.status not in ("pending", "rejected"):
        raise ValidationError(f"Fee is already {fee.status}")
    if not transaction_id:
        raise ValidationError("transactionId is required")
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"paymentMethod must be one of: {', '.join(PAYMENT_METHODS)}")

    fee.status = "submitted"
    fee.transaction_id = transaction_id
    fee.payment_method = payment_method
    fee.proof_url = proof_url
    fee.student_notes = notes
    fee.submitted_at = utcnow()
    fee.rejection_reason = None
    db.session.flush()
    return fee


def approve_fee(fee_id, admin_id, notes=None):
    fee = fetch_or_404(FeeRecord, fee_id, "Fee record")
    if fee.status == "approved":
        raise ValidationError("Fee is already approved")

    now = utcnow()
    fee.status = "approved"
    fee.approved_by = admin_id
    fee.approved_at = now
    fee.admin_notes = notes

    student = db.session.get(User, fee.student_id)
    if student and student.fee_status == "defaulter":
        outstanding = FeeRecord.query.filter(
            FeeRecord.student_id == student.id,
            FeeRecord.status.in_(("pending", "submitted")),
            FeeRecord.due_date < now,
        ).count()
        if outstanding == 0:
            student.fee_status = "active"

    db.session.flush()
    return fee


def reject_fee(fee_id, admin_id, reason=None):
    fee = fetch_or_404(FeeRecord, fee_id, "Fee record")
    if fee.status != "submitted":
        raise ValidationError("Only submitted payments can be rejected")

    fee.status = "rejected"
    fee.rejected_by = admin_id
    fee.rejected_at = utcnow()
    fee.rejection_reason = reason
    db.session.flush()
    return fee


def fees_for_student(student_id):
    return (
        FeeRecord.query.filter_by(student_id=student_id)
        .order_by(FeeRecord.year.desc(), FeeRecord.month.desc())
        .all()
    )


def summarize(fees, now=None):
    now = now or utcnow()
    return {
        "totalFees": len(fees),
        "totalAmount": sum(f.amount for f in fees),
        "approvedAmount": sum(f.amount for f in fees if f.status == "approved"),
        "pendingCount": sum(1 for f in fees if f.status == "pending"),
        "submittedCount": sum(1 for f in fees if f.status == "submitted"),
        "overdueCount": sum(1 for f in fees if f.is_overdue(now)),
    }
