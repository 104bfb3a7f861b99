from datetime import datetime

import pytest

from app.extensions import db
from app.models import FeeRecord, User
from app.services import fees
from app.utils.errors import Conflict, Forbidden, ValidationError


def test_create_fee_defaults(make_user):
    student = make_user(is_paid_student=True, monthly_fee=3000)
    fee = fees.create_fee(student.id, 3, 2026)

    assert fee.amount == 3000
    assert fee.status == "pending"
    assert fee.due_date == datetime(2026, 3, 10)
    assert fee.month_name == "March"


def test_create_fee_falls_back_to_default_amount(make_user):
    student = make_user(monthly_fee=0)
    assert fees.create_fee(student.id, 1, 2026).amount == 5000


def test_duplicate_fee_conflicts(make_user):
    student = make_user()
    fees.create_fee(student.id, 1, 2026)
    with pytest.raises(Conflict):
        fees.create_fee(student.id, 1, 2026)


@pytest.mark.parametrize("month,year", [(13, 2026), (0, 2026), ("x", 2026)])
def test_invalid_period(make_user, month, year):
    student = make_user()
    with pytest.raises(ValidationError):
        fees.create_fee(student.id, month, year)


def test_generate_monthly_fees(make_user):
    paid = make_user(is_paid_student=True, monthly_fee=2000)
    already = make_user(is_paid_student=True)
    make_user(is_paid_student=True, fee_status="suspended")
    make_user(is_paid_student=False)
    fees.create_fee(already.id, 5, 2026)

    result = fees.generate_monthly_fees(5, 2026)

    assert result == {"created": 1, "skipped": 1, "month": 5, "year": 2026}
    assert FeeRecord.query.filter_by(student_id=paid.id).one().amount == 2000


def test_submit_approve_flow(make_user, make_fee, admin):
    student = make_user(fee_status="defaulter")
    fee = make_fee(student)

    fees.submit_payment(fee.id, student.id, "TX-123", payment_method="jazzcash")
    assert fee.status == "submitted"
    assert fee.transaction_id == "TX-123"

    fees.approve_fee(fee.id, admin.id, notes="Received")
    db.session.commit()

    assert fee.status == "approved"
    assert fee.approved_by == admin.id
    assert db.session.get(User, student.id).fee_status == "active"


def test_approve_keeps_defaulter_with_other_overdue(make_user, make_fee, admin):
    student = make_user(fee_status="defaulter")
    first = make_fee(student, month=1)
    make_fee(student, month=2)

    fees.approve_fee(first.id, admin.id)
    assert student.fee_status == "defaulter"


def test_submit_rules(make_user, make_fee):
    student = make_user()
    other = make_user()
    fee = make_fee(student)

    with pytest.raises(Forbidden):
        fees.submit_payment(fee.id, other.id, "TX-1")
    with pytest.raises(ValidationError):
        fees.submit_payment(fee.id, student.id, "")
    with pytest.raises(ValidationError):
        fees.submit_payment(fee.id, student.id, "TX-1", payment_method="cash")


def test_reject_only_submitted(make_user, make_fee, admin):
    student = make_user()
    fee = make_fee(student)
    with pytest.raises(ValidationError):
        fees.reject_fee(fee.id, admin.id, "No proof")

    fees.submit_payment(fee.id, student.id, "TX-9")
    fees.reject_fee(fee.id, admin.id, "Amount mismatch")
    assert fee.status == "rejected"
    assert fee.rejection_reason == "Amount mismatch"

    # A rejected payment can be resubmitted
    fees.submit_payment(fee.id, student.id, "TX-10")
    assert fee.status == "submitted"
    assert fee.rejection_reason is None


def test_summarize(make_user, make_fee):
    student = make_user()
    make_fee(student, month=1, status="approved", amount=1000)
    make_fee(student, month=2, amount=1000)
    make_fee(student, month=3, status="submitted", amount=1000)

    summary = fees.summarize(fees.fees_for_student(student.id))
    assert summary["totalFees"] == 3
    assert summary["approvedAmount"] == 1000
    assert summary["overdueCount"] == 1
    assert summary["submittedCount"] == 1
