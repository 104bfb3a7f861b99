from app.extensions import db
from app.utils.clock import utcnow

MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]


class FeeRecord(db.Model):
    __tablename__ = "fee_record"
    __table_args__ = (
        db.UniqueConstraint("student_id", "month", "year", name="uq_fee_student_month_year"),
        db.Index("ix_fee_status_due", "status", "due_date"),
    )

    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    month = db.Column(db.Integer, nullable=False)  # 1-12
    year = db.Column(db.Integer, nullable=False)
    amount = db.Column(db.Float, nullable=False)
    status = db.Column(
        db.Enum("pending", "submitted", "approved", "rejected", name="fee_record_status"),
        nullable=False,
        default="pending"
    )
    due_date = db.Column(db.DateTime, nullable=False)

    # Payment proof submitted by the student
    payment_method = db.Column(
        db.Enum("bank_transfer", "jazzcash", "easypaisa", "other", name="fee_payment_method"),
        default="bank_transfer"
    )
    transaction_id = db.Column(db.String(120), nullable=True)
    proof_url = db.Column(db.String(500), nullable=True)
    student_notes = db.Column(db.Text, nullable=True)
    submitted_at = db.Column(db.DateTime, nullable=True)

    # Admin review
    approved_by = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    approved_at = db.Column(db.DateTime, nullable=True)
    rejected_by = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    rejected_at = db.Column(db.DateTime, nullable=True)
    rejection_reason = db.Column(db.String(255), nullable=True)
    admin_notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, default=utcnow)

    student = db.relationship('User', back_populates='fees', foreign_keys=[student_id])

    @property
    def month_name(self):
        return MONTH_NAMES[self.month - 1]

    def is_overdue(self, now=None):
        return self.status == "pending" and self.due_date < (now or utcnow())

    def to_dict(self):
        return {
            "id": self.id,
            "student_id": self.student_id,
            "month": self.month,
            "month_name": self.month_name,
            "year": self.year,
            "amount": self.amount,
            "status": self.status,
            "due_date": self.due_date.isoformat(),
            "is_overdue": self.is_overdue(),
            "payment_method": self.payment_method,
            "transaction_id": self.transaction_id,
            "proof_url": self.proof_url,
            "submitted_at": self.submitted_at.isoformat() if self.submitted_at else None,
            "approved_at": self.approved_at.isoformat() if self.approved_at else None,
            "rejected_at": self.rejected_at.isoformat() if self.rejected_at else None,
            "rejection_reason": self.rejection_reason,
            "admin_notes": self.admin_notes,
        }
