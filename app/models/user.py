from app.extensions import db
from app.utils.clock import utcnow


class User(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    full_name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    role = db.Column(db.Enum('student', 'admin', name="user_role"), nullable=False, default='student')
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=utcnow)

    # Paid student fields
    student_code = db.Column(db.String(40), unique=True, nullable=True)
    is_paid_student = db.Column(db.Boolean, default=False)
    monthly_fee = db.Column(db.Float, default=0.0)
    fee_status = db.Column(
        db.Enum('active', 'defaulter', 'suspended', name="fee_status"),
        nullable=False,
        default='active'
    )

    enrollments = db.relationship('Enrollment', back_populates='student', foreign_keys='Enrollment.user_id')
    fees = db.relationship('FeeRecord', back_populates='student', foreign_keys='FeeRecord.student_id')

    def to_dict(self):
        return {
            "id": self.id,
            "full_name": self.full_name,
            "email": self.email,
            "role": self.role,
            "student_code": self.student_code,
            "fee_status": self.fee_status,
        }

    def __repr__(self):
        return f"<User {self.email}>"
