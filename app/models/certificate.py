from app.extensions import db
from app.utils.clock import utcnow

ISSUED_ONLY = db.text("status = 'issued'")


class Certificate(db.Model):
    __tablename__ = "certificate"
    __table_args__ = (
        # At most one issued certificate per (user, course); revoked ones may pile up.
        db.Index(
            "uq_certificate_issued_user_course",
            "user_id",
            "course_id",
            unique=True,
            sqlite_where=ISSUED_ONLY,
            postgresql_where=ISSUED_ONLY,
        ),
    )

    id = db.Column(db.Integer, primary_key=True)
    certificate_number = db.Column(db.String(40), unique=True, nullable=False)
    verification_code = db.Column(db.String(64), unique=True, nullable=False)

    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    course_id = db.Column(db.Integer, db.ForeignKey('course.id'), nullable=False)
    enrollment_id = db.Column(db.Integer, nullable=True)

    # Snapshot taken at issue time; later edits to user/course never touch these.
    student_name = db.Column(db.String(120), nullable=False)
    student_code = db.Column(db.String(40), nullable=True)
    course_title = db.Column(db.String(200), nullable=False)
    course_category = db.Column(db.String(50), nullable=True)

    completion_date = db.Column(db.DateTime, nullable=False)
    issued_at = db.Column(db.DateTime, default=utcnow)
    issued_by = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    template = db.Column(db.Enum("default", "premium", "islamic", name="cert_template"), default="islamic")
    grade = db.Column(db.Enum("distinction", "merit", "pass", "none", name="certificate_grade"), default="pass")
    instructor_name = db.Column(db.String(120))
    instructor_title = db.Column(db.String(120))

    status = db.Column(db.Enum("issued", "revoked", name="certificate_status"), nullable=False, default="issued")
    revoked_at = db.Column(db.DateTime, nullable=True)
    revoked_by = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    revocation_reason = db.Column(db.String(255), nullable=True)

    def to_dict(self):
        return {
            "id": self.id,
            "certificate_number": self.certificate_number,
            "verification_code": self.verification_code,
            "user_id": self.user_id,
            "course_id": self.course_id,
            "enrollment_id": self.enrollment_id,
            "student_name": self.student_name,
            "student_code": self.student_code,
            "course_title": self.course_title,
            "course_category": self.course_category,
            "completion_date": self.completion_date.isoformat() if self.completion_date else None,
            "issued_at": self.issued_at.isoformat() if self.issued_at else None,
            "issued_by": self.issued_by,
            "template": self.template,
            "grade": self.grade,
            "instructor_name": self.instructor_name,
            "instructor_title": self.instructor_title,
            "status": self.status,
            "revoked_at": self.revoked_at.isoformat() if self.revoked_at else None,
            "revoked_by": self.revoked_by,
            "revocation_reason": self.revocation_reason,
        }

    def __repr__(self):
        return f"<Certificate {self.certificate_number} {self.status}>"


class CertificateSequence(db.Model):
    __tablename__ = "certificate_sequence"

    year = db.Column(db.Integer, primary_key=True, autoincrement=False)
    last_value = db.Column(db.Integer, nullable=False, default=0)
