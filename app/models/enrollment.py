from app.extensions import db
from app.utils.clock import utcnow


class Enrollment(db.Model):
    __tablename__ = "enrollment"
    __table_args__ = (
        db.UniqueConstraint("user_id", "course_id", name="uq_enrollment_user_course"),
        db.Index("ix_enrollment_course_status", "course_id", "status"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    course_id = db.Column(db.Integer, db.ForeignKey('course.id'), nullable=False)
    status = db.Column(
        db.Enum("active", "completed", "suspended", "expired", name="enrollment_status"),
        nullable=False,
        default="active"
    )
    enrollment_type = db.Column(
        db.Enum("paid", "free", "granted", name="enrollment_type"),
        nullable=False,
        default="granted"
    )
    enrolled_by = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    enrolled_at = db.Column(db.DateTime, default=utcnow)
    expires_at = db.Column(db.DateTime, nullable=True)
    notes = db.Column(db.Text, default="")

    # Access block (fee default or manual)
    access_blocked = db.Column(db.Boolean, nullable=False, default=False)
    blocked_reason = db.Column(db.String(255), nullable=True)
    blocked_at = db.Column(db.DateTime, nullable=True)
    blocked_by = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)

    # Progress snapshot, recomputed from Progress rows
    completed_classes = db.Column(db.Integer, nullable=False, default=0)
    total_classes = db.Column(db.Integer, nullable=False, default=0)
    percentage = db.Column(db.Integer, nullable=False, default=0)
    last_accessed_class_id = db.Column(db.Integer, nullable=True)
    last_accessed_at = db.Column(db.DateTime, nullable=True)

    completed_at = db.Column(db.DateTime, nullable=True)
    certificate_issued = db.Column(db.Boolean, nullable=False, default=False)
    # Weak reference: no FK so purging a certificate never cascades here.
    certificate_id = db.Column(db.Integer, nullable=True)

    student = db.relationship('User', back_populates='enrollments', foreign_keys=[user_id])
    course = db.relationship('Course', back_populates='enrollments')
    progress_records = db.relationship('Progress', back_populates='enrollment', cascade='all')
    class_overrides = db.relationship('ClassAccessOverride', back_populates='enrollment', cascade='all, delete-orphan')

    def can_access(self, now=None):
        if self.status not in ("active", "completed"):
            return False
        if self.access_blocked:
            return False
        if self.expires_at and self.expires_at < (now or utcnow()):
            return False
        return True

    def override_map(self):
        return {o.class_id: o.state for o in self.class_overrides}

    def progress_dict(self):
        return {
            "completedClasses": self.completed_classes,
            "totalClasses": self.total_classes,
            "percentage": self.percentage,
            "lastAccessedClass": self.last_accessed_class_id,
            "lastAccessedAt": self.last_accessed_at.isoformat() if self.last_accessed_at else None,
        }

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "course_id": self.course_id,
            "status": self.status,
            "enrollment_type": self.enrollment_type,
            "enrolled_at": self.enrolled_at.isoformat() if self.enrolled_at else None,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "access_blocked": self.access_blocked,
            "blocked_reason": self.blocked_reason,
            "blocked_at": self.blocked_at.isoformat() if self.blocked_at else None,
            "progress": self.progress_dict(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "certificate_issued": self.certificate_issued,
            "certificate_id": self.certificate_id,
            "notes": self.notes,
        }


class ClassAccessOverride(db.Model):
    """Per-student override of a class's global lock flag.

    One row per (enrollment, class); no row means the class inherits its
    global ``is_locked`` value.
    """

    __tablename__ = "class_access_override"
    __table_args__ = (
        db.UniqueConstraint("enrollment_id", "class_id", name="uq_override_enrollment_class"),
    )

    id = db.Column(db.Integer, primary_key=True)
    enrollment_id = db.Column(db.Integer, db.ForeignKey("enrollment.id", ondelete="CASCADE"), nullable=False)
    class_id = db.Column(db.Integer, db.ForeignKey("course_class.id", ondelete="CASCADE"), nullable=False)
    state = db.Column(db.Enum("unlocked", "locked", name="override_state"), nullable=False)
    updated_by = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    enrollment = db.relationship("Enrollment", back_populates="class_overrides")
    course_class = db.relationship("CourseClass", back_populates="overrides")
