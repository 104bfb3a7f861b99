from app.extensions import db
from app.utils.clock import utcnow


class Course(db.Model):
    __tablename__ = "course"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    category = db.Column(db.String(50), default="other")
    description = db.Column(db.Text)
    is_published = db.Column(db.Boolean, default=False)
    certificate_enabled = db.Column(db.Boolean, default=True)
    certificate_template = db.Column(
        db.Enum("default", "premium", "islamic", name="certificate_template"),
        default="islamic"
    )
    created_at = db.Column(db.DateTime, default=utcnow)

    classes = db.relationship(
        "CourseClass",
        back_populates="course",
        cascade="all"
    )
    enrollments = db.relationship("Enrollment", back_populates="course")

    @property
    def total_classes(self):
        return sum(1 for c in self.classes if c.is_published)

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "category": self.category,
            "description": self.description,
            "is_published": self.is_published,
            "certificate_enabled": self.certificate_enabled,
            "certificate_template": self.certificate_template,
            "total_classes": self.total_classes,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class CourseClass(db.Model):
    """A single video class. ``is_locked`` is the global default for every student."""

    __tablename__ = "course_class"
    __table_args__ = (
        db.Index("ix_course_class_order", "course_id", "section", "order"),
    )

    id = db.Column(db.Integer, primary_key=True)
    course_id = db.Column(db.Integer, db.ForeignKey("course.id", ondelete="CASCADE"), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, default="")
    section = db.Column(db.String(120), nullable=False)
    order = db.Column(db.Integer, default=0)

    video_url = db.Column(db.String(500), nullable=False)
    video_id = db.Column(db.String(32))
    duration = db.Column(db.Float, default=0)  # minutes
    notes = db.Column(db.Text, default="")

    is_locked = db.Column(db.Boolean, nullable=False)
    is_published = db.Column(db.Boolean, nullable=False)
    is_preview = db.Column(db.Boolean, nullable=False)
    # Stored for the admin UI only; access checks ignore it.
    unlock_date = db.Column(db.DateTime, nullable=True)

    created_by = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=True)
    updated_by = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    course = db.relationship("Course", back_populates="classes")
    progress = db.relationship("Progress", back_populates="course_class", cascade="all")
    overrides = db.relationship("ClassAccessOverride", back_populates="course_class", cascade="all")

    def to_dict(self, full=True):
        data = {
            "id": self.id,
            "course_id": self.course_id,
            "title": self.title,
            "section": self.section,
            "order": self.order,
            "duration": self.duration,
            "is_locked": self.is_locked,
            "is_published": self.is_published,
            "is_preview": self.is_preview,
        }
        if full:
            data.update({
                "description": self.description,
                "video_url": self.video_url,
                "video_id": self.video_id,
                "notes": self.notes,
                "unlock_date": self.unlock_date.isoformat() if self.unlock_date else None,
            })
        return data

    def __repr__(self):
        return f"<CourseClass {self.id} {self.title!r}>"
