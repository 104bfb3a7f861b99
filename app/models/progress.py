from app.extensions import db
from app.utils.clock import utcnow


class Progress(db.Model):
    __tablename__ = "progress"
    __table_args__ = (
        db.UniqueConstraint("user_id", "class_id", name="uq_progress_user_class"),
        db.Index("ix_progress_user_course", "user_id", "course_id"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    course_id = db.Column(db.Integer, db.ForeignKey('course.id'), nullable=False)
    class_id = db.Column(db.Integer, db.ForeignKey('course_class.id', ondelete="CASCADE"), nullable=False)
    enrollment_id = db.Column(db.Integer, db.ForeignKey('enrollment.id', ondelete="CASCADE"), nullable=False, index=True)

    status = db.Column(
        db.Enum("not_started", "in_progress", "completed", name="progress_status"),
        nullable=False,
        default="not_started"
    )
    watch_progress = db.Column(db.Float, nullable=False, default=0)  # percent, 0-100
    last_position = db.Column(db.Float, nullable=False, default=0)  # seconds
    total_watch_time = db.Column(db.Float, nullable=False, default=0)  # seconds
    access_count = db.Column(db.Integer, nullable=False, default=0)

    started_at = db.Column(db.DateTime, nullable=True)
    completed_at = db.Column(db.DateTime, nullable=True)
    last_accessed_at = db.Column(db.DateTime, default=utcnow)

    course_class = db.relationship('CourseClass', back_populates='progress')
    enrollment = db.relationship('Enrollment', back_populates='progress_records')

    def to_dict(self):
        return {
            "id": self.id,
            "class_id": self.class_id,
            "course_id": self.course_id,
            "status": self.status,
            "watch_progress": self.watch_progress,
            "last_position": self.last_position,
            "total_watch_time": self.total_watch_time,
            "access_count": self.access_count,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "last_accessed_at": self.last_accessed_at.isoformat() if self.last_accessed_at else None,
        }
