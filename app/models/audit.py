from sqlalchemy.ext.mutable import MutableDict

from app.extensions import db
from app.utils.clock import utcnow


class AuditLog(db.Model):
    __tablename__ = "audit_log"

    id = db.Column(db.Integer, primary_key=True)
    actor_id = db.Column(db.Integer, nullable=True)
    action = db.Column(db.String(60), nullable=False, index=True)
    target_type = db.Column(db.String(40), nullable=True)
    target_id = db.Column(db.Integer, nullable=True)
    description = db.Column(db.String(255), nullable=True)
    details = db.Column(MutableDict.as_mutable(db.JSON), default=dict)
    ip_address = db.Column(db.String(100), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, index=True)
