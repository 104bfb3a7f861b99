"""
Admin action trail. Written after the primary commit in its own
transaction; a failure here is logged and never undoes the action.
"""

import logging

from flask import has_request_context, request
from sqlalchemy.exc import SQLAlchemyError

from app.extensions import db
from app.models import AuditLog

logger = logging.getLogger(__name__)


def record_audit(actor_id, action, target_type=None, target_id=None, description=None, details=None):
    ip_address = request.remote_addr if has_request_context() else None
    entry = AuditLog(
        actor_id=actor_id,
        action=action,
        target_type=target_type,
        target_id=target_id,
        description=description,
        details=details or {},
        ip_address=ip_address,
    )
    try:
        db.session.add(entry)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.warning("Could not write audit log %s: %s", action, e)
        return None
    return entry
