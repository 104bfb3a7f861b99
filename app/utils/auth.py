from functools import wraps

from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request

from app.extensions import db
from app.models import User
from app.utils.errors import Forbidden


def current_user_id():
    identity = get_jwt_identity()
    return int(identity) if identity is not None else None


def current_user():
    user_id = current_user_id()
    user = db.session.get(User, user_id) if user_id is not None else None
    if not user or not user.is_active:
        raise Forbidden("Account not found or suspended")
    return user


def role_required(*roles):
    """Allow the wrapped view only for users whose role is in ``roles``."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            user = current_user()
            if user.role not in roles:
                raise Forbidden("Admin access required" if roles == ("admin",) else "Not authorized")
            return fn(*args, **kwargs)
        return wrapper
    return decorator
