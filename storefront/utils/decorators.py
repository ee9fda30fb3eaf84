# ------- storefront/utils/decorators.py -------
from functools import wraps

from flask_jwt_extended import get_jwt, verify_jwt_in_request

from .api import err


def _current_role():
    verify_jwt_in_request()
    return get_jwt().get("role")


def role_required(*roles, message: str | None = None):
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            role = _current_role()
            if not role:
                return err("Unauthorized", 401, "UNAUTHORIZED")
            if role not in roles:
                return err(message or "Forbidden", 403, "FORBIDDEN")
            return fn(*args, **kwargs)
        return wrapper
    return decorator

