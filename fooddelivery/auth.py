import logging
from enum import Enum
from functools import wraps

from flask import abort, redirect, request, session, url_for
from werkzeug.security import check_password_hash, generate_password_hash

from fooddelivery.database import to_object_id

logger = logging.getLogger(__name__)


class Role(str, Enum):
    CUSTOMER = "customer"
    RESTAURANT_OWNER = "restaurant_owner"
    DELIVERY_PERSON = "delivery_person"

    @classmethod
    def parse(cls, value):
        try:
            return cls(value)
        except ValueError:
            return None


# Landing page endpoint per role; must cover every Role
ROLE_HOMES = {
    Role.CUSTOMER: 'customer_home',
    Role.RESTAURANT_OWNER: 'restaurant_owner_home',
    Role.DELIVERY_PERSON: 'driver_home',
}


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password_hash: str, password: str) -> bool:
    if not password_hash:
        return False
    return check_password_hash(password_hash, password)


def current_role():
    return Role.parse(session.get('role'))


def current_user_id():
    return to_object_id(session.get('userId'))


def role_required(*roles):
    """
    Gate a view on the session's role.

    With no roles, any logged-in user passes. Page views (GET/HEAD) that fail
    the check redirect to the login page; any other method gets a 401.
    """
    allowed = {Role(r) for r in roles}

    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            role = current_role()
            if current_user_id() is None or role is None or (allowed and role not in allowed):
                logger.info("Denied %s %s for role %r", request.method, request.path, session.get('role'))
                if request.method in ('GET', 'HEAD'):
                    return redirect(url_for('login'))
                abort(401, description='Unauthorized')
            return fn(*args, **kwargs)
        return wrapper
    return decorator


login_required = role_required()
