from __future__ import annotations

from functools import wraps

from flask import abort
from flask_login import current_user

from app.ledger.access import is_admin


def require_account(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if not current_user.is_authenticated:
            abort(401)
        return fn(*args, **kwargs)

    return wrapper


def require_admin(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if not current_user.is_authenticated:
            abort(401)
        if not is_admin(current_user.id):
            abort(403)
        return fn(*args, **kwargs)

    return wrapper
