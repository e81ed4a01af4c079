from __future__ import annotations

import threading
from contextlib import contextmanager
from functools import wraps

from app.core.extensions import db

# One writer at a time for the whole ledger.
_ledger_lock = threading.RLock()


@contextmanager
def ledger_transaction():
    """Run a block as one serialized ledger mutation: commit on success, rollback on error."""
    with _ledger_lock:
        try:
            yield db.session
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise


def serialized(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        with ledger_transaction():
            return fn(*args, **kwargs)

    return wrapper
