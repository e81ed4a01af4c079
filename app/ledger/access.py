from __future__ import annotations

from app.core.errors import InvalidOwner
from app.core.extensions import db
from app.core.models import LedgerAdmin, LedgerEventType
from app.core.utils import normalize_account
from app.ledger.events import emit_event
from app.ledger.serial import serialized


def is_admin(account: str | None) -> bool:
    account = normalize_account(account)
    if not account:
        return False
    return db.session.get(LedgerAdmin, account) is not None


def is_owner_or_admin(owner: str, caller: str | None) -> bool:
    caller = normalize_account(caller)
    if not caller:
        return False
    return caller == owner or is_admin(caller)


@serialized
def grant_admin(account: str) -> LedgerAdmin:
    account = normalize_account(account)
    if not account:
        raise InvalidOwner("Invalid admin address")
    existing = db.session.get(LedgerAdmin, account)
    if existing:
        return existing
    admin = LedgerAdmin(account=account)
    db.session.add(admin)
    emit_event(LedgerEventType.ADMIN_GRANTED, account=account)
    return admin


@serialized
def revoke_admin(account: str) -> bool:
    admin = db.session.get(LedgerAdmin, normalize_account(account))
    if admin is None:
        return False
    db.session.delete(admin)
    emit_event(LedgerEventType.ADMIN_REVOKED, account=admin.account)
    return True
