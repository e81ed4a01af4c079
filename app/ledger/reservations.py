from __future__ import annotations

from decimal import Decimal, InvalidOperation

from flask import current_app

from app.core.errors import (
    AlreadyReserved,
    InactiveGraveyard,
    IncorrectPayment,
    InvalidOwner,
    NotOwner,
    NotReserved,
)
from app.core.extensions import db
from app.core.hashes import is_empty_hash, to_content_hash
from app.core.models import DeceasedNameEntry, Grave, LedgerEventType, UserGrave, epoch_now
from app.core.utils import normalize_account, to_amount, to_int
from app.ledger.analytics import ledger_stats, record_reservation
from app.ledger.events import emit_event
from app.ledger.registry import grave_by_id
from app.ledger.serial import serialized
from app.ledger.withdrawals import credit_pending_withdrawal


def _exact_payment(payment: Decimal | float | int | str, price: Decimal) -> Decimal:
    # no rounding: 0.5000001 must not pay for a 0.5 grave
    try:
        amount = to_amount(payment)
    except (ValueError, InvalidOperation) as exc:
        raise IncorrectPayment() from exc
    if not amount.is_finite() or amount != Decimal(price):
        raise IncorrectPayment()
    return amount


def _burial_timestamp(burial_date: int | None) -> int:
    value = to_int(burial_date)
    if value < 0:
        raise ValueError("Burial date cannot be negative")
    return value


@serialized
def reserve_grave(
    grave_id: int,
    payment: Decimal | float | int | str,
    metadata_hash: bytes | str | None,
    deceased_name_hash: bytes | str | None,
    burial_date: int | None,
    caller: str | None,
) -> Grave:
    grave = grave_by_id(grave_id)
    reserver = normalize_account(caller)
    if not reserver:
        raise InvalidOwner("Invalid caller address")
    if grave.reserved:
        raise AlreadyReserved()
    amount = _exact_payment(payment, grave.price)
    if not grave.graveyard.active:
        raise InactiveGraveyard()
    metadata = to_content_hash(metadata_hash)
    name_hash = to_content_hash(deceased_name_hash)
    burial = _burial_timestamp(burial_date)

    now = epoch_now()
    previous_owner = grave.owner
    grave.owner = reserver
    grave.reserved = True
    grave.metadata_hash = metadata
    grave.deceased_name_hash = name_hash
    grave.burial_date = burial
    grave.timestamp = now

    db.session.add(UserGrave(account=reserver, grave_id=grave.id))
    if not is_empty_hash(name_hash):
        db.session.add(DeceasedNameEntry(name_hash=name_hash, grave_id=grave.id))
    credit_pending_withdrawal(previous_owner, amount)
    record_reservation(ledger_stats(for_update=True), amount, burial or now, now)
    emit_event(
        LedgerEventType.GRAVE_RESERVED,
        graveyard_id=grave.graveyard_id,
        grave_id=grave.id,
        account=reserver,
        amount=amount,
        timestamp=now,
        previous_owner=previous_owner,
    )
    current_app.logger.info("Grave %s reserved by %s for %s", grave.id, reserver, amount)
    return grave


@serialized
def update_burial_record(grave_id: int, metadata_hash: bytes | str, caller: str | None) -> Grave:
    grave = grave_by_id(grave_id)
    if not grave.reserved:
        raise NotReserved()
    if normalize_account(caller) != grave.owner:
        raise NotOwner("Not grave owner")
    grave.metadata_hash = to_content_hash(metadata_hash)
    emit_event(
        LedgerEventType.BURIAL_RECORD_UPDATED,
        graveyard_id=grave.graveyard_id,
        grave_id=grave.id,
        account=grave.owner,
        metadata_hash=grave.metadata_hash,
    )
    return grave


def get_user_graves(account: str | None) -> list[int]:
    rows = (
        db.session.query(UserGrave.grave_id)
        .filter(UserGrave.account == normalize_account(account))
        .order_by(UserGrave.id.asc())
        .all()
    )
    return [grave_id for (grave_id,) in rows]


def search_by_deceased_name(name_hash: bytes | str) -> list[int]:
    key = to_content_hash(name_hash)
    if is_empty_hash(key):
        return []
    rows = (
        db.session.query(DeceasedNameEntry.grave_id)
        .filter(DeceasedNameEntry.name_hash == key)
        .order_by(DeceasedNameEntry.id.asc())
        .all()
    )
    return [grave_id for (grave_id,) in rows]
