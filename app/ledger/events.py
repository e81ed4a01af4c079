from __future__ import annotations

from decimal import Decimal

from app.core.extensions import db
from app.core.hashes import hash_hex
from app.core.models import LedgerEvent, LedgerEventType

MAX_EVENTS_PAGE = 500


def _json_value(value: object) -> object:
    if isinstance(value, (bytes, bytearray)):
        return hash_hex(bytes(value))
    if isinstance(value, Decimal):
        return str(value)
    return value


def emit_event(
    event_type: LedgerEventType,
    graveyard_id: int | None = None,
    grave_id: int | None = None,
    account: str = "",
    amount: Decimal | None = None,
    **payload: object,
) -> LedgerEvent:
    entry = LedgerEvent(
        event_type=event_type,
        graveyard_id=graveyard_id,
        grave_id=grave_id,
        account=account or "",
        amount=amount,
        payload={key: _json_value(value) for key, value in payload.items()},
    )
    db.session.add(entry)
    return entry


def list_events(after_id: int = 0, limit: int = 100) -> list[LedgerEvent]:
    return (
        LedgerEvent.query.filter(LedgerEvent.id > max(after_id, 0))
        .order_by(LedgerEvent.id.asc())
        .limit(max(1, min(limit, MAX_EVENTS_PAGE)))
        .all()
    )


def event_record(entry: LedgerEvent) -> dict[str, object]:
    return {
        "id": entry.id,
        "type": entry.event_type.value,
        "graveyard_id": entry.graveyard_id,
        "grave_id": entry.grave_id,
        "account": entry.account,
        "amount": str(entry.amount) if entry.amount is not None else None,
        "payload": entry.payload or {},
        "created_at": entry.created_at.isoformat() if entry.created_at else None,
    }
