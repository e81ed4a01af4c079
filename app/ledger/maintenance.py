from __future__ import annotations

from flask import current_app

from app.core.errors import NotAuthorized
from app.core.models import Grave, LedgerEventType, epoch_now
from app.ledger.access import is_owner_or_admin
from app.ledger.analytics import ledger_stats, record_maintenance
from app.ledger.events import emit_event
from app.ledger.registry import grave_by_id
from app.ledger.serial import serialized


@serialized
def maintain_grave(grave_id: int, caller: str | None) -> Grave:
    grave = grave_by_id(grave_id)
    if not is_owner_or_admin(grave.graveyard.owner, caller):
        raise NotAuthorized("Not authorized to maintain")
    first_time = not grave.maintained
    if first_time:
        grave.maintained = True
        record_maintenance(ledger_stats(for_update=True))
        current_app.logger.info("Grave %s marked as maintained", grave.id)
    emit_event(
        LedgerEventType.GRAVE_MAINTAINED,
        graveyard_id=grave.graveyard_id,
        grave_id=grave.id,
        timestamp=epoch_now(),
        first_time=first_time,
    )
    return grave
