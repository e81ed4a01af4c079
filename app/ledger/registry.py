from __future__ import annotations

from decimal import Decimal
from typing import Sequence

from flask import current_app

from app.core.errors import (
    CapacityExceeded,
    EmptyName,
    InactiveGraveyard,
    InvalidCapacity,
    InvalidCoordinates,
    InvalidOwner,
    InvalidPrice,
    LengthMismatch,
    NotAuthorized,
    NotFound,
    NotOwner,
)
from app.core.extensions import db
from app.core.hashes import hash_hex, to_content_hash
from app.core.models import Grave, Graveyard, LedgerEventType, LedgerStats, epoch_now
from app.core.utils import fits_amount_scale, normalize_account, to_amount, to_int
from app.ledger.access import is_owner_or_admin
from app.ledger.analytics import ledger_stats, record_grave_added
from app.ledger.events import emit_event
from app.ledger.serial import serialized

COORD_SCALE = 1_000_000
MAX_LATITUDE = 90 * COORD_SCALE
MAX_LONGITUDE = 180 * COORD_SCALE
DEFAULT_GRAVEYARD_GPS_ACCURACY = 10


def graveyard_by_id(graveyard_id: int) -> Graveyard:
    graveyard = db.session.get(Graveyard, graveyard_id)
    if not graveyard:
        raise NotFound("Graveyard does not exist")
    return graveyard


def grave_by_id(grave_id: int) -> Grave:
    grave = db.session.get(Grave, grave_id)
    if not grave:
        raise NotFound("Grave does not exist")
    return grave


def _validate_coordinates(latitude: int, longitude: int) -> tuple[int, int]:
    try:
        latitude, longitude = to_int(latitude), to_int(longitude)
    except ValueError as exc:
        raise InvalidCoordinates("Coordinates must be integers scaled by 1e6") from exc
    if abs(latitude) > MAX_LATITUDE or abs(longitude) > MAX_LONGITUDE:
        raise InvalidCoordinates()
    return latitude, longitude


def _validated_price(price: Decimal | float | int | str) -> Decimal:
    try:
        amount = to_amount(price)
    except ValueError as exc:
        raise InvalidPrice() from exc
    # more than six decimals would be truncated on storage
    if not fits_amount_scale(amount) or amount <= 0:
        raise InvalidPrice()
    return amount


def _writable_graveyard(graveyard_id: int, caller: str | None) -> Graveyard:
    graveyard = graveyard_by_id(graveyard_id)
    if normalize_account(caller) != graveyard.owner:
        raise NotOwner("Not graveyard owner")
    if not graveyard.active:
        raise InactiveGraveyard()
    return graveyard


def _check_capacity(graveyard: Graveyard, extra: int) -> None:
    if not current_app.config.get("LEDGER_ENFORCE_CAPACITY", True):
        return
    if graveyard.grave_count + extra > graveyard.num_plots:
        raise CapacityExceeded(
            f"Graveyard {graveyard.id} has {graveyard.free_plots} free plots, {extra} requested"
        )


@serialized
def create_graveyard(
    owner: str,
    name: str,
    location: str,
    num_plots: int,
    latitude: int = 0,
    longitude: int = 0,
    boundary_hash: bytes | str | None = None,
    total_area: int = 0,
    gps_accuracy: int = DEFAULT_GRAVEYARD_GPS_ACCURACY,
) -> Graveyard:
    owner_account = normalize_account(owner)
    if not owner_account:
        raise InvalidOwner()
    name = (name or "").strip()
    if not name:
        raise EmptyName()
    try:
        num_plots = to_int(num_plots)
    except ValueError as exc:
        raise InvalidCapacity() from exc
    if num_plots <= 0:
        raise InvalidCapacity()
    latitude, longitude = _validate_coordinates(latitude, longitude)
    boundary = to_content_hash(boundary_hash)
    gps_accuracy, total_area = to_int(gps_accuracy), to_int(total_area)

    stats = ledger_stats(for_update=True)
    graveyard_id = stats.total_graveyards + 1
    graveyard = Graveyard(
        id=graveyard_id,
        owner=owner_account,
        name=name,
        location=(location or "").strip(),
        num_plots=num_plots,
        grave_count=0,
        active=True,
        latitude=latitude,
        longitude=longitude,
        gps_accuracy=gps_accuracy,
        gps_timestamp=epoch_now(),
        boundary_hash=boundary,
        total_area=total_area,
    )
    db.session.add(graveyard)
    stats.total_graveyards = graveyard_id
    emit_event(
        LedgerEventType.GRAVEYARD_ADDED,
        graveyard_id=graveyard_id,
        account=owner_account,
        name=graveyard.name,
        location=graveyard.location,
        latitude=latitude,
        longitude=longitude,
    )
    current_app.logger.info("Graveyard %s added for %s (%s plots)", graveyard_id, owner_account, num_plots)
    return graveyard


@serialized
def set_graveyard_active(graveyard_id: int, active: bool, caller: str | None) -> Graveyard:
    graveyard = graveyard_by_id(graveyard_id)
    if not is_owner_or_admin(graveyard.owner, caller):
        raise NotOwner("Not graveyard owner")
    graveyard.active = bool(active)
    emit_event(
        LedgerEventType.GRAVEYARD_STATUS_CHANGED,
        graveyard_id=graveyard.id,
        account=normalize_account(caller),
        active=graveyard.active,
    )
    return graveyard


def _create_grave(
    graveyard: Graveyard,
    stats: LedgerStats,
    price: Decimal,
    location_hash: bytes,
    latitude: int = 0,
    longitude: int = 0,
    gps_accuracy: int = 0,
) -> Grave:
    grave_id = stats.total_graves + 1
    has_gps = bool(latitude or longitude or gps_accuracy)
    grave = Grave(
        id=grave_id,
        graveyard_id=graveyard.id,
        owner=graveyard.owner,
        price=price,
        reserved=False,
        maintained=False,
        location_hash=location_hash,
        latitude=latitude,
        longitude=longitude,
        gps_accuracy=gps_accuracy,
        gps_timestamp=epoch_now() if has_gps else 0,
    )
    db.session.add(grave)
    graveyard.grave_count += 1
    record_grave_added(stats, grave_id, price)
    emit_event(
        LedgerEventType.GRAVE_ADDED,
        graveyard_id=graveyard.id,
        grave_id=grave_id,
        account=graveyard.owner,
        amount=price,
        location_hash=location_hash,
    )
    if has_gps:
        emit_event(
            LedgerEventType.GPS_UPDATED,
            graveyard_id=graveyard.id,
            grave_id=grave_id,
            latitude=latitude,
            longitude=longitude,
            accuracy=gps_accuracy,
        )
    return grave


@serialized
def add_grave(
    graveyard_id: int,
    price: Decimal | float | int | str,
    location_hash: bytes | str | None,
    caller: str | None,
    latitude: int = 0,
    longitude: int = 0,
    gps_accuracy: int = 0,
) -> Grave:
    graveyard = _writable_graveyard(graveyard_id, caller)
    amount = _validated_price(price)
    latitude, longitude = _validate_coordinates(latitude, longitude)
    location = to_content_hash(location_hash)
    gps_accuracy = to_int(gps_accuracy)
    _check_capacity(graveyard, 1)

    grave = _create_grave(graveyard, ledger_stats(for_update=True), amount, location, latitude, longitude, gps_accuracy)
    current_app.logger.info("Grave %s added to graveyard %s at %s", grave.id, graveyard.id, amount)
    return grave


@serialized
def add_graves_batch(
    graveyard_id: int,
    prices: Sequence[Decimal | float | int | str],
    location_hashes: Sequence[bytes | str | None],
    caller: str | None,
) -> list[Grave]:
    if len(prices) != len(location_hashes):
        raise LengthMismatch()
    graveyard = _writable_graveyard(graveyard_id, caller)
    # validate every row before creating any of them
    rows = [(_validated_price(price), to_content_hash(location)) for price, location in zip(prices, location_hashes)]
    _check_capacity(graveyard, len(rows))

    stats = ledger_stats(for_update=True)
    graves = [_create_grave(graveyard, stats, amount, location) for amount, location in rows]
    current_app.logger.info("Batch of %s graves added to graveyard %s", len(graves), graveyard.id)
    return graves


@serialized
def update_graveyard_gps(
    graveyard_id: int,
    latitude: int,
    longitude: int,
    accuracy: int,
    caller: str | None,
) -> Graveyard:
    graveyard = graveyard_by_id(graveyard_id)
    if not is_owner_or_admin(graveyard.owner, caller):
        raise NotAuthorized()
    graveyard.latitude, graveyard.longitude = _validate_coordinates(latitude, longitude)
    graveyard.gps_accuracy = to_int(accuracy)
    graveyard.gps_timestamp = epoch_now()
    emit_event(
        LedgerEventType.GRAVEYARD_GPS_UPDATED,
        graveyard_id=graveyard.id,
        latitude=graveyard.latitude,
        longitude=graveyard.longitude,
    )
    return graveyard


@serialized
def update_graveyard_boundary(graveyard_id: int, boundary_hash: bytes | str, caller: str | None) -> Graveyard:
    graveyard = graveyard_by_id(graveyard_id)
    if not is_owner_or_admin(graveyard.owner, caller):
        raise NotAuthorized()
    graveyard.boundary_hash = to_content_hash(boundary_hash)
    emit_event(
        LedgerEventType.GRAVEYARD_BOUNDARY_UPDATED,
        graveyard_id=graveyard.id,
        boundary_hash=graveyard.boundary_hash,
    )
    return graveyard


@serialized
def update_graveyard_image(graveyard_id: int, image_hash: bytes | str, caller: str | None) -> Graveyard:
    graveyard = graveyard_by_id(graveyard_id)
    if not is_owner_or_admin(graveyard.owner, caller):
        raise NotAuthorized()
    graveyard.image_hash = to_content_hash(image_hash)
    emit_event(
        LedgerEventType.GRAVEYARD_IMAGE_UPDATED,
        graveyard_id=graveyard.id,
        image_hash=graveyard.image_hash,
    )
    return graveyard


@serialized
def update_grave_gps(grave_id: int, latitude: int, longitude: int, accuracy: int, caller: str | None) -> Grave:
    grave = grave_by_id(grave_id)
    if not is_owner_or_admin(grave.graveyard.owner, caller):
        raise NotAuthorized()
    grave.latitude, grave.longitude = _validate_coordinates(latitude, longitude)
    grave.gps_accuracy = to_int(accuracy)
    grave.gps_timestamp = epoch_now()
    emit_event(
        LedgerEventType.GPS_UPDATED,
        graveyard_id=grave.graveyard_id,
        grave_id=grave.id,
        latitude=grave.latitude,
        longitude=grave.longitude,
        accuracy=grave.gps_accuracy,
    )
    return grave


def get_graveyard_graves(graveyard_id: int) -> list[int]:
    graveyard_by_id(graveyard_id)
    rows = db.session.query(Grave.id).filter(Grave.graveyard_id == graveyard_id).order_by(Grave.id.asc()).all()
    return [grave_id for (grave_id,) in rows]


def get_available_graves(graveyard_id: int) -> list[int]:
    graveyard_by_id(graveyard_id)
    rows = (
        db.session.query(Grave.id)
        .filter(Grave.graveyard_id == graveyard_id, Grave.reserved.is_(False))
        .order_by(Grave.id.asc())
        .all()
    )
    return [grave_id for (grave_id,) in rows]


def is_reserved(grave_id: int) -> bool:
    return grave_by_id(grave_id).reserved


def total_graveyards() -> int:
    stats = db.session.get(LedgerStats, 1)
    return stats.total_graveyards if stats else 0


def total_graves() -> int:
    stats = db.session.get(LedgerStats, 1)
    return stats.total_graves if stats else 0


def gps_record(entity: Graveyard | Grave) -> dict[str, int]:
    return {
        "latitude": entity.latitude,
        "longitude": entity.longitude,
        "accuracy": entity.gps_accuracy,
        "timestamp": entity.gps_timestamp,
    }


def get_graveyard_gps(graveyard_id: int) -> dict[str, int]:
    return gps_record(graveyard_by_id(graveyard_id))


def get_grave_gps(grave_id: int) -> dict[str, int]:
    return gps_record(grave_by_id(grave_id))


def graveyard_record(graveyard: Graveyard) -> dict[str, object]:
    return {
        "id": graveyard.id,
        "owner": graveyard.owner,
        "name": graveyard.name,
        "location": graveyard.location,
        "num_plots": graveyard.num_plots,
        "grave_ids": get_graveyard_graves(graveyard.id),
        "active": graveyard.active,
        "gps": gps_record(graveyard),
        "boundary_hash": hash_hex(graveyard.boundary_hash),
        "total_area": graveyard.total_area,
        "image_hash": hash_hex(graveyard.image_hash),
    }


def grave_record(grave: Grave) -> dict[str, object]:
    return {
        "id": grave.id,
        "graveyard_id": grave.graveyard_id,
        "owner": grave.owner,
        "price": str(grave.price),
        "reserved": grave.reserved,
        "maintained": grave.maintained,
        "location_hash": hash_hex(grave.location_hash),
        "metadata_hash": hash_hex(grave.metadata_hash),
        "timestamp": grave.timestamp,
        "gps": gps_record(grave),
        "deceased_name_hash": hash_hex(grave.deceased_name_hash),
        "burial_date": grave.burial_date,
    }
