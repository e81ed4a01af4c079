from __future__ import annotations

from flask import jsonify, request
from flask_login import current_user

from app.core.errors import LedgerError
from app.core.permissions import require_account, require_admin
from app.ledger import ledger_bp
from app.ledger.analytics import get_analytics, get_monthly_revenue, get_yearly_stats
from app.ledger.events import event_record, list_events
from app.ledger.maintenance import maintain_grave
from app.ledger.registry import (
    add_grave,
    add_graves_batch,
    create_graveyard,
    get_available_graves,
    get_grave_gps,
    get_graveyard_gps,
    get_graveyard_graves,
    grave_by_id,
    grave_record,
    graveyard_by_id,
    graveyard_record,
    set_graveyard_active,
    total_graves,
    total_graveyards,
    update_grave_gps,
    update_graveyard_boundary,
    update_graveyard_gps,
    update_graveyard_image,
)
from app.ledger.reservations import (
    get_user_graves,
    reserve_grave,
    search_by_deceased_name,
    update_burial_record,
)
from app.ledger.withdrawals import get_pending_withdrawal, withdraw


def _payload() -> dict:
    return request.get_json(silent=True) or {}


@ledger_bp.errorhandler(LedgerError)
def ledger_error(exc: LedgerError):
    return jsonify({"error": exc.code, "message": exc.message}), exc.status


@ledger_bp.errorhandler(ValueError)
def invalid_input(exc: ValueError):
    return jsonify({"error": "InvalidInput", "message": str(exc)}), 400


@ledger_bp.get("/graveyards")
def graveyard_totals():
    return jsonify({"total_graveyards": total_graveyards(), "total_graves": total_graves()})


@ledger_bp.post("/graveyards")
@require_admin
def graveyard_create():
    data = _payload()
    graveyard = create_graveyard(
        owner=data.get("owner", ""),
        name=data.get("name", ""),
        location=data.get("location", ""),
        num_plots=data.get("num_plots", 0),
        latitude=data.get("latitude", 0),
        longitude=data.get("longitude", 0),
        boundary_hash=data.get("boundary_hash"),
        total_area=data.get("total_area", 0),
    )
    return jsonify(graveyard_record(graveyard)), 201


@ledger_bp.get("/graveyards/<int:graveyard_id>")
def graveyard_detail(graveyard_id: int):
    return jsonify(graveyard_record(graveyard_by_id(graveyard_id)))


@ledger_bp.get("/graveyards/<int:graveyard_id>/graves")
def graveyard_graves(graveyard_id: int):
    if request.args.get("available", "").lower() in {"1", "true"}:
        return jsonify({"grave_ids": get_available_graves(graveyard_id)})
    return jsonify({"grave_ids": get_graveyard_graves(graveyard_id)})


@ledger_bp.get("/graveyards/<int:graveyard_id>/gps")
def graveyard_gps(graveyard_id: int):
    return jsonify(get_graveyard_gps(graveyard_id))


@ledger_bp.post("/graveyards/<int:graveyard_id>/status")
@require_account
def graveyard_status(graveyard_id: int):
    active = bool(_payload().get("active", True))
    graveyard = set_graveyard_active(graveyard_id, active, current_user.id)
    return jsonify(graveyard_record(graveyard))


@ledger_bp.put("/graveyards/<int:graveyard_id>/gps")
@require_account
def graveyard_gps_update(graveyard_id: int):
    data = _payload()
    graveyard = update_graveyard_gps(
        graveyard_id,
        data.get("latitude", 0),
        data.get("longitude", 0),
        data.get("accuracy", 0),
        current_user.id,
    )
    return jsonify(graveyard_record(graveyard))


@ledger_bp.put("/graveyards/<int:graveyard_id>/boundary")
@require_account
def graveyard_boundary_update(graveyard_id: int):
    graveyard = update_graveyard_boundary(graveyard_id, _payload().get("boundary_hash", ""), current_user.id)
    return jsonify(graveyard_record(graveyard))


@ledger_bp.put("/graveyards/<int:graveyard_id>/image")
@require_account
def graveyard_image_update(graveyard_id: int):
    graveyard = update_graveyard_image(graveyard_id, _payload().get("image_hash", ""), current_user.id)
    return jsonify(graveyard_record(graveyard))


@ledger_bp.post("/graveyards/<int:graveyard_id>/graves")
@require_account
def grave_create(graveyard_id: int):
    data = _payload()
    if "prices" in data:
        graves = add_graves_batch(
            graveyard_id,
            list(data.get("prices") or []),
            list(data.get("location_hashes") or []),
            current_user.id,
        )
        return jsonify({"graves": [grave_record(grave) for grave in graves]}), 201
    grave = add_grave(
        graveyard_id,
        data.get("price", ""),
        data.get("location_hash"),
        current_user.id,
        latitude=data.get("latitude", 0),
        longitude=data.get("longitude", 0),
        gps_accuracy=data.get("accuracy", 0),
    )
    return jsonify(grave_record(grave)), 201


@ledger_bp.get("/graves/<int:grave_id>")
def grave_detail(grave_id: int):
    return jsonify(grave_record(grave_by_id(grave_id)))


@ledger_bp.get("/graves/<int:grave_id>/gps")
def grave_gps(grave_id: int):
    return jsonify(get_grave_gps(grave_id))


@ledger_bp.put("/graves/<int:grave_id>/gps")
@require_account
def grave_gps_update(grave_id: int):
    data = _payload()
    grave = update_grave_gps(
        grave_id,
        data.get("latitude", 0),
        data.get("longitude", 0),
        data.get("accuracy", 0),
        current_user.id,
    )
    return jsonify(grave_record(grave))


@ledger_bp.post("/graves/<int:grave_id>/reserve")
@require_account
def grave_reserve(grave_id: int):
    data = _payload()
    grave = reserve_grave(
        grave_id,
        payment=data.get("payment", ""),
        metadata_hash=data.get("metadata_hash"),
        deceased_name_hash=data.get("deceased_name_hash"),
        burial_date=data.get("burial_date", 0),
        caller=current_user.id,
    )
    return jsonify(grave_record(grave))


@ledger_bp.post("/graves/<int:grave_id>/burial-record")
@require_account
def grave_burial_record(grave_id: int):
    grave = update_burial_record(grave_id, _payload().get("metadata_hash", ""), current_user.id)
    return jsonify(grave_record(grave))


@ledger_bp.post("/graves/<int:grave_id>/maintain")
@require_account
def grave_maintain(grave_id: int):
    return jsonify(grave_record(maintain_grave(grave_id, current_user.id)))


@ledger_bp.get("/users/<account>/graves")
def user_graves(account: str):
    return jsonify({"grave_ids": get_user_graves(account)})


@ledger_bp.get("/search")
def search_deceased():
    return jsonify({"grave_ids": search_by_deceased_name(request.args.get("name_hash", ""))})


@ledger_bp.get("/analytics")
def analytics():
    return jsonify(get_analytics().as_dict())


@ledger_bp.get("/analytics/years/<int:year>")
def analytics_year(year: int):
    return jsonify({"year": year, "reservations": get_yearly_stats(year)})


@ledger_bp.get("/analytics/months/<int:year_month>")
def analytics_month(year_month: int):
    return jsonify({"year_month": year_month, "revenue": str(get_monthly_revenue(year_month))})


@ledger_bp.get("/withdrawals/<account>")
def pending_withdrawal(account: str):
    return jsonify({"account": account.lower(), "pending": str(get_pending_withdrawal(account))})


@ledger_bp.post("/withdrawals")
@require_account
def withdrawal_create():
    payout = withdraw(current_user.id)
    return jsonify({"account": payout.account, "amount": str(payout.amount), "status": payout.status.value})


@ledger_bp.get("/events")
def events():
    after_id = request.args.get("after", 0, type=int)
    limit = request.args.get("limit", 100, type=int)
    return jsonify({"events": [event_record(entry) for entry in list_events(after_id, limit)]})
