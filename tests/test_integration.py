from __future__ import annotations

from decimal import Decimal

from app.core.extensions import db
from app.core.models import LedgerStats
from app.ledger.analytics import get_analytics
from app.ledger.demo import DEMO_OWNER, DEMO_PRICES
from app.ledger.registry import get_graveyard_graves
from tests.conftest import ADMIN, GRAVEYARD_OWNER, USER1, USER2, h


def hex_hash(label: str) -> str:
    return "0x" + h(label).hex()


def create_graveyard_via_api(client, as_account):
    return client.post(
        "/api/ledger/graveyards",
        json={
            "owner": GRAVEYARD_OWNER,
            "name": "Green Valley Cemetery",
            "location": "123 Cemetery Road, City",
            "num_plots": 100,
            "latitude": 40748817,
            "longitude": -73985428,
            "boundary_hash": hex_hash("QmBoundary"),
            "total_area": 10000,
        },
        headers=as_account(ADMIN),
    )


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.get_json() == {"status": "ok"}


def test_mutations_require_an_account(client, as_account):
    response = client.post("/api/ledger/graveyards", json={"name": "x"})
    assert response.status_code == 401

    response = client.post("/api/ledger/graveyards", json={"name": "x"}, headers=as_account(USER1))
    assert response.status_code == 403


def test_reservation_flow_over_http(client, as_account):
    response = create_graveyard_via_api(client, as_account)
    assert response.status_code == 201
    graveyard = response.get_json()
    assert graveyard["id"] == 1
    assert graveyard["owner"] == GRAVEYARD_OWNER
    assert graveyard["boundary_hash"] == hex_hash("QmBoundary")

    response = client.post(
        "/api/ledger/graveyards/1/graves",
        json={"prices": ["0.5", "0.7", "1.0"], "location_hashes": [hex_hash(f"loc{i}") for i in range(3)]},
        headers=as_account(GRAVEYARD_OWNER),
    )
    assert response.status_code == 201
    assert [grave["id"] for grave in response.get_json()["graves"]] == [1, 2, 3]

    reserve_payload = {
        "payment": "0.5",
        "metadata_hash": hex_hash("QmBurialRecord"),
        "deceased_name_hash": hex_hash("John Doe"),
        "burial_date": 1672531200,
    }
    response = client.post("/api/ledger/graves/1/reserve", json=reserve_payload, headers=as_account(USER1))
    assert response.status_code == 200
    grave = response.get_json()
    assert grave["owner"] == USER1
    assert grave["reserved"] is True

    response = client.post("/api/ledger/graves/1/reserve", json=reserve_payload, headers=as_account(USER2))
    assert response.status_code == 409
    assert response.get_json()["error"] == "AlreadyReserved"

    response = client.post(
        "/api/ledger/graves/2/reserve",
        json={**reserve_payload, "payment": "0.3"},
        headers=as_account(USER1),
    )
    assert response.status_code == 402
    assert response.get_json()["error"] == "IncorrectPayment"

    assert client.get(f"/api/ledger/users/{USER1}/graves").get_json() == {"grave_ids": [1]}
    search = client.get("/api/ledger/search", query_string={"name_hash": hex_hash("John Doe")})
    assert search.get_json() == {"grave_ids": [1]}
    available = client.get("/api/ledger/graveyards/1/graves", query_string={"available": "1"})
    assert available.get_json() == {"grave_ids": [2, 3]}

    analytics = client.get("/api/ledger/analytics").get_json()
    assert analytics["total_reserved"] == 1
    assert Decimal(analytics["total_revenue"]) == Decimal("0.5")
    assert Decimal(analytics["average_price"]) == Decimal("0.733333")
    assert client.get("/api/ledger/analytics/years/2023").get_json()["reservations"] == 1

    pending = client.get(f"/api/ledger/withdrawals/{GRAVEYARD_OWNER}").get_json()
    assert Decimal(pending["pending"]) == Decimal("0.5")

    response = client.post("/api/ledger/withdrawals", headers=as_account(GRAVEYARD_OWNER))
    assert response.status_code == 200
    assert response.get_json()["status"] == "SENT"
    response = client.post("/api/ledger/withdrawals", headers=as_account(GRAVEYARD_OWNER))
    assert response.status_code == 409
    assert response.get_json() == {"error": "NoFunds", "message": "No funds to withdraw"}


def test_owner_operations_over_http(client, as_account):
    create_graveyard_via_api(client, as_account)
    response = client.post(
        "/api/ledger/graveyards/1/graves",
        json={"price": "2.5", "location_hash": hex_hash("single"), "latitude": 40748900, "longitude": -73985500, "accuracy": 4},
        headers=as_account(GRAVEYARD_OWNER),
    )
    assert response.status_code == 201
    assert client.get("/api/ledger/graves/1/gps").get_json()["accuracy"] == 4

    response = client.post("/api/ledger/graves/1/maintain", headers=as_account(USER1))
    assert response.status_code == 403
    assert response.get_json()["error"] == "NotAuthorized"
    response = client.post("/api/ledger/graves/1/maintain", headers=as_account(GRAVEYARD_OWNER))
    assert response.get_json()["maintained"] is True

    response = client.put(
        "/api/ledger/graveyards/1/image",
        json={"image_hash": hex_hash("QmImage")},
        headers=as_account(ADMIN),
    )
    assert response.get_json()["image_hash"] == hex_hash("QmImage")

    response = client.post("/api/ledger/graveyards/1/status", json={"active": False}, headers=as_account(GRAVEYARD_OWNER))
    assert response.get_json()["active"] is False
    response = client.post(
        "/api/ledger/graveyards/1/graves",
        json={"price": "1", "location_hash": hex_hash("late")},
        headers=as_account(GRAVEYARD_OWNER),
    )
    assert response.status_code == 409
    assert response.get_json()["error"] == "InactiveGraveyard"


def test_bad_input_and_unknown_records(client, as_account):
    response = client.get("/api/ledger/graves/7")
    assert response.status_code == 404
    assert response.get_json()["error"] == "NotFound"

    create_graveyard_via_api(client, as_account)
    response = client.post(
        "/api/ledger/graveyards/1/graves",
        json={"price": "1", "location_hash": "0xnothex"},
        headers=as_account(GRAVEYARD_OWNER),
    )
    assert response.status_code == 400
    assert response.get_json()["error"] == "InvalidInput"

    response = client.post(
        "/api/ledger/graveyards/1/graves",
        json={"prices": ["1", "1"], "location_hashes": [hex_hash("a")]},
        headers=as_account(GRAVEYARD_OWNER),
    )
    assert response.status_code == 400
    assert response.get_json()["error"] == "LengthMismatch"


def test_events_feed_pages_in_order(client, as_account):
    create_graveyard_via_api(client, as_account)
    client.post(
        "/api/ledger/graveyards/1/graves",
        json={"prices": ["1", "2"], "location_hashes": [hex_hash("a"), hex_hash("b")]},
        headers=as_account(GRAVEYARD_OWNER),
    )

    events = client.get("/api/ledger/events").get_json()["events"]
    types = [event["type"] for event in events]
    assert types == ["ADMIN_GRANTED", "GRAVEYARD_ADDED", "GRAVE_ADDED", "GRAVE_ADDED"]

    page = client.get("/api/ledger/events", query_string={"after": events[1]["id"], "limit": 1}).get_json()
    assert [event["grave_id"] for event in page["events"]] == [1]


def test_cli_seed_demo_and_audit(app):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["seed-demo"])
    assert result.exit_code == 0, result.output
    assert "Demo data seeded" in result.output
    assert get_graveyard_graves(1) == [1, 2, 3]
    assert get_analytics().total_graves == len(DEMO_PRICES)

    result = runner.invoke(args=["seed-demo"])
    assert "Seed skipped" in result.output

    result = runner.invoke(args=["ledger-audit"])
    assert result.exit_code == 0, result.output
    assert "0 mismatches" in result.output

    db.session.get(LedgerStats, 1).total_price_sum = Decimal("99")
    db.session.commit()
    result = runner.invoke(args=["ledger-audit"])
    assert result.exit_code == 1
    assert "MISMATCH total_price_sum" in result.output


def test_cli_grant_admin(app, client, as_account):
    result = app.test_cli_runner().invoke(args=["grant-admin", USER2])
    assert result.exit_code == 0, result.output

    response = client.post(
        "/api/ledger/graveyards",
        json={"owner": DEMO_OWNER, "name": "Hillside", "location": "North", "num_plots": 3},
        headers=as_account(USER2),
    )
    assert response.status_code == 201


def test_non_finite_json_literals_are_rejected(client, as_account):
    response = client.post(
        "/api/ledger/graveyards",
        data='{"owner": "%s", "name": "Hillside", "location": "North", "num_plots": Infinity}' % GRAVEYARD_OWNER,
        content_type="application/json",
        headers=as_account(ADMIN),
    )
    assert response.status_code == 400
    assert response.get_json()["error"] == "InvalidCapacity"

    response = client.post(
        "/api/ledger/graveyards",
        data='{"owner": "%s", "name": "Hillside", "num_plots": 5, "latitude": -Infinity}' % GRAVEYARD_OWNER,
        content_type="application/json",
        headers=as_account(ADMIN),
    )
    assert response.status_code == 400
    assert response.get_json()["error"] == "InvalidCoordinates"

    create_graveyard_via_api(client, as_account)
    response = client.post(
        "/api/ledger/graveyards/1/graves",
        data='{"prices": ["1", NaN], "location_hashes": ["%s", "%s"]}' % (hex_hash("a"), hex_hash("b")),
        content_type="application/json",
        headers=as_account(GRAVEYARD_OWNER),
    )
    assert response.status_code == 400
    assert response.get_json()["error"] == "InvalidPrice"

    response = client.post(
        "/api/ledger/graveyards/1/graves",
        data='{"price": "1", "location_hash": "%s", "accuracy": Infinity}' % hex_hash("c"),
        content_type="application/json",
        headers=as_account(GRAVEYARD_OWNER),
    )
    assert response.status_code == 400
    assert response.get_json()["error"] == "InvalidInput"
    assert client.get("/api/ledger/graveyards").get_json()["total_graves"] == 0
