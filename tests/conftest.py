from __future__ import annotations

import sys
from decimal import Decimal
from hashlib import sha256
from pathlib import Path

import pytest
from flask import g

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app import create_app
from app.core.config import Config
from app.core.extensions import db
from app.ledger.access import grant_admin
from app.ledger.registry import add_grave, create_graveyard

ADMIN = "0x00000000000000000000000000000000000000ad"
GRAVEYARD_OWNER = "0x0000000000000000000000000000000000000001"
USER1 = "0x0000000000000000000000000000000000000002"
USER2 = "0x0000000000000000000000000000000000000003"
SCENARIO_PRICES = (Decimal("0.5"), Decimal("0.7"), Decimal("1.0"))


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SECRET_KEY = "test-secret"
    LEDGER_ADMIN_ACCOUNT = ADMIN
    LEDGER_ENFORCE_CAPACITY = True


def h(label: str) -> bytes:
    return sha256(label.encode("utf-8")).digest()


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        grant_admin(ADMIN)
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    # The app fixture keeps one app context open, which Flask reuses for every
    # test request; drop Flask-Login's cached user so each request loads its own.
    @app.before_request
    def _reset_login_user():
        g.pop("_login_user", None)

    return app.test_client()


@pytest.fixture
def as_account():
    def _headers(account: str) -> dict[str, str]:
        return {"X-Account": account}

    return _headers


@pytest.fixture
def graveyard_id(app):
    graveyard = create_graveyard(
        owner=GRAVEYARD_OWNER,
        name="Green Valley Cemetery",
        location="123 Cemetery Road, City",
        num_plots=100,
        latitude=40748817,
        longitude=-73985428,
        boundary_hash=h("QmBoundaryGeoJSON123"),
        total_area=10000,
    )
    return graveyard.id


@pytest.fixture
def grave_ids(app, graveyard_id):
    return [
        add_grave(graveyard_id, price, h(f"QmLocationHash{index}"), GRAVEYARD_OWNER).id
        for index, price in enumerate(SCENARIO_PRICES, start=1)
    ]
