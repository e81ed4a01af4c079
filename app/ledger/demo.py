from __future__ import annotations

from decimal import Decimal
from hashlib import sha256

from app.core.models import Graveyard
from app.ledger.access import grant_admin
from app.ledger.registry import add_graves_batch, create_graveyard

DEMO_OWNER = "0x00000000000000000000000000000000000000a1"
DEMO_PRICES = (Decimal("0.5"), Decimal("0.7"), Decimal("1.0"))


def demo_hash(label: str) -> bytes:
    return sha256(label.encode("utf-8")).digest()


def seed_demo_data(admin_account: str | None = None) -> Graveyard:
    if admin_account:
        grant_admin(admin_account)
    graveyard = create_graveyard(
        owner=DEMO_OWNER,
        name="Green Valley Cemetery",
        location="123 Cemetery Road, City",
        num_plots=100,
        latitude=40748817,
        longitude=-73985428,
        boundary_hash=demo_hash("boundary:green-valley"),
        total_area=10000,
    )
    add_graves_batch(
        graveyard.id,
        list(DEMO_PRICES),
        [demo_hash(f"location:green-valley:{index}") for index in range(1, len(DEMO_PRICES) + 1)],
        DEMO_OWNER,
    )
    return graveyard
