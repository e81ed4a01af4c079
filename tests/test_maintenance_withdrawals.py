from __future__ import annotations

from decimal import Decimal

import pytest

from app.core.errors import NoFunds, NotAuthorized, NotFound, TransferFailed
from app.core.models import LedgerEvent, LedgerEventType, PayoutStatus
from app.ledger.analytics import audit_counters, get_analytics
from app.ledger.maintenance import maintain_grave
from app.ledger.registry import grave_by_id, is_reserved
from app.ledger.reservations import reserve_grave
from app.ledger.withdrawals import get_pending_withdrawal, list_payouts, withdraw
from tests.conftest import ADMIN, GRAVEYARD_OWNER, USER1, USER2, h


def _reserve(grave_id, payment, caller=USER1):
    return reserve_grave(grave_id, payment, h("meta"), h("name"), 0, caller)


def _failing_sender(account, amount):
    raise RuntimeError("recipient rejected the transfer")


def test_maintenance_is_idempotent(app, grave_ids):
    maintain_grave(grave_ids[0], GRAVEYARD_OWNER)
    maintain_grave(grave_ids[0], GRAVEYARD_OWNER)
    maintain_grave(grave_ids[0], ADMIN)

    assert grave_by_id(grave_ids[0]).maintained is True
    assert get_analytics().total_maintained == 1

    entries = (
        LedgerEvent.query.filter_by(event_type=LedgerEventType.GRAVE_MAINTAINED)
        .order_by(LedgerEvent.id.asc())
        .all()
    )
    assert [entry.payload["first_time"] for entry in entries] == [True, False, False]


def test_maintenance_requires_graveyard_owner_or_admin(app, grave_ids):
    _reserve(grave_ids[0], "0.5")
    with pytest.raises(NotAuthorized):
        maintain_grave(grave_ids[0], USER1)
    with pytest.raises(NotAuthorized):
        maintain_grave(grave_ids[0], None)
    with pytest.raises(NotFound):
        maintain_grave(404, GRAVEYARD_OWNER)
    assert get_analytics().total_maintained == 0


def test_maintenance_is_independent_of_reservation(app, grave_ids):
    maintain_grave(grave_ids[1], GRAVEYARD_OWNER)
    _reserve(grave_ids[1], "0.7")

    grave = grave_by_id(grave_ids[1])
    assert grave.maintained is True
    assert grave.reserved is True


def test_withdraw_pays_out_and_zeroes(app, grave_ids):
    _reserve(grave_ids[0], "0.5")
    _reserve(grave_ids[2], "1.0", caller=USER2)
    sent = []

    payout = withdraw(GRAVEYARD_OWNER, sender=lambda account, amount: sent.append((account, amount)))

    assert sent == [(GRAVEYARD_OWNER, Decimal("1.5"))]
    assert payout.status == PayoutStatus.SENT
    assert payout.amount == Decimal("1.5")
    assert get_pending_withdrawal(GRAVEYARD_OWNER) == 0
    with pytest.raises(NoFunds):
        withdraw(GRAVEYARD_OWNER)
    assert audit_counters().consistent


def test_withdraw_without_balance(app, grave_ids):
    with pytest.raises(NoFunds):
        withdraw(USER1)
    with pytest.raises(NoFunds):
        withdraw("")
    assert list_payouts(USER1) == []


def test_balance_is_zeroed_before_a_failing_transfer(app, grave_ids):
    _reserve(grave_ids[1], "0.7")

    with pytest.raises(TransferFailed):
        withdraw(GRAVEYARD_OWNER, sender=_failing_sender)

    assert get_pending_withdrawal(GRAVEYARD_OWNER) == 0
    payouts = list_payouts(GRAVEYARD_OWNER)
    assert [(payout.status, payout.amount) for payout in payouts] == [(PayoutStatus.FAILED, Decimal("0.7"))]
    assert "rejected" in payouts[0].error
    with pytest.raises(NoFunds):
        withdraw(GRAVEYARD_OWNER)
    assert audit_counters().consistent


def test_reentrant_withdraw_sees_no_funds(app, grave_ids):
    _reserve(grave_ids[0], "0.5")
    nested = []

    def greedy_sender(account, amount):
        try:
            withdraw(account, sender=greedy_sender)
        except NoFunds as exc:
            nested.append(exc)

    withdraw(GRAVEYARD_OWNER, sender=greedy_sender)

    assert len(nested) == 1
    assert [payout.amount for payout in list_payouts(GRAVEYARD_OWNER)] == [Decimal("0.5")]


def test_reservation_never_depends_on_the_recipient(app, grave_ids):
    _reserve(grave_ids[0], "0.5")
    with pytest.raises(TransferFailed):
        withdraw(GRAVEYARD_OWNER, sender=_failing_sender)

    # the owner cannot receive funds, reservations still go through
    _reserve(grave_ids[1], "0.7", caller=USER2)
    assert is_reserved(grave_ids[1]) is True
    assert get_pending_withdrawal(GRAVEYARD_OWNER) == Decimal("0.7")
    assert get_analytics().total_revenue == Decimal("1.2")
