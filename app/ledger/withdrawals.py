from __future__ import annotations

from decimal import Decimal
from typing import Callable

from flask import current_app

from app.core.errors import NoFunds, TransferFailed
from app.core.extensions import db
from app.core.models import LedgerEventType, Payout, PayoutStatus, PendingWithdrawal
from app.core.utils import ZERO_AMOUNT, normalize_account
from app.ledger.events import emit_event
from app.ledger.serial import ledger_transaction

PayoutSender = Callable[[str, Decimal], None]


def book_payout(account: str, amount: Decimal) -> None:
    return None


def credit_pending_withdrawal(account: str, amount: Decimal) -> PendingWithdrawal:
    # Caller holds the ledger transaction; crediting never moves funds.
    row = db.session.get(PendingWithdrawal, account, with_for_update=True)
    if row is None:
        row = PendingWithdrawal(account=account, balance=ZERO_AMOUNT)
        db.session.add(row)
    row.balance = Decimal(row.balance) + amount
    return row


def get_pending_withdrawal(account: str | None) -> Decimal:
    row = db.session.get(PendingWithdrawal, normalize_account(account))
    return Decimal(row.balance) if row else ZERO_AMOUNT


def withdraw(caller: str | None, sender: PayoutSender | None = None) -> Payout:
    """Pay out the caller's whole pending balance; the balance is zeroed before ``sender`` runs."""
    account = normalize_account(caller)
    with ledger_transaction():
        row = db.session.get(PendingWithdrawal, account, with_for_update=True) if account else None
        if row is None or Decimal(row.balance) <= 0:
            raise NoFunds()
        amount = Decimal(row.balance)
        row.balance = ZERO_AMOUNT
        emit_event(LedgerEventType.WITHDRAWAL, account=account, amount=amount)

    send = sender or book_payout
    try:
        send(account, amount)
    except Exception as exc:
        current_app.logger.warning("Payout of %s to %s failed: %s", amount, account, exc)
        with ledger_transaction():
            db.session.add(
                Payout(account=account, amount=amount, status=PayoutStatus.FAILED, error=str(exc)[:500])
            )
        raise TransferFailed(f"Payout of {amount} to {account} failed") from exc

    with ledger_transaction():
        payout = Payout(account=account, amount=amount, status=PayoutStatus.SENT, error="")
        db.session.add(payout)
    current_app.logger.info("Payout of %s sent to %s", amount, account)
    return payout


def list_payouts(account: str | None) -> list[Payout]:
    return (
        Payout.query.filter_by(account=normalize_account(account))
        .order_by(Payout.id.asc())
        .all()
    )
