from __future__ import annotations

from flask_login import UserMixin

from app.core.utils import normalize_account

# Wallet signatures are verified upstream; the gateway forwards the signer here.
ACCOUNT_HEADER = "X-Account"


class Account(UserMixin):
    def __init__(self, address: str):
        self.id = address

    @property
    def address(self) -> str:
        return self.id


def account_from_headers(headers) -> Account | None:
    address = normalize_account(headers.get(ACCOUNT_HEADER))
    return Account(address) if address else None
