from __future__ import annotations

from decimal import ROUND_DOWN, Decimal, InvalidOperation

AMOUNT_QUANT = Decimal("0.000001")
ZERO_AMOUNT = Decimal("0.000000")
ZERO_ADDRESS = "0x" + "0" * 40


def to_amount(value: Decimal | float | int | str) -> Decimal:
    # floats go through str() so 0.7 stays 0.7 instead of 0.69999...
    if isinstance(value, float):
        value = str(value)
    try:
        return Decimal(value)
    except (InvalidOperation, TypeError) as exc:
        raise ValueError(f"Invalid amount: {value!r}") from exc


def fits_amount_scale(amount: Decimal) -> bool:
    """True for finite amounts with at most six fractional digits."""
    if not amount.is_finite():
        return False
    try:
        return amount == amount.quantize(AMOUNT_QUANT, rounding=ROUND_DOWN)
    except InvalidOperation:
        return False


def to_int(value: int | float | str | None) -> int:
    """Integer field from JSON or keyword input; None and "" read as 0."""
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        raise ValueError(f"Invalid integer: {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError) as exc:
        raise ValueError(f"Invalid integer: {value!r}") from exc


def normalize_account(value: str | None) -> str:
    """Lower-cased account identifier, or "" for missing and zero addresses."""
    account = (value or "").strip().lower()
    if account == ZERO_ADDRESS:
        return ""
    return account
