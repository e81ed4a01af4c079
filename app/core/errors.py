from __future__ import annotations


class LedgerError(ValueError):
    code = "LedgerError"
    status = 400
    default_message = "Invalid ledger operation"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class NotFound(LedgerError):
    code = "NotFound"
    status = 404
    default_message = "Record not found"


class InvalidOwner(LedgerError):
    code = "InvalidOwner"
    default_message = "Invalid owner address"


class EmptyName(LedgerError):
    code = "EmptyName"
    default_message = "Name cannot be empty"


class InvalidCapacity(LedgerError):
    code = "InvalidCapacity"
    default_message = "Must have at least one plot"


class InvalidPrice(LedgerError):
    code = "InvalidPrice"
    default_message = "Price must be greater than 0"


class InvalidCoordinates(LedgerError):
    code = "InvalidCoordinates"
    default_message = "Coordinates out of range"


class NotOwner(LedgerError):
    code = "NotOwner"
    status = 403
    default_message = "Not owner"


class NotAuthorized(LedgerError):
    code = "NotAuthorized"
    status = 403
    default_message = "Not authorized"


class InactiveGraveyard(LedgerError):
    code = "InactiveGraveyard"
    status = 409
    default_message = "Graveyard is not active"


class AlreadyReserved(LedgerError):
    code = "AlreadyReserved"
    status = 409
    default_message = "Grave already reserved"


class IncorrectPayment(LedgerError):
    code = "IncorrectPayment"
    status = 402
    default_message = "Incorrect payment amount"


class NotReserved(LedgerError):
    code = "NotReserved"
    status = 409
    default_message = "Grave not reserved"


class NoFunds(LedgerError):
    code = "NoFunds"
    status = 409
    default_message = "No funds to withdraw"


class LengthMismatch(LedgerError):
    code = "LengthMismatch"
    default_message = "Arrays length mismatch"


class CapacityExceeded(LedgerError):
    code = "CapacityExceeded"
    status = 409
    default_message = "Graveyard has no free plots"


class TransferFailed(LedgerError):
    code = "TransferFailed"
    status = 502
    default_message = "Payout transfer failed"
