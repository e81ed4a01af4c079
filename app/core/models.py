from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from sqlalchemy import (
    JSON,
    BigInteger,
    CheckConstraint,
    Enum as SAEnum,
    ForeignKey,
    Index,
    LargeBinary,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.extensions import db
from app.core.hashes import HASH_SIZE, ZERO_HASH
from app.core.utils import ZERO_AMOUNT

AMOUNT = db.Numeric(24, 6)
ACCOUNT = db.String(64)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def epoch_now() -> int:
    return int(utcnow().timestamp())


class LedgerEventType(str, Enum):
    GRAVEYARD_ADDED = "GRAVEYARD_ADDED"
    GRAVEYARD_STATUS_CHANGED = "GRAVEYARD_STATUS_CHANGED"
    GRAVEYARD_GPS_UPDATED = "GRAVEYARD_GPS_UPDATED"
    GRAVEYARD_BOUNDARY_UPDATED = "GRAVEYARD_BOUNDARY_UPDATED"
    GRAVEYARD_IMAGE_UPDATED = "GRAVEYARD_IMAGE_UPDATED"
    GRAVE_ADDED = "GRAVE_ADDED"
    GPS_UPDATED = "GPS_UPDATED"
    GRAVE_RESERVED = "GRAVE_RESERVED"
    BURIAL_RECORD_UPDATED = "BURIAL_RECORD_UPDATED"
    GRAVE_MAINTAINED = "GRAVE_MAINTAINED"
    WITHDRAWAL = "WITHDRAWAL"
    ADMIN_GRANTED = "ADMIN_GRANTED"
    ADMIN_REVOKED = "ADMIN_REVOKED"


class PayoutStatus(str, Enum):
    SENT = "SENT"
    FAILED = "FAILED"


class Graveyard(db.Model):
    __tablename__ = "graveyard"
    __table_args__ = (
        CheckConstraint("num_plots > 0", name="ck_graveyard_num_plots"),
        CheckConstraint("grave_count >= 0", name="ck_graveyard_grave_count"),
    )

    # ids come from LedgerStats.total_graveyards so they stay gapless
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=False)
    owner: Mapped[str] = mapped_column(ACCOUNT, nullable=False, index=True)
    name: Mapped[str] = mapped_column(db.String(120), nullable=False)
    location: Mapped[str] = mapped_column(db.String(255), nullable=False, default="")
    num_plots: Mapped[int] = mapped_column(nullable=False)
    grave_count: Mapped[int] = mapped_column(nullable=False, default=0)
    active: Mapped[bool] = mapped_column(nullable=False, default=True)
    latitude: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    longitude: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    gps_accuracy: Mapped[int] = mapped_column(nullable=False, default=0)
    gps_timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    boundary_hash: Mapped[bytes] = mapped_column(LargeBinary(HASH_SIZE), nullable=False, default=ZERO_HASH)
    total_area: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    image_hash: Mapped[bytes] = mapped_column(LargeBinary(HASH_SIZE), nullable=False, default=ZERO_HASH)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    graves = relationship("Grave", back_populates="graveyard", order_by="Grave.id")

    @property
    def free_plots(self) -> int:
        return max(self.num_plots - self.grave_count, 0)


class Grave(db.Model):
    __tablename__ = "grave"
    __table_args__ = (
        CheckConstraint("price > 0", name="ck_grave_price_positive"),
        Index("ix_grave_graveyard_reserved", "graveyard_id", "reserved"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=False)
    graveyard_id: Mapped[int] = mapped_column(ForeignKey("graveyard.id"), nullable=False, index=True)
    owner: Mapped[str] = mapped_column(ACCOUNT, nullable=False, index=True)
    price: Mapped[Decimal] = mapped_column(AMOUNT, nullable=False)
    reserved: Mapped[bool] = mapped_column(nullable=False, default=False)
    maintained: Mapped[bool] = mapped_column(nullable=False, default=False)
    location_hash: Mapped[bytes] = mapped_column(LargeBinary(HASH_SIZE), nullable=False, default=ZERO_HASH)
    metadata_hash: Mapped[bytes] = mapped_column(LargeBinary(HASH_SIZE), nullable=False, default=ZERO_HASH)
    deceased_name_hash: Mapped[bytes] = mapped_column(LargeBinary(HASH_SIZE), nullable=False, default=ZERO_HASH)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    burial_date: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    latitude: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    longitude: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    gps_accuracy: Mapped[int] = mapped_column(nullable=False, default=0)
    gps_timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    graveyard = relationship("Graveyard", back_populates="graves")


class LedgerStats(db.Model):
    # Single row (id=1) of running counters; never recomputed on read.
    __tablename__ = "ledger_stats"

    id: Mapped[int] = mapped_column(primary_key=True)
    total_graveyards: Mapped[int] = mapped_column(nullable=False, default=0)
    total_graves: Mapped[int] = mapped_column(nullable=False, default=0)
    reserved_graves_count: Mapped[int] = mapped_column(nullable=False, default=0)
    maintained_graves_count: Mapped[int] = mapped_column(nullable=False, default=0)
    total_reservations: Mapped[int] = mapped_column(nullable=False, default=0)
    total_revenue: Mapped[Decimal] = mapped_column(AMOUNT, nullable=False, default=ZERO_AMOUNT)
    total_price_sum: Mapped[Decimal] = mapped_column(AMOUNT, nullable=False, default=ZERO_AMOUNT)


class YearlyReservation(db.Model):
    __tablename__ = "yearly_reservation"

    year: Mapped[int] = mapped_column(primary_key=True, autoincrement=False)
    reservations: Mapped[int] = mapped_column(nullable=False, default=0)


class MonthlyRevenue(db.Model):
    __tablename__ = "monthly_revenue"

    year_month: Mapped[int] = mapped_column(primary_key=True, autoincrement=False)
    revenue: Mapped[Decimal] = mapped_column(AMOUNT, nullable=False, default=ZERO_AMOUNT)


class UserGrave(db.Model):
    __tablename__ = "user_grave"
    __table_args__ = (UniqueConstraint("account", "grave_id", name="uq_user_grave"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    account: Mapped[str] = mapped_column(ACCOUNT, nullable=False, index=True)
    grave_id: Mapped[int] = mapped_column(ForeignKey("grave.id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)


class DeceasedNameEntry(db.Model):
    __tablename__ = "deceased_name_entry"

    id: Mapped[int] = mapped_column(primary_key=True)
    name_hash: Mapped[bytes] = mapped_column(LargeBinary(HASH_SIZE), nullable=False, index=True)
    grave_id: Mapped[int] = mapped_column(ForeignKey("grave.id"), nullable=False)


class PendingWithdrawal(db.Model):
    __tablename__ = "pending_withdrawal"
    __table_args__ = (CheckConstraint("balance >= 0", name="ck_pending_withdrawal_balance"),)

    account: Mapped[str] = mapped_column(ACCOUNT, primary_key=True)
    balance: Mapped[Decimal] = mapped_column(AMOUNT, nullable=False, default=ZERO_AMOUNT)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow, nullable=False)


class Payout(db.Model):
    __tablename__ = "payout"

    id: Mapped[int] = mapped_column(primary_key=True)
    account: Mapped[str] = mapped_column(ACCOUNT, nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(AMOUNT, nullable=False)
    status: Mapped[PayoutStatus] = mapped_column(SAEnum(PayoutStatus, name="payout_status"), nullable=False)
    error: Mapped[str] = mapped_column(db.String(500), nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)


class LedgerAdmin(db.Model):
    __tablename__ = "ledger_admin"

    account: Mapped[str] = mapped_column(ACCOUNT, primary_key=True)
    granted_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)


class LedgerEvent(db.Model):
    __tablename__ = "ledger_event"
    __table_args__ = (
        Index("ix_ledger_event_type_id", "event_type", "id"),
        Index("ix_ledger_event_grave", "grave_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    event_type: Mapped[LedgerEventType] = mapped_column(
        SAEnum(LedgerEventType, name="ledger_event_type"),
        nullable=False,
    )
    graveyard_id: Mapped[int | None] = mapped_column(nullable=True)
    grave_id: Mapped[int | None] = mapped_column(nullable=True)
    account: Mapped[str] = mapped_column(ACCOUNT, nullable=False, default="")
    amount: Mapped[Decimal | None] = mapped_column(AMOUNT, nullable=True)
    payload: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

