from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_DOWN, Decimal

from app.core.extensions import db
from app.core.models import (
    Grave,
    Graveyard,
    LedgerStats,
    MonthlyRevenue,
    Payout,
    PendingWithdrawal,
    YearlyReservation,
)
from app.core.utils import AMOUNT_QUANT, ZERO_AMOUNT

STATS_ROW_ID = 1
DAY_SECONDS = 24 * 60 * 60
YEAR_SECONDS = 365 * DAY_SECONDS
MONTH_SECONDS = 30 * DAY_SECONDS


@dataclass
class AnalyticsSnapshot:
    total_graveyards: int = 0
    total_graves: int = 0
    total_reserved: int = 0
    total_maintained: int = 0
    total_revenue: Decimal = ZERO_AMOUNT
    average_price: Decimal = ZERO_AMOUNT

    def as_dict(self) -> dict[str, object]:
        return {
            "total_graveyards": self.total_graveyards,
            "total_graves": self.total_graves,
            "total_reserved": self.total_reserved,
            "total_maintained": self.total_maintained,
            "total_revenue": str(self.total_revenue),
            "average_price": str(self.average_price),
        }


@dataclass
class CounterMismatch:
    counter: str
    stored: object
    scanned: object


@dataclass
class AuditReport:
    checked: int = 0
    mismatches: list[CounterMismatch] = field(default_factory=list)

    @property
    def consistent(self) -> bool:
        return not self.mismatches


def year_of(timestamp: int) -> int:
    # 365-day years: leap days are ignored on purpose
    return 1970 + int(timestamp) // YEAR_SECONDS


def year_month_of(timestamp: int) -> int:
    month = min(12, (int(timestamp) % YEAR_SECONDS) // MONTH_SECONDS + 1)
    return year_of(timestamp) * 100 + month


def ledger_stats(for_update: bool = False) -> LedgerStats:
    """Counter row for writers; created on first use inside the caller's transaction."""
    stats = db.session.get(LedgerStats, STATS_ROW_ID, with_for_update=for_update)
    if stats is None:
        stats = LedgerStats(
            id=STATS_ROW_ID,
            total_graveyards=0,
            total_graves=0,
            reserved_graves_count=0,
            maintained_graves_count=0,
            total_reservations=0,
            total_revenue=ZERO_AMOUNT,
            total_price_sum=ZERO_AMOUNT,
        )
        db.session.add(stats)
        db.session.flush()
    return stats


def record_grave_added(stats: LedgerStats, grave_id: int, price: Decimal) -> None:
    stats.total_graves = grave_id
    stats.total_price_sum = Decimal(stats.total_price_sum) + price


def record_reservation(stats: LedgerStats, amount: Decimal, bucket_timestamp: int, paid_at: int) -> None:
    stats.reserved_graves_count += 1
    stats.total_reservations += 1
    stats.total_revenue = Decimal(stats.total_revenue) + amount

    year = year_of(bucket_timestamp)
    yearly = db.session.get(YearlyReservation, year, with_for_update=True)
    if yearly is None:
        yearly = YearlyReservation(year=year, reservations=0)
        db.session.add(yearly)
    yearly.reservations += 1

    year_month = year_month_of(paid_at)
    monthly = db.session.get(MonthlyRevenue, year_month, with_for_update=True)
    if monthly is None:
        monthly = MonthlyRevenue(year_month=year_month, revenue=ZERO_AMOUNT)
        db.session.add(monthly)
    monthly.revenue = Decimal(monthly.revenue) + amount


def record_maintenance(stats: LedgerStats) -> None:
    stats.maintained_graves_count += 1


def average_price(price_sum: Decimal, graves: int) -> Decimal:
    if graves <= 0:
        return ZERO_AMOUNT
    return (Decimal(price_sum) / graves).quantize(AMOUNT_QUANT, rounding=ROUND_DOWN)


def get_analytics() -> AnalyticsSnapshot:
    stats = db.session.get(LedgerStats, STATS_ROW_ID)
    if stats is None:
        return AnalyticsSnapshot()
    return AnalyticsSnapshot(
        total_graveyards=stats.total_graveyards,
        total_graves=stats.total_graves,
        total_reserved=stats.reserved_graves_count,
        total_maintained=stats.maintained_graves_count,
        total_revenue=Decimal(stats.total_revenue),
        average_price=average_price(stats.total_price_sum, stats.total_graves),
    )


def get_yearly_stats(year: int) -> int:
    row = db.session.get(YearlyReservation, year)
    return row.reservations if row else 0


def get_monthly_revenue(year_month: int) -> Decimal:
    row = db.session.get(MonthlyRevenue, year_month)
    return Decimal(row.revenue) if row else ZERO_AMOUNT


def audit_counters() -> AuditReport:
    """Recount every counter by scanning the tables and compare with the stored values."""
    stats = db.session.get(LedgerStats, STATS_ROW_ID)
    graves = Grave.query.order_by(Grave.id.asc()).all()
    reserved = [grave for grave in graves if grave.reserved]

    scanned_revenue = sum((Decimal(grave.price) for grave in reserved), ZERO_AMOUNT)
    expected: dict[str, object] = {
        "total_graveyards": Graveyard.query.count(),
        "total_graves": len(graves),
        "reserved_graves_count": len(reserved),
        "maintained_graves_count": sum(1 for grave in graves if grave.maintained),
        "total_reservations": len(reserved),
        "total_revenue": scanned_revenue,
        "total_price_sum": sum((Decimal(grave.price) for grave in graves), ZERO_AMOUNT),
    }

    report = AuditReport()
    for counter, scanned in expected.items():
        stored = getattr(stats, counter) if stats else (ZERO_AMOUNT if isinstance(scanned, Decimal) else 0)
        report.checked += 1
        if stored != scanned:
            report.mismatches.append(CounterMismatch(counter, stored, scanned))

    yearly_total = sum(row.reservations for row in YearlyReservation.query.all())
    monthly_total = sum((Decimal(row.revenue) for row in MonthlyRevenue.query.all()), ZERO_AMOUNT)
    owed = sum((Decimal(row.balance) for row in PendingWithdrawal.query.all()), ZERO_AMOUNT)
    # failed payouts count too: their balance was zeroed before the transfer
    paid = sum((Decimal(row.amount) for row in Payout.query.all()), ZERO_AMOUNT)
    for counter, stored, scanned in (
        ("yearly_reservations", yearly_total, len(reserved)),
        ("monthly_revenue", monthly_total, scanned_revenue),
        ("withdrawal_ledger", owed + paid, scanned_revenue),
    ):
        report.checked += 1
        if stored != scanned:
            report.mismatches.append(CounterMismatch(counter, stored, scanned))

    per_graveyard = {}
    for grave in graves:
        per_graveyard[grave.graveyard_id] = per_graveyard.get(grave.graveyard_id, 0) + 1
    for graveyard in Graveyard.query.order_by(Graveyard.id.asc()).all():
        report.checked += 1
        scanned_count = per_graveyard.get(graveyard.id, 0)
        if graveyard.grave_count != scanned_count:
            report.mismatches.append(
                CounterMismatch(f"graveyard[{graveyard.id}].grave_count", graveyard.grave_count, scanned_count)
            )
    return report
