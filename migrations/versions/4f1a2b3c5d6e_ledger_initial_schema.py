"""ledger initial schema

Revision ID: 4f1a2b3c5d6e
Revises:
Create Date: 2026-10-18 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "4f1a2b3c5d6e"
down_revision = None
branch_labels = None
depends_on = None

AMOUNT = sa.Numeric(precision=24, scale=6)
HASH = sa.LargeBinary(length=32)
EVENT_TYPES = (
    "GRAVEYARD_ADDED",
    "GRAVEYARD_STATUS_CHANGED",
    "GRAVEYARD_GPS_UPDATED",
    "GRAVEYARD_BOUNDARY_UPDATED",
    "GRAVEYARD_IMAGE_UPDATED",
    "GRAVE_ADDED",
    "GPS_UPDATED",
    "GRAVE_RESERVED",
    "BURIAL_RECORD_UPDATED",
    "GRAVE_MAINTAINED",
    "WITHDRAWAL",
    "ADMIN_GRANTED",
    "ADMIN_REVOKED",
)


def upgrade():
    op.create_table(
        "graveyard",
        sa.Column("id", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("owner", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("location", sa.String(length=255), nullable=False),
        sa.Column("num_plots", sa.Integer(), nullable=False),
        sa.Column("grave_count", sa.Integer(), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.Column("latitude", sa.BigInteger(), nullable=False),
        sa.Column("longitude", sa.BigInteger(), nullable=False),
        sa.Column("gps_accuracy", sa.Integer(), nullable=False),
        sa.Column("gps_timestamp", sa.BigInteger(), nullable=False),
        sa.Column("boundary_hash", HASH, nullable=False),
        sa.Column("total_area", sa.BigInteger(), nullable=False),
        sa.Column("image_hash", HASH, nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("num_plots > 0", name="ck_graveyard_num_plots"),
        sa.CheckConstraint("grave_count >= 0", name="ck_graveyard_grave_count"),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("graveyard", schema=None) as batch_op:
        batch_op.create_index(batch_op.f("ix_graveyard_owner"), ["owner"], unique=False)

    op.create_table(
        "grave",
        sa.Column("id", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("graveyard_id", sa.Integer(), nullable=False),
        sa.Column("owner", sa.String(length=64), nullable=False),
        sa.Column("price", AMOUNT, nullable=False),
        sa.Column("reserved", sa.Boolean(), nullable=False),
        sa.Column("maintained", sa.Boolean(), nullable=False),
        sa.Column("location_hash", HASH, nullable=False),
        sa.Column("metadata_hash", HASH, nullable=False),
        sa.Column("deceased_name_hash", HASH, nullable=False),
        sa.Column("timestamp", sa.BigInteger(), nullable=False),
        sa.Column("burial_date", sa.BigInteger(), nullable=False),
        sa.Column("latitude", sa.BigInteger(), nullable=False),
        sa.Column("longitude", sa.BigInteger(), nullable=False),
        sa.Column("gps_accuracy", sa.Integer(), nullable=False),
        sa.Column("gps_timestamp", sa.BigInteger(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("price > 0", name="ck_grave_price_positive"),
        sa.ForeignKeyConstraint(["graveyard_id"], ["graveyard.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("grave", schema=None) as batch_op:
        batch_op.create_index(batch_op.f("ix_grave_graveyard_id"), ["graveyard_id"], unique=False)
        batch_op.create_index(batch_op.f("ix_grave_owner"), ["owner"], unique=False)
    op.create_index("ix_grave_graveyard_reserved", "grave", ["graveyard_id", "reserved"], unique=False)

    op.create_table(
        "ledger_stats",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("total_graveyards", sa.Integer(), nullable=False),
        sa.Column("total_graves", sa.Integer(), nullable=False),
        sa.Column("reserved_graves_count", sa.Integer(), nullable=False),
        sa.Column("maintained_graves_count", sa.Integer(), nullable=False),
        sa.Column("total_reservations", sa.Integer(), nullable=False),
        sa.Column("total_revenue", AMOUNT, nullable=False),
        sa.Column("total_price_sum", AMOUNT, nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "yearly_reservation",
        sa.Column("year", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("reservations", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("year"),
    )
    op.create_table(
        "monthly_revenue",
        sa.Column("year_month", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("revenue", AMOUNT, nullable=False),
        sa.PrimaryKeyConstraint("year_month"),
    )

    op.create_table(
        "user_grave",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("account", sa.String(length=64), nullable=False),
        sa.Column("grave_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["grave_id"], ["grave.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("account", "grave_id", name="uq_user_grave"),
    )
    with op.batch_alter_table("user_grave", schema=None) as batch_op:
        batch_op.create_index(batch_op.f("ix_user_grave_account"), ["account"], unique=False)

    op.create_table(
        "deceased_name_entry",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name_hash", HASH, nullable=False),
        sa.Column("grave_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["grave_id"], ["grave.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("deceased_name_entry", schema=None) as batch_op:
        batch_op.create_index(batch_op.f("ix_deceased_name_entry_name_hash"), ["name_hash"], unique=False)

    op.create_table(
        "pending_withdrawal",
        sa.Column("account", sa.String(length=64), nullable=False),
        sa.Column("balance", AMOUNT, nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("balance >= 0", name="ck_pending_withdrawal_balance"),
        sa.PrimaryKeyConstraint("account"),
    )

    op.create_table(
        "payout",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("account", sa.String(length=64), nullable=False),
        sa.Column("amount", AMOUNT, nullable=False),
        sa.Column("status", sa.Enum("SENT", "FAILED", name="payout_status"), nullable=False),
        sa.Column("error", sa.String(length=500), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("payout", schema=None) as batch_op:
        batch_op.create_index(batch_op.f("ix_payout_account"), ["account"], unique=False)

    op.create_table(
        "ledger_admin",
        sa.Column("account", sa.String(length=64), nullable=False),
        sa.Column("granted_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("account"),
    )

    op.create_table(
        "ledger_event",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("event_type", sa.Enum(*EVENT_TYPES, name="ledger_event_type"), nullable=False),
        sa.Column("graveyard_id", sa.Integer(), nullable=True),
        sa.Column("grave_id", sa.Integer(), nullable=True),
        sa.Column("account", sa.String(length=64), nullable=False),
        sa.Column("amount", AMOUNT, nullable=True),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_ledger_event_type_id", "ledger_event", ["event_type", "id"], unique=False)
    op.create_index("ix_ledger_event_grave", "ledger_event", ["grave_id"], unique=False)


def downgrade():
    op.drop_index("ix_ledger_event_grave", table_name="ledger_event")
    op.drop_index("ix_ledger_event_type_id", table_name="ledger_event")
    op.drop_table("ledger_event")
    op.drop_table("ledger_admin")
    with op.batch_alter_table("payout", schema=None) as batch_op:
        batch_op.drop_index(batch_op.f("ix_payout_account"))
    op.drop_table("payout")
    op.drop_table("pending_withdrawal")
    with op.batch_alter_table("deceased_name_entry", schema=None) as batch_op:
        batch_op.drop_index(batch_op.f("ix_deceased_name_entry_name_hash"))
    op.drop_table("deceased_name_entry")
    with op.batch_alter_table("user_grave", schema=None) as batch_op:
        batch_op.drop_index(batch_op.f("ix_user_grave_account"))
    op.drop_table("user_grave")
    op.drop_table("monthly_revenue")
    op.drop_table("yearly_reservation")
    op.drop_table("ledger_stats")
    op.drop_index("ix_grave_graveyard_reserved", table_name="grave")
    with op.batch_alter_table("grave", schema=None) as batch_op:
        batch_op.drop_index(batch_op.f("ix_grave_owner"))
        batch_op.drop_index(batch_op.f("ix_grave_graveyard_id"))
    op.drop_table("grave")
    with op.batch_alter_table("graveyard", schema=None) as batch_op:
        batch_op.drop_index(batch_op.f("ix_graveyard_owner"))
    op.drop_table("graveyard")

    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        op.execute(sa.text("DROP TYPE IF EXISTS ledger_event_type"))
        op.execute(sa.text("DROP TYPE IF EXISTS payout_status"))
