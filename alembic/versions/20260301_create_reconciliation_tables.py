"""create reconciliation tables"""
from alembic import op
import sqlalchemy as sa

revision = "20260301_create_reconciliation_tables"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "bookings",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("client_id", sa.String(length=36), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="requested"),
        sa.Column("currency", sa.String(length=3), nullable=True),
        sa.Column("total_mxn_cents", sa.Integer(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_bookings_client_id", "bookings", ["client_id"])

    op.create_table(
        "companies",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=True),
        sa.Column("stripe_account_id", sa.String(length=255), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("stripe_account_id", name="uq_companies_stripe_account_id"),
    )

    op.create_table(
        "payments",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("booking_id", sa.String(length=36), sa.ForeignKey("bookings.id"), nullable=False),
        sa.Column("provider", sa.String(length=32), nullable=False, server_default="stripe"),
        sa.Column("preauth_id", sa.String(length=255), nullable=True),
        sa.Column("charge_id", sa.String(length=255), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="pending"),
        sa.Column("amount_preauth", sa.Integer(), nullable=True),
        sa.Column("amount_captured", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("preauth_id", name="uq_payments_preauth_id"),
    )
    op.create_index("ix_payments_booking_id", "payments", ["booking_id"])
    op.create_index("ix_payments_charge_id", "payments", ["charge_id"])
    op.create_index("ix_payments_status", "payments", ["status"])

    op.create_table(
        "payouts",
        sa.Column("id", sa.String(length=255), primary_key=True),
        sa.Column("guard_id", sa.String(length=64), nullable=False, server_default="unknown"),
        sa.Column("company_id", sa.String(length=64), nullable=True),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="pending"),
        sa.Column("period_start", sa.DateTime(timezone=True), nullable=True),
        sa.Column("period_end", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_payouts_guard_id", "payouts", ["guard_id"])
    op.create_index("ix_payouts_company_id", "payouts", ["company_id"])

    op.create_table(
        "stripe_failed_events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("event_id", sa.String(length=255), nullable=False),
        sa.Column("type", sa.String(length=100), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("error", sa.Text(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_stripe_failed_events_event_id", "stripe_failed_events", ["event_id"])
    op.create_index("ix_stripe_failed_events_created_at", "stripe_failed_events", ["created_at"])

    op.create_table(
        "api_keys",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("prefix", sa.String(length=32), nullable=False),
        sa.Column("key_hash", sa.String(length=128), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("name", name="uq_api_keys_name"),
        sa.UniqueConstraint("key_hash", name="uq_api_keys_key_hash"),
    )
    op.create_index("ix_api_keys_user_id", "api_keys", ["user_id"])

    op.create_table(
        "user_roles",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column(
            "role",
            sa.Enum("client", "freelancer", "company_admin", name="app_role"),
            nullable=False,
        ),
        *_timestamps(),
    )
    op.create_index("ix_user_roles_user_id", "user_roles", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_user_roles_user_id", table_name="user_roles")
    op.drop_table("user_roles")
    sa.Enum(name="app_role").drop(op.get_bind(), checkfirst=True)
    op.drop_index("ix_api_keys_user_id", table_name="api_keys")
    op.drop_table("api_keys")
    op.drop_index("ix_stripe_failed_events_created_at", table_name="stripe_failed_events")
    op.drop_index("ix_stripe_failed_events_event_id", table_name="stripe_failed_events")
    op.drop_table("stripe_failed_events")
    op.drop_index("ix_payouts_company_id", table_name="payouts")
    op.drop_index("ix_payouts_guard_id", table_name="payouts")
    op.drop_table("payouts")
    op.drop_index("ix_payments_status", table_name="payments")
    op.drop_index("ix_payments_charge_id", table_name="payments")
    op.drop_index("ix_payments_booking_id", table_name="payments")
    op.drop_table("payments")
    op.drop_table("companies")
    op.drop_index("ix_bookings_client_id", table_name="bookings")
    op.drop_table("bookings")
