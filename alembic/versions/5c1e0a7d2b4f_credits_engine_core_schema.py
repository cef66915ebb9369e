"""credits_engine_core_schema

Revision ID: 5c1e0a7d2b4f
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "5c1e0a7d2b4f"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "wallets",
        sa.Column("user_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("credits", sa.Integer(), nullable=False),
        sa.Column("diamonds", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("credits >= 0", name="ck_wallets_credits_non_negative"),
        sa.CheckConstraint("diamonds >= 0", name="ck_wallets_diamonds_non_negative"),
    )
    op.create_index("idx_wallets_updated_at", "wallets", ["updated_at"])

    op.create_table(
        "daily_free_usages",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("usage_date", sa.Date(), nullable=False),
        sa.Column("slot", sa.SmallInteger(), nullable=False),
        sa.Column("action_type", sa.String(32), nullable=False),
        sa.Column("request_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("slot >= 1", name="ck_daily_free_usages_slot_positive"),
        sa.UniqueConstraint("user_id", "usage_date", "slot", name="uq_daily_free_usages_user_day_slot"),
    )
    op.create_index("idx_daily_free_usages_request", "daily_free_usages", ["request_id"])

    op.create_table(
        "earning_rules",
        sa.Column("type", sa.String(32), primary_key=True),
        sa.Column("reward_amount", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(16), nullable=False, server_default=sa.text("'DIAMONDS'")),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.CheckConstraint("reward_amount > 0", name="ck_earning_rules_reward_amount_positive"),
        sa.CheckConstraint("currency IN ('CREDITS','DIAMONDS')", name="ck_earning_rules_currency"),
    )

    op.create_table(
        "app_config",
        sa.Column("id", sa.SmallInteger(), primary_key=True),
        sa.Column("welcome_credits", sa.Integer(), nullable=False),
        sa.Column("daily_free_limit", sa.Integer(), nullable=True),
        sa.Column(
            "action_costs",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("diamond_exchange_rate", sa.Integer(), nullable=False, server_default=sa.text("10")),
        sa.Column("maintenance_mode", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("welcome_credits >= 0", name="ck_app_config_welcome_credits_non_negative"),
        sa.CheckConstraint("daily_free_limit >= 0", name="ck_app_config_daily_free_limit_non_negative"),
        sa.CheckConstraint("diamond_exchange_rate >= 1", name="ck_app_config_exchange_rate_positive"),
    )

    op.create_table(
        "fortune_requests",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("action_type", sa.String(32), nullable=False),
        sa.Column("cost_charged", sa.Integer(), nullable=False),
        sa.Column("funding_mode", sa.String(8), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("idempotency_key", sa.String(96), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column(
            "metadata",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("failed_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("cost_charged >= 0", name="ck_fortune_requests_cost_non_negative"),
        sa.CheckConstraint("funding_mode IN ('FREE','PAID')", name="ck_fortune_requests_funding_mode"),
        sa.CheckConstraint("status IN ('PENDING','COMPLETED','FAILED')", name="ck_fortune_requests_status"),
        sa.CheckConstraint(
            "funding_mode = 'PAID' OR cost_charged = 0",
            name="ck_fortune_requests_free_is_zero_cost",
        ),
        sa.UniqueConstraint("user_id", "idempotency_key", name="uq_fortune_requests_user_idempotency_key"),
    )
    op.create_index("idx_fortune_requests_user_created", "fortune_requests", ["user_id", "created_at"])
    op.create_index("idx_fortune_requests_status", "fortune_requests", ["status"])

    op.create_table(
        "reward_grants",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("rule_type", sa.String(32), nullable=False),
        sa.Column("idempotency_key", sa.String(160), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(16), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("amount > 0", name="ck_reward_grants_amount_positive"),
        sa.CheckConstraint(
            "rule_type IN ('daily_login','watch_ad','purchase')",
            name="ck_reward_grants_rule_type",
        ),
        sa.CheckConstraint("currency IN ('CREDITS','DIAMONDS')", name="ck_reward_grants_currency"),
        sa.UniqueConstraint("rule_type", "idempotency_key", name="uq_reward_grants_rule_key"),
    )
    op.create_index("idx_reward_grants_user_created", "reward_grants", ["user_id", "created_at"])

    op.create_table(
        "ledger_entries",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("request_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("entry_type", sa.String(32), nullable=False),
        sa.Column("asset", sa.String(16), nullable=False),
        sa.Column("direction", sa.String(8), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("balance_after", sa.Integer(), nullable=False),
        sa.Column("source", sa.String(32), nullable=False),
        sa.Column("idempotency_key", sa.String(160), nullable=False, unique=True),
        sa.Column(
            "metadata",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("amount > 0", name="ck_ledger_entries_amount_positive"),
        sa.CheckConstraint("asset IN ('CREDITS','DIAMONDS')", name="ck_ledger_entries_asset"),
        sa.CheckConstraint("direction IN ('CREDIT','DEBIT')", name="ck_ledger_entries_direction"),
    )
    op.create_index("idx_ledger_user_created", "ledger_entries", ["user_id", "created_at"])
    op.create_index("idx_ledger_request", "ledger_entries", ["request_id"])
    op.create_index("idx_ledger_type_created", "ledger_entries", ["entry_type", "created_at"])

    op.create_table(
        "outbox_events",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("event_type", sa.String(64), nullable=False),
        sa.Column("payload", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("available_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("status IN ('PENDING','SENT','FAILED')", name="ck_outbox_events_status"),
    )
    op.create_index("idx_outbox_events_status_created", "outbox_events", ["status", "created_at"])

    op.execute(
        """
        INSERT INTO earning_rules (type, reward_amount, currency, active)
        VALUES ('daily_login', 10, 'DIAMONDS', true),
               ('watch_ad', 5, 'DIAMONDS', true)
        """
    )


def downgrade() -> None:
    op.drop_index("idx_outbox_events_status_created", table_name="outbox_events")
    op.drop_table("outbox_events")
    op.drop_index("idx_ledger_type_created", table_name="ledger_entries")
    op.drop_index("idx_ledger_request", table_name="ledger_entries")
    op.drop_index("idx_ledger_user_created", table_name="ledger_entries")
    op.drop_table("ledger_entries")
    op.drop_index("idx_reward_grants_user_created", table_name="reward_grants")
    op.drop_table("reward_grants")
    op.drop_index("idx_fortune_requests_status", table_name="fortune_requests")
    op.drop_index("idx_fortune_requests_user_created", table_name="fortune_requests")
    op.drop_table("fortune_requests")
    op.drop_table("app_config")
    op.drop_table("earning_rules")
    op.drop_index("idx_daily_free_usages_request", table_name="daily_free_usages")
    op.drop_table("daily_free_usages")
    op.drop_index("idx_wallets_updated_at", table_name="wallets")
    op.drop_table("wallets")
