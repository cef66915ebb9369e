from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import BigInteger, CheckConstraint, DateTime, Index, Integer, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column

from credits_engine.db.models.base import Base


class RewardGrant(Base):
    __tablename__ = "reward_grants"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_reward_grants_amount_positive"),
        CheckConstraint(
            "rule_type IN ('daily_login','watch_ad','purchase')",
            name="ck_reward_grants_rule_type",
        ),
        CheckConstraint("currency IN ('CREDITS','DIAMONDS')", name="ck_reward_grants_currency"),
        UniqueConstraint("rule_type", "idempotency_key", name="uq_reward_grants_rule_key"),
        Index("idx_reward_grants_user_created", "user_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    user_id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), nullable=False)
    rule_type: Mapped[str] = mapped_column(String(32), nullable=False)
    idempotency_key: Mapped[str] = mapped_column(String(160), nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(16), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
