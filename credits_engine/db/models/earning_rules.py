from __future__ import annotations

from sqlalchemy import Boolean, CheckConstraint, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from credits_engine.db.models.base import Base


class EarningRuleRow(Base):
    __tablename__ = "earning_rules"
    __table_args__ = (
        CheckConstraint("reward_amount > 0", name="ck_earning_rules_reward_amount_positive"),
        CheckConstraint("currency IN ('CREDITS','DIAMONDS')", name="ck_earning_rules_currency"),
    )

    type: Mapped[str] = mapped_column(String(32), primary_key=True)
    reward_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(16), nullable=False, server_default=text("'DIAMONDS'"))
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("true"))
