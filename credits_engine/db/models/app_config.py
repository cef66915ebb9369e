from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, Integer, SmallInteger, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from credits_engine.db.models.base import Base


class AppConfig(Base):
    __tablename__ = "app_config"
    __table_args__ = (
        CheckConstraint("welcome_credits >= 0", name="ck_app_config_welcome_credits_non_negative"),
        CheckConstraint("daily_free_limit >= 0", name="ck_app_config_daily_free_limit_non_negative"),
        CheckConstraint("diamond_exchange_rate >= 1", name="ck_app_config_exchange_rate_positive"),
    )

    id: Mapped[int] = mapped_column(SmallInteger, primary_key=True)
    welcome_credits: Mapped[int] = mapped_column(Integer, nullable=False)
    daily_free_limit: Mapped[int | None] = mapped_column(Integer, nullable=True)
    action_costs: Mapped[dict[str, int]] = mapped_column(
        JSONB,
        nullable=False,
        server_default=text("'{}'::jsonb"),
    )
    diamond_exchange_rate: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("10"))
    maintenance_mode: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("false"))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("now()"),
    )
