from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import CheckConstraint, DateTime, Index, Integer, String, Text, UniqueConstraint, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column

from credits_engine.db.models.base import Base


class FortuneRequest(Base):
    __tablename__ = "fortune_requests"
    __table_args__ = (
        CheckConstraint("cost_charged >= 0", name="ck_fortune_requests_cost_non_negative"),
        CheckConstraint("funding_mode IN ('FREE','PAID')", name="ck_fortune_requests_funding_mode"),
        CheckConstraint(
            "status IN ('PENDING','COMPLETED','FAILED')",
            name="ck_fortune_requests_status",
        ),
        CheckConstraint(
            "funding_mode = 'PAID' OR cost_charged = 0",
            name="ck_fortune_requests_free_is_zero_cost",
        ),
        Index("idx_fortune_requests_user_created", "user_id", "created_at"),
        Index("idx_fortune_requests_status", "status"),
        UniqueConstraint("user_id", "idempotency_key", name="uq_fortune_requests_user_idempotency_key"),
    )

    id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), primary_key=True)
    user_id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), nullable=False)
    action_type: Mapped[str] = mapped_column(String(32), nullable=False)
    cost_charged: Mapped[int] = mapped_column(Integer, nullable=False)
    funding_mode: Mapped[str] = mapped_column(String(8), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    idempotency_key: Mapped[str] = mapped_column(String(96), nullable=False)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    metadata_: Mapped[dict[str, object]] = mapped_column(
        "metadata",
        JSONB,
        nullable=False,
        server_default=text("'{}'::jsonb"),
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    failed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
