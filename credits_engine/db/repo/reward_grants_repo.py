from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from credits_engine.db.models.reward_grants import RewardGrant


class RewardGrantsRepo:
    @staticmethod
    async def exists(session: AsyncSession, *, rule_type: str, idempotency_key: str) -> bool:
        stmt = select(func.count(RewardGrant.id)).where(
            RewardGrant.rule_type == rule_type,
            RewardGrant.idempotency_key == idempotency_key,
        )
        result = await session.execute(stmt)
        return int(result.scalar_one() or 0) > 0

    @staticmethod
    async def create_once(
        session: AsyncSession,
        *,
        user_id: UUID,
        rule_type: str,
        idempotency_key: str,
        amount: int,
        currency: str,
        now_utc: datetime,
    ) -> int | None:
        stmt = (
            insert(RewardGrant)
            .values(
                user_id=user_id,
                rule_type=rule_type,
                idempotency_key=idempotency_key,
                amount=amount,
                currency=currency,
                created_at=now_utc,
            )
            .on_conflict_do_nothing(
                index_elements=[RewardGrant.rule_type, RewardGrant.idempotency_key]
            )
            .returning(RewardGrant.id)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_key(
        session: AsyncSession,
        *,
        rule_type: str,
        idempotency_key: str,
    ) -> RewardGrant | None:
        stmt = select(RewardGrant).where(
            RewardGrant.rule_type == rule_type,
            RewardGrant.idempotency_key == idempotency_key,
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()
