from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from credits_engine.db.models.fortune_requests import FortuneRequest


class FortuneRequestsRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, request_id: UUID) -> FortuneRequest | None:
        return await session.get(FortuneRequest, request_id)

    @staticmethod
    async def get_by_idempotency_key(
        session: AsyncSession,
        *,
        user_id: UUID,
        idempotency_key: str,
    ) -> FortuneRequest | None:
        stmt = select(FortuneRequest).where(
            FortuneRequest.user_id == user_id,
            FortuneRequest.idempotency_key == idempotency_key,
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(session: AsyncSession, *, fortune_request: FortuneRequest) -> FortuneRequest:
        session.add(fortune_request)
        await session.flush()
        return fortune_request

    @staticmethod
    async def mark_failed(session: AsyncSession, *, request_id: UUID, now_utc: datetime) -> bool:
        stmt = (
            update(FortuneRequest)
            .where(FortuneRequest.id == request_id, FortuneRequest.status == "PENDING")
            .values(status="FAILED", failed_at=now_utc)
            .returning(FortuneRequest.id)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None
