from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from credits_engine.db.repo.daily_free_usages_repo import DailyFreeUsagesRepo

logger = structlog.get_logger(__name__)


class QuotaService:
    @staticmethod
    async def remaining_free_uses(
        session: AsyncSession,
        *,
        user_id: UUID,
        day: date,
        daily_limit: int,
    ) -> int:
        if daily_limit <= 0:
            return 0
        used = await DailyFreeUsagesRepo.count_for_day(session, user_id=user_id, usage_date=day)
        return max(0, daily_limit - used)

    @staticmethod
    async def try_consume_free_use(
        session: AsyncSession,
        *,
        user_id: UUID,
        day: date,
        action_type: str,
        request_id: UUID,
        daily_limit: int,
        now_utc: datetime,
    ) -> bool:
        if daily_limit <= 0:
            return False

        # A slot conflict means a concurrent submission took that slot; the
        # next statement sees its committed row, so at most daily_limit tries.
        for _ in range(daily_limit):
            slot = await DailyFreeUsagesRepo.insert_next_slot_if_below_limit(
                session,
                user_id=user_id,
                usage_date=day,
                action_type=action_type,
                request_id=request_id,
                daily_limit=daily_limit,
                now_utc=now_utc,
            )
            if slot is not None:
                return True

            used = await DailyFreeUsagesRepo.count_for_day(session, user_id=user_id, usage_date=day)
            if used >= daily_limit:
                return False
            logger.info(
                "free_use_slot_conflict",
                user_id=str(user_id),
                usage_date=day.isoformat(),
                used=used,
            )
        return False
