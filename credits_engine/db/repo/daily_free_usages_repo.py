from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

from sqlalchemy import Date, DateTime, SmallInteger, String, cast, func, literal, select
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from credits_engine.db.models.daily_free_usages import DailyFreeUsage


class DailyFreeUsagesRepo:
    @staticmethod
    async def count_for_day(session: AsyncSession, *, user_id: UUID, usage_date: date) -> int:
        stmt = select(func.count(DailyFreeUsage.id)).where(
            DailyFreeUsage.user_id == user_id,
            DailyFreeUsage.usage_date == usage_date,
        )
        result = await session.execute(stmt)
        return int(result.scalar_one() or 0)

    @staticmethod
    async def insert_next_slot_if_below_limit(
        session: AsyncSession,
        *,
        user_id: UUID,
        usage_date: date,
        action_type: str,
        request_id: UUID,
        daily_limit: int,
        now_utc: datetime,
    ) -> int | None:
        """Claims slot count+1 in one statement; returns the slot or None.

        None means either the day is already at the limit or another
        transaction took the same slot first.
        """
        used = func.count(DailyFreeUsage.id)
        source = (
            select(
                literal(user_id, PG_UUID(as_uuid=True)),
                literal(usage_date, Date()),
                cast(used + 1, SmallInteger),
                literal(action_type, String()),
                literal(request_id, PG_UUID(as_uuid=True)),
                literal(now_utc, DateTime(timezone=True)),
            )
            .where(
                DailyFreeUsage.user_id == user_id,
                DailyFreeUsage.usage_date == usage_date,
            )
            .having(used < daily_limit)
        )
        stmt = (
            insert(DailyFreeUsage)
            .from_select(
                ["user_id", "usage_date", "slot", "action_type", "request_id", "created_at"],
                source,
            )
            .on_conflict_do_nothing(
                index_elements=[
                    DailyFreeUsage.user_id,
                    DailyFreeUsage.usage_date,
                    DailyFreeUsage.slot,
                ]
            )
            .returning(DailyFreeUsage.slot)
        )
        result = await session.execute(stmt)
        slot = result.scalar_one_or_none()
        return int(slot) if slot is not None else None
