from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy import case, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from credits_engine.db.models.outbox_events import OutboxEvent


class OutboxEventsRepo:
    @staticmethod
    async def create(
        session: AsyncSession,
        *,
        event_type: str,
        payload: dict[str, object],
        status: str = "PENDING",
    ) -> OutboxEvent:
        event = OutboxEvent(
            event_type=event_type,
            payload=payload,
            status=status,
            attempts=0,
        )
        session.add(event)
        await session.flush()
        return event

    @staticmethod
    async def claim_pending_batch(
        session: AsyncSession,
        *,
        event_types: tuple[str, ...],
        limit: int,
        now_utc: datetime,
        lease_seconds: int,
    ) -> list[OutboxEvent]:
        """Leases due events by pushing available_at forward.

        The row locks end with the caller's transaction; the lease keeps other
        dispatchers away while delivery happens outside any transaction.
        """
        due_ids = (
            select(OutboxEvent.id)
            .where(
                OutboxEvent.status == "PENDING",
                OutboxEvent.event_type.in_(event_types),
                OutboxEvent.available_at <= now_utc,
            )
            .order_by(OutboxEvent.created_at.asc(), OutboxEvent.id.asc())
            .limit(max(1, int(limit)))
            .with_for_update(skip_locked=True)
        )
        stmt = (
            update(OutboxEvent)
            .where(OutboxEvent.id.in_(due_ids))
            .values(available_at=now_utc + timedelta(seconds=lease_seconds))
            .returning(OutboxEvent)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return sorted(result.scalars().all(), key=lambda event: (event.created_at, event.id))

    @staticmethod
    async def mark_sent(session: AsyncSession, *, event_id: int, sent_at: datetime) -> None:
        stmt = (
            update(OutboxEvent)
            .where(OutboxEvent.id == event_id)
            .values(status="SENT", sent_at=sent_at, attempts=OutboxEvent.attempts + 1)
            .execution_options(synchronize_session=False)
        )
        await session.execute(stmt)

    @staticmethod
    async def record_failed_attempt(
        session: AsyncSession,
        *,
        event_id: int,
        max_attempts: int,
    ) -> str:
        next_attempts = OutboxEvent.attempts + 1
        stmt = (
            update(OutboxEvent)
            .where(OutboxEvent.id == event_id)
            .values(
                attempts=next_attempts,
                status=case((next_attempts >= max_attempts, "FAILED"), else_="PENDING"),
            )
            .returning(OutboxEvent.status)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return str(result.scalar_one())
