from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import and_, case, exists, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from credits_engine.db.models.fortune_requests import FortuneRequest
from credits_engine.db.models.ledger_entries import LedgerEntry
from credits_engine.db.models.wallets import Wallet


class LedgerRepo:
    @staticmethod
    async def get_by_idempotency_key(
        session: AsyncSession, idempotency_key: str
    ) -> LedgerEntry | None:
        stmt = select(LedgerEntry).where(LedgerEntry.idempotency_key == idempotency_key)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(session: AsyncSession, *, entry: LedgerEntry) -> LedgerEntry:
        session.add(entry)
        await session.flush()
        return entry

    @staticmethod
    async def list_unmatched_action_debits(
        session: AsyncSession,
        *,
        older_than_utc: datetime,
        limit: int,
    ) -> list[LedgerEntry]:
        """Action debits whose action record never landed and which were never reversed."""
        reversal = aliased(LedgerEntry)
        stmt = (
            select(LedgerEntry)
            .where(
                LedgerEntry.entry_type == "ACTION_DEBIT",
                LedgerEntry.request_id.is_not(None),
                LedgerEntry.created_at < older_than_utc,
                ~exists().where(FortuneRequest.id == LedgerEntry.request_id),
                ~exists().where(
                    and_(
                        reversal.request_id == LedgerEntry.request_id,
                        reversal.entry_type == "ACTION_REVERSAL",
                    )
                ),
            )
            .order_by(LedgerEntry.created_at.asc(), LedgerEntry.id.asc())
            .limit(max(1, int(limit)))
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def journal_totals_by_user(
        session: AsyncSession,
        *,
        user_ids: list[UUID],
    ) -> dict[UUID, tuple[int, int]]:
        signed_amount = case(
            (LedgerEntry.direction == "CREDIT", LedgerEntry.amount),
            else_=-LedgerEntry.amount,
        )
        stmt = (
            select(
                LedgerEntry.user_id,
                func.coalesce(
                    func.sum(case((LedgerEntry.asset == "CREDITS", signed_amount), else_=0)), 0
                ),
                func.coalesce(
                    func.sum(case((LedgerEntry.asset == "DIAMONDS", signed_amount), else_=0)), 0
                ),
            )
            .where(LedgerEntry.user_id.in_(user_ids))
            .group_by(LedgerEntry.user_id)
        )
        result = await session.execute(stmt)
        return {
            user_id: (int(credits or 0), int(diamonds or 0))
            for user_id, credits, diamonds in result.all()
        }

    @staticmethod
    async def wallet_balances(
        session: AsyncSession,
        *,
        user_ids: list[UUID],
    ) -> dict[UUID, tuple[int, int]]:
        stmt = select(Wallet.user_id, Wallet.credits, Wallet.diamonds).where(
            Wallet.user_id.in_(user_ids)
        )
        result = await session.execute(stmt)
        return {user_id: (int(credits), int(diamonds)) for user_id, credits, diamonds in result.all()}
