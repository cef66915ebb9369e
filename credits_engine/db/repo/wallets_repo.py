from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from credits_engine.db.models.wallets import Wallet

_ASSET_COLUMNS = {
    "CREDITS": Wallet.credits,
    "DIAMONDS": Wallet.diamonds,
}


def _column_for(asset: str):
    try:
        return _ASSET_COLUMNS[asset]
    except KeyError:
        raise ValueError(f"unsupported wallet asset: {asset}") from None


class WalletsRepo:
    @staticmethod
    async def get_balances(session: AsyncSession, user_id: UUID) -> tuple[int, int] | None:
        stmt = select(Wallet.credits, Wallet.diamonds).where(Wallet.user_id == user_id)
        row = (await session.execute(stmt)).one_or_none()
        if row is None:
            return None
        return int(row.credits), int(row.diamonds)

    @staticmethod
    async def is_closed(session: AsyncSession, user_id: UUID) -> bool:
        stmt = select(Wallet.closed_at).where(Wallet.user_id == user_id)
        return (await session.execute(stmt)).scalar_one_or_none() is not None

    @staticmethod
    async def get_by_user_id_for_update(session: AsyncSession, user_id: UUID) -> Wallet | None:
        stmt = (
            select(Wallet)
            .where(Wallet.user_id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create_if_absent(
        session: AsyncSession,
        *,
        user_id: UUID,
        welcome_credits: int,
        now_utc: datetime,
    ) -> bool:
        stmt = (
            insert(Wallet)
            .values(
                user_id=user_id,
                credits=welcome_credits,
                diamonds=0,
                version=0,
                created_at=now_utc,
                updated_at=now_utc,
            )
            .on_conflict_do_nothing(index_elements=[Wallet.user_id])
            .returning(Wallet.user_id)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def decrement_if_sufficient(
        session: AsyncSession,
        *,
        user_id: UUID,
        asset: str,
        amount: int,
        now_utc: datetime,
    ) -> tuple[int, int] | None:
        column = _column_for(asset)
        stmt = (
            update(Wallet)
            .where(Wallet.user_id == user_id, Wallet.closed_at.is_(None), column >= amount)
            .values(
                {
                    column: column - amount,
                    Wallet.version: Wallet.version + 1,
                    Wallet.updated_at: now_utc,
                }
            )
            .returning(Wallet.credits, Wallet.diamonds)
            .execution_options(synchronize_session=False)
        )
        row = (await session.execute(stmt)).one_or_none()
        if row is None:
            return None
        return int(row.credits), int(row.diamonds)

    @staticmethod
    async def increment(
        session: AsyncSession,
        *,
        user_id: UUID,
        asset: str,
        amount: int,
        now_utc: datetime,
        allow_closed: bool = False,
    ) -> tuple[int, int] | None:
        column = _column_for(asset)
        conditions = [Wallet.user_id == user_id]
        if not allow_closed:
            conditions.append(Wallet.closed_at.is_(None))
        stmt = (
            update(Wallet)
            .where(*conditions)
            .values(
                {
                    column: column + amount,
                    Wallet.version: Wallet.version + 1,
                    Wallet.updated_at: now_utc,
                }
            )
            .returning(Wallet.credits, Wallet.diamonds)
            .execution_options(synchronize_session=False)
        )
        row = (await session.execute(stmt)).one_or_none()
        if row is None:
            return None
        return int(row.credits), int(row.diamonds)

    @staticmethod
    async def exchange_diamonds_if_sufficient(
        session: AsyncSession,
        *,
        user_id: UUID,
        diamonds: int,
        credits: int,
        now_utc: datetime,
    ) -> tuple[int, int] | None:
        stmt = (
            update(Wallet)
            .where(Wallet.user_id == user_id, Wallet.closed_at.is_(None), Wallet.diamonds >= diamonds)
            .values(
                diamonds=Wallet.diamonds - diamonds,
                credits=Wallet.credits + credits,
                version=Wallet.version + 1,
                updated_at=now_utc,
            )
            .returning(Wallet.credits, Wallet.diamonds)
            .execution_options(synchronize_session=False)
        )
        row = (await session.execute(stmt)).one_or_none()
        if row is None:
            return None
        return int(row.credits), int(row.diamonds)

    @staticmethod
    async def list_user_ids(session: AsyncSession, *, after_user_id: UUID | None, limit: int) -> list[UUID]:
        stmt = select(Wallet.user_id).order_by(Wallet.user_id.asc()).limit(max(1, int(limit)))
        if after_user_id is not None:
            stmt = stmt.where(Wallet.user_id > after_user_id)
        result = await session.execute(stmt)
        return list(result.scalars().all())
