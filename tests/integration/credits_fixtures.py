from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID, uuid4

from sqlalchemy import func, select

from credits_engine.db.models.app_config import AppConfig
from credits_engine.db.models.daily_free_usages import DailyFreeUsage
from credits_engine.db.models.earning_rules import EarningRuleRow
from credits_engine.db.repo.wallets_repo import WalletsRepo
from credits_engine.db.session import SessionLocal
from credits_engine.economy.ledger.service import LedgerService

UTC = timezone.utc


async def _seed_economy(
    *,
    welcome_credits: int = 0,
    daily_free_limit: int = 0,
    action_costs: dict[str, int] | None = None,
    diamond_exchange_rate: int = 10,
) -> None:
    async with SessionLocal.begin() as session:
        session.add(
            AppConfig(
                id=1,
                welcome_credits=welcome_credits,
                daily_free_limit=daily_free_limit,
                action_costs=action_costs or {},
                diamond_exchange_rate=diamond_exchange_rate,
                maintenance_mode=False,
                updated_at=datetime.now(UTC),
            )
        )
        session.add(EarningRuleRow(type="daily_login", reward_amount=10, currency="DIAMONDS", active=True))
        session.add(EarningRuleRow(type="watch_ad", reward_amount=5, currency="DIAMONDS", active=True))
        await session.flush()


async def _create_wallet(credits: int) -> UUID:
    user_id = uuid4()
    async with SessionLocal.begin() as session:
        await LedgerService.ensure_wallet(
            session,
            user_id=user_id,
            welcome_credits=credits,
            now_utc=datetime.now(UTC),
        )
    return user_id


async def _balances(user_id: UUID) -> tuple[int, int]:
    async with SessionLocal.begin() as session:
        balances = await WalletsRepo.get_balances(session, user_id)
    assert balances is not None
    return balances


async def _free_usage_count(user_id: UUID) -> int:
    async with SessionLocal.begin() as session:
        stmt = select(func.count(DailyFreeUsage.id)).where(DailyFreeUsage.user_id == user_id)
        return int((await session.execute(stmt)).scalar_one())
