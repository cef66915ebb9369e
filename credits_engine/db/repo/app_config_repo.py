from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from credits_engine.db.models.app_config import AppConfig
from credits_engine.db.models.earning_rules import EarningRuleRow


class AppConfigRepo:
    @staticmethod
    async def get_current(session: AsyncSession) -> AppConfig | None:
        stmt = select(AppConfig).order_by(AppConfig.id.asc()).limit(1)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def list_earning_rules(session: AsyncSession) -> list[EarningRuleRow]:
        stmt = select(EarningRuleRow).order_by(EarningRuleRow.type.asc())
        result = await session.execute(stmt)
        return list(result.scalars().all())
