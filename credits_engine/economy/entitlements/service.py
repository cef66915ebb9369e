from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from credits_engine.economy.config.types import EconomyConfig
from credits_engine.economy.entitlements.rules import decide_entitlement
from credits_engine.economy.entitlements.types import EntitlementDecision
from credits_engine.economy.ledger.errors import WalletClosedError
from credits_engine.economy.ledger.service import LedgerService
from credits_engine.economy.quota.service import QuotaService
from credits_engine.economy.quota.time import utc_day


class EntitlementResolver:
    @staticmethod
    async def resolve(
        session: AsyncSession,
        *,
        user_id: UUID,
        cost: int,
        config: EconomyConfig,
        now_utc: datetime,
        allow_free: bool = True,
    ) -> EntitlementDecision:
        """Non-binding decision; consumption happens later in the submission flow.

        Only the lazy wallet creation of get_balance writes anything.
        """
        remaining = 0
        if allow_free and cost > 0:
            remaining = await QuotaService.remaining_free_uses(
                session,
                user_id=user_id,
                day=utc_day(now_utc),
                daily_limit=config.daily_free_limit,
            )
        balance = await LedgerService.get_balance(
            session,
            user_id=user_id,
            welcome_credits=config.welcome_credits,
            now_utc=now_utc,
        )
        if balance.closed:
            raise WalletClosedError(str(user_id))
        return decide_entitlement(
            remaining_free_uses=remaining,
            credits=balance.credits,
            cost=cost,
            allow_free=allow_free,
        )
