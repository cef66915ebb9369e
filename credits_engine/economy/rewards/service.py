from __future__ import annotations

from datetime import datetime
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from credits_engine.db.repo.reward_grants_repo import RewardGrantsRepo
from credits_engine.economy.config.types import EconomyConfig, RewardRuleType
from credits_engine.economy.ledger.service import LedgerService
from credits_engine.economy.ledger.types import Asset, LedgerEntryType
from credits_engine.economy.quota.time import utc_day
from credits_engine.economy.rewards.errors import (
    InvalidRewardAmountError,
    RewardAlreadyClaimedError,
    RewardRuleUnavailableError,
)
from credits_engine.economy.rewards.keys import ad_watch_key, daily_login_key, purchase_key
from credits_engine.economy.rewards.types import DailyRewardResult, RewardClaimResult

logger = structlog.get_logger(__name__)


def _resolve_grant(
    config: EconomyConfig,
    *,
    rule_type: RewardRuleType,
    amount: int | None,
) -> tuple[int, Asset]:
    if rule_type == RewardRuleType.PURCHASE_GRANT:
        # Paid purchases are granted regardless of the earning-rule table.
        if amount is None or amount <= 0:
            raise InvalidRewardAmountError("purchase grants need a positive credit amount")
        return amount, Asset.CREDITS

    rule = config.active_rule(rule_type)
    if rule is None:
        raise RewardRuleUnavailableError(rule_type.value)
    return rule.reward_amount, rule.currency


class RewardService:
    @staticmethod
    async def is_eligible(
        session: AsyncSession,
        *,
        rule_type: RewardRuleType,
        idempotency_key: str,
    ) -> bool:
        return not await RewardGrantsRepo.exists(
            session,
            rule_type=rule_type.value,
            idempotency_key=idempotency_key,
        )

    @staticmethod
    async def claim(
        session: AsyncSession,
        *,
        user_id: UUID,
        rule_type: RewardRuleType,
        idempotency_key: str,
        config: EconomyConfig,
        now_utc: datetime,
        amount: int | None = None,
    ) -> RewardClaimResult:
        grant_amount, currency = _resolve_grant(config, rule_type=rule_type, amount=amount)

        grant_id = await RewardGrantsRepo.create_once(
            session,
            user_id=user_id,
            rule_type=rule_type.value,
            idempotency_key=idempotency_key,
            amount=grant_amount,
            currency=currency.value,
            now_utc=now_utc,
        )
        if grant_id is None:
            logger.info(
                "reward_claim_duplicate",
                user_id=str(user_id),
                rule_type=rule_type.value,
            )
            raise RewardAlreadyClaimedError(idempotency_key)

        entry_type = (
            LedgerEntryType.PURCHASE_CREDIT
            if rule_type == RewardRuleType.PURCHASE_GRANT
            else LedgerEntryType.REWARD_CREDIT
        )
        credit_result = await LedgerService.credit(
            session,
            user_id=user_id,
            amount=grant_amount,
            asset=currency,
            idempotency_key=f"reward:{rule_type.value}:{idempotency_key}",
            entry_type=entry_type,
            source=rule_type.value.upper(),
            welcome_credits=config.welcome_credits,
            now_utc=now_utc,
            metadata={"grant_id": grant_id},
        )
        logger.info(
            "reward_claimed",
            user_id=str(user_id),
            rule_type=rule_type.value,
            amount=grant_amount,
            currency=currency.value,
        )
        return RewardClaimResult(
            rule_type=rule_type,
            grant_id=grant_id,
            amount=grant_amount,
            currency=currency,
            credits=credit_result.credits,
            diamonds=credit_result.diamonds,
        )

    @staticmethod
    async def claim_daily_reward(
        session: AsyncSession,
        *,
        user_id: UUID,
        config: EconomyConfig,
        now_utc: datetime,
    ) -> DailyRewardResult:
        try:
            result = await RewardService.claim(
                session,
                user_id=user_id,
                rule_type=RewardRuleType.DAILY_LOGIN,
                idempotency_key=daily_login_key(user_id, utc_day(now_utc)),
                config=config,
                now_utc=now_utc,
            )
        except RewardAlreadyClaimedError:
            return DailyRewardResult(granted=False, amount=0)
        return DailyRewardResult(granted=True, amount=result.amount, currency=result.currency)

    @staticmethod
    async def claim_ad_reward(
        session: AsyncSession,
        *,
        user_id: UUID,
        impression_id: str,
        config: EconomyConfig,
        now_utc: datetime,
    ) -> RewardClaimResult:
        return await RewardService.claim(
            session,
            user_id=user_id,
            rule_type=RewardRuleType.AD_WATCH,
            idempotency_key=ad_watch_key(user_id, impression_id),
            config=config,
            now_utc=now_utc,
        )

    @staticmethod
    async def grant_purchase(
        session: AsyncSession,
        *,
        user_id: UUID,
        transaction_id: str,
        credit_amount: int,
        config: EconomyConfig,
        now_utc: datetime,
    ) -> RewardClaimResult:
        return await RewardService.claim(
            session,
            user_id=user_id,
            rule_type=RewardRuleType.PURCHASE_GRANT,
            idempotency_key=purchase_key(transaction_id),
            config=config,
            now_utc=now_utc,
            amount=credit_amount,
        )
