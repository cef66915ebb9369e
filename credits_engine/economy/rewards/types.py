from __future__ import annotations

from dataclasses import dataclass

from credits_engine.economy.config.types import RewardRuleType
from credits_engine.economy.ledger.types import Asset


@dataclass(slots=True)
class RewardClaimResult:
    rule_type: RewardRuleType
    grant_id: int
    amount: int
    currency: Asset
    credits: int
    diamonds: int


@dataclass(slots=True)
class DailyRewardResult:
    granted: bool
    amount: int
    currency: Asset | None = None
