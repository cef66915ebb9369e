from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from credits_engine.economy.ledger.types import Asset


class RewardRuleType(str, Enum):
    DAILY_LOGIN = "daily_login"
    AD_WATCH = "watch_ad"
    PURCHASE_GRANT = "purchase"


@dataclass(frozen=True, slots=True)
class EarningRule:
    type: RewardRuleType
    reward_amount: int
    currency: Asset
    active: bool


@dataclass(frozen=True, slots=True)
class EconomyConfig:
    """Read-only snapshot of the configuration service, taken once per request."""

    welcome_credits: int
    daily_free_limit: int
    diamond_exchange_rate: int
    maintenance_mode: bool
    action_costs: dict[str, int] = field(default_factory=dict)
    earning_rules: dict[RewardRuleType, EarningRule] = field(default_factory=dict)

    def active_rule(self, rule_type: RewardRuleType) -> EarningRule | None:
        rule = self.earning_rules.get(rule_type)
        if rule is None or not rule.active:
            return None
        return rule
