from credits_engine.economy.config.service import action_cost, build_economy_config, load_economy_config
from credits_engine.economy.config.types import EarningRule, EconomyConfig, RewardRuleType

__all__ = [
    "EarningRule",
    "EconomyConfig",
    "RewardRuleType",
    "action_cost",
    "build_economy_config",
    "load_economy_config",
]
