from __future__ import annotations

from collections.abc import Iterable, Mapping

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from credits_engine.core.config import get_settings
from credits_engine.db.models.app_config import AppConfig
from credits_engine.db.models.earning_rules import EarningRuleRow
from credits_engine.db.repo.app_config_repo import AppConfigRepo
from credits_engine.economy.catalog import get_action_type
from credits_engine.economy.config.errors import UnknownActionTypeError
from credits_engine.economy.config.types import EarningRule, EconomyConfig, RewardRuleType
from credits_engine.economy.ledger.types import Asset

logger = structlog.get_logger(__name__)


def _parse_action_costs(raw_costs: Mapping[str, object] | None) -> dict[str, int]:
    if not raw_costs:
        return {}

    costs: dict[str, int] = {}
    for raw_code, raw_cost in raw_costs.items():
        action = get_action_type(str(raw_code))
        if action is None:
            logger.warning("economy_config_unknown_action_cost", action_type=str(raw_code))
            continue
        if isinstance(raw_cost, bool) or not isinstance(raw_cost, int) or raw_cost < 0:
            logger.warning("economy_config_invalid_action_cost", action_type=action.code)
            continue
        costs[action.code] = raw_cost
    return costs


def _parse_earning_rules(rows: Iterable[EarningRuleRow]) -> dict[RewardRuleType, EarningRule]:
    rules: dict[RewardRuleType, EarningRule] = {}
    for row in rows:
        try:
            rule_type = RewardRuleType(row.type)
            currency = Asset(row.currency)
        except ValueError:
            logger.warning("economy_config_unknown_earning_rule", rule_type=row.type)
            continue
        rules[rule_type] = EarningRule(
            type=rule_type,
            reward_amount=int(row.reward_amount),
            currency=currency,
            active=bool(row.active),
        )
    return rules


def build_economy_config(
    app_config: AppConfig | None,
    earning_rule_rows: Iterable[EarningRuleRow],
) -> EconomyConfig:
    settings = get_settings()
    rules = _parse_earning_rules(earning_rule_rows)
    if app_config is None:
        return EconomyConfig(
            welcome_credits=settings.default_welcome_credits,
            daily_free_limit=0,
            diamond_exchange_rate=settings.default_diamond_exchange_rate,
            maintenance_mode=False,
            earning_rules=rules,
        )

    return EconomyConfig(
        welcome_credits=max(0, int(app_config.welcome_credits)),
        daily_free_limit=max(0, int(app_config.daily_free_limit or 0)),
        diamond_exchange_rate=max(1, int(app_config.diamond_exchange_rate)),
        maintenance_mode=bool(app_config.maintenance_mode),
        action_costs=_parse_action_costs(app_config.action_costs),
        earning_rules=rules,
    )


async def load_economy_config(session: AsyncSession) -> EconomyConfig:
    app_config = await AppConfigRepo.get_current(session)
    rule_rows = await AppConfigRepo.list_earning_rules(session)
    return build_economy_config(app_config, rule_rows)


def action_cost(config: EconomyConfig, action_type: str) -> int:
    action = get_action_type(action_type)
    if action is None:
        raise UnknownActionTypeError(action_type)
    return config.action_costs.get(action.code, action.default_cost)
