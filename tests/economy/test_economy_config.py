from __future__ import annotations

from types import SimpleNamespace

import pytest

from credits_engine.economy.config import service as config_service
from credits_engine.economy.config.errors import UnknownActionTypeError
from credits_engine.economy.config.types import RewardRuleType
from credits_engine.economy.ledger.types import Asset


@pytest.fixture(autouse=True)
def _settings(monkeypatch) -> None:
    monkeypatch.setattr(
        config_service,
        "get_settings",
        lambda: SimpleNamespace(default_welcome_credits=500, default_diamond_exchange_rate=10),
    )


def _app_config(**overrides: object) -> SimpleNamespace:
    base = {
        "welcome_credits": 300,
        "daily_free_limit": 2,
        "diamond_exchange_rate": 20,
        "maintenance_mode": False,
        "action_costs": {},
    }
    base.update(overrides)
    return SimpleNamespace(**base)


def _rule(rule_type: str, amount: int, *, currency: str = "DIAMONDS", active: bool = True) -> SimpleNamespace:
    return SimpleNamespace(type=rule_type, reward_amount=amount, currency=currency, active=active)


def test_missing_config_row_disables_free_tier_and_uses_defaults() -> None:
    config = config_service.build_economy_config(None, [])

    assert config.welcome_credits == 500
    assert config.daily_free_limit == 0
    assert config.diamond_exchange_rate == 10
    assert config.maintenance_mode is False
    assert config_service.action_cost(config, "tarot") == 150


def test_action_cost_prefers_configured_override() -> None:
    config = config_service.build_economy_config(_app_config(action_costs={"Coffee": 80, "dream": 0}), [])

    assert config_service.action_cost(config, "coffee") == 80
    assert config_service.action_cost(config, "dream") == 0
    assert config_service.action_cost(config, "palm") == 150


def test_invalid_cost_entries_are_dropped() -> None:
    config = config_service.build_economy_config(
        _app_config(action_costs={"astrology": 10, "love": -5, "card": "cheap", "color": True}),
        [],
    )

    assert config.action_costs == {}
    assert config_service.action_cost(config, "love") == 100


def test_unknown_action_type_raises() -> None:
    config = config_service.build_economy_config(_app_config(), [])
    with pytest.raises(UnknownActionTypeError):
        config_service.action_cost(config, "horoscope")


def test_null_daily_limit_means_no_free_tier() -> None:
    config = config_service.build_economy_config(_app_config(daily_free_limit=None), [])
    assert config.daily_free_limit == 0


def test_earning_rules_resolve_to_closed_variants() -> None:
    config = config_service.build_economy_config(
        _app_config(),
        [
            _rule("daily_login", 10),
            _rule("watch_ad", 5, active=False),
            _rule("spin_wheel", 99),
            _rule("daily_login_bonus", 3, currency="GOLD"),
        ],
    )

    assert set(config.earning_rules) == {RewardRuleType.DAILY_LOGIN, RewardRuleType.AD_WATCH}
    daily = config.active_rule(RewardRuleType.DAILY_LOGIN)
    assert daily is not None
    assert daily.reward_amount == 10
    assert daily.currency == Asset.DIAMONDS
    assert config.active_rule(RewardRuleType.AD_WATCH) is None
    assert config.active_rule(RewardRuleType.PURCHASE_GRANT) is None
