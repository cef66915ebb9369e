from credits_engine.db.models.app_config import AppConfig
from credits_engine.db.models.daily_free_usages import DailyFreeUsage
from credits_engine.db.models.earning_rules import EarningRuleRow
from credits_engine.db.models.fortune_requests import FortuneRequest
from credits_engine.db.models.ledger_entries import LedgerEntry
from credits_engine.db.models.outbox_events import OutboxEvent
from credits_engine.db.models.reward_grants import RewardGrant
from credits_engine.db.models.wallets import Wallet

__all__ = [
    "AppConfig",
    "DailyFreeUsage",
    "EarningRuleRow",
    "FortuneRequest",
    "LedgerEntry",
    "OutboxEvent",
    "RewardGrant",
    "Wallet",
]
