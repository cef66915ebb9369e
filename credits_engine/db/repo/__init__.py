from credits_engine.db.repo.app_config_repo import AppConfigRepo
from credits_engine.db.repo.daily_free_usages_repo import DailyFreeUsagesRepo
from credits_engine.db.repo.fortune_requests_repo import FortuneRequestsRepo
from credits_engine.db.repo.ledger_repo import LedgerRepo
from credits_engine.db.repo.outbox_events_repo import OutboxEventsRepo
from credits_engine.db.repo.reward_grants_repo import RewardGrantsRepo
from credits_engine.db.repo.wallets_repo import WalletsRepo

__all__ = [
    "AppConfigRepo",
    "DailyFreeUsagesRepo",
    "FortuneRequestsRepo",
    "LedgerRepo",
    "OutboxEventsRepo",
    "RewardGrantsRepo",
    "WalletsRepo",
]
