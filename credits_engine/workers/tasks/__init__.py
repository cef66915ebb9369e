from credits_engine.workers.tasks.action_events import dispatch_action_events
from credits_engine.workers.tasks.ledger_reliability import (
    compensate_stale_debits,
    run_wallet_reconciliation,
)

__all__ = [
    "compensate_stale_debits",
    "dispatch_action_events",
    "run_wallet_reconciliation",
]
