from credits_engine.economy.ledger.service import LedgerService

__all__ = ["LedgerService"]
