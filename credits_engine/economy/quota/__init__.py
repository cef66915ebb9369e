from credits_engine.economy.quota.service import QuotaService

__all__ = ["QuotaService"]
