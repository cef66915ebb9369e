from credits_engine.economy.entitlements.service import EntitlementResolver

__all__ = ["EntitlementResolver"]
