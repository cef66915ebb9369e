from credits_engine.economy.rewards.service import RewardService

__all__ = ["RewardService"]
