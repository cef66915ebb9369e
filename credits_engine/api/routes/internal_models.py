from __future__ import annotations

from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field


class ActionSubmitRequest(BaseModel):
    user_id: UUID
    action_type: str = Field(min_length=1, max_length=32)
    idempotency_key: str = Field(min_length=1, max_length=96)
    note: str | None = Field(default=None, max_length=4000)
    metadata: dict[str, Any] = Field(default_factory=dict)


class ActionSubmitResponse(BaseModel):
    action_id: UUID
    action_type: str
    funding_mode: str
    cost: int = Field(ge=0)
    idempotent_replay: bool


class BalanceResponse(BaseModel):
    user_id: UUID
    credits: int = Field(ge=0)
    diamonds: int = Field(ge=0)
    free_uses_remaining: int = Field(ge=0)
    daily_free_limit: int = Field(ge=0)


class DailyRewardRequest(BaseModel):
    user_id: UUID


class DailyRewardResponse(BaseModel):
    granted: bool
    amount: int = Field(ge=0)
    currency: str | None = None


class AdRewardRequest(BaseModel):
    user_id: UUID
    impression_id: str = Field(min_length=1, max_length=96)


class PurchaseWebhookRequest(BaseModel):
    user_id: UUID
    transaction_id: str = Field(min_length=1, max_length=128)
    credit_amount: int = Field(gt=0)


class RewardGrantResponse(BaseModel):
    grant_id: int
    rule_type: str
    amount: int = Field(gt=0)
    currency: str
    credits: int = Field(ge=0)
    diamonds: int = Field(ge=0)


class DiamondExchangeRequest(BaseModel):
    diamonds: int = Field(gt=0)
    idempotency_key: str = Field(min_length=1, max_length=96)


class DiamondExchangeResponse(BaseModel):
    diamonds_spent: int = Field(ge=0)
    credits_received: int = Field(ge=0)
    credits: int = Field(ge=0)
    diamonds: int = Field(ge=0)
    idempotent_replay: bool


class WalletCloseResponse(BaseModel):
    credits_removed: int = Field(ge=0)
    diamonds_removed: int = Field(ge=0)
    already_closed: bool
