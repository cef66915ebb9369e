from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from credits_engine.economy.entitlements.types import FundingMode

ACTION_CREATED_EVENT = "action_created"


@dataclass(frozen=True, slots=True)
class SubmissionResult:
    action_id: UUID
    action_type: str
    funding_mode: FundingMode
    cost: int
    idempotent_replay: bool = False
