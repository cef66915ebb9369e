from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class FundingMode(str, Enum):
    FREE = "FREE"
    PAID = "PAID"
    DENIED = "DENIED"


class DenialReason(str, Enum):
    INSUFFICIENT_CREDITS = "INSUFFICIENT_CREDITS"


@dataclass(frozen=True, slots=True)
class EntitlementDecision:
    mode: FundingMode
    cost: int
    reason: DenialReason | None = None

    @property
    def allowed(self) -> bool:
        return self.mode != FundingMode.DENIED
