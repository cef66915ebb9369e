from __future__ import annotations

from credits_engine.economy.entitlements.types import DenialReason, EntitlementDecision, FundingMode


def decide_entitlement(
    *,
    remaining_free_uses: int,
    credits: int,
    cost: int,
    allow_free: bool = True,
) -> EntitlementDecision:
    if cost < 0:
        raise ValueError("cost must be non-negative")

    if cost == 0:
        return EntitlementDecision(mode=FundingMode.PAID, cost=0)
    if allow_free and remaining_free_uses > 0:
        return EntitlementDecision(mode=FundingMode.FREE, cost=0)
    if credits >= cost:
        return EntitlementDecision(mode=FundingMode.PAID, cost=cost)
    return EntitlementDecision(
        mode=FundingMode.DENIED,
        cost=cost,
        reason=DenialReason.INSUFFICIENT_CREDITS,
    )
