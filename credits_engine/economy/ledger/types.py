from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Asset(str, Enum):
    CREDITS = "CREDITS"
    DIAMONDS = "DIAMONDS"


class LedgerEntryType(str, Enum):
    WELCOME_CREDIT = "WELCOME_CREDIT"
    ACTION_DEBIT = "ACTION_DEBIT"
    ACTION_REVERSAL = "ACTION_REVERSAL"
    REWARD_CREDIT = "REWARD_CREDIT"
    PURCHASE_CREDIT = "PURCHASE_CREDIT"
    DIAMOND_EXCHANGE = "DIAMOND_EXCHANGE"
    ACCOUNT_CLOSURE = "ACCOUNT_CLOSURE"


@dataclass(frozen=True, slots=True)
class Balance:
    credits: int
    diamonds: int
    closed: bool = False


@dataclass(slots=True)
class DebitResult:
    applied: bool
    amount: int
    credits: int
    diamonds: int


@dataclass(slots=True)
class CreditResult:
    amount: int
    asset: Asset
    idempotent_replay: bool
    credits: int
    diamonds: int


@dataclass(slots=True)
class ExchangeResult:
    diamonds_spent: int
    credits_received: int
    idempotent_replay: bool
    credits: int
    diamonds: int


@dataclass(slots=True)
class ClosureResult:
    credits_removed: int
    diamonds_removed: int
    already_closed: bool
