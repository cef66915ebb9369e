from __future__ import annotations

from datetime import date
from uuid import UUID


def daily_login_key(user_id: UUID, day: date) -> str:
    return f"{user_id}:{day.isoformat()}"


def ad_watch_key(user_id: UUID, impression_id: str) -> str:
    return f"{user_id}:{impression_id.strip()}"


def purchase_key(transaction_id: str) -> str:
    return transaction_id.strip()
