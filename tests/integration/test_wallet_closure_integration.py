from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

import pytest
from sqlalchemy import func, select

from credits_engine.db.models.fortune_requests import FortuneRequest
from credits_engine.db.session import SessionLocal
from credits_engine.economy.config.service import load_economy_config
from credits_engine.economy.ledger.errors import WalletClosedError
from credits_engine.economy.ledger.service import LedgerService
from credits_engine.economy.rewards.service import RewardService
from credits_engine.economy.submissions.service import SubmissionService
from tests.integration.credits_fixtures import UTC, _balances, _create_wallet, _free_usage_count, _seed_economy


async def _close(user_id: UUID):
    async with SessionLocal.begin() as session:
        return await LedgerService.close_wallet(session, user_id=user_id, now_utc=datetime.now(UTC))


async def _action_count(user_id: UUID) -> int:
    async with SessionLocal.begin() as session:
        stmt = select(func.count(FortuneRequest.id)).where(FortuneRequest.user_id == user_id)
        return int((await session.execute(stmt)).scalar_one())


@pytest.mark.asyncio
async def test_closed_wallet_rejects_rewards_purchases_and_submissions() -> None:
    await _seed_economy(daily_free_limit=1, action_costs={"coffee": 50})
    user_id = await _create_wallet(200)

    closure = await _close(user_id)
    assert (closure.credits_removed, closure.already_closed) == (200, False)
    now_utc = datetime.now(UTC)

    with pytest.raises(WalletClosedError):
        async with SessionLocal.begin() as session:
            config = await load_economy_config(session)
            await RewardService.claim_daily_reward(session, user_id=user_id, config=config, now_utc=now_utc)

    with pytest.raises(WalletClosedError):
        async with SessionLocal.begin() as session:
            config = await load_economy_config(session)
            await RewardService.grant_purchase(
                session,
                user_id=user_id,
                transaction_id="txn-closed-1",
                credit_amount=500,
                config=config,
                now_utc=now_utc,
            )

    with pytest.raises(WalletClosedError):
        await SubmissionService.submit_action(
            user_id=user_id,
            action_type="coffee",
            idempotency_key="closed-1",
            now_utc=now_utc,
        )

    with pytest.raises(WalletClosedError):
        async with SessionLocal.begin() as session:
            config = await load_economy_config(session)
            await LedgerService.exchange_diamonds(
                session,
                user_id=user_id,
                diamonds=10,
                rate=config.diamond_exchange_rate,
                idempotency_key="ex-closed-1",
                welcome_credits=config.welcome_credits,
                now_utc=now_utc,
            )

    assert await _balances(user_id) == (0, 0)
    assert await _free_usage_count(user_id) == 0
    assert await _action_count(user_id) == 0

    again = await _close(user_id)
    assert (again.credits_removed, again.diamonds_removed, again.already_closed) == (0, 0, True)


@pytest.mark.asyncio
async def test_reversal_of_in_flight_debit_lands_after_closure() -> None:
    await _seed_economy()
    user_id = await _create_wallet(100)
    request_id = uuid4()
    now_utc = datetime.now(UTC)

    async with SessionLocal.begin() as session:
        debit = await LedgerService.debit(session, user_id=user_id, amount=40, request_id=request_id, now_utc=now_utc)
    assert debit.applied is True

    await _close(user_id)

    async with SessionLocal.begin() as session:
        await LedgerService.reverse(
            session,
            user_id=user_id,
            amount=40,
            request_id=request_id,
            now_utc=now_utc,
            reason="action_create_failed",
        )

    assert await _balances(user_id) == (40, 0)
