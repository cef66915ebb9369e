from __future__ import annotations

from datetime import datetime
from uuid import uuid4

import pytest

from credits_engine.db.session import SessionLocal
from credits_engine.economy.entitlements.types import FundingMode
from credits_engine.economy.quota.service import QuotaService
from credits_engine.economy.quota.time import utc_day
from credits_engine.economy.submissions import service as submission_module
from credits_engine.economy.submissions.errors import ActionCreationFailedError, InsufficientCreditsError
from credits_engine.economy.submissions.service import SubmissionService
from tests.integration.credits_fixtures import UTC, _balances, _create_wallet, _free_usage_count, _seed_economy


@pytest.mark.asyncio
async def test_paid_submission_debits_cost() -> None:
    await _seed_economy(daily_free_limit=0, action_costs={"coffee": 50})
    user_id = await _create_wallet(100)

    result = await SubmissionService.submit_action(
        user_id=user_id,
        action_type="coffee",
        idempotency_key="paid-1",
        now_utc=datetime.now(UTC),
    )

    assert result.funding_mode == FundingMode.PAID
    assert result.cost == 50
    assert await _balances(user_id) == (50, 0)


@pytest.mark.asyncio
async def test_first_submission_of_day_is_free() -> None:
    await _seed_economy(daily_free_limit=1, action_costs={"coffee": 50})
    user_id = await _create_wallet(10)

    result = await SubmissionService.submit_action(
        user_id=user_id,
        action_type="coffee",
        idempotency_key="free-1",
        now_utc=datetime.now(UTC),
    )

    assert result.funding_mode == FundingMode.FREE
    assert result.cost == 0
    assert await _balances(user_id) == (10, 0)
    assert await _free_usage_count(user_id) == 1


@pytest.mark.asyncio
async def test_exhausted_free_tier_and_low_balance_is_rejected() -> None:
    await _seed_economy(daily_free_limit=1, action_costs={"coffee": 50})
    user_id = await _create_wallet(10)
    now_utc = datetime.now(UTC)
    async with SessionLocal.begin() as session:
        consumed = await QuotaService.try_consume_free_use(
            session,
            user_id=user_id,
            day=utc_day(now_utc),
            action_type="coffee",
            request_id=uuid4(),
            daily_limit=1,
            now_utc=now_utc,
        )
    assert consumed is True

    with pytest.raises(InsufficientCreditsError):
        await SubmissionService.submit_action(
            user_id=user_id,
            action_type="coffee",
            idempotency_key="denied-1",
            now_utc=now_utc,
        )

    assert await _balances(user_id) == (10, 0)
    assert await _free_usage_count(user_id) == 1


@pytest.mark.asyncio
async def test_repeated_idempotency_key_charges_once() -> None:
    await _seed_economy(daily_free_limit=0, action_costs={"tarot": 40})
    user_id = await _create_wallet(100)
    now_utc = datetime.now(UTC)

    first = await SubmissionService.submit_action(
        user_id=user_id, action_type="tarot", idempotency_key="same-key", now_utc=now_utc
    )
    second = await SubmissionService.submit_action(
        user_id=user_id, action_type="tarot", idempotency_key="same-key", now_utc=now_utc
    )

    assert second.idempotent_replay is True
    assert second.action_id == first.action_id
    assert await _balances(user_id) == (60, 0)


@pytest.mark.asyncio
async def test_same_key_from_two_users_creates_two_actions() -> None:
    await _seed_economy(daily_free_limit=0, action_costs={"tarot": 40})
    first_user = await _create_wallet(100)
    second_user = await _create_wallet(100)
    now_utc = datetime.now(UTC)

    first = await SubmissionService.submit_action(
        user_id=first_user, action_type="tarot", idempotency_key="order-1", now_utc=now_utc
    )
    second = await SubmissionService.submit_action(
        user_id=second_user, action_type="tarot", idempotency_key="order-1", now_utc=now_utc
    )

    assert second.idempotent_replay is False
    assert second.action_id != first.action_id
    assert await _balances(first_user) == (60, 0)
    assert await _balances(second_user) == (60, 0)


@pytest.mark.asyncio
async def test_failed_action_record_restores_balance(monkeypatch) -> None:
    await _seed_economy(daily_free_limit=0, action_costs={"palm": 70})
    user_id = await _create_wallet(100)

    async def _explode(session, *, fortune_request):
        raise RuntimeError("action store rejected the write")

    monkeypatch.setattr(submission_module.FortuneRequestsRepo, "create", _explode)

    with pytest.raises(ActionCreationFailedError):
        await SubmissionService.submit_action(
            user_id=user_id,
            action_type="palm",
            idempotency_key="rollback-1",
            now_utc=datetime.now(UTC),
        )

    assert await _balances(user_id) == (100, 0)
