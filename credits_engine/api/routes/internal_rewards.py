from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request

from credits_engine.db.session import SessionLocal
from credits_engine.economy.config.service import load_economy_config
from credits_engine.economy.ledger.errors import LedgerUnavailableError, WalletClosedError
from credits_engine.economy.ledger.storage import storage_guard
from credits_engine.economy.rewards.errors import RewardAlreadyClaimedError, RewardRuleUnavailableError
from credits_engine.economy.rewards.service import RewardService

from .internal_helpers import (
    _assert_internal_access,
    _grant_as_response,
    _ledger_unavailable,
    _now_utc,
    _wallet_closed,
)
from .internal_models import (
    AdRewardRequest,
    DailyRewardRequest,
    DailyRewardResponse,
    RewardGrantResponse,
)

router = APIRouter(tags=["internal", "rewards"])


@router.post("/internal/rewards/daily", response_model=DailyRewardResponse)
async def claim_daily_reward(payload: DailyRewardRequest, request: Request) -> DailyRewardResponse:
    _assert_internal_access(request)

    try:
        async with storage_guard("reward_daily"):
            async with SessionLocal.begin() as session:
                config = await load_economy_config(session)
                result = await RewardService.claim_daily_reward(
                    session,
                    user_id=payload.user_id,
                    config=config,
                    now_utc=_now_utc(),
                )
    except RewardRuleUnavailableError as exc:
        raise HTTPException(status_code=404, detail={"code": "E_REWARD_UNAVAILABLE"}) from exc
    except WalletClosedError as exc:
        raise _wallet_closed() from exc
    except LedgerUnavailableError as exc:
        raise _ledger_unavailable() from exc

    return DailyRewardResponse(
        granted=result.granted,
        amount=result.amount,
        currency=result.currency.value if result.currency is not None else None,
    )


@router.post("/internal/rewards/ad-watch", response_model=RewardGrantResponse)
async def claim_ad_reward(payload: AdRewardRequest, request: Request) -> RewardGrantResponse:
    _assert_internal_access(request)

    try:
        async with storage_guard("reward_ad_watch"):
            async with SessionLocal.begin() as session:
                config = await load_economy_config(session)
                result = await RewardService.claim_ad_reward(
                    session,
                    user_id=payload.user_id,
                    impression_id=payload.impression_id,
                    config=config,
                    now_utc=_now_utc(),
                )
    except RewardAlreadyClaimedError as exc:
        raise HTTPException(status_code=409, detail={"code": "E_ALREADY_CLAIMED"}) from exc
    except RewardRuleUnavailableError as exc:
        raise HTTPException(status_code=404, detail={"code": "E_REWARD_UNAVAILABLE"}) from exc
    except WalletClosedError as exc:
        raise _wallet_closed() from exc
    except LedgerUnavailableError as exc:
        raise _ledger_unavailable() from exc

    return _grant_as_response(result)
