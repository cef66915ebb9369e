from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, HTTPException, Request
from sqlalchemy.exc import IntegrityError

from credits_engine.db.session import SessionLocal
from credits_engine.economy.config.service import load_economy_config
from credits_engine.economy.ledger.errors import (
    InsufficientDiamondsError,
    InvalidExchangeQuantityError,
    LedgerUnavailableError,
    WalletClosedError,
    WalletNotFoundError,
)
from credits_engine.economy.ledger.service import LedgerService
from credits_engine.economy.ledger.storage import storage_guard
from credits_engine.economy.quota.service import QuotaService
from credits_engine.economy.quota.time import utc_day

from .internal_helpers import _assert_internal_access, _ledger_unavailable, _now_utc, _wallet_closed
from .internal_models import (
    BalanceResponse,
    DiamondExchangeRequest,
    DiamondExchangeResponse,
    WalletCloseResponse,
)

router = APIRouter(tags=["internal", "wallets"])


@router.get("/internal/wallets/{user_id}", response_model=BalanceResponse)
async def get_balance(user_id: UUID, request: Request) -> BalanceResponse:
    _assert_internal_access(request)

    now_utc = _now_utc()
    try:
        async with storage_guard("wallet_balance"):
            async with SessionLocal.begin() as session:
                config = await load_economy_config(session)
                balance = await LedgerService.get_balance(
                    session,
                    user_id=user_id,
                    welcome_credits=config.welcome_credits,
                    now_utc=now_utc,
                )
                free_uses_remaining = await QuotaService.remaining_free_uses(
                    session,
                    user_id=user_id,
                    day=utc_day(now_utc),
                    daily_limit=config.daily_free_limit,
                )
    except LedgerUnavailableError as exc:
        raise _ledger_unavailable() from exc

    return BalanceResponse(
        user_id=user_id,
        credits=balance.credits,
        diamonds=balance.diamonds,
        free_uses_remaining=free_uses_remaining,
        daily_free_limit=config.daily_free_limit,
    )


@router.post("/internal/wallets/{user_id}/exchange", response_model=DiamondExchangeResponse)
async def exchange_diamonds(
    user_id: UUID,
    payload: DiamondExchangeRequest,
    request: Request,
) -> DiamondExchangeResponse:
    _assert_internal_access(request)

    try:
        async with storage_guard("diamond_exchange"):
            async with SessionLocal.begin() as session:
                config = await load_economy_config(session)
                result = await LedgerService.exchange_diamonds(
                    session,
                    user_id=user_id,
                    diamonds=payload.diamonds,
                    rate=config.diamond_exchange_rate,
                    idempotency_key=payload.idempotency_key,
                    welcome_credits=config.welcome_credits,
                    now_utc=_now_utc(),
                )
    except InvalidExchangeQuantityError as exc:
        raise HTTPException(status_code=422, detail={"code": "E_INVALID_EXCHANGE_QUANTITY"}) from exc
    except IntegrityError as exc:
        raise HTTPException(status_code=409, detail={"code": "E_IDEMPOTENCY_CONFLICT"}) from exc
    except InsufficientDiamondsError as exc:
        raise HTTPException(status_code=402, detail={"code": "E_INSUFFICIENT_DIAMONDS"}) from exc
    except WalletClosedError as exc:
        raise _wallet_closed() from exc
    except LedgerUnavailableError as exc:
        raise _ledger_unavailable() from exc

    return DiamondExchangeResponse(
        diamonds_spent=result.diamonds_spent,
        credits_received=result.credits_received,
        credits=result.credits,
        diamonds=result.diamonds,
        idempotent_replay=result.idempotent_replay,
    )


@router.post("/internal/wallets/{user_id}/close", response_model=WalletCloseResponse)
async def close_wallet(user_id: UUID, request: Request) -> WalletCloseResponse:
    _assert_internal_access(request)

    try:
        async with storage_guard("wallet_close"):
            async with SessionLocal.begin() as session:
                result = await LedgerService.close_wallet(
                    session,
                    user_id=user_id,
                    now_utc=_now_utc(),
                )
    except WalletNotFoundError as exc:
        raise HTTPException(status_code=404, detail={"code": "E_WALLET_NOT_FOUND"}) from exc
    except LedgerUnavailableError as exc:
        raise _ledger_unavailable() from exc

    return WalletCloseResponse(
        credits_removed=result.credits_removed,
        diamonds_removed=result.diamonds_removed,
        already_closed=result.already_closed,
    )
