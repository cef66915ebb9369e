from __future__ import annotations

import structlog
from fastapi import APIRouter, HTTPException, Request

from credits_engine.db.session import SessionLocal
from credits_engine.economy.config.service import load_economy_config
from credits_engine.economy.ledger.errors import LedgerUnavailableError, WalletClosedError
from credits_engine.economy.ledger.storage import storage_guard
from credits_engine.economy.rewards.errors import RewardAlreadyClaimedError
from credits_engine.economy.rewards.service import RewardService

from .internal_helpers import (
    _assert_internal_access,
    _grant_as_response,
    _ledger_unavailable,
    _now_utc,
    _wallet_closed,
)
from .internal_models import PurchaseWebhookRequest, RewardGrantResponse

router = APIRouter(tags=["internal", "webhooks"])
logger = structlog.get_logger(__name__)


@router.post("/internal/webhooks/purchases", response_model=RewardGrantResponse)
async def purchase_webhook(payload: PurchaseWebhookRequest, request: Request) -> RewardGrantResponse:
    _assert_internal_access(request)

    try:
        async with storage_guard("purchase_grant"):
            async with SessionLocal.begin() as session:
                config = await load_economy_config(session)
                result = await RewardService.grant_purchase(
                    session,
                    user_id=payload.user_id,
                    transaction_id=payload.transaction_id,
                    credit_amount=payload.credit_amount,
                    config=config,
                    now_utc=_now_utc(),
                )
    except RewardAlreadyClaimedError as exc:
        logger.info("purchase_webhook_duplicate", transaction_id=payload.transaction_id)
        raise HTTPException(status_code=409, detail={"code": "E_ALREADY_CLAIMED"}) from exc
    except WalletClosedError as exc:
        raise _wallet_closed() from exc
    except LedgerUnavailableError as exc:
        raise _ledger_unavailable() from exc

    return _grant_as_response(result)
