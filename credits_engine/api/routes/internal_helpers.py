from __future__ import annotations

from datetime import datetime, timezone

import structlog
from fastapi import HTTPException, Request

from credits_engine.core.config import get_settings
from credits_engine.economy.rewards.types import RewardClaimResult
from credits_engine.services.internal_auth import (
    INTERNAL_TOKEN_HEADER,
    extract_client_ip,
    is_client_ip_allowed,
    is_valid_internal_token,
)

from .internal_models import RewardGrantResponse

logger = structlog.get_logger(__name__)


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _grant_as_response(result: RewardClaimResult) -> RewardGrantResponse:
    return RewardGrantResponse(
        grant_id=result.grant_id,
        rule_type=result.rule_type.value,
        amount=result.amount,
        currency=result.currency.value,
        credits=result.credits,
        diamonds=result.diamonds,
    )


def _ledger_unavailable() -> HTTPException:
    return HTTPException(
        status_code=503,
        detail={"code": "E_LEDGER_UNAVAILABLE", "retryable": True},
        headers={"Retry-After": "1"},
    )


def _wallet_closed() -> HTTPException:
    return HTTPException(status_code=410, detail={"code": "E_WALLET_CLOSED"})


def _assert_internal_access(request: Request) -> None:
    settings = get_settings()
    client_ip = extract_client_ip(request, trusted_proxies=settings.internal_api_trusted_proxies)

    if not is_client_ip_allowed(client_ip=client_ip, allowlist=settings.internal_api_allowlist):
        logger.warning("internal_api_auth_failed", reason="ip_not_allowed", client_ip=client_ip)
        raise HTTPException(status_code=403, detail={"code": "E_FORBIDDEN"})

    if not is_valid_internal_token(
        expected_token=settings.internal_api_token,
        received_token=request.headers.get(INTERNAL_TOKEN_HEADER),
    ):
        logger.warning("internal_api_auth_failed", reason="invalid_credentials", client_ip=client_ip)
        raise HTTPException(status_code=403, detail={"code": "E_FORBIDDEN"})
