from __future__ import annotations

from typing import Any
from uuid import UUID

from fastapi.testclient import TestClient

from credits_engine.api.routes import internal_wallets
from credits_engine.economy.config.types import EconomyConfig
from credits_engine.economy.ledger.errors import (
    InsufficientDiamondsError,
    InvalidExchangeQuantityError,
    WalletClosedError,
    WalletNotFoundError,
)
from credits_engine.economy.ledger.types import Balance, ClosureResult, ExchangeResult
from credits_engine.main import app
from tests.api.internal_api_fixtures import AUTH_HEADERS, FakeSessionLocal

USER_ID = UUID("1a2b3c4d-5e6f-4a7b-8c9d-0e1f2a3b4c5d")
CONFIG = EconomyConfig(welcome_credits=500, daily_free_limit=2, diamond_exchange_rate=10, maintenance_mode=False)


def _patch_common(monkeypatch) -> None:
    async def _load_config(session: Any) -> EconomyConfig:
        return CONFIG

    monkeypatch.setattr(internal_wallets, "SessionLocal", FakeSessionLocal())
    monkeypatch.setattr(internal_wallets, "load_economy_config", _load_config)


def test_get_balance_reports_wallet_and_free_uses(monkeypatch) -> None:
    _patch_common(monkeypatch)

    async def _balance(session: Any, **kwargs: Any) -> Balance:
        assert kwargs["welcome_credits"] == 500
        return Balance(credits=500, diamonds=7)

    async def _remaining(session: Any, **kwargs: Any) -> int:
        assert kwargs["daily_limit"] == 2
        return 1

    monkeypatch.setattr(internal_wallets.LedgerService, "get_balance", _balance)
    monkeypatch.setattr(internal_wallets.QuotaService, "remaining_free_uses", _remaining)

    client = TestClient(app, client=("127.0.0.1", 5401))
    response = client.get(f"/internal/wallets/{USER_ID}", headers=AUTH_HEADERS)

    assert response.status_code == 200
    assert response.json() == {
        "user_id": str(USER_ID),
        "credits": 500,
        "diamonds": 7,
        "free_uses_remaining": 1,
        "daily_free_limit": 2,
    }


def test_exchange_uses_configured_rate(monkeypatch) -> None:
    _patch_common(monkeypatch)
    captured: dict[str, Any] = {}

    async def _exchange(session: Any, **kwargs: Any) -> ExchangeResult:
        captured.update(kwargs)
        return ExchangeResult(
            diamonds_spent=30,
            credits_received=3,
            idempotent_replay=False,
            credits=503,
            diamonds=0,
        )

    monkeypatch.setattr(internal_wallets.LedgerService, "exchange_diamonds", _exchange)

    client = TestClient(app, client=("127.0.0.1", 5402))
    response = client.post(
        f"/internal/wallets/{USER_ID}/exchange",
        json={"diamonds": 30, "idempotency_key": "ex-1"},
        headers=AUTH_HEADERS,
    )

    assert response.status_code == 200
    assert response.json()["credits_received"] == 3
    assert captured["rate"] == 10
    assert captured["idempotency_key"] == "ex-1"


def test_exchange_maps_quantity_and_balance_errors(monkeypatch) -> None:
    _patch_common(monkeypatch)
    errors = iter([InvalidExchangeQuantityError("x"), InsufficientDiamondsError("x")])

    async def _exchange(session: Any, **kwargs: Any) -> ExchangeResult:
        raise next(errors)

    monkeypatch.setattr(internal_wallets.LedgerService, "exchange_diamonds", _exchange)
    client = TestClient(app, client=("127.0.0.1", 5403))
    body = {"diamonds": 15, "idempotency_key": "ex-2"}

    first = client.post(f"/internal/wallets/{USER_ID}/exchange", json=body, headers=AUTH_HEADERS)
    second = client.post(f"/internal/wallets/{USER_ID}/exchange", json=body, headers=AUTH_HEADERS)

    assert (first.status_code, first.json()["detail"]["code"]) == (422, "E_INVALID_EXCHANGE_QUANTITY")
    assert (second.status_code, second.json()["detail"]["code"]) == (402, "E_INSUFFICIENT_DIAMONDS")


def test_close_wallet(monkeypatch) -> None:
    _patch_common(monkeypatch)
    outcomes = iter(
        [
            ClosureResult(credits_removed=120, diamonds_removed=4, already_closed=False),
            WalletNotFoundError(str(USER_ID)),
        ]
    )

    async def _close(session: Any, **kwargs: Any) -> ClosureResult:
        outcome = next(outcomes)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    monkeypatch.setattr(internal_wallets.LedgerService, "close_wallet", _close)
    client = TestClient(app, client=("127.0.0.1", 5404))

    closed = client.post(f"/internal/wallets/{USER_ID}/close", headers=AUTH_HEADERS)
    missing = client.post(f"/internal/wallets/{USER_ID}/close", headers=AUTH_HEADERS)

    assert closed.json() == {"credits_removed": 120, "diamonds_removed": 4, "already_closed": False}
    assert missing.status_code == 404


def test_exchange_on_closed_wallet_is_gone(monkeypatch) -> None:
    _patch_common(monkeypatch)

    async def _exchange(session: Any, **kwargs: Any) -> ExchangeResult:
        raise WalletClosedError(str(USER_ID))

    monkeypatch.setattr(internal_wallets.LedgerService, "exchange_diamonds", _exchange)
    client = TestClient(app, client=("127.0.0.1", 5405))

    response = client.post(
        f"/internal/wallets/{USER_ID}/exchange",
        json={"diamonds": 10, "idempotency_key": "ex-3"},
        headers=AUTH_HEADERS,
    )

    assert response.status_code == 410
    assert response.json()["detail"]["code"] == "E_WALLET_CLOSED"
