from __future__ import annotations

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from credits_engine.main import app

from tests.api.internal_api_fixtures import AUTH_HEADERS


@pytest.mark.parametrize(
    ("method", "path", "body"),
    [
        ("post", "/internal/actions", {"user_id": str(uuid4()), "action_type": "coffee", "idempotency_key": "k"}),
        ("get", f"/internal/wallets/{uuid4()}", None),
        ("post", "/internal/rewards/daily", {"user_id": str(uuid4())}),
        ("post", "/internal/rewards/ad-watch", {"user_id": str(uuid4()), "impression_id": "imp"}),
        (
            "post",
            "/internal/webhooks/purchases",
            {"user_id": str(uuid4()), "transaction_id": "txn", "credit_amount": 100},
        ),
        ("post", f"/internal/wallets/{uuid4()}/exchange", {"diamonds": 10, "idempotency_key": "k"}),
        ("post", f"/internal/wallets/{uuid4()}/close", None),
    ],
)
def test_internal_routes_reject_missing_token(method: str, path: str, body: dict | None) -> None:
    client = TestClient(app, client=("127.0.0.1", 5201))
    response = client.request(method.upper(), path, json=body)

    assert response.status_code == 403
    assert response.json() == {"detail": {"code": "E_FORBIDDEN"}}


def test_internal_routes_reject_disallowed_ip() -> None:
    client = TestClient(app, client=("198.51.100.10", 5202))
    response = client.get(f"/internal/wallets/{uuid4()}", headers=AUTH_HEADERS)

    assert response.status_code == 403
    assert response.json() == {"detail": {"code": "E_FORBIDDEN"}}


def test_internal_routes_reject_wrong_token() -> None:
    client = TestClient(app, client=("127.0.0.1", 5203))
    response = client.get(f"/internal/wallets/{uuid4()}", headers={"X-Internal-Token": "nope"})

    assert response.status_code == 403
