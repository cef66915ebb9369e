from __future__ import annotations

from types import SimpleNamespace

import pytest

from credits_engine.api.routes import internal_helpers
from tests.api.internal_api_fixtures import INTERNAL_TOKEN


@pytest.fixture(autouse=True)
def internal_settings(monkeypatch) -> SimpleNamespace:
    settings = SimpleNamespace(
        internal_api_token=INTERNAL_TOKEN,
        internal_api_allowlist="127.0.0.1/32",
        internal_api_trusted_proxies="",
    )
    monkeypatch.setattr(internal_helpers, "get_settings", lambda: settings)
    return settings
