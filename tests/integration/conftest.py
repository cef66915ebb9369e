from __future__ import annotations

import pytest
from sqlalchemy import text

from credits_engine.core.integration_db_safety import assert_safe_integration_db
from credits_engine.db.session import engine

TRUNCATE_TABLES = (
    "daily_free_usages",
    "reward_grants",
    "fortune_requests",
    "ledger_entries",
    "outbox_events",
    "earning_rules",
    "app_config",
    "wallets",
)

TRUNCATE_SQL = f"TRUNCATE TABLE {', '.join(TRUNCATE_TABLES)} RESTART IDENTITY CASCADE"


@pytest.fixture(scope="session", autouse=True)
def guard_integration_db_target() -> None:
    assert_safe_integration_db(str(engine.url))


@pytest.fixture(autouse=True)
async def cleanup_db() -> None:
    # asyncpg connections cannot be reused across event loops.
    await engine.dispose()

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as exc:  # pragma: no cover - environment-dependent
        pytest.skip(f"Postgres is required for integration tests: {exc}")

    async with engine.begin() as conn:
        await conn.execute(text(TRUNCATE_SQL))

    yield

    await engine.dispose()
