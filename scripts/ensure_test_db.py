from __future__ import annotations

import asyncio

import asyncpg
from sqlalchemy.engine import make_url

from credits_engine.core.config import get_settings
from credits_engine.core.integration_db_safety import assert_safe_integration_db


async def _ensure_database_exists(database_url: str) -> str:
    assert_safe_integration_db(database_url)
    parsed = make_url(database_url)
    db_name = parsed.database or ""
    if parsed.username is None:
        raise RuntimeError("DATABASE_URL username is required.")

    conn = await asyncpg.connect(
        host=parsed.host or "localhost",
        port=int(parsed.port or 5432),
        user=parsed.username,
        password=parsed.password,
        database="postgres",
    )
    try:
        if await conn.fetchval("SELECT 1 FROM pg_database WHERE datname = $1", db_name):
            return "exists"
        # db_name is a plain identifier here
        await conn.execute(f'CREATE DATABASE "{db_name}"')
        return "created"
    finally:
        await conn.close()


def main() -> int:
    settings = get_settings()
    outcome = asyncio.run(_ensure_database_exists(settings.database_url))
    print(f"ensure_test_db: {outcome} db={make_url(settings.database_url).database}")  # noqa: T201
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
