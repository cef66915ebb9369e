from __future__ import annotations

import pytest
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError

from credits_engine.economy.ledger.errors import LedgerUnavailableError
from credits_engine.economy.ledger.storage import is_transient_storage_error, storage_guard


class _PgError(Exception):
    def __init__(self, sqlstate: str) -> None:
        super().__init__(sqlstate)
        self.sqlstate = sqlstate


def test_connection_and_timeout_errors_are_transient() -> None:
    assert is_transient_storage_error(OperationalError("SELECT 1", {}, Exception("gone"))) is True
    assert is_transient_storage_error(TimeoutError()) is True
    assert is_transient_storage_error(ConnectionResetError()) is True
    assert is_transient_storage_error(DBAPIError("UPDATE", {}, _PgError("57014"))) is True


def test_constraint_violations_are_not_transient() -> None:
    assert is_transient_storage_error(IntegrityError("INSERT", {}, _PgError("23505"))) is False
    assert is_transient_storage_error(ValueError("bad")) is False


@pytest.mark.asyncio
async def test_storage_guard_maps_transient_errors() -> None:
    with pytest.raises(LedgerUnavailableError):
        async with storage_guard("ledger_debit"):
            raise OperationalError("UPDATE wallets", {}, Exception("server closed the connection"))


@pytest.mark.asyncio
async def test_storage_guard_passes_other_errors_through() -> None:
    with pytest.raises(IntegrityError):
        async with storage_guard("ledger_credit"):
            raise IntegrityError("INSERT", {}, _PgError("23505"))
