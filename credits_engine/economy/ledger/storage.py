from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from credits_engine.economy.ledger.errors import LedgerUnavailableError

logger = structlog.get_logger(__name__)


# query_canceled (statement_timeout), admin_shutdown and connection failures
TRANSIENT_SQLSTATES = frozenset({"57014", "57P01", "08000", "08001", "08003", "08006"})


def is_transient_storage_error(exc: BaseException) -> bool:
    if isinstance(exc, (OperationalError, InterfaceError, PoolTimeoutError, TimeoutError, OSError)):
        return True
    if not isinstance(exc, DBAPIError):
        return False
    if exc.connection_invalidated:
        return True
    return getattr(exc.orig, "sqlstate", None) in TRANSIENT_SQLSTATES


@asynccontextmanager
async def storage_guard(operation: str) -> AsyncIterator[None]:
    """Maps connection loss and statement timeouts onto LedgerUnavailableError."""
    try:
        yield
    except LedgerUnavailableError:
        raise
    except Exception as exc:
        if not is_transient_storage_error(exc):
            raise
        logger.warning("ledger_storage_unavailable", operation=operation, error_type=type(exc).__name__)
        raise LedgerUnavailableError(operation) from exc
