from __future__ import annotations

from datetime import datetime, timedelta, timezone
from uuid import UUID

import structlog
from celery.schedules import crontab

from credits_engine.core.config import get_settings
from credits_engine.db.repo.fortune_requests_repo import FortuneRequestsRepo
from credits_engine.db.repo.ledger_repo import LedgerRepo
from credits_engine.db.repo.wallets_repo import WalletsRepo
from credits_engine.db.session import SessionLocal
from credits_engine.economy.ledger.service import LedgerService
from credits_engine.services.alerts import send_ops_alert
from credits_engine.workers.asyncio_runner import run_async_job
from credits_engine.workers.celery_app import celery_app

logger = structlog.get_logger(__name__)

RECONCILIATION_SAMPLE_SIZE = 10


async def _reverse_single_debit(
    *,
    user_id: UUID,
    request_id: UUID,
    amount: int,
    now_utc: datetime,
) -> str:
    async with SessionLocal.begin() as session:
        if await FortuneRequestsRepo.get_by_id(session, request_id) is not None:
            return "skipped"
        result = await LedgerService.reverse(
            session,
            user_id=user_id,
            amount=amount,
            request_id=request_id,
            now_utc=now_utc,
            reason="stale_unmatched_debit",
        )
    return "skipped" if result.idempotent_replay else "reversed"


async def compensate_stale_debits_async(
    *,
    batch_size: int = 100,
    stale_minutes: int | None = None,
) -> dict[str, int]:
    """Refunds action debits that never got an action record, e.g. after a crash mid-submission."""
    now_utc = datetime.now(timezone.utc)
    resolved_stale_minutes = stale_minutes or get_settings().stale_debit_minutes
    stale_cutoff = now_utc - timedelta(minutes=resolved_stale_minutes)

    async with SessionLocal.begin() as session:
        candidates = await LedgerRepo.list_unmatched_action_debits(
            session,
            older_than_utc=stale_cutoff,
            limit=batch_size,
        )

    summary: dict[str, int] = {
        "examined": len(candidates),
        "reversed": 0,
        "skipped": 0,
        "errors": 0,
    }
    for entry in candidates:
        if entry.request_id is None:
            summary["skipped"] += 1
            continue
        try:
            outcome = await _reverse_single_debit(
                user_id=entry.user_id,
                request_id=entry.request_id,
                amount=entry.amount,
                now_utc=now_utc,
            )
        except Exception:
            summary["errors"] += 1
            logger.exception("stale_debit_compensation_error", request_id=str(entry.request_id))
            continue
        summary[outcome] += 1

    if summary["errors"] > 0:
        await send_ops_alert(event="stale_debit_compensation_failed", payload=summary)
    logger.info("stale_debit_compensation_finished", **summary)
    return summary


async def run_wallet_reconciliation_async(*, page_size: int = 500) -> dict[str, object]:
    """Compares every wallet against the net of its journal rows."""
    checked = 0
    mismatched: list[str] = []
    after_user_id: UUID | None = None

    while True:
        async with SessionLocal.begin() as session:
            # Both reads must see one snapshot or in-flight writes show up as diffs.
            await session.connection(execution_options={"isolation_level": "REPEATABLE READ"})
            user_ids = await WalletsRepo.list_user_ids(
                session,
                after_user_id=after_user_id,
                limit=page_size,
            )
            if not user_ids:
                break
            balances = await LedgerRepo.wallet_balances(session, user_ids=user_ids)
            journal = await LedgerRepo.journal_totals_by_user(session, user_ids=user_ids)

        for user_id in user_ids:
            checked += 1
            if balances.get(user_id) != journal.get(user_id, (0, 0)):
                mismatched.append(str(user_id))
        after_user_id = user_ids[-1]
        if len(user_ids) < page_size:
            break

    result: dict[str, object] = {
        "wallets_checked": checked,
        "diff_count": len(mismatched),
        "sample_user_ids": mismatched[:RECONCILIATION_SAMPLE_SIZE],
    }
    if mismatched:
        await send_ops_alert(event="wallet_reconciliation_diff_detected", payload=result)
        logger.warning("wallet_reconciliation_diff_detected", **result)
    else:
        logger.info("wallet_reconciliation_finished", **result)
    return result


@celery_app.task(name="credits_engine.workers.tasks.ledger_reliability.compensate_stale_debits")
def compensate_stale_debits(batch_size: int = 100, stale_minutes: int | None = None) -> dict[str, int]:
    return run_async_job(
        compensate_stale_debits_async(
            batch_size=batch_size,
            stale_minutes=stale_minutes,
        )
    )


@celery_app.task(name="credits_engine.workers.tasks.ledger_reliability.run_wallet_reconciliation")
def run_wallet_reconciliation(page_size: int = 500) -> dict[str, object]:
    return run_async_job(run_wallet_reconciliation_async(page_size=page_size))


celery_app.conf.beat_schedule = celery_app.conf.beat_schedule or {}
celery_app.conf.beat_schedule.update(
    {
        "compensate-stale-debits-every-5-minutes": {
            "task": "credits_engine.workers.tasks.ledger_reliability.compensate_stale_debits",
            "schedule": 300.0,
            "options": {"queue": "q_high"},
        },
        "wallet-reconciliation-daily-0330-utc": {
            "task": "credits_engine.workers.tasks.ledger_reliability.run_wallet_reconciliation",
            "schedule": crontab(hour=3, minute=30),
            "options": {"queue": "q_normal"},
        },
    }
)
