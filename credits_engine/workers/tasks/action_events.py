from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID

import httpx
import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from credits_engine.core.config import get_settings
from credits_engine.db.models.outbox_events import OutboxEvent
from credits_engine.db.repo.fortune_requests_repo import FortuneRequestsRepo
from credits_engine.db.repo.outbox_events_repo import OutboxEventsRepo
from credits_engine.db.session import SessionLocal
from credits_engine.economy.entitlements.types import FundingMode
from credits_engine.economy.ledger.service import LedgerService
from credits_engine.economy.submissions.types import ACTION_CREATED_EVENT
from credits_engine.services.alerts import send_ops_alert
from credits_engine.workers.asyncio_runner import run_async_job
from credits_engine.workers.celery_app import celery_app

logger = structlog.get_logger(__name__)


async def _deliver(
    client: httpx.AsyncClient,
    *,
    url: str,
    token: str,
    event: OutboxEvent,
) -> bool:
    headers = {"X-Internal-Token": token} if token else {}
    try:
        response = await client.post(
            url,
            json={"event_id": event.id, "event_type": event.event_type, **event.payload},
            headers=headers,
        )
        response.raise_for_status()
    except httpx.HTTPError as exc:
        logger.warning(
            "outbox_delivery_attempt_failed",
            event_id=event.id,
            attempts=event.attempts + 1,
            error_type=type(exc).__name__,
        )
        return False
    return True


async def _fail_undeliverable_action(
    session: AsyncSession,
    *,
    payload: dict[str, object],
    now_utc: datetime,
) -> bool:
    """Marks the action FAILED and refunds what it charged. Returns True when refunded."""
    request_id = UUID(str(payload["action_id"]))
    marked = await FortuneRequestsRepo.mark_failed(session, request_id=request_id, now_utc=now_utc)
    if not marked:
        return False

    fortune_request = await FortuneRequestsRepo.get_by_id(session, request_id)
    if (
        fortune_request is None
        or fortune_request.funding_mode != FundingMode.PAID.value
        or fortune_request.cost_charged <= 0
    ):
        return False

    await LedgerService.reverse(
        session,
        user_id=fortune_request.user_id,
        amount=fortune_request.cost_charged,
        request_id=request_id,
        now_utc=now_utc,
        reason="fulfillment_undeliverable",
    )
    return True


async def _record_outcome(
    event: OutboxEvent,
    *,
    delivered: bool,
    max_attempts: int,
    now_utc: datetime,
) -> tuple[str, bool]:
    async with SessionLocal.begin() as session:
        if delivered:
            await OutboxEventsRepo.mark_sent(session, event_id=event.id, sent_at=now_utc)
            return "sent", False

        status = await OutboxEventsRepo.record_failed_attempt(
            session,
            event_id=event.id,
            max_attempts=max_attempts,
        )
        if status != "FAILED":
            return "retry", False
        refunded = await _fail_undeliverable_action(session, payload=event.payload, now_utc=now_utc)
        return "failed", refunded


async def dispatch_action_events_async(
    *,
    batch_size: int | None = None,
    max_attempts: int | None = None,
) -> dict[str, int]:
    settings = get_settings()
    url = settings.fulfillment_webhook_url.strip()
    summary = {"claimed": 0, "sent": 0, "retry": 0, "failed": 0, "refunded": 0}
    if not url:
        logger.warning("outbox_dispatch_skipped", reason="fulfillment_webhook_not_configured")
        return summary

    resolved_batch_size = batch_size or settings.outbox_batch_size
    resolved_max_attempts = max_attempts or settings.outbox_max_attempts
    now_utc = datetime.now(timezone.utc)

    async with SessionLocal.begin() as session:
        events = await OutboxEventsRepo.claim_pending_batch(
            session,
            event_types=(ACTION_CREATED_EVENT,),
            limit=resolved_batch_size,
            now_utc=now_utc,
            lease_seconds=settings.outbox_lease_seconds,
        )
    summary["claimed"] = len(events)

    if events:
        async with httpx.AsyncClient(timeout=settings.fulfillment_timeout_seconds) as client:
            for event in events:
                delivered = await _deliver(
                    client,
                    url=url,
                    token=settings.fulfillment_webhook_token,
                    event=event,
                )
                outcome, refunded = await _record_outcome(
                    event,
                    delivered=delivered,
                    max_attempts=resolved_max_attempts,
                    now_utc=now_utc,
                )
                summary[outcome] += 1
                if refunded:
                    summary["refunded"] += 1

    if summary["failed"] > 0:
        await send_ops_alert(event="outbox_delivery_failed", payload=summary)
    logger.info("outbox_dispatch_finished", **summary)
    return summary


@celery_app.task(name="credits_engine.workers.tasks.action_events.dispatch_action_events")
def dispatch_action_events(batch_size: int | None = None) -> dict[str, int]:
    return run_async_job(dispatch_action_events_async(batch_size=batch_size))


celery_app.conf.beat_schedule = celery_app.conf.beat_schedule or {}
celery_app.conf.beat_schedule.update(
    {
        "dispatch-action-events-every-10-seconds": {
            "task": "credits_engine.workers.tasks.action_events.dispatch_action_events",
            "schedule": 10.0,
            "options": {"queue": "q_high"},
        },
    }
)
