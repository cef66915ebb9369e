from __future__ import annotations

import asyncio
from datetime import datetime
from uuid import UUID, uuid4

import structlog
from sqlalchemy.exc import IntegrityError

from credits_engine.db.models.fortune_requests import FortuneRequest
from credits_engine.db.repo.fortune_requests_repo import FortuneRequestsRepo
from credits_engine.db.repo.outbox_events_repo import OutboxEventsRepo
from credits_engine.db.session import SessionLocal
from credits_engine.economy.catalog import get_action_type
from credits_engine.economy.config.errors import UnknownActionTypeError
from credits_engine.economy.config.service import action_cost, load_economy_config
from credits_engine.economy.config.types import EconomyConfig
from credits_engine.economy.entitlements.service import EntitlementResolver
from credits_engine.economy.entitlements.types import EntitlementDecision, FundingMode
from credits_engine.economy.ledger.service import LedgerService
from credits_engine.economy.ledger.storage import storage_guard
from credits_engine.economy.quota.service import QuotaService
from credits_engine.economy.quota.time import utc_day
from credits_engine.economy.submissions.errors import (
    ActionCreationFailedError,
    CompensationFailedError,
    InsufficientCreditsError,
    QuotaRaceLostError,
    ServiceInMaintenanceError,
)
from credits_engine.economy.submissions.types import ACTION_CREATED_EVENT, SubmissionResult
from credits_engine.services.alerts import send_ops_alert

logger = structlog.get_logger(__name__)


def _replay_result(fortune_request: FortuneRequest) -> SubmissionResult:
    return SubmissionResult(
        action_id=fortune_request.id,
        action_type=fortune_request.action_type,
        funding_mode=FundingMode(fortune_request.funding_mode),
        cost=fortune_request.cost_charged,
        idempotent_replay=True,
    )


class SubmissionService:
    """Turns a billable action request into exactly one charged action record.

    Each step commits on its own. Once a debit has committed, any failure to
    create the action record (including task cancellation) is followed by a
    compensating credit for the same request id.
    """

    @staticmethod
    async def _resolve(
        *,
        user_id: UUID,
        cost: int,
        config: EconomyConfig,
        now_utc: datetime,
        allow_free: bool,
    ) -> EntitlementDecision:
        async with storage_guard("entitlement_resolve"):
            async with SessionLocal.begin() as session:
                return await EntitlementResolver.resolve(
                    session,
                    user_id=user_id,
                    cost=cost,
                    config=config,
                    now_utc=now_utc,
                    allow_free=allow_free,
                )

    @staticmethod
    async def _consume_free_use(
        *,
        user_id: UUID,
        action_type: str,
        request_id: UUID,
        config: EconomyConfig,
        now_utc: datetime,
    ) -> None:
        async with storage_guard("quota_consume"):
            async with SessionLocal.begin() as session:
                consumed = await QuotaService.try_consume_free_use(
                    session,
                    user_id=user_id,
                    day=utc_day(now_utc),
                    action_type=action_type,
                    request_id=request_id,
                    daily_limit=config.daily_free_limit,
                    now_utc=now_utc,
                )
        if not consumed:
            raise QuotaRaceLostError(str(user_id))

    @staticmethod
    async def _debit(
        *,
        user_id: UUID,
        cost: int,
        request_id: UUID,
        now_utc: datetime,
    ) -> None:
        async with storage_guard("ledger_debit"):
            async with SessionLocal.begin() as session:
                debit_result = await LedgerService.debit(
                    session,
                    user_id=user_id,
                    amount=cost,
                    request_id=request_id,
                    now_utc=now_utc,
                )
        if not debit_result.applied:
            logger.info(
                "submission_debit_rejected",
                user_id=str(user_id),
                cost=cost,
                credits=debit_result.credits,
            )
            raise InsufficientCreditsError(str(user_id))

    @staticmethod
    async def _commit_funding(
        *,
        decision: EntitlementDecision,
        user_id: UUID,
        action_type: str,
        cost: int,
        request_id: UUID,
        config: EconomyConfig,
        now_utc: datetime,
    ) -> EntitlementDecision:
        if decision.mode == FundingMode.FREE:
            try:
                await SubmissionService._consume_free_use(
                    user_id=user_id,
                    action_type=action_type,
                    request_id=request_id,
                    config=config,
                    now_utc=now_utc,
                )
                return decision
            except QuotaRaceLostError:
                logger.info("submission_quota_race_lost", user_id=str(user_id), action_type=action_type)

            decision = await SubmissionService._resolve(
                user_id=user_id,
                cost=cost,
                config=config,
                now_utc=now_utc,
                allow_free=False,
            )

        if decision.mode == FundingMode.DENIED:
            raise InsufficientCreditsError(str(user_id))

        if decision.cost > 0:
            await SubmissionService._debit(
                user_id=user_id,
                cost=decision.cost,
                request_id=request_id,
                now_utc=now_utc,
            )
        return decision

    @staticmethod
    async def _create_action_record(
        *,
        request_id: UUID,
        user_id: UUID,
        action_type: str,
        decision: EntitlementDecision,
        idempotency_key: str,
        note: str | None,
        metadata: dict[str, object] | None,
        now_utc: datetime,
    ) -> FortuneRequest:
        async with storage_guard("action_create"):
            async with SessionLocal.begin() as session:
                fortune_request = await FortuneRequestsRepo.create(
                    session,
                    fortune_request=FortuneRequest(
                        id=request_id,
                        user_id=user_id,
                        action_type=action_type,
                        cost_charged=decision.cost,
                        funding_mode=decision.mode.value,
                        status="PENDING",
                        idempotency_key=idempotency_key,
                        note=note,
                        metadata_=metadata or {},
                        created_at=now_utc,
                    ),
                )
                await OutboxEventsRepo.create(
                    session,
                    event_type=ACTION_CREATED_EVENT,
                    payload={
                        "action_id": str(request_id),
                        "user_id": str(user_id),
                        "action_type": action_type,
                    },
                )
        return fortune_request

    @staticmethod
    async def _find_existing(*, user_id: UUID, idempotency_key: str) -> FortuneRequest | None:
        async with storage_guard("action_lookup"):
            async with SessionLocal.begin() as session:
                return await FortuneRequestsRepo.get_by_idempotency_key(
                    session,
                    user_id=user_id,
                    idempotency_key=idempotency_key,
                )

    @staticmethod
    async def _reverse_debit(
        *,
        user_id: UUID,
        amount: int,
        request_id: UUID,
        now_utc: datetime,
        reason: str,
    ) -> None:
        async with storage_guard("ledger_reverse"):
            async with SessionLocal.begin() as session:
                await LedgerService.reverse(
                    session,
                    user_id=user_id,
                    amount=amount,
                    request_id=request_id,
                    now_utc=now_utc,
                    reason=reason,
                )

    @staticmethod
    async def _compensate(
        *,
        user_id: UUID,
        decision: EntitlementDecision,
        request_id: UUID,
        now_utc: datetime,
        reason: str,
    ) -> None:
        if decision.mode != FundingMode.PAID or decision.cost <= 0:
            return

        try:
            await asyncio.shield(
                SubmissionService._reverse_debit(
                    user_id=user_id,
                    amount=decision.cost,
                    request_id=request_id,
                    now_utc=now_utc,
                    reason=reason,
                )
            )
        except Exception as exc:
            logger.critical(
                "submission_compensation_failed",
                user_id=str(user_id),
                request_id=str(request_id),
                amount=decision.cost,
                reason=reason,
                error_type=type(exc).__name__,
            )
            await send_ops_alert(
                event="submission_compensation_failed",
                payload={
                    "user_id": str(user_id),
                    "request_id": str(request_id),
                    "amount": decision.cost,
                    "reason": reason,
                },
            )
            raise CompensationFailedError(str(request_id)) from exc

        logger.warning(
            "submission_rolled_back",
            user_id=str(user_id),
            request_id=str(request_id),
            amount=decision.cost,
            reason=reason,
        )

    @staticmethod
    async def submit_action(
        *,
        user_id: UUID,
        action_type: str,
        idempotency_key: str,
        now_utc: datetime,
        note: str | None = None,
        metadata: dict[str, object] | None = None,
    ) -> SubmissionResult:
        action = get_action_type(action_type)
        if action is None:
            raise UnknownActionTypeError(action_type)

        async with storage_guard("submission_prepare"):
            async with SessionLocal.begin() as session:
                config = await load_economy_config(session)
                if config.maintenance_mode:
                    raise ServiceInMaintenanceError(action.code)
                existing = await FortuneRequestsRepo.get_by_idempotency_key(
                    session,
                    user_id=user_id,
                    idempotency_key=idempotency_key,
                )
        if existing is not None:
            return _replay_result(existing)

        cost = action_cost(config, action.code)
        request_id = uuid4()
        decision = await SubmissionService._resolve(
            user_id=user_id,
            cost=cost,
            config=config,
            now_utc=now_utc,
            allow_free=True,
        )
        logger.info(
            "submission_resolved",
            user_id=str(user_id),
            action_type=action.code,
            funding_mode=decision.mode.value,
            cost=decision.cost,
        )
        decision = await SubmissionService._commit_funding(
            decision=decision,
            user_id=user_id,
            action_type=action.code,
            cost=cost,
            request_id=request_id,
            config=config,
            now_utc=now_utc,
        )

        try:
            fortune_request = await SubmissionService._create_action_record(
                request_id=request_id,
                user_id=user_id,
                action_type=action.code,
                decision=decision,
                idempotency_key=idempotency_key,
                note=note,
                metadata=metadata,
                now_utc=now_utc,
            )
        except asyncio.CancelledError:
            await SubmissionService._compensate(
                user_id=user_id,
                decision=decision,
                request_id=request_id,
                now_utc=now_utc,
                reason="cancelled",
            )
            raise
        except IntegrityError as exc:
            await SubmissionService._compensate(
                user_id=user_id,
                decision=decision,
                request_id=request_id,
                now_utc=now_utc,
                reason="duplicate_submission",
            )
            existing = await SubmissionService._find_existing(
                user_id=user_id,
                idempotency_key=idempotency_key,
            )
            if existing is None:
                raise ActionCreationFailedError(str(request_id)) from exc
            return _replay_result(existing)
        except Exception as exc:
            await SubmissionService._compensate(
                user_id=user_id,
                decision=decision,
                request_id=request_id,
                now_utc=now_utc,
                reason="action_create_failed",
            )
            raise ActionCreationFailedError(str(request_id)) from exc

        logger.info(
            "action_created",
            user_id=str(user_id),
            action_id=str(fortune_request.id),
            action_type=action.code,
            funding_mode=decision.mode.value,
            cost=decision.cost,
        )
        return SubmissionResult(
            action_id=fortune_request.id,
            action_type=action.code,
            funding_mode=decision.mode,
            cost=decision.cost,
        )
