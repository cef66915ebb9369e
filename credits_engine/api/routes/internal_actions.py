from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request

from credits_engine.economy.config.errors import UnknownActionTypeError
from credits_engine.economy.ledger.errors import LedgerUnavailableError, WalletClosedError
from credits_engine.economy.submissions.errors import (
    ActionCreationFailedError,
    CompensationFailedError,
    InsufficientCreditsError,
    ServiceInMaintenanceError,
)
from credits_engine.economy.submissions.service import SubmissionService

from .internal_helpers import _assert_internal_access, _ledger_unavailable, _now_utc, _wallet_closed
from .internal_models import ActionSubmitRequest, ActionSubmitResponse

router = APIRouter(tags=["internal", "actions"])


@router.post("/internal/actions", response_model=ActionSubmitResponse)
async def submit_action(payload: ActionSubmitRequest, request: Request) -> ActionSubmitResponse:
    _assert_internal_access(request)

    try:
        result = await SubmissionService.submit_action(
            user_id=payload.user_id,
            action_type=payload.action_type,
            idempotency_key=payload.idempotency_key,
            now_utc=_now_utc(),
            note=payload.note,
            metadata=payload.metadata,
        )
    except UnknownActionTypeError as exc:
        raise HTTPException(status_code=404, detail={"code": "E_UNKNOWN_ACTION_TYPE"}) from exc
    except InsufficientCreditsError as exc:
        raise HTTPException(status_code=402, detail={"code": "E_INSUFFICIENT_CREDITS"}) from exc
    except ServiceInMaintenanceError as exc:
        raise HTTPException(status_code=503, detail={"code": "E_MAINTENANCE"}) from exc
    except WalletClosedError as exc:
        raise _wallet_closed() from exc
    except LedgerUnavailableError as exc:
        raise _ledger_unavailable() from exc
    except (ActionCreationFailedError, CompensationFailedError) as exc:
        raise HTTPException(status_code=500, detail={"code": "E_SUBMISSION_FAILED"}) from exc

    return ActionSubmitResponse(
        action_id=result.action_id,
        action_type=result.action_type,
        funding_mode=result.funding_mode.value,
        cost=result.cost,
        idempotent_replay=result.idempotent_replay,
    )
