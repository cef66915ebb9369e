from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import httpx
import structlog

from credits_engine.core.config import get_settings

logger = structlog.get_logger(__name__)

SEVERITY_COLOR = {
    "critical": "#B42318",
    "error": "#F04438",
    "warning": "#F79009",
    "info": "#1570EF",
}


@dataclass(frozen=True)
class AlertTarget:
    channel: str
    url: str


EVENT_SEVERITY = {
    "submission_compensation_failed": "critical",
    "stale_debit_compensation_failed": "critical",
    "wallet_reconciliation_diff_detected": "critical",
    "outbox_delivery_failed": "error",
}
DEFAULT_SEVERITY = "warning"


def _setting_str(settings: object, attr: str) -> str:
    value = getattr(settings, attr, "")
    return value.strip() if isinstance(value, str) else ""


def _resolve_targets(settings: object) -> list[AlertTarget]:
    targets: list[AlertTarget] = []
    for channel, attr in (
        ("generic", "ops_alert_webhook_url"),
        ("slack", "ops_alert_slack_webhook_url"),
    ):
        url = _setting_str(settings, attr)
        if url:
            targets.append(AlertTarget(channel=channel, url=url))
    return targets


def _build_channel_payload(
    *,
    channel: str,
    event: str,
    payload: dict[str, object],
    sent_at: datetime,
    severity: str,
    app_env: str,
) -> dict[str, Any]:
    if channel == "generic":
        return {
            "event": event,
            "payload": payload,
            "sent_at": sent_at.isoformat(),
            "severity": severity,
            "env": app_env,
        }
    if channel == "slack":
        payload_text = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
        return {
            "text": f"[{severity.upper()}][{app_env}] {event}",
            "attachments": [
                {
                    "color": SEVERITY_COLOR.get(severity, SEVERITY_COLOR["warning"]),
                    "fields": [
                        {"title": "Sent At", "value": sent_at.isoformat(), "short": True},
                        {"title": "Payload", "value": payload_text, "short": False},
                    ],
                }
            ],
        }
    raise ValueError(f"Unsupported alert channel: {channel}")


async def send_ops_alert(*, event: str, payload: dict[str, object]) -> bool:
    """Best effort; delivery problems are logged and reported as False."""
    settings = get_settings()
    targets = _resolve_targets(settings)
    if not targets:
        logger.warning("ops_alert_not_configured", alert_event=event)
        return False

    severity = EVENT_SEVERITY.get(event, DEFAULT_SEVERITY)
    sent_at = datetime.now(timezone.utc)
    app_env = _setting_str(settings, "app_env") or "dev"

    delivered_to: list[str] = []
    failed_to: list[str] = []
    async with httpx.AsyncClient(timeout=5.0) as client:
        for target in targets:
            body = _build_channel_payload(
                channel=target.channel,
                event=event,
                payload=payload,
                sent_at=sent_at,
                severity=severity,
                app_env=app_env,
            )
            try:
                response = await client.post(target.url, json=body)
                response.raise_for_status()
            except httpx.HTTPError:
                logger.exception("ops_alert_delivery_failed", alert_event=event, provider=target.channel)
                failed_to.append(target.channel)
                continue
            delivered_to.append(target.channel)

    if not delivered_to:
        logger.error("ops_alert_delivery_exhausted", alert_event=event, failed_to=failed_to)
        return False

    logger.info(
        "ops_alert_delivered",
        alert_event=event,
        severity=severity,
        delivered_to=delivered_to,
        failed_to=failed_to,
    )
    return True
