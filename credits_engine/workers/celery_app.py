from celery import Celery

from credits_engine.core.config import get_settings

settings = get_settings()

celery_app = Celery(
    "credits_engine",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        "credits_engine.workers.tasks.action_events",
        "credits_engine.workers.tasks.ledger_reliability",
    ],
)

celery_app.conf.update(
    task_default_queue="q_normal",
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
)


@celery_app.task(name="credits_engine.workers.celery_app.ping")
def ping() -> str:
    return "pong"
