import uvicorn
from fastapi import FastAPI

from credits_engine.api.routes.health import router as health_router
from credits_engine.api.routes.internal_actions import router as internal_actions_router
from credits_engine.api.routes.internal_rewards import router as internal_rewards_router
from credits_engine.api.routes.internal_wallets import router as internal_wallets_router
from credits_engine.api.routes.internal_webhooks import router as internal_webhooks_router
from credits_engine.core.config import get_settings
from credits_engine.core.logging import configure_logging


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Fortune Credits Engine",
        version="0.1.0",
        docs_url="/docs" if settings.app_env != "prod" else None,
        redoc_url=None,
    )
    app.include_router(health_router)
    app.include_router(internal_actions_router)
    app.include_router(internal_wallets_router)
    app.include_router(internal_rewards_router)
    app.include_router(internal_webhooks_router)
    return app


app = create_app()


def run() -> None:
    settings = get_settings()
    uvicorn.run(
        "credits_engine.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.app_env == "dev",
    )


if __name__ == "__main__":
    run()
