import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from . import __version__
from .api import health, swap, webhook
from .config import Settings, settings
from .container import ServiceContainer
from .logging_config import setup_logging
from .middleware import RequestLoggingMiddleware

logger = logging.getLogger(__name__)


def create_app(app_settings: Settings = settings, container: ServiceContainer | None = None) -> FastAPI:
    """Build the app. A prebuilt container skips wallet and provider wiring."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        services = container or ServiceContainer.build(app_settings)
        app.state.container = services
        logger.info(
            "Agent swap webhook ready: wallet=%s jupiter=%s api_key=%s mock_mode=%s",
            services.signer.address,
            services.jupiter.base_url,
            bool(app_settings.jupiter_api_key),
            app_settings.mock_mode,
        )
        if app_settings.mock_mode:
            logger.warning("MOCK MODE ACTIVE - all transactions are simulated")
        elif not app_settings.jupiter_api_key:
            logger.warning("No Jupiter API key configured, using the rate limited lite API")
        try:
            yield
        finally:
            await services.aclose()
            logger.info("Shutting down server")

    app = FastAPI(
        title="Agent Swap Webhook",
        description="Executes agent platform trade events as Jupiter Ultra swaps",
        version=__version__,
        lifespan=lifespan,
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.include_router(health.router, tags=["Health"])
    app.include_router(webhook.router, tags=["Webhook"])
    app.include_router(swap.router, tags=["Swap"])
    return app


def run() -> None:
    import uvicorn

    setup_logging(settings)
    uvicorn.run(
        create_app(),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        log_config=None,
    )


if __name__ == "__main__":
    run()
