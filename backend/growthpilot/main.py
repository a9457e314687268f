"""FastAPI application entrypoint.

Configures CORS, error tracking, includes routers, and exposes a healthcheck endpoint.
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

from .deps import get_settings  # noqa: E402
from .routers import commission as commission_router  # noqa: E402
from .routers import metrics as metrics_router  # noqa: E402
from .routers import reports as reports_router  # noqa: E402
from .telemetry import init_sentry  # noqa: E402


def create_app() -> FastAPI:
    """Build the FastAPI app with routers and middleware."""
    settings = get_settings()

    init_sentry()

    app = FastAPI(
        title="GrowthPilot API",
        version="0.1.0",
        description="Agency dashboard metrics: overview cards, trends, commission and WhatsApp reports.",
    )

    origins = [origin.strip() for origin in settings.BACKEND_CORS_ORIGINS.split(",") if origin.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,  # access_token cookie
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(metrics_router.router)
    app.include_router(reports_router.router)
    app.include_router(commission_router.router)

    @app.get("/health", tags=["health"])
    def health():
        return {"status": "ok"}

    logger.info("[APP] GrowthPilot API ready (cors=%s)", origins)
    return app


app = create_app()
