"""Cloud Energy Estimator API."""

import logging
import os
from typing import Annotated

import structlog
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from app.api.deps import get_resource_provider
from app.api.v1 import api_router
from app.core.config import settings
from app.core.database import init_models
from app.core.rate_limit import limiter
from app.middleware import RequestLoggingMiddleware
from app.middleware.request_logging import PROCESS_TIME_HEADER
from app.providers.base import ResourceProviderBase

logging.basicConfig(level=logging.DEBUG if settings.DEBUG else logging.INFO)
logger = structlog.get_logger()


def init_sentry() -> bool:
    """Start Sentry error tracking when a DSN is configured."""
    if not settings.SENTRY_DSN:
        logger.info("sentry.disabled")
        return False

    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.SENTRY_ENVIRONMENT,
        traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
        ],
        send_default_pii=False,
        release=f"cloud-energy-estimator@{os.getenv('GIT_COMMIT', 'dev')}",
    )
    logger.info("sentry.enabled", environment=settings.SENTRY_ENVIRONMENT)
    return True


# Sentry hooks must be installed before the app object exists
init_sentry()

app = FastAPI(
    title=settings.APP_NAME,
    description="Energy consumption and carbon estimates for Azure microservice platforms",
    version="1.0.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(RequestLoggingMiddleware, skip_paths=("/health", "/api/v1/health"))
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Accept", "Content-Type", "Origin", "X-Requested-With"],
    expose_headers=[PROCESS_TIME_HEADER],
    max_age=settings.CORS_MAX_AGE,
)


@app.on_event("startup")
async def create_tables() -> None:
    await init_models()
    logger.info(
        "app.started",
        environment=settings.APP_ENV,
        data_source="azure" if settings.azure_enabled else "mock",
        carbon_region=settings.CARBON_REGION,
    )


@app.get("/health", tags=["health"])
@app.get("/api/v1/health", tags=["health"])
async def health_check(
    provider: Annotated[ResourceProviderBase, Depends(get_resource_provider)],
) -> dict:
    """Liveness plus a best-effort Azure connectivity check."""
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "environment": settings.APP_ENV,
        "azureConnectivity": await provider.test_connection(),
    }


@app.get("/", tags=["root"])
async def root() -> dict[str, str]:
    return {
        "message": f"Welcome to {settings.APP_NAME} API",
        "docs": "/api/docs",
        "health": "/api/v1/health",
        "analyze": f"{settings.API_V1_PREFIX}/energy/analyze/platform",
    }


app.include_router(api_router, prefix=settings.API_V1_PREFIX)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
