from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from credgate.api.authorization import router as authorization_router
from credgate.api.credentials import router as credentials_router
from credgate.api.dependencies import account_repo
from credgate.api.health import router as health_router
from credgate.api.metrics_endpoint import router as metrics_router
from credgate.api.payments import router as payments_router
from credgate.api.preauth import router as preauth_router
from credgate.core.config import SETTINGS
from credgate.core.logging import setup_logging
from credgate.ledger.connection import lifespan_ledger
from credgate.middleware.metrics import MetricsMiddleware
from credgate.middleware.request_context import (
    RequestContextMiddleware,
    install_request_context_filter,
)
from credgate.services import token_service

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
install_request_context_filter()

logger = logging.getLogger(__name__)

if SETTINGS.jwt_public_key:
    token_service.use_public_key(SETTINGS.jwt_public_key)
elif SETTINGS.is_prod:
    raise RuntimeError("JWT_PUBLIC_KEY must be set when APP_ENV=prod")


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    async with lifespan_ledger():
        yield


app = FastAPI(
    title="credgate",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

# Last-added runs first: RequestContext (outermost) -> Metrics -> route.
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(credentials_router)
app.include_router(preauth_router)
app.include_router(authorization_router)
app.include_router(payments_router)

logger.info(
    "credgate started  env=%s log_level=%s port=%d ledger=%s accounts=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    SETTINGS.ledger_url or "in-memory",
    ",".join(account_repo.list_names()) or "-",
)
