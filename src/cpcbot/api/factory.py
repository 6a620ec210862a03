"""FastAPI application factory with role-based route mounting."""

from __future__ import annotations

import os
from typing import Literal

from fastapi import FastAPI, Request, Response

from cpcbot.infra.settings import Settings, get_settings
from cpcbot.observability.correlation import (
    CORRELATION_ID_HEADER,
    accept_correlation_id,
    correlation_scope,
)
from cpcbot.observability.logging import get_logger
from cpcbot.observability.redaction import safe_log_context

from .routes import health, internal_maintenance, webhooks_whatsapp

AppRole = Literal["public", "worker"]

logger = get_logger(__name__)


def _check_signature_config(settings: Settings) -> None:
    """Log once at startup when webhooks cannot be authenticated."""
    if settings.app_secret:
        return
    if settings.is_production:
        logger.error(
            "WHATSAPP_APP_SECRET not set in production, all webhooks will be rejected",
            extra={"extra_fields": safe_log_context(app_env=settings.app_env)},
        )
    else:
        logger.warning(
            "WHATSAPP_APP_SECRET not set, webhook signatures will NOT be verified",
            extra={"extra_fields": safe_log_context(app_env=settings.app_env)},
        )


def create_app(role: AppRole | None = None) -> FastAPI:
    """Create FastAPI app with routes based on APP_ROLE.

    Args:
        role: Explicit role override. If None, reads from APP_ROLE env var.
              Defaults to "public" if env var is not set.

    Returns:
        Configured FastAPI application.
    """
    if role is None:
        role = os.environ.get("APP_ROLE", "public")  # type: ignore[assignment]

    _check_signature_config(get_settings())

    app = FastAPI(
        title="CPC WhatsApp Bot",
        docs_url=None,
        redoc_url=None,
    )

    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next) -> Response:
        cid = accept_correlation_id(request.headers.get(CORRELATION_ID_HEADER))
        with correlation_scope(cid):
            response = await call_next(request)
        response.headers[CORRELATION_ID_HEADER] = cid
        return response

    app.include_router(health.public_router)
    app.include_router(webhooks_whatsapp.router)

    if role == "worker":
        app.include_router(health.internal_router)
        app.include_router(internal_maintenance.router)

    return app
