"""Internal maintenance routes (worker role only).

Intended to be called by a scheduler with X-Internal-Task-Secret.
"""

from __future__ import annotations

import hmac

from fastapi import APIRouter, Header, HTTPException
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from cpcbot.infra.pg_store import PostgresStore
from cpcbot.infra.settings import Settings, get_settings
from cpcbot.infra.store import Store
from cpcbot.observability import counters
from cpcbot.observability.logging import get_logger
from cpcbot.observability.redaction import safe_log_context
from cpcbot.services.maintenance import purge_expired

router = APIRouter(prefix="/internal/maintenance", tags=["internal"])

logger = get_logger(__name__)


class PurgeResponse(BaseModel):
    status: str = "ok"
    processed_messages: int
    rate_windows: int


class CountersResponse(BaseModel):
    counters: dict[str, int]


def _get_settings() -> Settings:
    """Get settings (allows override in tests)."""
    return get_settings()


def _get_store() -> Store:
    """Get store instance (allows override in tests)."""
    return PostgresStore()


def _verify_internal_secret(settings: Settings, provided: str | None) -> None:
    expected = settings.internal_task_secret
    if not expected or not provided or not hmac.compare_digest(
        expected.encode(), provided.encode("utf-8")
    ):
        logger.warning(
            "internal task auth failed",
            extra={"extra_fields": safe_log_context(secret_configured=bool(expected))},
        )
        raise HTTPException(status_code=401, detail="unauthorized")


@router.post("/purge", response_model=PurgeResponse)
async def purge(
    x_internal_task_secret: str | None = Header(None, alias="X-Internal-Task-Secret"),
) -> PurgeResponse:
    """Delete expired dedupe receipts and rate limit windows."""
    settings = _get_settings()
    _verify_internal_secret(settings, x_internal_task_secret)

    result = await run_in_threadpool(purge_expired, _get_store(), settings)
    return PurgeResponse(
        processed_messages=result.processed_messages,
        rate_windows=result.rate_windows,
    )


@router.get("/counters", response_model=CountersResponse)
async def get_counters(
    x_internal_task_secret: str | None = Header(None, alias="X-Internal-Task-Secret"),
) -> CountersResponse:
    """In-process webhook counters for this worker."""
    _verify_internal_secret(_get_settings(), x_internal_task_secret)
    return CountersResponse(counters=counters.snapshot())
