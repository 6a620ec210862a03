"""WhatsApp webhook routes - Meta Cloud API integration.

IMPORTANT: every POST outcome except an invalid signature returns 200.
Meta retries non-2xx responses, and a retry of a partially processed
message would only be dropped by dedupe anyway.

Logs contain NO sender ids or message text (hashes and prefixes only).
"""

from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, Header, Query, Request, Response
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from cpcbot.infra.pg_store import PostgresStore
from cpcbot.infra.settings import Settings, get_settings
from cpcbot.infra.store import Store
from cpcbot.observability import counters
from cpcbot.observability.correlation import get_correlation_id
from cpcbot.observability.logging import get_logger
from cpcbot.observability.redaction import safe_log_context
from cpcbot.services.inbound_service import process_inbound
from cpcbot.whatsapp.meta_adapter import (
    extract_message,
    get_phone_number_id,
    is_signature_valid,
)
from cpcbot.whatsapp.meta_sender import MetaSender, TransportError

router = APIRouter(prefix="/webhooks/whatsapp", tags=["webhooks"])

logger = get_logger(__name__)

# Module-level store (PostgreSQL, connection per call)
_store: Store | None = None


def _get_settings() -> Settings:
    """Get settings (allows override in tests)."""
    return get_settings()


def _get_store() -> Store:
    """Get store instance (allows override in tests)."""
    global _store
    if _store is None:
        _store = PostgresStore()
    return _store


def _get_sender(settings: Settings, store: Store) -> MetaSender:
    """Get outbound sender (allows override in tests)."""
    return MetaSender(settings, store)


def _status_response(status: str, status_code: int = 200) -> JSONResponse:
    counters.increment(f"webhook_status.{status}")
    return JSONResponse({"status": status}, status_code=status_code)


@router.get("")
async def webhook_verify(
    hub_mode: str = Query(None, alias="hub.mode"),
    hub_verify_token: str = Query(None, alias="hub.verify_token"),
    hub_challenge: str = Query(None, alias="hub.challenge"),
) -> Response:
    """Meta webhook verification endpoint.

    Meta sends a GET during webhook setup. We echo hub.challenge when
    hub.mode is "subscribe" and hub.verify_token matches.

    Returns:
        200 with hub.challenge if valid.
        403 if invalid.
    """
    expected_token = _get_settings().verify_token

    if hub_mode == "subscribe" and expected_token and hub_verify_token == expected_token:
        logger.info(
            "meta webhook verification successful",
            extra={"extra_fields": safe_log_context(hub_mode=hub_mode)},
        )
        return Response(status_code=200, content=hub_challenge or "")

    logger.warning(
        "meta webhook verification failed",
        extra={
            "extra_fields": safe_log_context(
                hub_mode=hub_mode or "missing",
                token_match=hub_verify_token == expected_token,
            )
        },
    )
    return Response(status_code=403, content="verification failed")


@router.post("")
async def webhook(
    request: Request,
    x_hub_signature_256: str | None = Header(None, alias="X-Hub-Signature-256"),
) -> Response:
    """Receive a Meta Cloud API webhook.

    Response body is {"status": ...} with one of:
    invalid_signature (401), ignored, duplicate, blocked, rate_limited,
    ok, error (all 200).
    """
    correlation_id = get_correlation_id()
    payload: Any = None

    try:
        settings = _get_settings()

        # 1. Raw body, exactly as received, for the signature
        body_bytes = await request.body()

        # 2. Signature
        if not is_signature_valid(
            body_bytes,
            x_hub_signature_256,
            settings.app_secret,
            production=settings.is_production,
        ):
            return _status_response("invalid_signature", status_code=401)

        # 3. Parse JSON (pathologically nested arrays exhaust the decoder's recursion)
        try:
            payload = json.loads(body_bytes)
        except (ValueError, RecursionError):
            logger.warning(
                "invalid json body",
                extra={"extra_fields": safe_log_context(correlationId=correlation_id)},
            )
            return _status_response("ignored")

        # 4. Extract message (None for status callbacks and other events)
        msg = extract_message(payload)
        if msg is None:
            logger.debug(
                "non-message webhook ignored",
                extra={"extra_fields": safe_log_context(correlationId=correlation_id)},
            )
            return _status_response("ignored")

        # 5. Pipeline (blocking store and HTTP calls run off the event loop)
        store = _get_store()
        sender = _get_sender(settings, store)
        status = await run_in_threadpool(
            process_inbound, msg, store=store, sender=sender, settings=settings
        )
    except TransportError as e:
        logger.error(
            "reply delivery failed",
            extra={
                "extra_fields": safe_log_context(
                    correlationId=correlation_id,
                    error_type=e.error_type,
                    status_code=e.status_code,
                )
            },
        )
        return _status_response("error")
    except Exception:
        logger.exception(
            "webhook processing failed",
            extra={
                "extra_fields": safe_log_context(
                    correlationId=correlation_id,
                    phone_number_id_present=bool(get_phone_number_id(payload)),
                )
            },
        )
        return _status_response("error")

    return _status_response(status)
