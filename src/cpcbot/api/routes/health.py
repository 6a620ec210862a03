"""Liveness routes.

`/health` is mounted for every role and never touches the database, so the
platform can probe it while Postgres is unavailable. `/internal/health` is
worker-only and also reports whether unsigned webhooks have been accepted by
this process.
"""

from __future__ import annotations

from fastapi import APIRouter

from cpcbot.observability import counters

public_router = APIRouter(tags=["health"])
internal_router = APIRouter(tags=["health"])


@public_router.get("/health")
def health() -> dict:
    return {"status": "ok"}


@internal_router.get("/internal/health")
def internal_health() -> dict:
    unverified = counters.get(counters.SIGNATURE_UNVERIFIED)
    return {
        "status": "degraded" if unverified else "ok",
        "subsystem": "internal",
        "signature_unverified": unverified,
    }
