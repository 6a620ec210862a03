"""Runtime configuration loaded from environment variables.

One read-only `Settings` object is shared by the webhook pipeline, the
outbound sender and the maintenance routes. Tests build `Settings(...)`
directly instead of touching the environment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

DEFAULT_GRAPH_API_VERSION = "v21.0"


@dataclass(frozen=True)
class Settings:
    """WhatsApp Cloud API and webhook configuration.

    Attributes:
        access_token: Bearer token for the Graph API send endpoint.
        phone_number_id: Business phone number id messages are sent from.
        verify_token: Token echoed back during the GET subscription handshake.
        app_secret: Shared secret for X-Hub-Signature-256 verification.
            Empty means unsigned webhooks are accepted (development only).
        graph_api_version: Graph API version segment of the send URL.
        http_timeout: Outbound HTTP timeout in seconds.
        rate_limit_requests: Max inbound messages per sender per window.
        rate_limit_window_seconds: Fixed window length.
        processed_retention_hours: How long dedupe records are kept.
        rate_window_retention_seconds: How long rate window rows are kept.
        app_env: "production" disables the unsigned-webhook fallback.
        internal_task_secret: Shared secret for internal maintenance routes.
    """

    access_token: str = ""
    phone_number_id: str = ""
    verify_token: str = "cpc"
    app_secret: str = ""
    graph_api_version: str = DEFAULT_GRAPH_API_VERSION
    http_timeout: float = 10.0
    rate_limit_requests: int = 30
    rate_limit_window_seconds: int = 60
    processed_retention_hours: int = 168
    rate_window_retention_seconds: int = 3600
    app_env: str = "development"
    internal_task_secret: str = ""

    @property
    def is_production(self) -> bool:
        return self.app_env.lower() in ("production", "prod")


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name, "")
    if not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


def load_settings() -> Settings:
    """Build Settings from the current environment.

    Raises:
        ValueError: If a numeric variable is not a positive integer.
    """
    return Settings(
        access_token=os.environ.get("WHATSAPP_ACCESS_TOKEN", ""),
        phone_number_id=os.environ.get("WHATSAPP_PHONE_NUMBER_ID", ""),
        verify_token=os.environ.get("WHATSAPP_VERIFY_TOKEN", "cpc"),
        app_secret=os.environ.get("WHATSAPP_APP_SECRET", ""),
        graph_api_version=os.environ.get(
            "WHATSAPP_GRAPH_API_VERSION", DEFAULT_GRAPH_API_VERSION
        ),
        http_timeout=float(_int_env("WHATSAPP_HTTP_TIMEOUT", 10)),
        rate_limit_requests=_int_env("RATE_LIMIT_REQUESTS", 30),
        rate_limit_window_seconds=_int_env("RATE_LIMIT_WINDOW_SECONDS", 60),
        processed_retention_hours=_int_env("PROCESSED_RETENTION_HOURS", 168),
        rate_window_retention_seconds=_int_env("RATE_WINDOW_RETENTION_SECONDS", 3600),
        app_env=os.environ.get("APP_ENV", "development"),
        internal_task_secret=os.environ.get("INTERNAL_TASK_SECRET", ""),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Process-wide settings, loaded once."""
    return load_settings()
