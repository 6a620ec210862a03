"""Shared pytest fixtures for cpcbot tests."""
import sys
sys.dont_write_bytecode = True

from unittest.mock import patch  # noqa: E402

import pytest  # noqa: E402

from cpcbot.infra.settings import Settings  # noqa: E402
from cpcbot.observability import counters  # noqa: E402

from .helpers import FakeStore  # noqa: E402

TEST_APP_SECRET = "test_app_secret"


@pytest.fixture(autouse=True)
def _reset_counters():
    """Counters are module-level; keep them from leaking between tests."""
    counters.reset()
    yield
    counters.reset()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        access_token="test-token",
        phone_number_id="123456789",
        verify_token="verify-me",
        app_secret=TEST_APP_SECRET,
        rate_limit_requests=3,
        rate_limit_window_seconds=60,
        internal_task_secret="internal-secret",
    )


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def sent_payloads():
    """Capture Graph API request bodies instead of sending them."""
    sent: list[dict] = []

    def fake_request(url, data, headers, timeout):
        import json

        sent.append(json.loads(data))
        return {"messages": [{"id": f"wamid.OUT{len(sent):03d}"}]}

    with patch("cpcbot.whatsapp.meta_sender._do_request", side_effect=fake_request):
        yield sent
