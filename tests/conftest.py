import json
from typing import Any, Callable, List, Optional

import httpx
import pytest
from typer.testing import CliRunner

from mergebot.domain.models.common import AuthToken, RetryPolicy
from mergebot.infrastructure.cli.display import ConsoleDisplay
from mergebot.infrastructure.config.settings import clear_test_config, reset_configuration
from mergebot.infrastructure.resilience.request_executor import RequestExecutor

BASE_URL = "https://gitlab.example.com"
TOKEN = AuthToken("test-token")

# Keys that would leak configuration from the developer's environment into tests
CONFIG_ENV_VARS = [
    "GITLAB_URL",
    "GITLAB_AUTH_TOKEN",
    "RETRY_MAX_ATTEMPTS",
    "RETRY_BACKOFF_SECONDS",
    "HTTP_TIMEOUT_SECONDS",
    "WATCH_INTERVAL_SECONDS",
]


class FakeSleep:
    """Stands in for asyncio.sleep and records every requested delay."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def json_response(status_code: int, payload: Any) -> httpx.Response:
    return httpx.Response(status_code, content=json.dumps(payload).encode(),
                          headers={"Content-Type": "application/json"})


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch):
    """Every test starts from empty configuration."""
    for name in CONFIG_ENV_VARS:
        # setenv first so teardown also removes values loaded from .env files
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    reset_configuration()
    clear_test_config()
    yield
    reset_configuration()
    clear_test_config()


@pytest.fixture(scope="session")
def runner():
    """Provides a Typer CliRunner instance."""
    return CliRunner()


@pytest.fixture
def fake_sleep():
    return FakeSleep()


@pytest.fixture
def recorded_requests():
    """Requests seen by the mock transport, in order."""
    return []


@pytest.fixture
def make_executor(fake_sleep, recorded_requests):
    """Builds a RequestExecutor whose HTTP traffic is answered by ``handler``.

    ``handler`` receives the httpx.Request and returns an httpx.Response or
    raises an httpx exception.
    """
    def factory(handler: Callable[[httpx.Request], httpx.Response],
                policy: Optional[RetryPolicy] = None,
                event_sink: Optional[Callable[[Any], None]] = None) -> RequestExecutor:
        def recording_handler(request: httpx.Request) -> httpx.Response:
            recorded_requests.append(request)
            return handler(request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(recording_handler))
        kwargs = {"event_sink": event_sink} if event_sink is not None else {}
        return RequestExecutor(
            base_url=BASE_URL,
            auth_token=TOKEN,
            policy=policy or RetryPolicy(max_attempts=5, backoff_seconds=10.0),
            client=client,
            sleep=fake_sleep,
            **kwargs,
        )

    return factory


@pytest.fixture
def mock_console_display(mocker):
    """Mocks the ConsoleDisplay to capture output easily.
    Patches the ConsoleDisplay where main.py instantiates it.
    """
    mock = mocker.MagicMock(spec=ConsoleDisplay)
    mocker.patch('mergebot.main.ConsoleDisplay', return_value=mock)
    return mock
