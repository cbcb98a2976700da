"""Service for executing GitLab API requests with automatic retries.

Retries transient failures (timeouts, network-stack errors, 5xx responses)
with a constant backoff, up to a bounded number of attempts. Anything else,
including 4xx responses, is handed back to the caller on the first attempt.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from mergebot.domain.errors import ServerError, TransientNetworkError, TransportError
from mergebot.domain.events.api_events import (
    EventSink,
    RequestFailed,
    RequestRetryScheduled,
    RequestSucceeded,
    log_event,
)
from mergebot.domain.models.common import ApiRequest, AuthToken, RequestMethod, RetryPolicy
from mergebot.infrastructure.resilience.response_validator import classify

# Timeouts (request-timeout class) and connect/read/write failures, which
# include DNS resolution errors (system class), and connections the server
# dropped without answering.
TRANSIENT_TRANSPORT_EXCEPTIONS = (httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError)

logger = logging.getLogger(__name__)

Sleeper = Callable[[float], Awaitable[Any]]


class RequestExecutor:
    """Sends one logical request, retrying transient failures with a fixed backoff."""

    def __init__(
        self,
        base_url: str,
        auth_token: AuthToken,
        policy: Optional[RetryPolicy] = None,
        client: Optional[httpx.AsyncClient] = None,
        sleep: Sleeper = asyncio.sleep,
        event_sink: EventSink = log_event,
    ):
        """Initializes the RequestExecutor.

        Args:
            base_url: GitLab base URL, e.g. 'https://gitlab.example.com'.
            auth_token: Private token sent in the 'Private-Token' header.
            policy: Retry configuration (defaults: 20 attempts, 10s backoff, 10s timeout).
            client: Optional pre-built httpx client. When omitted the executor
                creates and owns one.
            sleep: Coroutine function used to wait between attempts.
            event_sink: Receives request domain events.
        """
        self.base_url = base_url.rstrip("/")
        self.policy = policy or RetryPolicy()
        self._auth_token = auth_token
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=self.policy.request_timeout_seconds)
        self._sleep = sleep
        self._dispatch = event_sink

        logger.info(
            f"RequestExecutor initialized: base_url={self.base_url}, "
            f"max_attempts={self.policy.max_attempts}, backoff={self.policy.backoff_seconds}s, "
            f"timeout={self.policy.request_timeout_seconds}s"
        )

    async def __aenter__(self) -> "RequestExecutor":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _build_call(self, request: ApiRequest) -> Dict[str, Any]:
        call: Dict[str, Any] = {
            "method": request.method.value,
            "url": f"{self.base_url}{request.path}",
            "headers": {
                "Private-Token": self._auth_token,
                "Content-Type": "application/json",
            },
            "timeout": self.policy.request_timeout_seconds,
        }
        if request.params is not None:
            if request.method is RequestMethod.GET:
                call["params"] = dict(request.params)
            else:
                call["json"] = dict(request.params)
        return call

    async def send(self, request: ApiRequest) -> httpx.Response:
        """Executes the request, retrying transient failures.

        Args:
            request: The request to send.

        Returns:
            The first response with a status below 500 (4xx included; the
            caller validates it).

        Raises:
            TransientNetworkError: Every attempt hit a timeout or network error.
            ServerError: Every attempt answered with a 5xx status.
            TransportError: A non-retryable transport error occurred.
        """
        call = self._build_call(request)
        method, url = call["method"], call["url"]
        max_attempts = self.policy.max_attempts
        delay = self.policy.backoff_seconds

        for attempt in range(1, max_attempts + 1):
            start_time = time.perf_counter()
            try:
                response = await self._client.request(**call)
            except TRANSIENT_TRANSPORT_EXCEPTIONS as e:
                if attempt >= max_attempts:
                    logger.error(f"GitLab request {method} {url} failed after {attempt} attempts: {e!r}")
                    self._dispatch(RequestFailed(method=method, url=url, attempts=attempt,
                                                 error_type=type(e).__name__, error_message=str(e)))
                    raise TransientNetworkError(request.describe(), attempt, e) from e
                logger.warning(
                    f"GitLab request {method} {url} failed: {type(e).__name__} {e}, "
                    f"I'll try it again after {delay}s (attempt {attempt}/{max_attempts})"
                )
                self._dispatch(RequestRetryScheduled(method=method, url=url, attempt_number=attempt,
                                                     delay_seconds=delay, reason=type(e).__name__))
                await self._sleep(delay)
                continue
            except (httpx.HTTPError, httpx.InvalidURL) as e:
                logger.error(f"Non-retryable error calling GitLab {method} {url}: {e!r}", exc_info=True)
                self._dispatch(RequestFailed(method=method, url=url, attempts=attempt,
                                             error_type=type(e).__name__, error_message=str(e)))
                raise TransportError(request.describe(), e) from e

            if classify(response).retryable:
                if attempt >= max_attempts:
                    logger.error(
                        f"GitLab request {method} {url} responded with status {response.status_code} "
                        f"after {attempt} attempts, giving up"
                    )
                    self._dispatch(RequestFailed(method=method, url=url, attempts=attempt,
                                                 error_type="ServerError",
                                                 error_message=f"status {response.status_code}"))
                    raise ServerError(request.describe(), response.status_code, attempt)
                logger.warning(
                    f"GitLab request {method} {url} responded with a status {response.status_code}, "
                    f"I'll try it again after {delay}s (attempt {attempt}/{max_attempts})"
                )
                self._dispatch(RequestRetryScheduled(method=method, url=url, attempt_number=attempt,
                                                     delay_seconds=delay,
                                                     reason=f"status {response.status_code}"))
                await self._sleep(delay)
                continue

            latency_ms = (time.perf_counter() - start_time) * 1000
            self._dispatch(RequestSucceeded(method=method, url=url, status_code=response.status_code,
                                            attempts=attempt, latency_ms=latency_ms))
            return response

        # max_attempts >= 1 is enforced by RetryPolicy, so the loop always returns or raises.
        raise AssertionError("unreachable")
