import json

import httpx
import pytest

from conftest import BASE_URL, json_response
from mergebot.domain.errors import (
    AuthenticationFailure,
    GitlabApiError,
    ServerError,
    TransientNetworkError,
    TransportError,
)
from mergebot.domain.events.api_events import RequestFailed, RequestRetryScheduled, RequestSucceeded
from mergebot.domain.models.common import ApiPath, ApiRequest, RequestMethod, RetryPolicy
from mergebot.infrastructure.resilience.request_executor import RequestExecutor
from mergebot.infrastructure.resilience.response_validator import validate_response_status

USER_REQUEST = ApiRequest(RequestMethod.GET, ApiPath("/api/v4/user"))


def scripted(*steps):
    """Handler answering each call with the next step: a status code or an exception factory."""
    remaining = list(steps)

    def handler(request: httpx.Request) -> httpx.Response:
        step = remaining.pop(0) if len(remaining) > 1 else remaining[0]
        if isinstance(step, int):
            return json_response(step, {"id": 1})
        raise step(request)

    return handler


def connect_timeout(request):
    return httpx.ConnectTimeout("timed out", request=request)


def dns_failure(request):
    return httpx.ConnectError("getaddrinfo EAI_AGAIN gitlab.example.com", request=request)


@pytest.mark.asyncio
async def test_send_success_first_attempt(make_executor, fake_sleep, recorded_requests):
    """A 2xx response is returned as-is without any retry."""
    executor = make_executor(scripted(200))

    response = await executor.send(USER_REQUEST)

    assert response.status_code == 200
    assert len(recorded_requests) == 1
    assert fake_sleep.delays == []
    request = recorded_requests[0]
    assert str(request.url) == f"{BASE_URL}/api/v4/user"
    assert request.headers["Private-Token"] == "test-token"
    assert request.headers["Content-Type"] == "application/json"


@pytest.mark.asyncio
async def test_send_applies_per_attempt_timeout(make_executor, recorded_requests):
    executor = make_executor(scripted(200), policy=RetryPolicy(request_timeout_seconds=10.0))

    await executor.send(USER_REQUEST)

    assert recorded_requests[0].extensions["timeout"] == {
        "connect": 10.0, "read": 10.0, "write": 10.0, "pool": 10.0,
    }


@pytest.mark.asyncio
async def test_get_params_go_to_query_string(make_executor, recorded_requests):
    executor = make_executor(scripted(200))
    request = ApiRequest(
        RequestMethod.GET,
        ApiPath("/api/v4/projects/3/merge_requests/7"),
        {"include_diverged_commits_count": True, "include_rebase_in_progress": True},
    )

    await executor.send(request)

    sent = recorded_requests[0]
    assert sent.method == "GET"
    assert sent.url.params["include_diverged_commits_count"] == "true"
    assert sent.url.params["include_rebase_in_progress"] == "true"
    assert sent.content == b""


@pytest.mark.asyncio
async def test_put_params_go_to_json_body(make_executor, recorded_requests):
    executor = make_executor(scripted(200))
    request = ApiRequest(RequestMethod.PUT, ApiPath("/api/v4/projects/3/merge_requests/7"),
                         {"squash": True, "labels": "bot"})

    await executor.send(request)

    sent = recorded_requests[0]
    assert sent.method == "PUT"
    assert json.loads(sent.content) == {"squash": True, "labels": "bot"}
    assert not sent.url.query


@pytest.mark.asyncio
async def test_server_errors_exhaust_all_attempts(make_executor, fake_sleep, recorded_requests):
    """Every attempt answers 503: ServerError after exactly max_attempts calls."""
    executor = make_executor(scripted(503), policy=RetryPolicy(max_attempts=5, backoff_seconds=10.0))

    with pytest.raises(ServerError) as exc_info:
        await executor.send(USER_REQUEST)

    assert exc_info.value.status_code == 503
    assert exc_info.value.attempts == 5
    assert exc_info.value.retryable is True
    assert len(recorded_requests) == 5
    assert fake_sleep.delays == [10.0] * 4


@pytest.mark.asyncio
async def test_default_policy_makes_twenty_attempts(make_executor, fake_sleep, recorded_requests):
    executor = make_executor(scripted(500), policy=RetryPolicy())

    with pytest.raises(ServerError):
        await executor.send(USER_REQUEST)

    assert len(recorded_requests) == 20
    assert fake_sleep.delays == [10.0] * 19


@pytest.mark.asyncio
async def test_timeouts_exhaust_all_attempts(make_executor, fake_sleep, recorded_requests):
    executor = make_executor(scripted(connect_timeout), policy=RetryPolicy(max_attempts=3, backoff_seconds=2.0))

    with pytest.raises(TransientNetworkError) as exc_info:
        await executor.send(USER_REQUEST)

    assert exc_info.value.attempts == 3
    assert isinstance(exc_info.value.original_exception, httpx.ConnectTimeout)
    assert len(recorded_requests) == 3
    assert fake_sleep.delays == [2.0, 2.0]


@pytest.mark.asyncio
@pytest.mark.parametrize("failures", [1, 3, 4])
async def test_recovers_after_server_errors(make_executor, fake_sleep, recorded_requests, failures):
    """N failed 5xx attempts followed by a 2xx use exactly N retries."""
    executor = make_executor(scripted(*([502] * failures + [200])),
                             policy=RetryPolicy(max_attempts=5, backoff_seconds=10.0))

    response = await executor.send(USER_REQUEST)

    assert response.status_code == 200
    assert len(recorded_requests) == failures + 1
    assert fake_sleep.delays == [10.0] * failures


@pytest.mark.asyncio
async def test_recovers_after_network_errors(make_executor, fake_sleep):
    executor = make_executor(scripted(dns_failure, connect_timeout, 200))

    response = await executor.send(USER_REQUEST)

    assert response.status_code == 200
    assert fake_sleep.delays == [10.0, 10.0]


@pytest.mark.asyncio
async def test_recovers_after_dropped_connection(make_executor, fake_sleep, recorded_requests):
    def server_disconnected(request):
        return httpx.RemoteProtocolError("Server disconnected without sending a response.", request=request)

    executor = make_executor(scripted(server_disconnected, 200))

    response = await executor.send(USER_REQUEST)

    assert response.status_code == 200
    assert len(recorded_requests) == 2
    assert fake_sleep.delays == [10.0]


@pytest.mark.asyncio
@pytest.mark.parametrize("status_code", [401, 403])
async def test_auth_failures_are_not_retried(make_executor, fake_sleep, recorded_requests, status_code):
    executor = make_executor(scripted(status_code, 200))

    response = await executor.send(USER_REQUEST)

    assert response.status_code == status_code
    assert len(recorded_requests) == 1
    assert fake_sleep.delays == []


@pytest.mark.asyncio
async def test_unauthorized_response_fails_validation(make_executor):
    executor = make_executor(scripted(401))

    response = await executor.send(USER_REQUEST)

    with pytest.raises(AuthenticationFailure):
        validate_response_status(response)


@pytest.mark.asyncio
async def test_client_errors_returned_to_caller(make_executor, fake_sleep):
    executor = make_executor(scripted(404))

    response = await executor.send(USER_REQUEST)

    assert response.status_code == 404
    assert fake_sleep.delays == []


@pytest.mark.asyncio
async def test_non_transient_transport_error_propagates_immediately(make_executor, fake_sleep, recorded_requests):
    def unsupported(request):
        return httpx.UnsupportedProtocol("Request URL has an unsupported protocol", request=request)

    executor = make_executor(scripted(unsupported, 200))

    with pytest.raises(TransportError) as exc_info:
        await executor.send(USER_REQUEST)

    assert exc_info.value.retryable is False
    assert isinstance(exc_info.value.__cause__, httpx.UnsupportedProtocol)
    assert len(recorded_requests) == 1
    assert fake_sleep.delays == []


@pytest.mark.asyncio
async def test_invalid_url_is_wrapped_as_transport_error(make_executor, fake_sleep, recorded_requests):
    def invalid_port(request):
        return httpx.InvalidURL("Invalid port: 'abc'")

    executor = make_executor(scripted(invalid_port, 200))

    with pytest.raises(TransportError) as exc_info:
        await executor.send(USER_REQUEST)

    assert isinstance(exc_info.value, GitlabApiError)
    assert isinstance(exc_info.value.__cause__, httpx.InvalidURL)
    assert len(recorded_requests) == 1
    assert fake_sleep.delays == []


@pytest.mark.asyncio
async def test_single_attempt_policy_never_sleeps(make_executor, fake_sleep):
    executor = make_executor(scripted(500), policy=RetryPolicy(max_attempts=1))

    with pytest.raises(ServerError) as exc_info:
        await executor.send(USER_REQUEST)

    assert exc_info.value.attempts == 1
    assert fake_sleep.delays == []


@pytest.mark.asyncio
async def test_retries_and_outcomes_are_reported_as_events(make_executor):
    events = []
    executor = make_executor(scripted(503, connect_timeout, 200), event_sink=events.append)

    await executor.send(USER_REQUEST)

    retries = [e for e in events if isinstance(e, RequestRetryScheduled)]
    assert [e.reason for e in retries] == ["status 503", "ConnectTimeout"]
    assert [e.attempt_number for e in retries] == [1, 2]
    succeeded = [e for e in events if isinstance(e, RequestSucceeded)]
    assert len(succeeded) == 1
    assert succeeded[0].attempts == 3
    assert not any(isinstance(e, RequestFailed) for e in events)


@pytest.mark.asyncio
async def test_owned_client_closed_on_exit():
    async with RequestExecutor(base_url=BASE_URL + "/", auth_token="t") as executor:
        client = executor._client
        assert executor.base_url == BASE_URL
    assert client.is_closed


def test_retry_policy_rejects_invalid_values():
    with pytest.raises(ValueError):
        RetryPolicy(max_attempts=0)
    with pytest.raises(ValueError):
        RetryPolicy(backoff_seconds=-1)
    with pytest.raises(ValueError):
        RetryPolicy(request_timeout_seconds=0)
