from __future__ import annotations

from urllib.parse import parse_qs

import httpx
import pytest

from conftest import CLIENT_ID, CLIENT_SECRET, TENANT_ID, TOKEN_PATH, GraphStub
from graphmailkit.exceptions import AuthenticationError, ConfigurationError
from graphmailkit.services.token_manager import (
    GRAPH_SCOPE,
    ClientSecretCredential,
    TokenManager,
    get_token_manager,
)


class FakeClock:
    def __init__(self, now: float = 1_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def manager(http_client: httpx.Client, clock: FakeClock) -> TokenManager:
    return TokenManager(http_client=http_client, clock=clock)


def test_requests_client_credentials_token(manager: TokenManager, graph_stub: GraphStub) -> None:
    token = manager.get_access_token(CLIENT_ID, TENANT_ID, CLIENT_SECRET)

    assert token == "tok-1"
    (request,) = graph_stub.calls("POST", TOKEN_PATH)
    assert request.url.host == "login.microsoftonline.com"
    form = parse_qs(request.content.decode())
    assert form == {
        "client_id": [CLIENT_ID],
        "client_secret": [CLIENT_SECRET],
        "scope": [GRAPH_SCOPE],
        "grant_type": ["client_credentials"],
    }


def test_cached_token_reused_with_more_than_five_minutes_left(
    manager: TokenManager, graph_stub: GraphStub, clock: FakeClock
) -> None:
    manager.get_access_token(CLIENT_ID, TENANT_ID, CLIENT_SECRET)
    clock.now += 3600 - 301

    manager.get_access_token(CLIENT_ID, TENANT_ID, CLIENT_SECRET)

    assert len(graph_stub.calls("POST", TOKEN_PATH)) == 1


def test_token_refreshed_with_five_minutes_or_less_left(
    manager: TokenManager, graph_stub: GraphStub, clock: FakeClock
) -> None:
    manager.get_access_token(CLIENT_ID, TENANT_ID, CLIENT_SECRET)
    graph_stub.add_token("tok-2")
    clock.now += 3600 - 300

    token = manager.get_access_token(CLIENT_ID, TENANT_ID, CLIENT_SECRET)

    assert token == "tok-2"
    assert len(graph_stub.calls("POST", TOKEN_PATH)) == 2


def test_missing_expires_in_defaults_to_one_hour(
    manager: TokenManager, graph_stub: GraphStub, clock: FakeClock
) -> None:
    graph_stub.add("POST", TOKEN_PATH, json_body={"access_token": "tok-x"})

    entry = manager.get_token_entry(CLIENT_ID, TENANT_ID, CLIENT_SECRET)

    assert entry.expires_at == clock.now + 3600


def test_cache_is_keyed_per_tenant_and_client(manager: TokenManager, graph_stub: GraphStub) -> None:
    graph_stub.add("POST", "/tenant-2/oauth2/v2.0/token", json_body={"access_token": "other"})

    assert manager.get_access_token(CLIENT_ID, TENANT_ID, CLIENT_SECRET) == "tok-1"
    assert manager.get_access_token(CLIENT_ID, "tenant-2", CLIENT_SECRET) == "other"
    assert manager.cache_stats() == {
        "cached_credentials": 2,
        "keys": [f"{TENANT_ID}:{CLIENT_ID}", f"tenant-2:{CLIENT_ID}"],
    }


def test_clear_cache_forces_new_request(manager: TokenManager, graph_stub: GraphStub) -> None:
    manager.get_access_token(CLIENT_ID, TENANT_ID, CLIENT_SECRET)

    manager.clear_cache(TENANT_ID, CLIENT_ID)
    manager.get_access_token(CLIENT_ID, TENANT_ID, CLIENT_SECRET)

    assert len(graph_stub.calls("POST", TOKEN_PATH)) == 2
    manager.clear_cache()
    assert manager.cache_stats()["cached_credentials"] == 0


def test_rejected_request_carries_status_and_body(manager: TokenManager, graph_stub: GraphStub) -> None:
    graph_stub.add(
        "POST",
        TOKEN_PATH,
        status=401,
        json_body={"error": "invalid_client", "error_description": "AADSTS7000215"},
    )

    with pytest.raises(AuthenticationError) as exc_info:
        manager.get_access_token(CLIENT_ID, TENANT_ID, CLIENT_SECRET)

    assert exc_info.value.status_code == 401
    assert "invalid_client" in exc_info.value.body
    assert "AADSTS7000215" in str(exc_info.value)


def test_transport_failure_is_authentication_error(clock: FakeClock) -> None:
    def _refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = httpx.Client(transport=httpx.MockTransport(_refuse))
    manager = TokenManager(http_client=client, clock=clock)

    with pytest.raises(AuthenticationError) as exc_info:
        manager.get_access_token(CLIENT_ID, TENANT_ID, CLIENT_SECRET)

    assert exc_info.value.status_code == 0


def test_response_without_access_token_is_rejected(manager: TokenManager, graph_stub: GraphStub) -> None:
    graph_stub.add("POST", TOKEN_PATH, json_body={"token_type": "Bearer"})

    with pytest.raises(AuthenticationError):
        manager.get_access_token(CLIENT_ID, TENANT_ID, CLIENT_SECRET)


@pytest.mark.parametrize(
    "client_id, tenant_id, secret",
    [("", TENANT_ID, CLIENT_SECRET), (CLIENT_ID, "", CLIENT_SECRET), (CLIENT_ID, TENANT_ID, "")],
)
def test_empty_credentials_fail_before_network(
    manager: TokenManager, graph_stub: GraphStub, client_id: str, tenant_id: str, secret: str
) -> None:
    with pytest.raises(ConfigurationError):
        manager.get_access_token(client_id, tenant_id, secret)

    assert graph_stub.requests == []


def test_custom_authority_host(http_client: httpx.Client, graph_stub: GraphStub) -> None:
    manager = TokenManager(http_client=http_client, authority_host="login.microsoftonline.us")

    manager.get_access_token(CLIENT_ID, TENANT_ID, CLIENT_SECRET)

    assert graph_stub.requests[-1].url.host == "login.microsoftonline.us"


def test_credential_returns_azure_access_token(manager: TokenManager, clock: FakeClock) -> None:
    credential = ClientSecretCredential(TENANT_ID, CLIENT_ID, CLIENT_SECRET, token_manager=manager)

    access_token = credential.get_token(GRAPH_SCOPE)

    assert access_token.token == "tok-1"
    assert access_token.expires_on == int(clock.now + 3600)


def test_default_manager_is_shared() -> None:
    assert get_token_manager() is get_token_manager()
