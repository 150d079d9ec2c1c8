from __future__ import annotations

import json
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
import pytest

from graphmailkit.services.graph_reader import GraphMailReader
from graphmailkit.services.graph_sender import GraphMailSender
from graphmailkit.services.token_manager import ClientSecretCredential, TokenManager


TENANT_ID = "tenant-1"
CLIENT_ID = "client-1"
CLIENT_SECRET = "s3cret"
MAILBOX = "box@contoso.com"
GRAPH_USER_PATH = f"/v1.0/users/{MAILBOX}"
TOKEN_PATH = f"/{TENANT_ID}/oauth2/v2.0/token"


def _normalize(path: str) -> str:
    return httpx.URL(f"https://stub{path}").path


class GraphStub:
    """httpx MockTransport handler: canned responses keyed by (method, path)."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.routes: Dict[Tuple[str, str], Tuple[int, Dict[str, Any]]] = {}

    def add(
        self,
        method: str,
        path: str,
        status: int = 200,
        json_body: Any = None,
        text: Optional[str] = None,
    ) -> None:
        key = (method.upper(), _normalize(path))
        if text is not None:
            self.routes[key] = (status, {"text": text})
        elif json_body is not None:
            self.routes[key] = (status, {"json": json_body})
        else:
            self.routes[key] = (status, {})

    def add_token(self, access_token: str = "tok-1", expires_in: int = 3600) -> None:
        self.add("POST", TOKEN_PATH, json_body={"access_token": access_token, "expires_in": expires_in})

    def calls(self, method: str, path: str) -> List[httpx.Request]:
        wanted = (method.upper(), _normalize(path))
        return [r for r in self.requests if (r.method, r.url.path) == wanted]

    def graph_requests(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.host == "graph.microsoft.com"]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"error": {"code": "NotFound", "path": request.url.path}})
        status, content = route
        return httpx.Response(status, **content)


def request_json(request: httpx.Request) -> Any:
    return json.loads(request.content.decode("utf-8"))


@pytest.fixture
def graph_stub() -> GraphStub:
    stub = GraphStub()
    stub.add_token()
    return stub


@pytest.fixture
def http_client(graph_stub: GraphStub) -> httpx.Client:
    client = httpx.Client(transport=httpx.MockTransport(graph_stub))
    yield client
    client.close()


@pytest.fixture
def token_manager(http_client: httpx.Client) -> TokenManager:
    return TokenManager(http_client=http_client)


@pytest.fixture
def credential(token_manager: TokenManager) -> ClientSecretCredential:
    return ClientSecretCredential(TENANT_ID, CLIENT_ID, CLIENT_SECRET, token_manager=token_manager)


@pytest.fixture
def reader(credential: ClientSecretCredential, http_client: httpx.Client) -> GraphMailReader:
    return GraphMailReader(credential, MAILBOX, http_client=http_client)


@pytest.fixture
def sender(credential: ClientSecretCredential, http_client: httpx.Client) -> GraphMailSender:
    return GraphMailSender(credential, http_client=http_client)


@pytest.fixture
def make_mime() -> Callable[..., str]:
    """Build a raw multipart/mixed message with optional attachments."""

    def _factory(
        subject: str = "Quarterly report",
        from_header: str = '"Alice Smith" <alice@contoso.com>',
        to_header: str = "box@contoso.com",
        text: str = "Hello Bob",
        html: Optional[str] = None,
        attachments: Optional[List[Tuple[str, str, str]]] = None,
    ) -> str:
        lines = [
            f"From: {from_header}",
            f"To: {to_header}",
            f"Subject: {subject}",
            "MIME-Version: 1.0",
            'Content-Type: multipart/mixed; boundary="outer"',
            "",
            "--outer",
            "Content-Type: text/plain; charset=utf-8",
            "",
            text,
        ]
        if html is not None:
            lines += ["--outer", "Content-Type: text/html; charset=utf-8", "", html]
        for filename, content_type, encoded in attachments or []:
            lines += [
                "--outer",
                f'Content-Type: {content_type}; name="{filename}"',
                "Content-Transfer-Encoding: base64",
                f'Content-Disposition: attachment; filename="{filename}"',
                "",
                encoded,
            ]
        lines += ["--outer--", ""]
        return "\r\n".join(lines)

    return _factory
