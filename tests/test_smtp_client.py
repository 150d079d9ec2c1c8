from __future__ import annotations

import base64
from pathlib import Path

import httpx
import pytest

from conftest import TOKEN_PATH, GraphStub, request_json
from graphmailkit.adapters.mailkit import (
    BodyBuilder,
    MessageImportance,
    MimeMessage,
    SecureSocketOptions,
    SmtpClient,
    TextPart,
)
from graphmailkit.exceptions import ConfigurationError, GraphRequestError, NotInitializedError
from graphmailkit.services.token_manager import TokenManager


SEND_PATH = "/v1.0/users/{sender}/sendMail"


@pytest.fixture
def smtp(http_client: httpx.Client, token_manager: TokenManager) -> SmtpClient:
    return SmtpClient(token_manager=token_manager, http_client=http_client)


def _message(**kwargs) -> MimeMessage:
    message = MimeMessage()
    message.from_.add("Alice <alice@contoso.com>")
    message.to.add("Bob <bob@contoso.com>")
    message.subject = kwargs.get("subject", "Hello")
    message.body = kwargs.get("body", TextPart("plain", "Hi Bob"))
    return message


def test_connect_authenticate_send(smtp: SmtpClient, graph_stub: GraphStub) -> None:
    path = SEND_PATH.format(sender="alice@contoso.com")
    graph_stub.add("POST", path, status=202)

    smtp.connect("graph.microsoft.com", 0, SecureSocketOptions.AUTO)
    smtp.authenticate("client-1|tenant-1", "s3cret")
    smtp.send(_message())
    smtp.disconnect(True)

    (request,) = graph_stub.calls("POST", path)
    assert request_json(request) == {
        "message": {
            "subject": "Hello",
            "toRecipients": [{"emailAddress": {"address": "bob@contoso.com", "name": "Bob"}}],
            "body": {"contentType": "Text", "content": "Hi Bob"},
        },
        "saveToSentItems": True,
    }
    assert len(graph_stub.calls("POST", TOKEN_PATH)) == 1
    assert not smtp.is_connected
    assert not smtp.is_authenticated


def test_sender_segment_overrides_from(smtp: SmtpClient, graph_stub: GraphStub) -> None:
    path = SEND_PATH.format(sender="noreply@contoso.com")
    graph_stub.add("POST", path, status=202)

    smtp.authenticate("client-1|tenant-1|noreply@contoso.com", "s3cret")
    smtp.send(_message())

    assert len(graph_stub.calls("POST", path)) == 1


def test_html_body_attachments_and_linked_resources(
    smtp: SmtpClient, graph_stub: GraphStub, tmp_path: Path
) -> None:
    path = SEND_PATH.format(sender="alice@contoso.com")
    graph_stub.add("POST", path, status=202)
    image = tmp_path / "logo.png"
    image.write_bytes(b"\x89PNG")
    report = tmp_path / "report.pdf"
    report.write_bytes(b"%PDF")

    builder = BodyBuilder()
    builder.text_body = "plain"
    builder.html_body = "<img src='cid:logo'>"
    resource = builder.add_linked_resource(str(image))
    builder.add_attachment(str(report))
    message = _message(body=builder.to_message_body())
    message.importance = MessageImportance.HIGH

    smtp.set_graph_credentials("tenant-1", "client-1", "s3cret")
    smtp.send(message)

    payload = request_json(graph_stub.calls("POST", path)[0])["message"]
    assert payload["body"] == {"contentType": "HTML", "content": "<img src='cid:logo'>"}
    assert payload["importance"] == "high"
    pdf, logo = payload["attachments"]
    assert pdf["name"] == "report.pdf"
    assert pdf["contentType"] == "application/pdf"
    assert pdf["contentBytes"] == base64.b64encode(b"%PDF").decode("ascii")
    assert "isInline" not in pdf
    assert logo["isInline"] is True
    assert logo["contentId"] == resource.content_id.strip("<>")


@pytest.mark.parametrize("user_name, password", [("", "x"), ("client-only", "x"), ("a|b", "")])
def test_authenticate_validates_format(smtp: SmtpClient, user_name: str, password: str) -> None:
    with pytest.raises(ValueError):
        smtp.authenticate(user_name, password)


def test_send_requires_authentication(smtp: SmtpClient) -> None:
    with pytest.raises(NotInitializedError):
        smtp.send(_message())


def test_send_requires_message(smtp: SmtpClient) -> None:
    smtp.authenticate("client-1|tenant-1", "s3cret")

    with pytest.raises(ValueError):
        smtp.send(None)


def test_send_without_any_sender(smtp: SmtpClient, graph_stub: GraphStub) -> None:
    smtp.authenticate("client-1|tenant-1", "s3cret")
    message = MimeMessage()
    message.to.add("bob@contoso.com")

    with pytest.raises(ConfigurationError):
        smtp.send(message)

    assert graph_stub.requests == []


def test_graph_rejection_propagates(smtp: SmtpClient, graph_stub: GraphStub) -> None:
    graph_stub.add("POST", SEND_PATH.format(sender="alice@contoso.com"), status=403, text="denied")
    smtp.authenticate("client-1|tenant-1", "s3cret")

    with pytest.raises(GraphRequestError) as exc_info:
        smtp.send(_message())

    assert exc_info.value.status_code == 403


def test_context_manager_disconnects(http_client: httpx.Client, token_manager: TokenManager) -> None:
    with SmtpClient(token_manager=token_manager, http_client=http_client) as smtp:
        smtp.authenticate("client-1|tenant-1", "s3cret")
        smtp.no_op()

    assert not smtp.is_authenticated
    assert not http_client.is_closed
