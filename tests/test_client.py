from __future__ import annotations

from typing import Callable, List, Tuple

import httpx
import pytest

from conftest import CLIENT_ID, CLIENT_SECRET, GRAPH_USER_PATH, MAILBOX, TENANT_ID, GraphStub, request_json
from graphmailkit.client import UnifiedMailClient
from graphmailkit.config import Settings
from graphmailkit.exceptions import ConfigurationError, GraphMailError, NotInitializedError
from graphmailkit.services.token_manager import TokenManager


FOLDERS = {"value": [{"id": "inbox-id", "displayName": "Inbox"}]}
MESSAGES = {
    "value": [
        {"id": "m1", "subject": "One", "isRead": False},
        {"id": "m2", "subject": "Two", "isRead": True},
        {"id": "m3", "subject": "Three", "isRead": False},
    ]
}
SEND_PATH = f"{GRAPH_USER_PATH}/sendMail"


@pytest.fixture
def client(http_client: httpx.Client, token_manager: TokenManager) -> UnifiedMailClient:
    mail_client = UnifiedMailClient(token_manager=token_manager, http_client=http_client)
    mail_client.initialize(TENANT_ID, CLIENT_ID, CLIENT_SECRET, MAILBOX)
    return mail_client


@pytest.fixture
def inbox_stub(graph_stub: GraphStub) -> GraphStub:
    graph_stub.add("GET", f"{GRAPH_USER_PATH}/mailFolders", json_body=FOLDERS)
    graph_stub.add("GET", f"{GRAPH_USER_PATH}/mailFolders/inbox-id/messages", json_body=MESSAGES)
    graph_stub.add("POST", SEND_PATH, status=202)
    return graph_stub


def test_operations_require_initialization(http_client: httpx.Client) -> None:
    mail_client = UnifiedMailClient(http_client=http_client)

    with pytest.raises(NotInitializedError):
        mail_client.list_folders()
    with pytest.raises(NotInitializedError):
        mail_client.send_simple(MAILBOX, "bob@contoso.com", "s", "b")
    assert mail_client.get_subject("Subject: works\r\n\r\n") == "works"


def test_initialize_from_config_lists_missing_settings(http_client: httpx.Client) -> None:
    mail_client = UnifiedMailClient(http_client=http_client)

    with pytest.raises(ConfigurationError) as exc_info:
        mail_client.initialize_from_config(Settings(tenant_id=TENANT_ID, client_id=CLIENT_ID))

    assert "GRAPHMAILKIT_CLIENT_SECRET" in str(exc_info.value)
    assert "GRAPHMAILKIT_MAILBOX_ADDRESS" in str(exc_info.value)
    assert "GRAPHMAILKIT_TENANT_ID" not in str(exc_info.value)


def test_initialize_from_environment(http_client: httpx.Client, monkeypatch) -> None:
    monkeypatch.setenv("GRAPHMAILKIT_TENANT_ID", TENANT_ID)
    monkeypatch.setenv("GRAPHMAILKIT_CLIENT_ID", CLIENT_ID)
    monkeypatch.setenv("GRAPHMAILKIT_CLIENT_SECRET", CLIENT_SECRET)
    monkeypatch.setenv("GRAPHMAILKIT_MAILBOX_ADDRESS", MAILBOX)
    mail_client = UnifiedMailClient(http_client=http_client)

    mail_client.initialize_from_config()

    assert mail_client.is_initialized
    assert mail_client.mailbox_address == MAILBOX


def test_get_unread_messages(client: UnifiedMailClient, inbox_stub: GraphStub) -> None:
    unread = client.get_unread_messages(max_count=25)

    assert [m.id for m in unread] == ["m1", "m3"]
    (request,) = inbox_stub.calls("GET", f"{GRAPH_USER_PATH}/mailFolders/inbox-id/messages")
    assert request.url.params["$top"] == "25"


def test_get_unread_messages_without_inbox(client: UnifiedMailClient, graph_stub: GraphStub) -> None:
    graph_stub.add("GET", f"{GRAPH_USER_PATH}/mailFolders", json_body={"value": []})

    with pytest.raises(GraphMailError):
        client.get_unread_messages()


def test_reply_sends_to_original_sender(
    client: UnifiedMailClient, inbox_stub: GraphStub, make_mime: Callable[..., str]
) -> None:
    inbox_stub.add("GET", f"{GRAPH_USER_PATH}/messages/m1/$value", text=make_mime(subject="Plans"))

    client.reply_to_message("m1", "Sounds good")

    payload = request_json(inbox_stub.calls("POST", SEND_PATH)[0])["message"]
    assert payload["subject"] == "Re: Plans"
    assert payload["toRecipients"] == [{"emailAddress": {"address": "alice@contoso.com"}}]
    assert payload["body"] == {"contentType": "Text", "content": "Sounds good"}


def test_reply_all_excludes_own_mailbox(
    client: UnifiedMailClient, inbox_stub: GraphStub, make_mime: Callable[..., str]
) -> None:
    mime = make_mime(subject="Re: Plans", to_header=f"{MAILBOX}, Dan <dan@contoso.com>")
    inbox_stub.add("GET", f"{GRAPH_USER_PATH}/messages/m1/$value", text=mime)

    client.reply_to_message("m1", "Agreed", reply_all=True)

    payload = request_json(inbox_stub.calls("POST", SEND_PATH)[0])["message"]
    assert payload["subject"] == "Re: Plans"
    assert [r["emailAddress"]["address"] for r in payload["toRecipients"]] == [
        "alice@contoso.com",
        "dan@contoso.com",
    ]


def test_reply_keeps_plus_addresses(
    client: UnifiedMailClient, inbox_stub: GraphStub, make_mime: Callable[..., str]
) -> None:
    mime = make_mime(from_header="bob+billing@contoso.com", to_header=f"{MAILBOX}, ops+alerts@contoso.com")
    inbox_stub.add("GET", f"{GRAPH_USER_PATH}/messages/m1/$value", text=mime)

    client.reply_to_message("m1", "thanks", reply_all=True)

    payload = request_json(inbox_stub.calls("POST", SEND_PATH)[0])["message"]
    assert [r["emailAddress"]["address"] for r in payload["toRecipients"]] == [
        "bob+billing@contoso.com",
        "ops+alerts@contoso.com",
    ]


def test_forward_message(
    client: UnifiedMailClient, inbox_stub: GraphStub, make_mime: Callable[..., str]
) -> None:
    inbox_stub.add("GET", f"{GRAPH_USER_PATH}/messages/m1/$value", text=make_mime(text="Original text"))

    client.forward_message("m1", "eve@contoso.com", "FYI")

    payload = request_json(inbox_stub.calls("POST", SEND_PATH)[0])["message"]
    assert payload["subject"] == "Fwd: Quarterly report"
    assert payload["body"]["content"] == "FYI\n\n----- Forwarded Message -----\n\nOriginal text"
    assert payload["toRecipients"] == [{"emailAddress": {"address": "eve@contoso.com"}}]


def test_process_inbox_passes_mime_to_callback(client: UnifiedMailClient, inbox_stub: GraphStub) -> None:
    for message_id in ("m1", "m2", "m3"):
        inbox_stub.add("GET", f"{GRAPH_USER_PATH}/messages/{message_id}/$value", text=f"Subject: {message_id}\r\n\r\n")
    seen: List[Tuple[str, str]] = []

    client.process_inbox(lambda message, mime: seen.append((message.id, client.get_subject(mime))))

    assert seen == [("m1", "m1"), ("m2", "m2"), ("m3", "m3")]


def test_close_leaves_injected_client_open(http_client: httpx.Client) -> None:
    with UnifiedMailClient(http_client=http_client):
        pass

    assert not http_client.is_closed
