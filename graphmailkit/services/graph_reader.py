"""
Microsoft Graph mail reader.

Provides folder and message operations for a single mailbox using app-only
tokens. JSON fields are extracted permissively: absent or mistyped values
fall back to "", 0, False or None instead of failing.

Functions:
- list_folders / get_folder / get_inbox
- list_messages / get_message / get_message_mime / search_messages
- mark_as_read / mark_as_unread / move_message / delete_message
"""

import logging
from datetime import datetime
from typing import Any, List, Optional

import httpx
from azure.core.credentials import TokenCredential

from ..config import DEFAULT_HTTP_TIMEOUT
from ..models import GraphFolder, GraphMessage
from .graph_http import GRAPH_API_URL, GraphClientBase


log = logging.getLogger("graphmailkit.graph_reader")

INBOX_FOLDER_NAME = "Inbox"


def _get_str(item: Any, name: str) -> str:
    value = item.get(name) if isinstance(item, dict) else None
    return value if isinstance(value, str) else ""


def _get_int(item: Any, name: str) -> int:
    value = item.get(name) if isinstance(item, dict) else None
    # bool is an int subclass; JSON true/false is not a count
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return 0


def _get_bool(item: Any, name: str) -> bool:
    value = item.get(name) if isinstance(item, dict) else None
    return value if isinstance(value, bool) else False


def _get_datetime(item: Any, name: str) -> Optional[datetime]:
    value = _get_str(item, name)
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def _email_address(item: Any, name: str) -> str:
    wrapper = item.get(name) if isinstance(item, dict) else None
    if not isinstance(wrapper, dict):
        return ""
    return _get_str(wrapper.get("emailAddress"), "address")


def _recipient_addresses(item: Any, name: str) -> List[str]:
    recipients = item.get(name) if isinstance(item, dict) else None
    if not isinstance(recipients, list):
        return []
    out = []
    for recipient in recipients:
        if isinstance(recipient, dict) and isinstance(recipient.get("emailAddress"), dict):
            out.append(_get_str(recipient["emailAddress"], "address"))
    return out


def parse_folders(data: Any) -> List[GraphFolder]:
    """Map a Graph mailFolders collection payload to GraphFolder records."""
    values = data.get("value") if isinstance(data, dict) else None
    if not isinstance(values, list):
        return []
    return [
        GraphFolder(
            id=_get_str(item, "id"),
            display_name=_get_str(item, "displayName"),
            parent_folder_id=_get_str(item, "parentFolderId"),
            child_folder_count=_get_int(item, "childFolderCount"),
            unread_item_count=_get_int(item, "unreadItemCount"),
            total_item_count=_get_int(item, "totalItemCount"),
        )
        for item in values
        if isinstance(item, dict)
    ]


def parse_messages(data: Any) -> List[GraphMessage]:
    """Map a Graph messages collection payload to GraphMessage records."""
    values = data.get("value") if isinstance(data, dict) else None
    if not isinstance(values, list):
        return []

    messages = []
    for item in values:
        if not isinstance(item, dict):
            continue
        body = item.get("body") if isinstance(item.get("body"), dict) else {}
        messages.append(
            GraphMessage(
                id=_get_str(item, "id"),
                subject=_get_str(item, "subject"),
                body_preview=_get_str(item, "bodyPreview"),
                body_content=_get_str(body, "content"),
                body_content_type=_get_str(body, "contentType"),
                from_address=_email_address(item, "from"),
                sender=_email_address(item, "sender"),
                to_recipients=_recipient_addresses(item, "toRecipients"),
                cc_recipients=_recipient_addresses(item, "ccRecipients"),
                bcc_recipients=_recipient_addresses(item, "bccRecipients"),
                is_read=_get_bool(item, "isRead"),
                is_draft=_get_bool(item, "isDraft"),
                importance=_get_str(item, "importance"),
                received_date_time=_get_datetime(item, "receivedDateTime"),
                sent_date_time=_get_datetime(item, "sentDateTime"),
                has_attachments=_get_bool(item, "hasAttachments"),
                internet_message_id=_get_str(item, "internetMessageId"),
                conversation_id=_get_str(item, "conversationId"),
            )
        )
    return messages


def _json_or_empty(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return {}


class GraphMailReader(GraphClientBase):
    """Reads and updates mail in one mailbox."""

    def __init__(
        self,
        credential: TokenCredential,
        mailbox_address: str,
        http_client: Optional[httpx.Client] = None,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
    ):
        """
        Initialize mail reader.

        Args:
            credential: Token source for bearer tokens
            mailbox_address: UPN or SMTP address of the mailbox to read
            http_client: Shared httpx client (one is created if omitted)
            timeout: Connect/read timeout used when creating a client
        """
        super().__init__(credential, http_client=http_client, timeout=timeout)
        self._mailbox_address = mailbox_address

    @property
    def mailbox_address(self) -> str:
        return self._mailbox_address

    def _url(self, path: str) -> str:
        return f"{GRAPH_API_URL}/users/{self._mailbox_address}/{path}"

    # -------------------- Folders --------------------
    def list_folders(self) -> List[GraphFolder]:
        """
        List top-level mail folders.

        Returns:
            List of GraphFolder snapshots

        Raises:
            GraphRequestError: If the request fails
        """
        response = self._request("GET", self._url("mailFolders"), "list folders")
        return parse_folders(_json_or_empty(response))

    def get_folder(self, folder_name: str) -> Optional[GraphFolder]:
        """Find a folder by display name (case-insensitive); None if absent."""
        wanted = (folder_name or "").lower()
        for folder in self.list_folders():
            if folder.display_name.lower() == wanted:
                return folder
        return None

    def get_inbox(self) -> Optional[GraphFolder]:
        return self.get_folder(INBOX_FOLDER_NAME)

    # -------------------- Messages --------------------
    def list_messages(self, folder_id: str, max_count: int = 100) -> List[GraphMessage]:
        """
        List messages in a folder.

        Args:
            folder_id: Graph folder ID or well-known name (inbox, sentitems, ...)
            max_count: Page size sent as $top

        Returns:
            List of GraphMessage records

        Raises:
            GraphRequestError: If the request fails

        Example:
            inbox = reader.get_inbox()
            unread = [m for m in reader.list_messages(inbox.id, 25) if not m.is_read]
        """
        response = self._request(
            "GET",
            self._url(f"mailFolders/{folder_id}/messages"),
            "list messages",
            params={"$top": int(max_count)},
        )
        return parse_messages(_json_or_empty(response))

    def get_message_mime(self, message_id: str) -> str:
        """Return the raw RFC 5322 representation of a message."""
        response = self._request("GET", self._url(f"messages/{message_id}/$value"), "get MIME")
        return response.text

    def get_message(self, message_id: str) -> Optional[GraphMessage]:
        response = self._request("GET", self._url(f"messages/{message_id}"), "get message")
        messages = parse_messages({"value": [_json_or_empty(response)]})
        return messages[0] if messages else None

    def search_messages(self, query: str, folder_id: Optional[str] = None) -> List[GraphMessage]:
        """
        Full-text search with Graph's $search.

        Args:
            query: Search text; sent quoted as $search="query"
            folder_id: Restrict the search to one folder (whole mailbox if None)

        Returns:
            Matching GraphMessage records

        Raises:
            GraphRequestError: If the request fails
        """
        path = f"mailFolders/{folder_id}/messages" if folder_id else "messages"
        # $search takes a quoted KQL phrase
        escaped = query.replace("\\", "\\\\").replace('"', '\\"')
        response = self._request(
            "GET",
            self._url(path),
            "search messages",
            params={"$search": f'"{escaped}"'},
        )
        return parse_messages(_json_or_empty(response))

    def mark_as_read(self, message_id: str) -> None:
        self._update_read_status(message_id, True)

    def mark_as_unread(self, message_id: str) -> None:
        self._update_read_status(message_id, False)

    def _update_read_status(self, message_id: str, is_read: bool) -> None:
        self._request(
            "PATCH",
            self._url(f"messages/{message_id}"),
            "update read status",
            json={"isRead": is_read},
        )

    def move_message(self, message_id: str, destination_folder_id: str) -> str:
        """
        Move a message to another folder.

        Returns:
            ID of the moved message (Graph assigns a new one)

        Raises:
            GraphRequestError: If the request fails
        """
        response = self._request(
            "POST",
            self._url(f"messages/{message_id}/move"),
            "move message",
            json={"destinationId": destination_folder_id},
        )
        return _get_str(_json_or_empty(response), "id")

    def delete_message(self, message_id: str) -> None:
        self._request("DELETE", self._url(f"messages/{message_id}"), "delete message")
