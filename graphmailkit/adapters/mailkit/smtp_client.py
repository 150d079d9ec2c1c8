"""
SmtpClient with MailKit's surface that delivers through Graph sendMail.

Usage:
    client = SmtpClient()
    client.connect("graph.microsoft.com", 0, SecureSocketOptions.AUTO)
    client.authenticate("client_id|tenant_id", "client_secret")
    client.send(message)
    client.disconnect(True)

The user name may carry a third segment naming the sending mailbox:
"client_id|tenant_id|sender@contoso.com". Otherwise the first From address
of each message is used.
"""

import logging
from enum import Enum
from typing import Any, Dict, List, Optional

import httpx

from ...config import DEFAULT_HTTP_TIMEOUT
from ...exceptions import ConfigurationError, NotInitializedError
from ...services.graph_sender import GraphMailSender, file_attachment
from ...services.token_manager import ClientSecretCredential, TokenManager
from .address import InternetAddressList
from .entity import MessageImportance, MimePart, TextPart, iter_attachments, iter_linked_resources
from .message import MimeMessage


log = logging.getLogger("graphmailkit.smtp_client")

AUTH_FORMAT_HINT = "'client_id|tenant_id' or 'client_id|tenant_id|sender@domain.com'"


class SecureSocketOptions(Enum):
    NONE = "none"
    AUTO = "auto"
    SSL_ON_CONNECT = "ssl_on_connect"
    START_TLS = "start_tls"
    START_TLS_WHEN_AVAILABLE = "start_tls_when_available"


def _recipients(addresses: InternetAddressList) -> List[Dict[str, Any]]:
    return [
        {"emailAddress": {"address": address.address, "name": address.name}}
        for address in addresses
    ]


def _attachment_entry(part: MimePart) -> Dict[str, Any]:
    return file_attachment(
        part.file_name or "attachment",
        part.content or b"",
        content_type=part.content_type.mime_type,
        content_id=part.content_id if not part.is_attachment else None,
    )


def build_graph_message(message: MimeMessage) -> Dict[str, Any]:
    """Translate a MimeMessage into a Graph message resource."""
    msg: Dict[str, Any] = {"subject": message.subject or ""}

    if len(message.to) > 0:
        msg["toRecipients"] = _recipients(message.to)
    if len(message.cc) > 0:
        msg["ccRecipients"] = _recipients(message.cc)
    if len(message.bcc) > 0:
        msg["bccRecipients"] = _recipients(message.bcc)

    content, content_type = "", "Text"
    html_body = message.html_body
    text_body = message.text_body
    if html_body:
        content, content_type = html_body, "HTML"
    elif text_body:
        content = text_body
    elif isinstance(message.body, TextPart):
        content = message.body.text or ""
        content_type = "HTML" if message.body.is_html else "Text"
    msg["body"] = {"contentType": content_type, "content": content}

    if message.importance != MessageImportance.NORMAL:
        msg["importance"] = "high" if message.importance == MessageImportance.HIGH else "low"

    parts: List[MimePart] = [p for p in message.attachments if p.content is not None]
    parts.extend(iter_attachments(message.body))
    parts.extend(iter_linked_resources(message.body))

    attachments = []
    seen = set()
    for part in parts:
        if id(part) in seen:
            continue
        seen.add(id(part))
        attachments.append(_attachment_entry(part))
    if attachments:
        msg["attachments"] = attachments

    return msg


class SmtpClient:
    def __init__(
        self,
        token_manager: Optional[TokenManager] = None,
        http_client: Optional[httpx.Client] = None,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
    ):
        """
        Initialize client.

        Args:
            token_manager: Token cache to use (process-wide default if omitted)
            http_client: Client for Graph calls (one is created if omitted)
            timeout: Timeout used when creating a client
        """
        self._token_manager = token_manager
        self._owns_client = http_client is None
        self._http = http_client or httpx.Client(timeout=timeout)
        self._tenant_id: Optional[str] = None
        self._client_id: Optional[str] = None
        self._client_secret: Optional[str] = None
        self._sender_address: Optional[str] = None
        self.is_connected = False
        self.is_authenticated = False

    def connect(
        self,
        host: str,
        port: int = 0,
        options: SecureSocketOptions = SecureSocketOptions.AUTO,
    ) -> None:
        """No network activity; host, port and options are accepted and ignored."""
        self.is_connected = True

    def authenticate(self, user_name: str, password: str) -> None:
        """
        Store Graph app credentials.

        Args:
            user_name: "client_id|tenant_id" or "client_id|tenant_id|sender"
            password: Client secret

        Raises:
            ValueError: If either value is empty or user_name has fewer than two segments
        """
        if not user_name or not password:
            raise ValueError(f"Username and password are required. Format: {AUTH_FORMAT_HINT}")

        parts = [part.strip() for part in user_name.split("|")]
        if len(parts) < 2 or not parts[0] or not parts[1]:
            raise ValueError(f"Username must be in format: {AUTH_FORMAT_HINT}")

        self._client_id = parts[0]
        self._tenant_id = parts[1]
        self._client_secret = password
        if len(parts) >= 3 and parts[2]:
            self._sender_address = parts[2]
        self.is_authenticated = True

    def set_graph_credentials(
        self,
        tenant_id: str,
        client_id: str,
        client_secret: str,
        sender_address: Optional[str] = None,
    ) -> None:
        self._tenant_id = tenant_id
        self._client_id = client_id
        self._client_secret = client_secret
        self._sender_address = sender_address
        self.is_authenticated = True
        self.is_connected = True

    def _resolve_sender(self, message: MimeMessage) -> str:
        if self._sender_address:
            return self._sender_address
        if len(message.from_) > 0:
            return message.from_[0].address
        raise ConfigurationError(
            "No sender address specified. Set it in authentication or in message.from_"
        )

    def send(self, message: MimeMessage) -> None:
        """
        Send a message through Graph.

        Raises:
            NotInitializedError: If authenticate() has not been called
            ValueError: If message is None
            ConfigurationError: If no sender address can be resolved
            AuthenticationError: If the token request fails
            GraphRequestError: If Graph rejects the send
        """
        if not self.is_authenticated:
            raise NotInitializedError("Not authenticated. Call authenticate() first.")
        if message is None:
            raise ValueError("message cannot be None")

        from_address = self._resolve_sender(message)
        credential = ClientSecretCredential(
            self._tenant_id,
            self._client_id,
            self._client_secret,
            token_manager=self._token_manager,
        )
        sender = GraphMailSender(credential, http_client=self._http)
        sender.post_send_mail(from_address, build_graph_message(message))

    def disconnect(self, quit: bool = True) -> None:
        self.is_connected = False
        self.is_authenticated = False

    def no_op(self) -> None:
        pass

    def close(self) -> None:
        self.disconnect(True)
        if self._owns_client:
            self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
