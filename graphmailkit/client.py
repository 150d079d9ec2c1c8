"""
Unified mail client.

One object combining the Graph reader, the Graph sender and the MIME parser,
for callers that want a single entry point:

    with UnifiedMailClient() as client:
        client.initialize_from_config()
        for message in client.get_unread_messages():
            mime = client.get_message_mime(message.id)
            print(client.get_subject(mime), client.get_from_address(mime))
"""

import logging
from typing import Callable, List, Optional

import httpx

from .config import DEFAULT_HTTP_TIMEOUT, Settings, load_settings
from .exceptions import GraphMailError, NotInitializedError
from .models import GraphFolder, GraphMessage, MailMessage
from .services.graph_reader import GraphMailReader
from .services.graph_sender import GraphMailSender
from .services.mime_parser import MimeParser
from .services.token_manager import ClientSecretCredential, TokenManager


log = logging.getLogger("graphmailkit.client")

FORWARD_SEPARATOR = "\n\n----- Forwarded Message -----\n\n"


def _prefixed(subject: str, prefix: str) -> str:
    subject = subject or ""
    return subject if subject.lower().startswith(prefix.lower()) else f"{prefix} {subject}"


class UnifiedMailClient:
    def __init__(
        self,
        token_manager: Optional[TokenManager] = None,
        http_client: Optional[httpx.Client] = None,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
    ):
        """
        Initialize client (no credentials yet; call initialize()).

        Args:
            token_manager: Token cache (process-wide default if omitted)
            http_client: Client shared by reader and sender (created if omitted)
            timeout: Timeout used when creating a client
        """
        self._token_manager = token_manager
        self._owns_client = http_client is None
        self._http = http_client or httpx.Client(timeout=timeout)
        self._parser = MimeParser()
        self._reader: Optional[GraphMailReader] = None
        self._sender: Optional[GraphMailSender] = None

    # -------------------- Initialization --------------------
    def initialize(self, tenant_id: str, client_id: str, client_secret: str, mailbox_address: str) -> None:
        credential = ClientSecretCredential(
            tenant_id, client_id, client_secret, token_manager=self._token_manager
        )
        self._reader = GraphMailReader(credential, mailbox_address, http_client=self._http)
        self._sender = GraphMailSender(credential, http_client=self._http)
        log.info("Mail client initialized for %s", mailbox_address)

    def initialize_from_config(self, settings: Optional[Settings] = None) -> None:
        """
        Initialize from GRAPHMAILKIT_* environment settings.

        Raises:
            ConfigurationError: Listing every missing setting
        """
        settings = settings or load_settings()
        settings.require_credentials()
        self.initialize(
            settings.tenant_id,
            settings.client_id,
            settings.client_secret,
            settings.mailbox_address,
        )

    @property
    def is_initialized(self) -> bool:
        return self._reader is not None

    def ensure_initialized(self) -> None:
        if not self.is_initialized:
            raise NotInitializedError("Not initialized. Call initialize() first.")

    @property
    def mailbox_address(self) -> str:
        self.ensure_initialized()
        return self._reader.mailbox_address

    # -------------------- Reader --------------------
    def get_inbox(self) -> Optional[GraphFolder]:
        self.ensure_initialized()
        return self._reader.get_inbox()

    def get_folder(self, folder_name: str) -> Optional[GraphFolder]:
        self.ensure_initialized()
        return self._reader.get_folder(folder_name)

    def list_folders(self) -> List[GraphFolder]:
        self.ensure_initialized()
        return self._reader.list_folders()

    def list_messages(self, folder_id: str, max_count: int = 100) -> List[GraphMessage]:
        self.ensure_initialized()
        return self._reader.list_messages(folder_id, max_count)

    def get_message_mime(self, message_id: str) -> str:
        self.ensure_initialized()
        return self._reader.get_message_mime(message_id)

    def get_message(self, message_id: str) -> Optional[GraphMessage]:
        self.ensure_initialized()
        return self._reader.get_message(message_id)

    def search_messages(self, query: str, folder_id: Optional[str] = None) -> List[GraphMessage]:
        self.ensure_initialized()
        return self._reader.search_messages(query, folder_id)

    def mark_as_read(self, message_id: str) -> None:
        self.ensure_initialized()
        self._reader.mark_as_read(message_id)

    def mark_as_unread(self, message_id: str) -> None:
        self.ensure_initialized()
        self._reader.mark_as_unread(message_id)

    def move_message(self, message_id: str, destination_folder_id: str) -> str:
        self.ensure_initialized()
        return self._reader.move_message(message_id, destination_folder_id)

    def delete_message(self, message_id: str) -> None:
        self.ensure_initialized()
        self._reader.delete_message(message_id)

    # -------------------- Sender --------------------
    def send_message(self, message: MailMessage) -> None:
        self.ensure_initialized()
        self._sender.send_message(message)

    def send_simple(self, from_address: str, to: str, subject: str, body: str, is_html: bool = False) -> None:
        self.ensure_initialized()
        self._sender.send_simple(from_address, to, subject, body, is_html)

    def send_with_attachment(
        self,
        from_address: str,
        to: str,
        subject: str,
        body: str,
        attachment_path: str,
    ) -> None:
        self.ensure_initialized()
        self._sender.send_with_attachment(from_address, to, subject, body, attachment_path)

    # -------------------- Parser (no credentials needed) --------------------
    def get_text_body(self, mime_content: str) -> str:
        return self._parser.get_text_body(mime_content)

    def get_html_body(self, mime_content: str) -> str:
        return self._parser.get_html_body(mime_content)

    def get_header(self, mime_content: str, header_name: str) -> str:
        return self._parser.get_header(mime_content, header_name)

    def get_attachment_count(self, mime_content: str) -> int:
        return self._parser.get_attachment_count(mime_content)

    def get_attachment_info(self, mime_content: str, index: int) -> str:
        return self._parser.get_attachment_info(mime_content, index)

    def save_attachment(self, mime_content: str, index: int, output_path: str) -> None:
        self._parser.save_attachment(mime_content, index, output_path)

    def get_subject(self, mime_content: str) -> str:
        return self._parser.get_subject(mime_content)

    def get_from_address(self, mime_content: str) -> str:
        return self._parser.get_from_address(mime_content)

    # -------------------- High level --------------------
    def _require_inbox(self) -> GraphFolder:
        inbox = self.get_inbox()
        if inbox is None:
            raise GraphMailError(f"No Inbox folder found for {self._reader.mailbox_address}")
        return inbox

    def get_unread_messages(self, max_count: int = 50) -> List[GraphMessage]:
        """
        Unread messages among the first max_count inbox messages.

        Raises:
            GraphMailError: If the mailbox has no Inbox folder
        """
        inbox = self._require_inbox()
        return [m for m in self.list_messages(inbox.id, max_count) if not m.is_read]

    def reply_to_message(self, message_id: str, reply_body: str, reply_all: bool = False) -> None:
        """
        Send a plain-text reply from this mailbox.

        With reply_all, the original To and Cc recipients are included, except
        this mailbox itself.
        """
        self.ensure_initialized()
        mime = self.get_message_mime(message_id)
        mailbox = self._reader.mailbox_address

        reply = MailMessage(
            from_address=mailbox,
            subject=_prefixed(self.get_subject(mime), "Re:"),
            body=reply_body,
        )
        original_from = self.get_from_address(mime)
        if original_from:
            reply.add_to(original_from)

        if reply_all:
            seen = {a.lower() for a in reply.to} | {mailbox.lower()}
            for address in self._parser.get_addresses(mime, "To"):
                if address and address.lower() not in seen:
                    reply.add_to(address)
                    seen.add(address.lower())
            for address in self._parser.get_addresses(mime, "Cc"):
                if address and address.lower() not in seen:
                    reply.add_cc(address)
                    seen.add(address.lower())

        self._sender.send_message(reply)

    def forward_message(self, message_id: str, to_address: str, additional_comments: str = "") -> None:
        self.ensure_initialized()
        mime = self.get_message_mime(message_id)
        body = (additional_comments or "") + FORWARD_SEPARATOR + self.get_text_body(mime)
        self.send_simple(
            self._reader.mailbox_address,
            to_address,
            _prefixed(self.get_subject(mime), "Fwd:"),
            body,
        )

    def process_inbox(
        self,
        process_callback: Callable[[GraphMessage, str], None],
        max_messages: int = 100,
    ) -> None:
        """Call process_callback(message, mime) for each of the first max_messages inbox messages."""
        inbox = self._require_inbox()
        for message in self.list_messages(inbox.id, max_messages):
            process_callback(message, self.get_message_mime(message.id))

    def close(self) -> None:
        if self._owns_client:
            self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
