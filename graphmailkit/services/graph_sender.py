"""
Microsoft Graph mail sender.

Builds sendMail payloads and posts them on behalf of a sender mailbox. Every
message is saved to Sent Items.
"""

import base64
import logging
import mimetypes
import os
from typing import Any, Dict, Iterable, List, Optional

import httpx
from azure.core.credentials import TokenCredential

from ..config import DEFAULT_HTTP_TIMEOUT
from ..exceptions import ConfigurationError
from ..models import MailMessage
from .graph_http import GRAPH_API_URL, GraphClientBase


log = logging.getLogger("graphmailkit.graph_sender")

FILE_ATTACHMENT_TYPE = "#microsoft.graph.fileAttachment"
DEFAULT_ATTACHMENT_TYPE = "application/octet-stream"


def recipients(addresses: Iterable[str]) -> List[Dict[str, Any]]:
    return [{"emailAddress": {"address": address}} for address in addresses]


def file_attachment(
    name: str,
    content: bytes,
    content_type: Optional[str] = None,
    content_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Build a Graph fileAttachment entry.

    Args:
        name: File name shown to recipients
        content: Raw attachment bytes (sent base64-encoded)
        content_type: MIME type; guessed from the name when omitted
        content_id: Marks the attachment inline and referenceable as cid:<id>
    """
    attachment = {
        "@odata.type": FILE_ATTACHMENT_TYPE,
        "name": name,
        "contentType": content_type or mimetypes.guess_type(name)[0] or DEFAULT_ATTACHMENT_TYPE,
        "contentBytes": base64.b64encode(content).decode("ascii"),
    }
    if content_id:
        attachment["isInline"] = True
        attachment["contentId"] = content_id.strip("<>")
    return attachment


def build_graph_message(message: MailMessage) -> Dict[str, Any]:
    """
    Convert a MailMessage into the Graph message resource used by sendMail.

    Attachment paths that do not exist are skipped.
    """
    msg: Dict[str, Any] = {
        "subject": message.subject or "",
        "body": {
            "contentType": "HTML" if message.is_html else "Text",
            "content": message.body or "",
        },
        "toRecipients": recipients(message.to),
    }

    if message.cc:
        msg["ccRecipients"] = recipients(message.cc)

    if message.bcc:
        msg["bccRecipients"] = recipients(message.bcc)

    if message.importance:
        msg["importance"] = message.importance.lower()

    attachments = []
    for path in message.attachments:
        if not os.path.isfile(path):
            log.warning("Skipping missing attachment %s", path)
            continue
        with open(path, "rb") as f:
            content = f.read()
        attachments.append(file_attachment(os.path.basename(path), content))

    if attachments:
        msg["attachments"] = attachments

    return msg


class GraphMailSender(GraphClientBase):
    """Sends mail through POST /users/{from}/sendMail."""

    def __init__(
        self,
        credential: TokenCredential,
        http_client: Optional[httpx.Client] = None,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
    ):
        super().__init__(credential, http_client=http_client, timeout=timeout)

    def post_send_mail(self, from_address: str, graph_message: Dict[str, Any]) -> None:
        """
        Post an already-built Graph message.

        Args:
            from_address: Mailbox that sends (needs Mail.Send application permission)
            graph_message: Graph message resource

        Raises:
            ConfigurationError: If from_address is empty
            GraphRequestError: If Graph rejects the request
        """
        if not from_address:
            raise ConfigurationError("No sender address specified")

        payload = {"message": graph_message, "saveToSentItems": True}
        self._request(
            "POST",
            f"{GRAPH_API_URL}/users/{from_address}/sendMail",
            "send mail",
            json=payload,
        )
        log.info(
            "Sent mail from %s to %d recipient(s)",
            from_address,
            sum(len(graph_message.get(k, [])) for k in ("toRecipients", "ccRecipients", "bccRecipients")),
        )

    def send_message(self, message: MailMessage) -> None:
        self.post_send_mail(message.from_address, build_graph_message(message))

    def send_simple(
        self,
        from_address: str,
        to: str,
        subject: str,
        body: str,
        is_html: bool = False,
    ) -> None:
        msg = MailMessage(from_address=from_address, subject=subject, body=body, is_html=is_html)
        msg.add_to(to)
        self.send_message(msg)

    def send_with_attachment(
        self,
        from_address: str,
        to: str,
        subject: str,
        body: str,
        attachment_path: str,
    ) -> None:
        msg = MailMessage(from_address=from_address, subject=subject, body=body, is_html=False)
        msg.add_to(to)
        msg.add_attachment(attachment_path)
        self.send_message(msg)
