"""MimeMessage: the message object handed to SmtpClient.send()."""

import io
import uuid
from datetime import datetime
from email.utils import format_datetime
from typing import IO, List, Optional, Union

from ...services.mime_parser import MimeParser
from .address import InternetAddressList, MailboxAddress
from .entity import (
    HeaderList,
    MessageImportance,
    MessagePriority,
    MimeEntity,
    MimePart,
    Multipart,
    TextPart,
    find_html_body,
    find_text_body,
)


class MimeMessage:
    """
    Outgoing or loaded mail message.

    Addresses live in InternetAddressList fields; the body is a single
    MimeEntity (usually built with BodyBuilder). Parts appended to
    `attachments` are sent in addition to attachments inside the body tree.
    """

    def __init__(self):
        self.from_ = InternetAddressList()
        self.sender: Optional[MailboxAddress] = None
        self.reply_to = InternetAddressList()
        self.to = InternetAddressList()
        self.cc = InternetAddressList()
        self.bcc = InternetAddressList()
        self.subject = ""
        self.date = datetime.now().astimezone()
        self.message_id = f"<{uuid.uuid4()}@graphmailkit>"
        self.in_reply_to: Optional[str] = None
        self.body: Optional[MimeEntity] = None
        self.headers = HeaderList()
        self.importance = MessageImportance.NORMAL
        self.priority = MessagePriority.NORMAL
        self.attachments: List[MimePart] = []

    @property
    def text_body(self) -> str:
        return find_text_body(self.body)

    @property
    def html_body(self) -> str:
        return find_html_body(self.body)

    @property
    def body_parts(self) -> List[MimeEntity]:
        """Top-level body entities: the children of a multipart body, or the body itself."""
        if isinstance(self.body, Multipart):
            return list(self.body)
        if self.body is not None:
            return [self.body]
        return []

    def to_string(self) -> str:
        lines = [f"From: {self.from_}", f"To: {self.to}"]
        if len(self.cc) > 0:
            lines.append(f"Cc: {self.cc}")
        lines.append(f"Subject: {self.subject}")
        lines.append(f"Date: {format_datetime(self.date)}")
        lines.append(f"Message-ID: {self.message_id}")
        if self.in_reply_to:
            lines.append(f"In-Reply-To: {self.in_reply_to}")
        for header in self.headers:
            lines.append(str(header))
        lines.append("")

        if isinstance(self.body, TextPart):
            lines.append(self.body.text or "")
        elif self.body is not None:
            lines.append(self.text_body or self.html_body)
        return "\r\n".join(lines) + "\r\n"

    def write_to(self, stream: IO) -> None:
        """Write a basic header + text serialization; binary streams get UTF-8."""
        data = self.to_string()
        if isinstance(stream, io.TextIOBase):
            stream.write(data)
        else:
            stream.write(data.encode("utf-8"))

    @classmethod
    def load(cls, source: Union[str, bytes, IO]) -> "MimeMessage":
        """
        Build a message from raw MIME text, bytes or a readable stream.

        Only subject, addresses, ids and one body (HTML preferred) are recovered.
        """
        if hasattr(source, "read"):
            source = source.read()
        if isinstance(source, bytes):
            source = source.decode("utf-8", errors="replace")

        parser = MimeParser()
        message = cls()
        message.subject = parser.get_subject(source)

        from_address = parser.get_from_address(source)
        if from_address:
            message.from_.add(MailboxAddress("", from_address))
        for address in parser.get_addresses(source, "To"):
            message.to.add(MailboxAddress("", address))
        for address in parser.get_addresses(source, "Cc"):
            message.cc.add(MailboxAddress("", address))

        message_id = parser.get_header(source, "Message-ID")
        if message_id:
            message.message_id = message_id
        message.in_reply_to = parser.get_header(source, "In-Reply-To") or None

        html_body = parser.get_html_body(source)
        text_body = parser.get_text_body(source)
        if html_body:
            message.body = TextPart("html", html_body)
        elif text_body:
            message.body = TextPart("plain", text_body)
        return message

    def create_reply(self, reply_to_all: bool = False) -> "MimeMessage":
        reply = MimeMessage()
        subject = self.subject or ""
        reply.subject = subject if subject.lower().startswith("re:") else f"Re: {subject}"

        if len(self.reply_to) > 0:
            reply.to.add_range(self.reply_to)
        elif len(self.from_) > 0:
            reply.to.add_range(self.from_)

        if reply_to_all:
            for address in self.to:
                if address not in reply.to:
                    reply.to.add(address)
            for address in self.cc:
                if address not in reply.cc and address not in reply.to:
                    reply.cc.add(address)

        reply.in_reply_to = self.message_id
        return reply

    def __str__(self) -> str:
        return f"From: {self.from_}, To: {self.to}, Subject: {self.subject}"
