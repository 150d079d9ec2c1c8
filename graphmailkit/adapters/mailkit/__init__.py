"""
MailKit compatibility package.

Provides drop-in shaped replacements for:
- address: InternetAddress, MailboxAddress, InternetAddressList
- entity: MimeEntity, TextPart, Multipart, MimePart, headers and enums
- message: MimeMessage
- body_builder: BodyBuilder
- smtp_client: SmtpClient (sends through Graph sendMail)
"""

from .address import InternetAddress, InternetAddressList, MailboxAddress
from .body_builder import BodyBuilder
from .entity import (
    ContentType,
    Header,
    HeaderList,
    MessageImportance,
    MessagePriority,
    MimeEntity,
    MimePart,
    Multipart,
    TextPart,
)
from .message import MimeMessage
from .smtp_client import SecureSocketOptions, SmtpClient

__all__ = [
    "InternetAddress",
    "InternetAddressList",
    "MailboxAddress",
    "BodyBuilder",
    "ContentType",
    "Header",
    "HeaderList",
    "MessageImportance",
    "MessagePriority",
    "MimeEntity",
    "MimePart",
    "Multipart",
    "TextPart",
    "MimeMessage",
    "SecureSocketOptions",
    "SmtpClient",
]
