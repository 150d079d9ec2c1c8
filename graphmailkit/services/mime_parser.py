"""
Best-effort MIME parser.

Recovers the handful of fields legacy callers ask for (subject, sender,
plain/HTML body, attachments) from raw RFC 5322 text. It is tolerant rather
than strict: malformed input degrades to empty values instead of raising.
Only attachment saving can fail.

Supported transfer encodings: base64, quoted-printable, anything else is
passed through unchanged. Header values understand RFC 2047 encoded words.
"""

import base64
import binascii
import logging
import re
from dataclasses import dataclass, field
from email.utils import getaddresses, parseaddr
from typing import List, Optional, Tuple

from ..exceptions import MimeDecodeError


log = logging.getLogger("graphmailkit.mime_parser")

BOUNDARY_RE = re.compile(r'boundary="?([^"\s;]+)"?', re.IGNORECASE)
CHARSET_RE = re.compile(r'charset="?([^"\s;]+)"?', re.IGNORECASE)
FILENAME_RE = re.compile(r'filename\s*=\s*(?:"([^"]*)"|([^;\s]+))', re.IGNORECASE)
NAME_PARAM_RE = re.compile(r'(?:^|[;\s])name\s*=\s*(?:"([^"]*)"|([^;\s]+))', re.IGNORECASE)
ENCODED_WORD_RE = re.compile(r"=\?([^?]+)\?([BQbq])\?([^?]*)\?=")
ENCODED_WORD_GAP_RE = re.compile(r"(?<=\?=)\s+(?==\?)")
BRACKET_ADDRESS_RE = re.compile(r"<([^>]+)>")
EMAIL_RE = re.compile(r"[\w.!#$%&'*+/=?^`{|}~-]+@[\w.-]+\.\w+")
LINE_SPLIT_RE = re.compile(r"\r\n|\n")

HEX_DIGITS = set("0123456789abcdefABCDEF")
MAX_MULTIPART_DEPTH = 8


@dataclass
class MimeSection:
    """One leaf part of a parsed message."""
    content_type: str = ""
    transfer_encoding: str = "7bit"
    disposition: str = ""
    body: str = ""
    is_attachment: bool = False
    filename: str = ""
    headers: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def charset(self) -> str:
        match = CHARSET_RE.search(self.content_type)
        return match.group(1) if match else "utf-8"

    @property
    def mime_type(self) -> str:
        return self.content_type.split(";", 1)[0].strip().lower()


# -------------------- Decoding helpers --------------------
def _to_text(data: bytes, charset: str = "utf-8") -> str:
    try:
        return data.decode(charset or "utf-8", errors="replace")
    except LookupError:
        return data.decode("utf-8", errors="replace")


def _clean_base64(text: str) -> str:
    return re.sub(r"\s+", "", text)


def decode_base64_bytes(text: str) -> bytes:
    """Strict base64 decode after stripping whitespace; raises binascii.Error."""
    return base64.b64decode(_clean_base64(text), validate=True)


def decode_base64_text(text: str, charset: str = "utf-8") -> str:
    """Decode a base64 body to text; on any failure return the input unchanged."""
    if not text:
        return ""
    try:
        return _to_text(decode_base64_bytes(text), charset)
    except (binascii.Error, ValueError):
        return text


def decode_quoted_printable(text: str) -> bytes:
    """
    Decode quoted-printable text to raw bytes.

    Each "=XX" escape becomes one byte; an "=" not followed by two hex digits is
    kept literally. A trailing "=" joins the line with the next (soft break).
    Literal characters are encoded as UTF-8.
    """
    if not text:
        return b""

    out = bytearray()
    lines = text.split("\n")
    for index, raw_line in enumerate(lines):
        line = raw_line.rstrip("\r")
        soft_break = False
        stripped = line.rstrip(" \t")
        if stripped.endswith("="):
            soft_break = True
            line = stripped[:-1]

        i = 0
        while i < len(line):
            ch = line[i]
            escape = line[i + 1:i + 3]
            if ch == "=" and len(escape) == 2 and all(c in HEX_DIGITS for c in escape):
                out.append(int(escape, 16))
                i += 3
                continue
            out.extend(ch.encode("utf-8"))
            i += 1

        if not soft_break and index < len(lines) - 1:
            out.extend(b"\n")

    return bytes(out)


def decode_quoted_printable_text(text: str, charset: str = "utf-8") -> str:
    return _to_text(decode_quoted_printable(text), charset)


def decode_body(body: str, transfer_encoding: str, charset: str = "utf-8") -> str:
    """Decode a part body to text according to its transfer encoding."""
    if not body:
        return ""
    encoding = (transfer_encoding or "").lower()
    if "base64" in encoding:
        return decode_base64_text(body, charset)
    if "quoted-printable" in encoding:
        return decode_quoted_printable_text(body, charset)
    return body


def _decode_encoded_word(match: "re.Match") -> str:
    charset = match.group(1).split("*", 1)[0]
    encoding = match.group(2).upper()
    encoded_text = match.group(3)
    try:
        if encoding == "B":
            padded = encoded_text + "=" * (-len(encoded_text) % 4)
            return _to_text(base64.b64decode(padded, validate=True), charset)
        return _to_text(decode_quoted_printable(encoded_text.replace("_", " ")), charset)
    except (binascii.Error, ValueError):
        return match.group(0)


def decode_header_value(value: str) -> str:
    """
    Decode RFC 2047 encoded words (=?charset?B|Q?text?=) in a header value.

    Whitespace between two adjacent encoded words is dropped; an encoded word
    that cannot be decoded is left as-is.
    """
    if not value:
        return ""
    if "=?" not in value:
        return value
    value = ENCODED_WORD_GAP_RE.sub("", value)
    return ENCODED_WORD_RE.sub(_decode_encoded_word, value)


def extract_email_address(address_field: str) -> str:
    """Reduce "Name <a@b.c>" or "a@b.c" to the bare address."""
    if not address_field:
        return ""
    _, address = parseaddr(address_field)
    if address:
        return address.strip()
    match = BRACKET_ADDRESS_RE.search(address_field)
    if match:
        return match.group(1).strip()
    match = EMAIL_RE.search(address_field)
    if match:
        return match.group(0)
    return address_field.strip()


# -------------------- Structure --------------------
def _split_lines(text: str) -> List[str]:
    return LINE_SPLIT_RE.split(text)


def _read_headers(lines: List[str]) -> Tuple[List[Tuple[str, str]], List[str]]:
    """Split lines into unfolded (name, value) headers and the remaining body lines."""
    headers: List[Tuple[str, str]] = []
    for index, line in enumerate(lines):
        if not line.strip():
            return headers, lines[index + 1:]
        if line[0] in " \t" and headers:
            name, value = headers[-1]
            headers[-1] = (name, f"{value} {line.strip()}")
            continue
        name, sep, value = line.partition(":")
        if sep:
            headers.append((name.strip(), value.strip()))
    return headers, []


def _header(headers: List[Tuple[str, str]], name: str) -> str:
    wanted = name.lower()
    for key, value in headers:
        if key.lower() == wanted:
            return value
    return ""


def _filename(disposition: str, content_type: str) -> str:
    match = FILENAME_RE.search(disposition)
    if not match:
        match = NAME_PARAM_RE.search(content_type)
    if not match:
        return ""
    return decode_header_value(match.group(1) if match.group(1) is not None else match.group(2))


def _parse_section(text: str) -> MimeSection:
    headers, body_lines = _read_headers(_split_lines(text))
    content_type = _header(headers, "Content-Type") or "text/plain"
    disposition = _header(headers, "Content-Disposition")
    section = MimeSection(
        content_type=content_type,
        transfer_encoding=_header(headers, "Content-Transfer-Encoding") or "7bit",
        disposition=disposition,
        body="\n".join(body_lines),
        headers=headers,
    )
    if "attachment" in disposition.lower():
        section.is_attachment = True
        section.filename = _filename(disposition, content_type)
    return section


def _split_on_boundary(text: str, boundary: str) -> List[str]:
    """Return the raw text of each part between delimiter lines."""
    delimiter = f"--{boundary}"
    closing = f"{delimiter}--"
    parts: List[str] = []
    current: Optional[List[str]] = None
    for line in _split_lines(text):
        marker = line.rstrip()
        if marker == closing:
            if current is not None:
                parts.append("\n".join(current))
            current = None
            break
        if marker == delimiter:
            if current is not None:
                parts.append("\n".join(current))
            current = []
            continue
        if current is not None:
            current.append(line)
    if current is not None:
        parts.append("\n".join(current))
    return [part for part in parts if part.strip() and part.strip() != "--"]


def _boundary_of(content_type: str) -> str:
    match = BOUNDARY_RE.search(content_type)
    return match.group(1) if match else ""


def _expand(section: MimeSection, depth: int) -> List[MimeSection]:
    if depth >= MAX_MULTIPART_DEPTH or not section.mime_type.startswith("multipart/"):
        return [section]
    boundary = _boundary_of(section.content_type)
    raw_parts = _split_on_boundary(section.body, boundary) if boundary else []
    if not raw_parts:
        return [section]
    out: List[MimeSection] = []
    for raw in raw_parts:
        out.extend(_expand(_parse_section(raw), depth + 1))
    return out


def parse_parts(mime_content: str) -> List[MimeSection]:
    """
    Split a message into leaf parts.

    The boundary comes from the top-level Content-Type header, or failing that
    from the first boundary= parameter anywhere in the text. Without a usable
    boundary the whole message is one part. Nested multiparts are expanded.
    """
    if not mime_content:
        return []

    top = _parse_section(mime_content)
    boundary = _boundary_of(top.content_type)
    if not boundary:
        match = BOUNDARY_RE.search(mime_content)
        boundary = match.group(1) if match else ""
    if not boundary:
        return [top]

    raw_parts = _split_on_boundary(mime_content, boundary)
    if not raw_parts:
        return [top]

    parts: List[MimeSection] = []
    for raw in raw_parts:
        parts.extend(_expand(_parse_section(raw), 1))
    return parts


@dataclass(frozen=True)
class AttachmentInfo:
    filename: str
    content_type: str
    size: int


class MimeParser:
    """
    Field extraction from raw MIME text.

    Example:
        parser = MimeParser()
        mime = reader.get_message_mime(message_id)
        print(parser.get_subject(mime), parser.get_text_body(mime))
    """

    def get_text_body(self, mime_content: str) -> str:
        return self._first_body(mime_content, "text/plain")

    def get_html_body(self, mime_content: str) -> str:
        return self._first_body(mime_content, "text/html")

    def _first_body(self, mime_content: str, mime_type: str) -> str:
        for part in parse_parts(mime_content):
            if part.is_attachment:
                continue
            if mime_type in part.content_type.lower():
                return decode_body(part.body, part.transfer_encoding, part.charset)
        return ""

    def get_header(self, mime_content: str, header_name: str) -> str:
        """Value of the first top-level header with this name (case-insensitive)."""
        if not mime_content or not header_name:
            return ""
        headers, _ = _read_headers(_split_lines(mime_content))
        return _header(headers, header_name)

    def get_subject(self, mime_content: str) -> str:
        return decode_header_value(self.get_header(mime_content, "Subject"))

    def get_from_address(self, mime_content: str) -> str:
        return extract_email_address(self.get_header(mime_content, "From"))

    def get_addresses(self, mime_content: str, header_name: str) -> List[str]:
        """All addresses in an address header such as To or Cc."""
        value = self.get_header(mime_content, header_name)
        if not value:
            return []
        return [address.strip() for _, address in getaddresses([value]) if address.strip()]

    def _attachments(self, mime_content: str) -> List[MimeSection]:
        return [part for part in parse_parts(mime_content) if part.is_attachment]

    def list_attachments(self, mime_content: str) -> List[AttachmentInfo]:
        return [
            AttachmentInfo(filename=part.filename, content_type=part.content_type, size=len(part.body))
            for part in self._attachments(mime_content)
        ]

    def get_attachment_count(self, mime_content: str) -> int:
        return len(self._attachments(mime_content))

    def get_attachment_info(self, mime_content: str, index: int) -> str:
        attachments = self.list_attachments(mime_content)
        if index < 0 or index >= len(attachments):
            return ""
        info = attachments[index]
        return f"Filename: {info.filename}, Size: {info.size} bytes, Type: {info.content_type}"

    def get_attachment_bytes(self, mime_content: str, index: int) -> bytes:
        """
        Decoded content of the attachment at index.

        Raises:
            ValueError: If mime_content is empty
            IndexError: If index is out of range
            MimeDecodeError: If base64 content is malformed
        """
        if not mime_content:
            raise ValueError("MIME content cannot be empty")

        attachments = self._attachments(mime_content)
        if index < 0 or index >= len(attachments):
            raise IndexError(f"Attachment index {index} out of range ({len(attachments)} attachments)")

        part = attachments[index]
        encoding = part.transfer_encoding.lower()
        if "base64" in encoding:
            try:
                return decode_base64_bytes(part.body)
            except (binascii.Error, ValueError) as e:
                raise MimeDecodeError(f"Cannot decode attachment {part.filename or index}: {e}")
        if "quoted-printable" in encoding:
            return decode_quoted_printable(part.body)
        return part.body.encode("utf-8")

    def save_attachment(self, mime_content: str, index: int, output_path: str) -> None:
        data = self.get_attachment_bytes(mime_content, index)
        with open(output_path, "wb") as f:
            f.write(data)
        log.debug("Saved attachment %d (%d bytes) to %s", index, len(data), output_path)
