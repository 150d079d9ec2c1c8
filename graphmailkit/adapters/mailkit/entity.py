"""
MIME entity tree shaped like MimeKit's.

MimeEntity is the base; TextPart holds a text body, Multipart holds child
entities and MimePart holds binary content (attachments, linked resources).
Bodies are located with the traversal functions at the bottom of this module.
"""

import mimetypes
import os
from collections.abc import MutableSequence
from enum import IntEnum
from typing import Iterator, List, Optional


MIME_TYPES = {
    ".txt": "text/plain",
    ".pdf": "application/pdf",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".xls": "application/vnd.ms-excel",
    ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".zip": "application/zip",
    ".csv": "text/csv",
    ".xml": "application/xml",
    ".json": "application/json",
}
DEFAULT_MIME_TYPE = "application/octet-stream"


class MessageImportance(IntEnum):
    LOW = -1
    NORMAL = 0
    HIGH = 1


class MessagePriority(IntEnum):
    NON_URGENT = -1
    NORMAL = 0
    URGENT = 1


class Header:
    def __init__(self, name: str, value: str):
        self.name = name
        self.value = value

    def __str__(self) -> str:
        return f"{self.name}: {self.value}"

    def __repr__(self) -> str:
        return f"Header({self.name!r}, {self.value!r})"


class HeaderList(list):
    """List of Header objects with case-insensitive lookup by name."""

    def add(self, name: str, value: str) -> None:
        self.append(Header(name, value))

    def _find(self, name: str) -> Optional[Header]:
        wanted = name.lower()
        for header in self:
            if header.name.lower() == wanted:
                return header
        return None

    def get(self, name: str) -> Optional[str]:
        header = self._find(name)
        return header.value if header else None

    def set(self, name: str, value: str) -> None:
        """Replace the first header with this name, or append a new one."""
        header = self._find(name)
        if header:
            header.value = value
        else:
            self.add(name, value)


class ContentType:
    def __init__(self, media_type: str = "text", media_subtype: str = "plain"):
        self.media_type = media_type
        self.media_subtype = media_subtype
        self.charset = "utf-8"
        self.name: Optional[str] = None
        self.boundary: Optional[str] = None

    @property
    def mime_type(self) -> str:
        return f"{self.media_type}/{self.media_subtype}"

    def __str__(self) -> str:
        return self.mime_type


class MimeEntity:
    def __init__(self, content_type: Optional[ContentType] = None):
        self.headers = HeaderList()
        self.content_type = content_type or ContentType()
        self.content_id: Optional[str] = None
        self.content_disposition: Optional[str] = None
        self.content_transfer_encoding: Optional[str] = None

    @property
    def is_attachment(self) -> bool:
        return "attachment" in (self.content_disposition or "")


class TextPart(MimeEntity):
    def __init__(self, subtype: str = "plain", text: str = ""):
        super().__init__(ContentType("text", subtype))
        self.text = text

    @property
    def is_plain(self) -> bool:
        return self.content_type.mime_type.lower() == "text/plain"

    @property
    def is_html(self) -> bool:
        return self.content_type.mime_type.lower() == "text/html"

    def __str__(self) -> str:
        return self.text or ""


class Multipart(MimeEntity, MutableSequence):
    """Container entity; behaves as a list of child entities."""

    def __init__(self, subtype: str = "mixed"):
        super().__init__(ContentType("multipart", subtype))
        self._parts: List[MimeEntity] = []

    def __getitem__(self, index):
        return self._parts[index]

    def __setitem__(self, index, value):
        self._parts[index] = value

    def __delitem__(self, index):
        del self._parts[index]

    def __len__(self) -> int:
        return len(self._parts)

    def insert(self, index: int, value: MimeEntity) -> None:
        self._parts.insert(index, value)

    def add(self, entity: MimeEntity) -> None:
        self._parts.append(entity)


class MimePart(MimeEntity):
    """Binary part, used for attachments and linked resources."""

    def __init__(self, mime_type: str = DEFAULT_MIME_TYPE):
        media = (mime_type or "").split("/")
        if len(media) == 2 and all(media):
            super().__init__(ContentType(media[0], media[1]))
        else:
            super().__init__(ContentType("application", "octet-stream"))
        self.file_name: Optional[str] = None
        self.content: Optional[bytes] = None

    @classmethod
    def create_attachment(cls, file_path: str, content_type: Optional[str] = None) -> "MimePart":
        """
        Build an attachment part from a file on disk.

        Args:
            file_path: Path to the file
            content_type: MIME type; looked up by extension when omitted

        Returns:
            MimePart with base64 transfer encoding and attachment disposition

        Raises:
            FileNotFoundError: If file_path does not exist
        """
        if not os.path.isfile(file_path):
            raise FileNotFoundError(f"File not found: {file_path}")

        file_name = os.path.basename(file_path)
        with open(file_path, "rb") as f:
            content = f.read()

        part = cls(content_type or guess_mime_type(file_name))
        part.file_name = file_name
        part.content = content
        part.content_disposition = f'attachment; filename="{file_name}"'
        part.content_transfer_encoding = "base64"
        return part


def guess_mime_type(file_name: str) -> str:
    """Content type for a file name: the extension table first, then the mimetypes registry."""
    ext = os.path.splitext(file_name)[1].lower()
    if ext in MIME_TYPES:
        return MIME_TYPES[ext]
    return mimetypes.guess_type(file_name)[0] or DEFAULT_MIME_TYPE


# -------------------- Traversal --------------------
def find_text_body(entity: Optional[MimeEntity]) -> str:
    """Text of the first text/plain part, depth-first; "" if there is none."""
    if isinstance(entity, TextPart):
        return (entity.text or "") if entity.is_plain else ""
    if isinstance(entity, Multipart):
        for part in entity:
            text = find_text_body(part)
            if text:
                return text
    return ""


def find_html_body(entity: Optional[MimeEntity]) -> str:
    """Text of the first text/html part, depth-first; "" if there is none."""
    if isinstance(entity, TextPart):
        return (entity.text or "") if entity.is_html else ""
    if isinstance(entity, Multipart):
        for part in entity:
            html = find_html_body(part)
            if html:
                return html
    return ""


def iter_attachments(entity: Optional[MimeEntity]) -> Iterator[MimePart]:
    """Yield attachment parts with content, depth-first."""
    if isinstance(entity, MimePart):
        if entity.is_attachment and entity.content is not None:
            yield entity
    elif isinstance(entity, Multipart):
        for part in entity:
            yield from iter_attachments(part)


def iter_linked_resources(entity: Optional[MimeEntity]) -> Iterator[MimePart]:
    """Yield inline parts that carry a content id, depth-first."""
    if isinstance(entity, MimePart):
        if entity.content_id and not entity.is_attachment and entity.content is not None:
            yield entity
    elif isinstance(entity, Multipart):
        for part in entity:
            yield from iter_linked_resources(part)
