"""BodyBuilder: assembles a message body tree from text, HTML and files."""

import uuid
from typing import List, Optional

from .entity import MimeEntity, MimePart, Multipart, TextPart, guess_mime_type


class BodyBuilder:
    """
    Build a MimeMessage body.

    Shapes produced by to_message_body():
        text + html               multipart/alternative[plain, html]
        text + html + resources   multipart/alternative[plain, multipart/related[html, ...]]
        html                      text/html
        html + resources          multipart/related[html, ...]
        text                      text/plain
        any of the above + files  multipart/mixed[body, attachments...]
        nothing                   empty text/plain

    Example:
        builder = BodyBuilder()
        builder.text_body = "See attached."
        builder.add_attachment("/tmp/report.pdf")
        message.body = builder.to_message_body()
    """

    def __init__(self):
        self.text_body: Optional[str] = None
        self.html_body: Optional[str] = None
        self.attachments: List[MimePart] = []
        self.linked_resources: List[MimePart] = []

    def _html_entity(self) -> MimeEntity:
        html = TextPart("html", self.html_body)
        if not self.linked_resources:
            return html
        related = Multipart("related")
        related.add(html)
        for resource in self.linked_resources:
            related.add(resource)
        return related

    def to_message_body(self) -> MimeEntity:
        body: Optional[MimeEntity] = None

        if self.text_body and self.html_body:
            alternative = Multipart("alternative")
            alternative.add(TextPart("plain", self.text_body))
            alternative.add(self._html_entity())
            body = alternative
        elif self.html_body:
            body = self._html_entity()
        elif self.text_body:
            body = TextPart("plain", self.text_body)

        if self.attachments:
            mixed = Multipart("mixed")
            if body is not None:
                mixed.add(body)
            for attachment in self.attachments:
                mixed.add(attachment)
            return mixed

        return body if body is not None else TextPart("plain", "")

    def add_attachment(self, file_path: str, content_type: Optional[str] = None) -> MimePart:
        """
        Attach a file from disk.

        Raises:
            FileNotFoundError: If file_path does not exist
        """
        attachment = MimePart.create_attachment(file_path, content_type)
        self.attachments.append(attachment)
        return attachment

    def add_attachment_bytes(
        self,
        file_name: str,
        data: bytes,
        content_type: Optional[str] = None,
    ) -> MimePart:
        attachment = MimePart(content_type or guess_mime_type(file_name))
        attachment.file_name = file_name
        attachment.content = data
        attachment.content_disposition = f'attachment; filename="{file_name}"'
        attachment.content_transfer_encoding = "base64"
        self.attachments.append(attachment)
        return attachment

    def add_linked_resource(self, file_path: str) -> MimePart:
        """
        Embed a file (typically an image) for reference from the HTML body.

        The returned part's content_id is "<uuid>"; reference it in HTML as
        cid:uuid (without the angle brackets).
        """
        resource = MimePart.create_attachment(file_path)
        resource.content_id = f"<{uuid.uuid4()}>"
        resource.content_disposition = "inline"
        self.linked_resources.append(resource)
        return resource
