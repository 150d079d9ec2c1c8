"""Data models for Graph mail folders and messages."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class GraphFolder(BaseModel):
    """Mail folder snapshot returned by a folder listing."""
    model_config = ConfigDict(frozen=True)

    id: str = ""
    display_name: str = ""
    parent_folder_id: str = ""
    child_folder_count: int = 0
    unread_item_count: int = 0
    total_item_count: int = 0


class GraphMessage(BaseModel):
    """Message as returned by Graph, flattened to plain fields."""
    model_config = ConfigDict(frozen=True)

    id: str = ""
    subject: str = ""
    body_preview: str = ""
    body_content: str = ""
    body_content_type: str = Field("", description='"text" or "html"')
    from_address: str = ""
    sender: str = ""
    to_recipients: List[str] = Field(default_factory=list)
    cc_recipients: List[str] = Field(default_factory=list)
    bcc_recipients: List[str] = Field(default_factory=list)
    is_read: bool = False
    is_draft: bool = False
    importance: str = ""
    received_date_time: Optional[datetime] = None
    sent_date_time: Optional[datetime] = None
    has_attachments: bool = False
    internet_message_id: str = ""
    conversation_id: str = ""


@dataclass
class MailMessage:
    """Outgoing message for the simple send API."""

    from_address: str = ""
    to: List[str] = field(default_factory=list)
    cc: List[str] = field(default_factory=list)
    bcc: List[str] = field(default_factory=list)
    subject: str = ""
    body: str = ""
    is_html: bool = False
    importance: str = ""  # low|normal|high
    attachments: List[str] = field(default_factory=list)  # file paths

    def add_to(self, email: str) -> None:
        self.to.append(email)

    def add_cc(self, email: str) -> None:
        self.cc.append(email)

    def add_bcc(self, email: str) -> None:
        self.bcc.append(email)

    def add_attachment(self, path: str) -> None:
        self.attachments.append(path)
