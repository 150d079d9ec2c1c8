"""
Mail relay routes.

Exposes the unified mail client over HTTP so programs that cannot load Python
(but can issue HTTP requests) can read and send mail through Graph.
The mailbox and app credentials come from GRAPHMAILKIT_* settings.
"""

import logging
from functools import lru_cache
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field

from ..client import UnifiedMailClient
from ..config import load_settings
from ..exceptions import AuthenticationError, ConfigurationError, GraphMailError
from ..models import GraphFolder, GraphMessage, MailMessage
from ..services.token_manager import TokenManager


log = logging.getLogger("graphmailkit.routes.mail")

router = APIRouter(prefix="/api/mail", tags=["Mail"])


@lru_cache(maxsize=1)
def get_mail_client() -> UnifiedMailClient:
    """Build the relay's client from environment settings (once per process)."""
    settings = load_settings()
    token_manager = TokenManager(authority_host=settings.authority_host, timeout=settings.http_timeout)
    client = UnifiedMailClient(token_manager=token_manager, timeout=settings.http_timeout)
    client.initialize_from_config(settings)
    return client


def mail_client() -> UnifiedMailClient:
    try:
        return get_mail_client()
    except ConfigurationError as e:
        raise HTTPException(status_code=500, detail=str(e))


def _http_error(e: GraphMailError) -> HTTPException:
    if isinstance(e, ConfigurationError):
        return HTTPException(status_code=500, detail=str(e))
    if isinstance(e, AuthenticationError):
        return HTTPException(status_code=401, detail=str(e))
    return HTTPException(status_code=400, detail=str(e))


class SendMailRequest(BaseModel):
    """Request to send a message from the relay mailbox (or another sender)"""
    to: List[str] = Field(..., min_length=1, description="Recipient addresses")
    cc: List[str] = Field(default_factory=list, description="Cc addresses")
    bcc: List[str] = Field(default_factory=list, description="Bcc addresses")
    subject: str = Field("", description="Message subject")
    body: str = Field("", description="Message body")
    is_html: bool = Field(False, description="Send body as HTML instead of text")
    importance: str = Field(
        "",
        description="Message importance",
        examples=["low", "normal", "high"],
    )
    from_address: Optional[str] = Field(
        None,
        description="Sending mailbox; defaults to the configured mailbox",
    )


class UpdateMessageRequest(BaseModel):
    """Request to change a message's read state"""
    is_read: bool = Field(..., description="New read state")


class MoveMessageRequest(BaseModel):
    """Request to move a message to another folder"""
    destination_id: str = Field(
        ...,
        description="Destination folder ID or well-known name",
        examples=["archive", "deleteditems"],
    )


class MoveMessageResponse(BaseModel):
    id: str


class MessageSummary(BaseModel):
    """Fields parsed from a message's raw MIME"""
    id: str
    subject: str
    from_address: str
    text_body: str
    html_body: str
    attachment_count: int
    attachments: List[str]


@router.get("/folders", response_model=List[GraphFolder])
def list_folders(client: UnifiedMailClient = Depends(mail_client)):
    try:
        return client.list_folders()
    except GraphMailError as e:
        raise _http_error(e)


@router.get("/folders/{folder_id}/messages", response_model=List[GraphMessage])
def list_folder_messages(
    folder_id: str,
    top: int = Query(100, ge=1, le=1000, description="Maximum number of messages"),
    client: UnifiedMailClient = Depends(mail_client),
):
    try:
        return client.list_messages(folder_id, top)
    except GraphMailError as e:
        raise _http_error(e)


@router.get("/messages", response_model=List[GraphMessage])
def search_messages(
    search: str = Query(..., min_length=1, description="Full-text search query"),
    folder_id: Optional[str] = Query(None, description="Restrict search to one folder"),
    client: UnifiedMailClient = Depends(mail_client),
):
    """
    Search messages in the relay mailbox.

    Example:
        GET /api/mail/messages?search=invoice&folder_id=inbox
    """
    try:
        return client.search_messages(search, folder_id)
    except GraphMailError as e:
        raise _http_error(e)


@router.get("/messages/{message_id}", response_model=GraphMessage)
def get_message(message_id: str, client: UnifiedMailClient = Depends(mail_client)):
    try:
        message = client.get_message(message_id)
    except GraphMailError as e:
        raise _http_error(e)
    if message is None:
        raise HTTPException(status_code=404, detail=f"Message {message_id} not found")
    return message


@router.get("/messages/{message_id}/mime", response_class=PlainTextResponse)
def get_message_mime(message_id: str, client: UnifiedMailClient = Depends(mail_client)):
    try:
        return PlainTextResponse(client.get_message_mime(message_id), media_type="message/rfc822")
    except GraphMailError as e:
        raise _http_error(e)


@router.get("/messages/{message_id}/summary", response_model=MessageSummary)
def get_message_summary(message_id: str, client: UnifiedMailClient = Depends(mail_client)):
    """Fetch the raw MIME and return the fields legacy callers usually need."""
    try:
        mime = client.get_message_mime(message_id)
    except GraphMailError as e:
        raise _http_error(e)

    count = client.get_attachment_count(mime)
    return MessageSummary(
        id=message_id,
        subject=client.get_subject(mime),
        from_address=client.get_from_address(mime),
        text_body=client.get_text_body(mime),
        html_body=client.get_html_body(mime),
        attachment_count=count,
        attachments=[client.get_attachment_info(mime, i) for i in range(count)],
    )


@router.patch("/messages/{message_id}", status_code=204)
def update_message(
    message_id: str,
    request: UpdateMessageRequest,
    client: UnifiedMailClient = Depends(mail_client),
):
    try:
        if request.is_read:
            client.mark_as_read(message_id)
        else:
            client.mark_as_unread(message_id)
    except GraphMailError as e:
        raise _http_error(e)
    return Response(status_code=204)


@router.post("/messages/{message_id}/move", response_model=MoveMessageResponse)
def move_message(
    message_id: str,
    request: MoveMessageRequest,
    client: UnifiedMailClient = Depends(mail_client),
):
    try:
        new_id = client.move_message(message_id, request.destination_id)
    except GraphMailError as e:
        raise _http_error(e)
    return MoveMessageResponse(id=new_id)


@router.delete("/messages/{message_id}", status_code=204)
def delete_message(message_id: str, client: UnifiedMailClient = Depends(mail_client)):
    try:
        client.delete_message(message_id)
    except GraphMailError as e:
        raise _http_error(e)
    return Response(status_code=204)


@router.post("/send", status_code=202)
def send_mail(request: SendMailRequest, client: UnifiedMailClient = Depends(mail_client)):
    """
    Send a message.

    Example:
        POST /api/mail/send
        {
            "to": ["someone@contoso.com"],
            "subject": "Status",
            "body": "<p>All green</p>",
            "is_html": true
        }
    """
    try:
        message = MailMessage(
            from_address=request.from_address or client.mailbox_address,
            to=list(request.to),
            cc=list(request.cc),
            bcc=list(request.bcc),
            subject=request.subject,
            body=request.body,
            is_html=request.is_html,
            importance=request.importance,
        )
        client.send_message(message)
    except GraphMailError as e:
        raise _http_error(e)

    log.info("Relayed message to %d recipient(s)", len(message.to) + len(message.cc) + len(message.bcc))
    return {"status": "accepted"}
