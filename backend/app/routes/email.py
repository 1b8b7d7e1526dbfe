"""
Email endpoints: send as the delegated account and list its messages.
"""
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.dependencies import get_dispatch_service, header_user_id, require_grant
from app.models.email import SendEmailRequest
from app.models.grant import AuthRequired, GrantContext
from app.services.email_service import DispatchService
from app.utils.logger import get_logger

router = APIRouter()
logger = get_logger(__name__)


@router.post("/nylas/send-email")
async def send_email(
    request: SendEmailRequest,
    userId: Optional[str] = None,
    header_id: Optional[str] = Depends(header_user_id),
    dispatch: DispatchService = Depends(get_dispatch_service),
):
    """
    Send an email, optionally with base64 attachments.

    Request: { userId?, to?, subject, body, attachments?: [{filename, content, contentType, size}] }
    Response: { message, messageId, sentMessage, attachments }
    """
    user_id = dispatch.gate.resolve_user_id(request.user_id, userId, header_id)
    result = await dispatch.send(user_id, request.to_message())

    if isinstance(result, AuthRequired):
        return JSONResponse(status_code=401, content=result.to_response())

    return {
        "message": "Email sent successfully",
        "messageId": result.message_id,
        "sentMessage": result.provider_echoed_message,
        "attachments": result.attachment_count,
    }


@router.get("/nylas/sent-emails")
async def sent_emails(
    limit: int = 10,
    context: GrantContext = Depends(require_grant),
    dispatch: DispatchService = Depends(get_dispatch_service),
):
    """Messages sent by the authorized account."""
    messages = await dispatch.list_sent(context, limit=limit)
    return {"messages": messages, "userId": context.user_id}


@router.get("/api/emails")
async def recent_emails(
    limit: int = 10,
    context: GrantContext = Depends(require_grant),
    dispatch: DispatchService = Depends(get_dispatch_service),
):
    """Most recent messages of the authorized account."""
    messages = await dispatch.list_recent(context, limit=limit)
    return {"messages": messages, "userId": context.user_id}
