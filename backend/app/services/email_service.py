"""
Dispatch service - business logic layer for sending mail.

This module provides:
1. Validation of outbound messages (subject, body, recipients, attachments)
2. Attachment marshalling into the provider's shape
3. Sending under a grant resolved by the GrantGate
4. Listing messages for an already-gated grant

A failed send is never retried here: the provider may have delivered
it anyway, so the caller decides.
"""
import base64
import binascii
from typing import List, Optional, Union

from app.integrations.nylas_client import NylasClient
from app.models.email import Attachment, OutboundMessage, Recipient, SendResult
from app.models.grant import AuthRequired, GrantContext
from app.services.grant_gate import GrantGate
from app.utils.errors import DispatchFailed, InvalidMessage, ProviderError
from app.utils.logger import get_logger, mask

logger = get_logger(__name__)

SENT_FOLDER = "SENT"


def decode_attachment_content(attachment: Attachment, position: int) -> bytes:
    """
    Decode base64 attachment content strictly.

    Empty content is a valid zero-byte file; only absent content is
    rejected.

    Raises:
        InvalidMessage: Content missing or not valid base64
    """
    field = f"attachments[{position}].content"
    if attachment.content is None:
        raise InvalidMessage(f"Attachment '{attachment.filename}' has no content.", field)

    compact = "".join(attachment.content.split())
    try:
        return base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError):
        raise InvalidMessage(f"Attachment '{attachment.filename}' content is not valid base64.", field)


def build_attachment_payload(attachments: List[Attachment]) -> List[dict]:
    """
    Convert caller attachments into the Nylas attachment shape.

    Order is preserved. Content is re-encoded from the decoded bytes and
    size is the decoded length; a declared size that disagrees is
    rejected.
    """
    payload = []
    for position, attachment in enumerate(attachments):
        if not attachment.filename or not attachment.filename.strip():
            raise InvalidMessage("Every attachment needs a filename.", f"attachments[{position}].filename")

        data = decode_attachment_content(attachment, position)

        if attachment.size is not None and attachment.size != len(data):
            raise InvalidMessage(
                f"Attachment '{attachment.filename}' size {attachment.size} "
                f"does not match its content ({len(data)} bytes).",
                f"attachments[{position}].size",
            )

        payload.append({
            "filename": attachment.filename,
            "content": base64.b64encode(data).decode("ascii"),
            "content_type": attachment.content_type or "application/octet-stream",
            "size": len(data),
        })
    return payload


class DispatchService:
    """
    Sends mail through Nylas on behalf of gated users.

    Usage:
        service = DispatchService(client, gate)
        result = await service.send("user-1", message)
        if isinstance(result, AuthRequired):
            ...  # redirect to result.auth_url
    """

    def __init__(self, client: NylasClient, gate: GrantGate, default_recipient: Optional[str] = None):
        self.client = client
        self.gate = gate
        self.default_recipient = default_recipient

    def _recipients(self, message: OutboundMessage) -> List[Recipient]:
        recipients = list(message.to)
        if not recipients and self.default_recipient:
            recipients = [Recipient(email=self.default_recipient)]

        if not recipients:
            raise InvalidMessage("Missing required field: to", "to")

        for recipient in recipients:
            if not recipient.email or not recipient.email.strip():
                raise InvalidMessage("Recipient email must not be empty.", "to")
        return recipients

    def build_payload(self, message: OutboundMessage) -> dict:
        """
        Validate a message and assemble the provider request body.

        The attachments key is left out entirely when there are none.

        Raises:
            InvalidMessage: On any caller input defect
        """
        if not message.subject or not message.subject.strip():
            raise InvalidMessage("Missing required field: subject", "subject")
        if not message.body or not message.body.strip():
            raise InvalidMessage("Missing required field: body", "body")

        payload = {
            "to": [r.model_dump(exclude_none=True) for r in self._recipients(message)],
            "subject": message.subject,
            "body": message.body,
        }

        if message.attachments:
            payload["attachments"] = build_attachment_payload(message.attachments)

        return payload

    async def send(self, user_id: Optional[str], message: OutboundMessage) -> Union[SendResult, AuthRequired]:
        """
        Send a message as the user's delegated account.

        Flow:
        1. Resolve the grant (AuthRequired short-circuits)
        2. Validate and assemble the payload
        3. Call the provider once

        Raises:
            InvalidMessage: Caller input defect (provider not contacted)
            DispatchFailed: Provider send error
            GrantOperationFailed: Grant store fault
        """
        resolved = await self.gate.resolve(user_id)
        if isinstance(resolved, AuthRequired):
            return resolved

        payload = self.build_payload(message)
        attachment_count = len(payload.get("attachments", []))

        logger.info(
            f"Sending email for user: {resolved.user_id} via grant {mask(resolved.grant_id)} "
            f"({attachment_count} attachments)"
        )

        try:
            sent = await self.client.send_message(resolved.grant_id, payload)
        except ProviderError as e:
            logger.error(f"Error sending email for {resolved.user_id}: {e.message}")
            raise DispatchFailed(provider_status=e.provider_status) from e

        message_id = sent.get("id")
        logger.info(f"Email sent successfully, ID: {message_id}")

        return SendResult(
            message_id=message_id,
            provider_echoed_message=sent,
            attachment_count=attachment_count,
        )

    async def list_sent(self, context: GrantContext, limit: int = 10) -> List[dict]:
        """Messages in the grant's own SENT folder."""
        messages = await self.client.list_messages(context.grant_id, limit=limit, folder=SENT_FOLDER)
        logger.info(f"Fetched {len(messages)} sent emails for user: {context.user_id}")
        return messages

    async def list_recent(self, context: GrantContext, limit: int = 10) -> List[dict]:
        """Most recent messages across folders."""
        messages = await self.client.list_messages(context.grant_id, limit=limit)
        logger.info(f"Fetched {len(messages)} emails for user: {context.user_id}")
        return messages
