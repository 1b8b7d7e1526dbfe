"""
Email-related Pydantic models.
"""
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class Recipient(BaseModel):
    """Message recipient."""
    email: str
    name: Optional[str] = None


class Attachment(BaseModel):
    """Attachment as received from the caller; content is base64 text."""
    model_config = ConfigDict(populate_by_name=True)

    filename: str = ""
    content: Optional[str] = None
    content_type: str = Field(default="application/octet-stream", alias="contentType")
    size: Optional[int] = None


class OutboundMessage(BaseModel):
    """Message to dispatch (never persisted)."""
    to: List[Recipient] = []
    subject: str = ""
    body: str = ""
    attachments: Optional[List[Attachment]] = None


class SendEmailRequest(BaseModel):
    """Body of POST /nylas/send-email."""
    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[str] = Field(default=None, alias="userId")
    to: Optional[Union[str, List[Union[str, Recipient]]]] = None
    subject: Optional[str] = None
    body: Optional[str] = None
    attachments: Optional[List[Attachment]] = None

    def recipients(self) -> List[Recipient]:
        """Normalize `to` (string, list of strings or recipients)."""
        if not self.to:
            return []
        items = self.to if isinstance(self.to, list) else [self.to]
        return [Recipient(email=item) if isinstance(item, str) else item for item in items]

    def to_message(self) -> OutboundMessage:
        return OutboundMessage(
            to=self.recipients(),
            subject=self.subject or "",
            body=self.body or "",
            attachments=self.attachments,
        )


class SendResult(BaseModel):
    """Outcome of a successful dispatch."""
    message_id: Optional[str] = None
    provider_echoed_message: dict[str, Any] = {}
    attachment_count: int = 0
