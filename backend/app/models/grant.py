"""
Grant-related Pydantic models.
"""
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, field_validator


class GrantRecord(BaseModel):
    """Stored delegation for one user (one record per user_id)."""
    user_id: str
    grant_id: str
    email: Optional[str] = None
    provider: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @field_validator("created_at", "updated_at")
    @classmethod
    def as_utc(cls, value: datetime) -> datetime:
        # SQLite hands back naive datetimes; stored values are always UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class GrantContext(BaseModel):
    """Resolved caller identity and the grant to act under."""
    user_id: str
    grant_id: str


class AuthRequired(BaseModel):
    """Outcome when a user has not authorized yet; carries the consent link."""
    user_id: str
    auth_url: str
    message: str = "No grant found. Please authenticate first."

    def to_response(self) -> dict:
        return {"error": self.message, "authUrl": self.auth_url}


class ExchangeResult(BaseModel):
    """Result of a successful authorization-code exchange."""
    grant_id: str
    email: Optional[str] = None
    provider: Optional[str] = None


class GrantResponse(BaseModel):
    """Grant as exposed by the administration routes."""
    userId: str
    grantId: str
    email: Optional[str] = None
    provider: Optional[str] = None
    createdAt: datetime
    updatedAt: datetime

    @classmethod
    def from_record(cls, record: GrantRecord) -> "GrantResponse":
        return cls(
            userId=record.user_id,
            grantId=record.grant_id,
            email=record.email,
            provider=record.provider,
            createdAt=record.created_at,
            updatedAt=record.updated_at,
        )
