"""
Grant gate - the check every provider-facing request passes through.

resolve() returns either a GrantContext to act under, or an
AuthRequired value with the link that starts the consent flow. Store
faults are not folded into AuthRequired; they propagate as
GrantOperationFailed.
"""
from typing import Optional, Union
from urllib.parse import urlencode

from app.models.grant import AuthRequired, GrantContext
from app.services.grant_service import GrantService
from app.utils.logger import get_logger

logger = get_logger(__name__)

AUTH_START_PATH = "/nylas/auth"


class GrantGate:
    """Resolves the caller and requires a stored grant."""

    def __init__(self, grant_service: GrantService, default_user_id: str, auth_path: str = AUTH_START_PATH):
        self.grant_service = grant_service
        self.default_user_id = default_user_id
        self.auth_path = auth_path

    def resolve_user_id(self, *candidates: Optional[str]) -> str:
        """
        First non-empty candidate, else the fallback identity.

        Callers pass candidates in priority order: explicit request
        parameter(s) first, then the identity header.
        """
        for candidate in candidates:
            if candidate and candidate.strip():
                return candidate.strip()
        return self.default_user_id

    def auth_url_for(self, user_id: str) -> str:
        return f"{self.auth_path}?{urlencode({'userId': user_id})}"

    async def resolve(self, user_id: Optional[str]) -> Union[GrantContext, AuthRequired]:
        user_id = self.resolve_user_id(user_id)
        grant_id = await self.grant_service.get_grant_id(user_id)

        if not grant_id:
            logger.info(f"No grant for user: {user_id}, authorization required")
            return AuthRequired(user_id=user_id, auth_url=self.auth_url_for(user_id))

        return GrantContext(user_id=user_id, grant_id=grant_id)
