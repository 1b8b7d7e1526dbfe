"""
Authorization flow.

This module orchestrates the OAuth flow:
1. Build consent URL with the user id carried as `state`
2. Handle callback: validate -> exchange code -> store grant

The user id travels through the provider as `state`. It is sent as-is,
or as a short-lived HS256 token when OAUTH_STATE_SECRET is configured.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from app.integrations.nylas_client import NylasClient
from app.models.grant import ExchangeResult, GrantRecord
from app.services.grant_service import GrantService
from app.utils.errors import ExchangeFailed, InvalidRequestError, ProviderError
from app.utils.logger import get_logger

logger = get_logger(__name__)

STATE_ALGORITHM = "HS256"


class AuthorizationFlow:
    """
    OAuth authorization flow against Nylas hosted auth.

    Usage:
        flow = AuthorizationFlow(client, grant_service, default_user_id="default-user")
        url = flow.build_authorization_url("user-1")
        record = await flow.complete_authorization(code, state)
    """

    def __init__(
        self,
        client: NylasClient,
        grant_service: GrantService,
        default_user_id: str,
        state_secret: str = "",
        state_ttl_minutes: int = 15,
    ):
        self.client = client
        self.grant_service = grant_service
        self.default_user_id = default_user_id
        self.state_secret = state_secret
        self.state_ttl = timedelta(minutes=state_ttl_minutes)

    def encode_state(self, user_id: str) -> str:
        if not self.state_secret:
            return user_id

        now = datetime.now(timezone.utc)
        payload = {"sub": user_id, "iat": now, "exp": now + self.state_ttl}
        return jwt.encode(payload, self.state_secret, algorithm=STATE_ALGORITHM)

    def decode_state(self, state: Optional[str]) -> str:
        """
        Recover the user id from a callback `state`.

        Raises:
            InvalidRequestError: Signed state is invalid or expired
        """
        if not state:
            return self.default_user_id

        if not self.state_secret:
            return state

        try:
            payload = jwt.decode(state, self.state_secret, algorithms=[STATE_ALGORITHM])
        except jwt.ExpiredSignatureError:
            logger.warning("OAuth state expired")
            raise InvalidRequestError("Authorization took too long. Please start again.")
        except jwt.InvalidTokenError as e:
            logger.warning(f"Invalid OAuth state: {e}")
            raise InvalidRequestError("Invalid authorization state.")

        user_id = payload.get("sub")
        if not user_id:
            raise InvalidRequestError("Invalid authorization state.")
        return user_id

    def build_authorization_url(
        self,
        user_id: str,
        client_id: Optional[str] = None,
        redirect_uri: Optional[str] = None,
    ) -> str:
        """
        Get the consent-screen URL for a user.

        Args:
            user_id: User the resulting grant will belong to
            client_id: Override for the configured client id
            redirect_uri: Override for the configured callback URI
        """
        url = self.client.build_auth_url(
            state=self.encode_state(user_id),
            client_id=client_id,
            redirect_uri=redirect_uri,
        )
        logger.info(f"Generated authorization URL for user: {user_id}")
        return url

    async def exchange_code(
        self,
        code: str,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        redirect_uri: Optional[str] = None,
    ) -> ExchangeResult:
        """
        Exchange an authorization code, exactly once.

        Raises:
            ExchangeFailed: Invalid/expired code, provider rejection or
                network failure. The flow must be restarted.
        """
        try:
            return await self.client.exchange_code(
                code,
                client_id=client_id,
                client_secret=client_secret,
                redirect_uri=redirect_uri,
            )
        except ProviderError as e:
            logger.error(f"Code exchange failed: {e.message}")
            raise ExchangeFailed() from e

    async def complete_authorization(
        self,
        code: Optional[str],
        state: Optional[str],
        error: Optional[str] = None,
    ) -> GrantRecord:
        """
        Handle the OAuth callback.

        Flow:
        1. Reject provider errors and missing codes before any exchange
        2. Map state back to the user id
        3. Exchange the code for a grant
        4. Store the grant for that user

        Returns:
            The stored GrantRecord
        """
        if error:
            logger.warning(f"OAuth error returned by provider: {error}")
            raise InvalidRequestError(f"Authorization was not granted: {error}")

        if not code:
            logger.warning("OAuth callback missing code")
            raise InvalidRequestError("No authorization code returned from Nylas")

        user_id = self.decode_state(state)
        logger.info(f"Exchanging authorization code for user: {user_id}")

        result = await self.exchange_code(code)

        return await self.grant_service.store_grant(
            user_id=user_id,
            grant_id=result.grant_id,
            email=result.email,
            provider=result.provider,
        )
