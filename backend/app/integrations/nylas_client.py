"""
Nylas API client integration.

This module handles direct communication with the Nylas v3 API:
1. Build hosted OAuth authorization URLs
2. Exchange authorization codes for grants
3. Send messages on behalf of a grant
4. List messages for a grant

No call is retried here. A send that timed out may still have been
delivered, so retry decisions belong to the caller.

Nylas API Reference: https://developer.nylas.com/docs/api/v3/
"""
from typing import List, Optional
from urllib.parse import quote, urlencode

import httpx

from app.config import NylasConfig
from app.models.grant import ExchangeResult
from app.utils.errors import ProviderError
from app.utils.logger import get_logger, mask

logger = get_logger(__name__)


class NylasClient:
    """
    Nylas API client.

    Usage:
        client = NylasClient(settings.nylas_config())
        url = client.build_auth_url(state="user-1")
        result = await client.exchange_code(code)
        data = await client.send_message(grant_id, payload)
    """

    def __init__(self, config: NylasConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Args:
            config: Provider settings (client id, API key, API URI)
            transport: Optional httpx transport (tests pass a MockTransport)
        """
        self.config = config
        self._transport = transport
        self.headers = {
            "Authorization": f"Bearer {config.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    async def _make_request(
        self,
        method: str,
        endpoint: str,
        json_data: dict = None,
        params: dict = None,
    ) -> dict:
        """
        Make an authenticated request to the Nylas API.

        Args:
            method: HTTP method
            endpoint: API path (relative to the API URI)
            json_data: Request body
            params: Query parameters

        Returns:
            Response JSON dict ({} for empty bodies)

        Raises:
            ProviderError: Transport failure or non-2xx response
        """
        url = f"{self.config.api_uri}{endpoint}"

        async with httpx.AsyncClient(
            transport=self._transport,
            timeout=self.config.timeout_seconds,
        ) as client:
            try:
                response = await client.request(
                    method=method,
                    url=url,
                    headers=self.headers,
                    json=json_data,
                    params=params,
                )
            except httpx.RequestError as e:
                logger.error(f"Nylas API request failed: {method} {endpoint} - {e}")
                raise ProviderError("Nylas service unavailable. Please try again later.") from e

        if 200 <= response.status_code < 300:
            if not response.content:
                return {}
            return response.json()

        message = self._error_message(response)
        logger.error(f"Nylas API error: {response.status_code} - {message}")
        raise ProviderError(message, provider_status=response.status_code)

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """
        Pull a readable message out of a Nylas error body.

        API errors look like {"error": {"type", "message"}}; the token
        endpoint uses {"error", "error_description"}.
        """
        try:
            data = response.json()
        except ValueError:
            return f"Nylas API error: {response.status_code}"

        error = data.get("error") if isinstance(data, dict) else None
        if isinstance(error, dict):
            return error.get("message") or error.get("type") or f"Nylas API error: {response.status_code}"
        if isinstance(data, dict) and data.get("error_description"):
            return data["error_description"]
        if isinstance(error, str):
            return error
        return f"Nylas API error: {response.status_code}"

    def build_auth_url(
        self,
        state: str,
        client_id: Optional[str] = None,
        redirect_uri: Optional[str] = None,
    ) -> str:
        """
        Build the hosted authentication URL for the consent screen.

        The state value comes back untouched on the callback.
        """
        params = {
            "client_id": client_id or self.config.client_id,
            "redirect_uri": redirect_uri or self.config.callback_uri,
            "response_type": "code",
            "access_type": "online",
            "state": state,
        }
        return f"{self.config.api_uri}/v3/connect/auth?{urlencode(params)}"

    async def exchange_code(
        self,
        code: str,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        redirect_uri: Optional[str] = None,
    ) -> ExchangeResult:
        """
        Exchange an authorization code for a grant.

        Returns:
            ExchangeResult with grant_id and, when reported, email/provider

        Raises:
            ProviderError: Code rejected or provider unreachable
        """
        data = {
            "client_id": client_id or self.config.client_id,
            "client_secret": client_secret or self.config.api_key,
            "redirect_uri": redirect_uri or self.config.callback_uri,
            "code": code,
            "grant_type": "authorization_code",
            "code_verifier": "nylas",
        }

        tokens = await self._make_request("POST", "/v3/connect/token", json_data=data)

        grant_id = tokens.get("grant_id")
        if not grant_id:
            raise ProviderError("Token response did not include a grant id")

        logger.info(f"Exchanged code for grant {mask(grant_id)}")
        return ExchangeResult(
            grant_id=grant_id,
            email=tokens.get("email"),
            provider=tokens.get("provider"),
        )

    async def send_message(self, grant_id: str, payload: dict) -> dict:
        """
        Send a message as the grant's account.

        Args:
            grant_id: Grant to act under
            payload: Request body (to, subject, body, optional attachments)

        Returns:
            The sent message as echoed by Nylas
        """
        response = await self._make_request(
            "POST",
            f"/v3/grants/{quote(grant_id, safe='')}/messages/send",
            json_data=payload,
        )
        return response.get("data") or {}

    async def list_messages(
        self,
        grant_id: str,
        limit: int = 10,
        folder: Optional[str] = None,
    ) -> List[dict]:
        """
        List the most recent messages for a grant.

        Args:
            grant_id: Grant to act under
            limit: Maximum number of messages
            folder: Optional folder id filter (e.g. "SENT")
        """
        params = {"limit": limit}
        if folder:
            params["in"] = folder

        response = await self._make_request(
            "GET",
            f"/v3/grants/{quote(grant_id, safe='')}/messages",
            params=params,
        )
        return response.get("data") or []
