"""
Unit tests for the Nylas client.

HTTP is served by httpx.MockTransport, so requests are inspected as sent.
"""
import json
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from app.integrations.nylas_client import NylasClient
from app.utils.errors import ProviderError


def client_with(nylas_config, handler):
    return NylasClient(nylas_config, transport=httpx.MockTransport(handler))


class TestAuthUrl:

    def test_build_auth_url(self, nylas_config):
        client = NylasClient(nylas_config)

        url = client.build_auth_url(state="user 1")

        parsed = urlparse(url)
        query = parse_qs(parsed.query)
        assert parsed.netloc == "api.test.nylas.com"
        assert parsed.path == "/v3/connect/auth"
        assert query["client_id"] == ["client-123"]
        assert query["redirect_uri"] == ["http://localhost:8000/oauth/exchange"]
        assert query["response_type"] == ["code"]
        assert query["state"] == ["user 1"]


class TestExchangeCode:

    @pytest.mark.asyncio
    async def test_exchange_success(self, nylas_config):
        seen = {}

        def handler(request: httpx.Request):
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={
                "access_token": "at",
                "grant_id": "grant-777",
                "email": "me@example.com",
                "provider": "google",
            })

        result = await client_with(nylas_config, handler).exchange_code("code-1")

        assert seen["url"] == "https://api.test.nylas.com/v3/connect/token"
        assert seen["body"]["code"] == "code-1"
        assert seen["body"]["grant_type"] == "authorization_code"
        assert seen["body"]["client_secret"] == "nyk_test_key"
        assert result.grant_id == "grant-777"
        assert result.email == "me@example.com"
        assert result.provider == "google"

    @pytest.mark.asyncio
    async def test_exchange_rejected(self, nylas_config):
        def handler(request):
            return httpx.Response(400, json={"error": "invalid_grant", "error_description": "Code expired"})

        with pytest.raises(ProviderError) as exc_info:
            await client_with(nylas_config, handler).exchange_code("old-code")

        assert exc_info.value.provider_status == 400
        assert exc_info.value.message == "Code expired"

    @pytest.mark.asyncio
    async def test_exchange_without_grant_id(self, nylas_config):
        def handler(request):
            return httpx.Response(200, json={"access_token": "at"})

        with pytest.raises(ProviderError):
            await client_with(nylas_config, handler).exchange_code("code-1")


class TestSendMessage:

    @pytest.mark.asyncio
    async def test_send_posts_to_grant(self, nylas_config):
        seen = {}

        def handler(request: httpx.Request):
            seen["method"] = request.method
            seen["path"] = request.url.path
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"request_id": "r1", "data": {"id": "sent-1", "subject": "Hi"}})

        payload = {"to": [{"email": "a@example.com"}], "subject": "Hi", "body": "Test"}
        sent = await client_with(nylas_config, handler).send_message("grant-1", payload)

        assert seen["method"] == "POST"
        assert seen["path"] == "/v3/grants/grant-1/messages/send"
        assert seen["auth"] == "Bearer nyk_test_key"
        assert seen["body"] == payload
        assert sent == {"id": "sent-1", "subject": "Hi"}

    @pytest.mark.asyncio
    async def test_send_api_error(self, nylas_config):
        def handler(request):
            return httpx.Response(
                403,
                json={"request_id": "r1", "error": {"type": "forbidden", "message": "Grant revoked"}},
            )

        with pytest.raises(ProviderError) as exc_info:
            await client_with(nylas_config, handler).send_message("grant-1", {})

        assert exc_info.value.provider_status == 403
        assert exc_info.value.message == "Grant revoked"

    @pytest.mark.asyncio
    async def test_send_connection_error(self, nylas_config):
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ProviderError):
            await client_with(nylas_config, handler).send_message("grant-1", {})

        assert len(calls) == 1


class TestListMessages:

    @pytest.mark.asyncio
    async def test_list_with_folder(self, nylas_config):
        seen = {}

        def handler(request: httpx.Request):
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json={"data": [{"id": "m1"}], "next_cursor": None})

        messages = await client_with(nylas_config, handler).list_messages("grant-1", limit=5, folder="SENT")

        assert messages == [{"id": "m1"}]
        assert seen["params"] == {"limit": "5", "in": "SENT"}
