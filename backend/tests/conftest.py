"""
Pytest fixtures for the grant mailer backend tests.
"""
import base64

import pytest
from unittest.mock import AsyncMock, MagicMock

from app.config import NylasConfig, Settings
from app.integrations.grant_store import InMemoryGrantStore
from app.models.grant import ExchangeResult
from app.services.auth_service import AuthorizationFlow
from app.services.email_service import DispatchService
from app.services.grant_gate import GrantGate
from app.services.grant_service import GrantService


@pytest.fixture
def test_settings():
    """Settings isolated from the environment."""
    return Settings(
        _env_file=None,
        nylas_client_id="client-123",
        nylas_api_key="nyk_test_key",
        nylas_api_uri="https://api.test.nylas.com",
        nylas_callback_uri="http://localhost:8000/oauth/exchange",
        default_user_id="default-user",
        grant_store_backend="memory",
        oauth_state_secret="",
        admin_api_key="",
        default_recipient=None,
    )


@pytest.fixture
def nylas_config(test_settings):
    return test_settings.nylas_config()


@pytest.fixture
def grant_store():
    return InMemoryGrantStore()


@pytest.fixture
def grant_service(grant_store):
    return GrantService(grant_store)


@pytest.fixture
def mock_provider():
    """Stand-in for NylasClient with recorded calls."""
    provider = MagicMock()
    provider.build_auth_url = MagicMock(
        side_effect=lambda state, client_id=None, redirect_uri=None:
            f"https://api.test.nylas.com/v3/connect/auth?client_id=client-123&state={state}"
    )
    provider.exchange_code = AsyncMock(
        return_value=ExchangeResult(grant_id="grant-abc", email="user@example.com", provider="google")
    )
    provider.send_message = AsyncMock(
        return_value={"id": "msg-123", "subject": "Hi", "grant_id": "grant-abc"}
    )
    provider.list_messages = AsyncMock(
        return_value=[{"id": "msg-1", "subject": "First"}, {"id": "msg-2", "subject": "Second"}]
    )
    return provider


@pytest.fixture
def grant_gate(grant_service):
    return GrantGate(grant_service, default_user_id="default-user")


@pytest.fixture
def authorization_flow(mock_provider, grant_service):
    return AuthorizationFlow(mock_provider, grant_service, default_user_id="default-user")


@pytest.fixture
def dispatch_service(mock_provider, grant_gate):
    return DispatchService(mock_provider, grant_gate)


@pytest.fixture
def hello_attachment():
    """A 5-byte text attachment as sent by the frontend."""
    return {
        "filename": "a.txt",
        "content": base64.b64encode(b"hello").decode(),
        "contentType": "text/plain",
        "size": 5,
    }
