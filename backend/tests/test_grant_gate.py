"""
Unit tests for the grant gate.
"""
import pytest
from unittest.mock import AsyncMock

from app.models.grant import AuthRequired, GrantContext
from app.services.grant_gate import GrantGate
from app.services.grant_service import GrantService
from app.utils.errors import GrantOperationFailed, StoreUnavailable


class TestResolveUserId:

    def test_explicit_parameter_wins(self, grant_gate):
        assert grant_gate.resolve_user_id("from-query", "from-header") == "from-query"

    def test_header_used_when_no_parameter(self, grant_gate):
        assert grant_gate.resolve_user_id(None, "from-header") == "from-header"
        assert grant_gate.resolve_user_id("  ", "from-header") == "from-header"

    def test_fallback_identity(self, grant_gate):
        assert grant_gate.resolve_user_id(None, None) == "default-user"
        assert grant_gate.resolve_user_id() == "default-user"


class TestResolve:

    @pytest.mark.asyncio
    async def test_returns_context_for_stored_grant(self, grant_gate, grant_service):
        await grant_service.store_grant("u1", "g1")

        resolved = await grant_gate.resolve("u1")

        assert resolved == GrantContext(user_id="u1", grant_id="g1")

    @pytest.mark.asyncio
    async def test_missing_grant_returns_auth_required(self, grant_gate):
        resolved = await grant_gate.resolve("new user")

        assert isinstance(resolved, AuthRequired)
        assert resolved.user_id == "new user"
        assert resolved.auth_url == "/nylas/auth?userId=new+user"
        assert resolved.to_response()["authUrl"] == resolved.auth_url

    @pytest.mark.asyncio
    async def test_none_hint_uses_default_user(self, grant_gate, grant_service):
        await grant_service.store_grant("default-user", "g-default")

        resolved = await grant_gate.resolve(None)

        assert resolved.grant_id == "g-default"

    @pytest.mark.asyncio
    async def test_store_fault_is_not_auth_required(self):
        store = AsyncMock()
        store.find_by_user_id.side_effect = StoreUnavailable()
        gate = GrantGate(GrantService(store), default_user_id="default-user")

        with pytest.raises(GrantOperationFailed):
            await gate.resolve("u1")
