"""
FastAPI dependencies wiring the service graph.

Store and Nylas client are process-wide (cached); services are cheap
and built per request from them. Tests swap pieces through
app.dependency_overrides.
"""
import hmac
from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request

from app.config import Settings, get_settings
from app.integrations.grant_store import GrantStore, build_grant_store
from app.integrations.nylas_client import NylasClient
from app.models.grant import AuthRequired, GrantContext
from app.services.auth_service import AuthorizationFlow
from app.services.email_service import DispatchService
from app.services.grant_gate import GrantGate
from app.services.grant_service import GrantService
from app.utils.errors import AdminAuthError


@lru_cache()
def get_grant_store() -> GrantStore:
    return build_grant_store(get_settings())


@lru_cache()
def get_nylas_client() -> NylasClient:
    return NylasClient(get_settings().nylas_config())


def get_grant_service(store: GrantStore = Depends(get_grant_store)) -> GrantService:
    return GrantService(store)


def get_authorization_flow(
    client: NylasClient = Depends(get_nylas_client),
    grant_service: GrantService = Depends(get_grant_service),
    settings: Settings = Depends(get_settings),
) -> AuthorizationFlow:
    return AuthorizationFlow(
        client,
        grant_service,
        default_user_id=settings.default_user_id,
        state_secret=settings.oauth_state_secret,
        state_ttl_minutes=settings.oauth_state_ttl_minutes,
    )


def get_grant_gate(
    grant_service: GrantService = Depends(get_grant_service),
    settings: Settings = Depends(get_settings),
) -> GrantGate:
    return GrantGate(grant_service, default_user_id=settings.default_user_id)


def get_dispatch_service(
    client: NylasClient = Depends(get_nylas_client),
    gate: GrantGate = Depends(get_grant_gate),
    settings: Settings = Depends(get_settings),
) -> DispatchService:
    return DispatchService(client, gate, default_recipient=settings.default_recipient)


def header_user_id(request: Request, settings: Settings = Depends(get_settings)) -> Optional[str]:
    """Caller identity from the configured header, if present."""
    return request.headers.get(settings.user_id_header)


async def require_grant(
    userId: Optional[str] = None,
    header_id: Optional[str] = Depends(header_user_id),
    gate: GrantGate = Depends(get_grant_gate),
) -> GrantContext:
    """
    Dependency for gated routes.

        @router.get("/gated")
        async def gated(context: GrantContext = Depends(require_grant)):
            ...

    Raises:
        HTTPException 401: No grant stored, with the consent link
    """
    resolved = await gate.resolve(gate.resolve_user_id(userId, header_id))

    if isinstance(resolved, AuthRequired):
        raise HTTPException(status_code=401, detail=resolved.to_response())

    return resolved


def require_admin(
    x_admin_key: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
) -> None:
    """Guard grant administration when ADMIN_API_KEY is set."""
    if not settings.admin_api_key:
        return
    if not x_admin_key or not hmac.compare_digest(x_admin_key, settings.admin_api_key):
        raise AdminAuthError()
