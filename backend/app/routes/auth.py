"""
Authorization routes for Nylas hosted OAuth.

OAuth Flow:
1. Client opens GET /nylas/auth?userId=<id> → 302 to the Nylas consent screen
2. User grants access on the provider
3. Nylas redirects to GET /oauth/exchange?code=<c>&state=<userId>
4. Backend exchanges the code for a grant id and stores it for userId
"""
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import RedirectResponse

from app.dependencies import get_authorization_flow, get_grant_gate, header_user_id
from app.services.auth_service import AuthorizationFlow
from app.services.grant_gate import GrantGate
from app.utils.logger import get_logger

router = APIRouter()
logger = get_logger(__name__)


@router.get("/nylas/auth")
async def start_authorization(
    userId: Optional[str] = None,
    header_id: Optional[str] = Depends(header_user_id),
    gate: GrantGate = Depends(get_grant_gate),
    flow: AuthorizationFlow = Depends(get_authorization_flow),
):
    """
    Redirect the user to the provider consent screen.

    The user id is carried as OAuth state and comes back on the callback.
    """
    user_id = gate.resolve_user_id(userId, header_id)
    auth_url = flow.build_authorization_url(user_id)
    return RedirectResponse(url=auth_url, status_code=302)


@router.get("/oauth/exchange")
async def oauth_exchange(
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    flow: AuthorizationFlow = Depends(get_authorization_flow),
):
    """
    Handle the Nylas OAuth callback.

    Query params:
        code: Authorization code (on success)
        state: User id (or signed state) sent with the consent URL
        error: Error from the provider (on denial)

    Returns:
        { message, grantId }
    """
    logger.info("Received callback from Nylas")
    record = await flow.complete_authorization(code=code, state=state, error=error)

    return {
        "message": f"OAuth2 flow completed successfully for grant ID: {record.grant_id}",
        "grantId": record.grant_id,
    }
