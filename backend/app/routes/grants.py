"""
Grant administration endpoints.

Protected by X-Admin-Key when ADMIN_API_KEY is configured.
"""
from typing import List

from fastapi import APIRouter, Depends

from app.dependencies import get_grant_service, require_admin
from app.models.grant import GrantResponse
from app.services.grant_service import GrantService
from app.utils.errors import GrantNotFoundError
from app.utils.logger import get_logger

router = APIRouter(dependencies=[Depends(require_admin)])
logger = get_logger(__name__)


@router.get("/grants", response_model=List[GrantResponse])
async def list_grants(grant_service: GrantService = Depends(get_grant_service)):
    grants = await grant_service.list_grants()
    return [GrantResponse.from_record(g) for g in grants]


@router.get("/grants/{user_id}", response_model=GrantResponse)
async def get_grant(user_id: str, grant_service: GrantService = Depends(get_grant_service)):
    record = await grant_service.get_grant(user_id)
    if not record:
        raise GrantNotFoundError(user_id)
    return GrantResponse.from_record(record)


@router.delete("/grants/{user_id}")
async def delete_grant(user_id: str, grant_service: GrantService = Depends(get_grant_service)):
    """Remove a user's grant; they must authorize again before sending."""
    if not await grant_service.delete_grant(user_id):
        raise GrantNotFoundError(user_id)
    return {"deleted": True, "userId": user_id}
