"""
Grant service - business logic over the grant store.

A missing grant is an expected state and comes back as None/False.
Store faults are re-raised as GrantOperationFailed so callers can tell
"not authorized" apart from "try again".
"""
from typing import List, Optional

from app.integrations.grant_store import GrantStore
from app.models.grant import GrantRecord
from app.utils.errors import GrantOperationFailed, InvalidRequestError, StoreUnavailable
from app.utils.logger import get_logger, mask

logger = get_logger(__name__)


class GrantService:
    """
    Grant lifecycle operations.

    Usage:
        service = GrantService(store)
        await service.store_grant("user-1", grant_id)
        grant_id = await service.get_grant_id("user-1")
    """

    def __init__(self, store: GrantStore):
        self.store = store

    async def store_grant(
        self,
        user_id: str,
        grant_id: str,
        email: Optional[str] = None,
        provider: Optional[str] = None,
    ) -> GrantRecord:
        """
        Create or update the grant for a user.

        Re-authorization overwrites grant_id in place; email and
        provider are only overwritten when supplied. Replaying the same
        call leaves the same stored state.

        Raises:
            InvalidRequestError: Empty user_id or grant_id
            GrantOperationFailed: Store fault
        """
        if not user_id:
            raise InvalidRequestError("user_id is required to store a grant.")
        if not grant_id:
            raise InvalidRequestError("grant_id must not be empty.")

        fields = {"grant_id": grant_id}
        if email:
            fields["email"] = email
        if provider:
            fields["provider"] = provider

        try:
            record = await self.store.upsert_by_user_id(user_id, fields)
        except StoreUnavailable as e:
            logger.error(f"Error storing grant for {user_id}: {e}")
            raise GrantOperationFailed("store grant") from e

        logger.info(f"Stored grant {mask(grant_id)} for user: {user_id}")
        return record

    async def get_grant(self, user_id: str) -> Optional[GrantRecord]:
        try:
            return await self.store.find_by_user_id(user_id)
        except StoreUnavailable as e:
            logger.error(f"Error retrieving grant for {user_id}: {e}")
            raise GrantOperationFailed("retrieve grant") from e

    async def get_grant_id(self, user_id: str) -> Optional[str]:
        """Grant id for the user, or None when the user never authorized."""
        try:
            record = await self.store.find_by_user_id(user_id)
        except StoreUnavailable as e:
            logger.error(f"Error retrieving grant ID for {user_id}: {e}")
            raise GrantOperationFailed("retrieve grant ID") from e
        return record.grant_id if record else None

    async def delete_grant(self, user_id: str) -> bool:
        """True iff a record was removed."""
        try:
            deleted = await self.store.delete_by_user_id(user_id)
        except StoreUnavailable as e:
            logger.error(f"Error deleting grant for {user_id}: {e}")
            raise GrantOperationFailed("delete grant") from e

        if deleted:
            logger.info(f"Deleted grant for user: {user_id}")
        return deleted

    async def list_grants(self) -> List[GrantRecord]:
        try:
            return await self.store.list_all()
        except StoreUnavailable as e:
            logger.error(f"Error retrieving all grants: {e}")
            raise GrantOperationFailed("retrieve grants") from e
