"""
User repository for document store operations.

Read-only access to the ``users`` collection, used to resolve login
credentials and bearer tokens to known accounts.
"""

import structlog
from typing import Any, Dict, Optional

from pymongo.asynchronous.collection import AsyncCollection
from pymongo.errors import PyMongoError

from ledger_api.src.exceptions import StoreUnavailable
from ledger_api.src.models.auth import UserDB
from ledger_api.src.repositories.document_repo import identity_match

logger = structlog.get_logger(__name__)


class UserRepository:
    """Repository for user lookups."""

    def __init__(self, collection: AsyncCollection):
        """
        Initialize user repository.

        Args:
            collection: pymongo async collection holding user documents
        """
        self.collection = collection

    async def _find_one(self, query: Dict[str, Any]) -> Optional[UserDB]:
        try:
            document = await self.collection.find_one(query)
        except PyMongoError as e:
            logger.error("user_lookup_failed", error=str(e), error_type=type(e).__name__)
            raise StoreUnavailable() from e

        if document is None:
            return None
        return UserDB.from_document(document)

    async def get_user_by_id(self, user_id: str) -> Optional[UserDB]:
        """
        Get user by ID.

        Args:
            user_id: Hex ObjectId or opaque string ID

        Returns:
            User or None if not found
        """
        user = await self._find_one({"_id": identity_match(user_id)})
        if user is None:
            logger.debug("user_not_found", user_id=user_id)
        return user

    async def get_user_by_username(self, username: str) -> Optional[UserDB]:
        """
        Get user by username.

        Args:
            username: Username

        Returns:
            User or None if not found
        """
        user = await self._find_one({"username": username})
        if user is None:
            logger.debug("user_not_found", username=username)
        return user
