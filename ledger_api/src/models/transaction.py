"""
Transaction models for the admin listing endpoints.
"""

import re
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator


class TransactionType(str, Enum):
    """Kinds of money movement recorded in the ``transactions`` collection."""
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"


class TransactionStatus(str, Enum):
    """Processing state of a transaction."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


# Fields matched by the free-text search box of the admin listing
SEARCH_FIELDS = (
    "username",
    "transactionId",
    "bankDetails.accountNumber",
    "transactionCode",
)

STATUS_ALL = "all"


class TransactionSearch(BaseModel):
    """Admin listing filter: optional status and free-text search."""

    status: Optional[TransactionStatus] = Field(
        None,
        description="Only transactions in this state; omit or 'all' for every state"
    )
    search: Optional[str] = Field(
        None,
        max_length=200,
        description="Case-insensitive text matched against username, IDs and account number"
    )

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v: Any) -> Any:
        """Treat blank and 'all' as no status filter."""
        if v is None:
            return None
        if isinstance(v, str):
            v = v.strip().lower()
            if not v or v == STATUS_ALL:
                return None
        return v

    @field_validator("search")
    @classmethod
    def normalize_search(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None

    def to_filter(self, transaction_type: TransactionType) -> Dict[str, Any]:
        """
        Build the Mongo filter for this search.

        Args:
            transaction_type: Deposit or withdrawal listing

        Returns:
            Filter document
        """
        query: Dict[str, Any] = {"type": transaction_type.value}

        if self.status is not None:
            query["status"] = self.status.value

        if self.search:
            pattern = re.escape(self.search)
            query["$or"] = [
                {field: {"$regex": pattern, "$options": "i"}}
                for field in SEARCH_FIELDS
            ]

        return query
