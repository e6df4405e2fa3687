"""
Authentication and user models.

Pydantic schemas for:
- User documents read from the document store
- Login requests and token responses
- JWT token payloads
- The authenticated caller injected into request handlers
"""

from datetime import datetime
from typing import Any, Dict, Mapping, Optional
from enum import Enum

from pydantic import BaseModel, Field


# ============================================================================
# Role Enum
# ============================================================================


class Role(str, Enum):
    """
    User roles.

    - ADMIN: back-office access to every customer's transactions
    - USER: access to the caller's own records only
    """
    ADMIN = "admin"
    USER = "user"


# ============================================================================
# Stored Documents
# ============================================================================


class UserDB(BaseModel):
    """
    User account as stored in the ``users`` collection.

    Only the fields the API needs are mapped; the rest of the document
    (balance, verification, bank details) is ignored.
    """
    id: str = Field(
        ...,
        description="User ID (hex ObjectId or opaque string)"
    )
    username: str = Field(
        ...,
        description="Username"
    )
    email: Optional[str] = Field(
        None,
        description="Email address"
    )
    password_hash: Optional[str] = Field(
        None,
        description="bcrypt password hash"
    )
    role: Role = Field(
        default=Role.USER,
        description="User role"
    )
    is_active: bool = Field(
        default=True,
        description="Active status"
    )
    created_at: Optional[datetime] = Field(
        None,
        description="Creation timestamp"
    )

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "UserDB":
        """
        Build a user from a raw Mongo document.

        Fields of an unexpected type are treated as absent; a missing or
        malformed ``status`` block means active.

        Args:
            document: Document as returned by the driver

        Returns:
            Parsed user
        """
        status = document.get("status")
        if not isinstance(status, Mapping):
            status = {}

        role = document.get("role")
        if not isinstance(role, str) or role not in {r.value for r in Role}:
            role = Role.USER.value

        created_at = document.get("createdAt")

        return cls(
            id=str(document["_id"]),
            username=_text(document.get("username")) or "",
            email=_text(document.get("email")),
            password_hash=_text(document.get("password")),
            role=role,
            is_active=bool(status.get("active", True)),
            created_at=created_at if isinstance(created_at, datetime) else None,
        )


def _text(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


# ============================================================================
# Pydantic Request Models
# ============================================================================


class LoginRequest(BaseModel):
    """Login request schema."""
    username: str = Field(
        ...,
        min_length=1,
        max_length=50,
        description="Username"
    )
    password: str = Field(
        ...,
        min_length=1,
        max_length=128,
        description="Password"
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "username": "admin",
                "password": "SecurePassword123!"
            }
        }
    }


# ============================================================================
# Pydantic Response Models
# ============================================================================


class TokenResponse(BaseModel):
    """JWT token response schema."""
    access_token: str = Field(
        ...,
        min_length=10,
        description="JWT access token"
    )
    token_type: str = Field(
        default="bearer",
        description="Token type"
    )
    expires_in: int = Field(
        ...,
        gt=0,
        description="Token expiration time in seconds"
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "access_token": "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9...",
                "token_type": "bearer",
                "expires_in": 604800
            }
        }
    }


# ============================================================================
# Token Models
# ============================================================================


class TokenPayload(BaseModel):
    """Decoded JWT claims."""
    sub: str = Field(
        ...,
        min_length=1,
        description="Subject (user ID)"
    )
    username: Optional[str] = Field(
        None,
        description="Username"
    )
    role: Optional[str] = Field(
        None,
        description="Role at the time the token was issued"
    )
    exp: int = Field(
        ...,
        description="Expiration timestamp (Unix epoch)"
    )
    iat: Optional[int] = Field(
        None,
        description="Issued at timestamp (Unix epoch)"
    )


class CurrentUser(BaseModel):
    """
    Current authenticated user.

    Resolved from a bearer token against the user store; its ``id`` is the
    caller identity every caller-scoped query is filtered by.
    """
    id: str = Field(
        ...,
        description="User ID"
    )
    username: str = Field(
        ...,
        description="Username"
    )
    role: Role = Field(
        ...,
        description="User role"
    )
    is_active: bool = Field(
        ...,
        description="Active status"
    )

    def has_role(self, role: Role) -> bool:
        """Check if user has a specific role."""
        return self.role == role

    def is_admin(self) -> bool:
        """Check if user has admin role."""
        return self.has_role(Role.ADMIN)
