"""
Authentication service for user authentication and JWT token management.

Provides:
- Password hashing and verification (passlib + bcrypt)
- JWT token creation and validation
- Username/password login
- Token-to-user resolution
"""

import structlog
from typing import Optional
from datetime import datetime, timedelta, timezone
from passlib.context import CryptContext
from jose import JWTError, jwt
from pydantic import ValidationError

from ledger_api.src.config import Settings, get_settings
from ledger_api.src.models.auth import (
    UserDB, CurrentUser, TokenPayload, LoginRequest, TokenResponse
)
from ledger_api.src.repositories.user_repo import UserRepository

logger = structlog.get_logger(__name__)


class AuthService:
    """Service for authentication operations."""

    def __init__(self, user_repo: UserRepository, settings: Optional[Settings] = None):
        """
        Initialize auth service.

        Args:
            user_repo: User repository
            settings: Settings override (defaults to cached settings)
        """
        self.user_repo = user_repo
        self.settings = settings or get_settings()

        self.pwd_context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=self.settings.password_bcrypt_rounds
        )

    def hash_password(self, password: str) -> str:
        """
        Hash a password using bcrypt.

        Args:
            password: Plain text password

        Returns:
            Hashed password
        """
        hashed = self.pwd_context.hash(password)
        logger.debug("password_hashed")
        return hashed

    def verify_password(self, plain_password: str, hashed_password: Optional[str]) -> bool:
        """
        Verify a password against its hash.

        Args:
            plain_password: Plain text password
            hashed_password: Stored hash (may be missing or malformed)

        Returns:
            True if password matches, False otherwise
        """
        if not hashed_password:
            return False
        try:
            verified = self.pwd_context.verify(plain_password, hashed_password)
        except (ValueError, TypeError) as e:
            # Unrecognized or corrupt hash
            logger.warning("password_verify_failed", error=str(e))
            return False
        logger.debug("password_verified", verified=verified)
        return verified

    @property
    def access_token_ttl(self) -> timedelta:
        return timedelta(minutes=self.settings.jwt_access_token_expire_minutes)

    def create_access_token(
        self,
        user_id: str,
        username: str,
        role: str,
        expires_delta: Optional[timedelta] = None
    ) -> str:
        """
        Create JWT access token.

        Args:
            user_id: User ID
            username: Username
            role: User role
            expires_delta: Custom expiration time (optional)

        Returns:
            JWT token string
        """
        if expires_delta is None:
            expires_delta = self.access_token_ttl

        now = datetime.now(timezone.utc)
        expire = now + expires_delta

        payload = {
            "sub": str(user_id),
            "username": username,
            "role": role,
            "exp": int(expire.timestamp()),
            "iat": int(now.timestamp())
        }

        token = jwt.encode(
            payload,
            self.settings.jwt_secret_key,
            algorithm=self.settings.jwt_algorithm
        )

        logger.info(
            "access_token_created",
            user_id=str(user_id),
            username=username,
            expires_in=expires_delta.total_seconds()
        )

        return token

    def decode_token(self, token: str) -> Optional[TokenPayload]:
        """
        Decode and validate JWT token.

        Args:
            token: JWT token string

        Returns:
            Token payload or None if invalid, expired or missing claims
        """
        try:
            payload = jwt.decode(
                token,
                self.settings.jwt_secret_key,
                algorithms=[self.settings.jwt_algorithm]
            )
            token_payload = TokenPayload(**payload)

        except JWTError as e:
            logger.warning("token_decode_failed", error=str(e))
            return None
        except (ValidationError, TypeError) as e:
            logger.warning("token_claims_invalid", error=str(e))
            return None

        logger.debug("token_decoded", user_id=token_payload.sub)
        return token_payload

    async def authenticate_user(self, login_request: LoginRequest) -> Optional[UserDB]:
        """
        Authenticate user with username and password.

        Args:
            login_request: Login credentials

        Returns:
            User if authenticated, None otherwise

        Raises:
            StoreUnavailable: If the user store cannot be reached
        """
        user = await self.user_repo.get_user_by_username(login_request.username)

        if not user:
            logger.warning("authentication_failed_user_not_found", username=login_request.username)
            return None

        if not user.is_active:
            logger.warning("authentication_failed_user_inactive", username=login_request.username)
            return None

        if not self.verify_password(login_request.password, user.password_hash):
            logger.warning("authentication_failed_invalid_password", username=login_request.username)
            return None

        logger.info("user_authenticated", user_id=user.id, username=user.username)
        return user

    async def login(self, login_request: LoginRequest) -> Optional[TokenResponse]:
        """
        Login user and create access token.

        Args:
            login_request: Login credentials

        Returns:
            Token response or None if authentication failed
        """
        user = await self.authenticate_user(login_request)

        if not user:
            return None

        access_token = self.create_access_token(
            user_id=user.id,
            username=user.username,
            role=user.role.value
        )

        logger.info("login_success", user_id=user.id, username=user.username)

        return TokenResponse(
            access_token=access_token,
            token_type="bearer",
            expires_in=int(self.access_token_ttl.total_seconds())
        )

    async def resolve_user(self, payload: TokenPayload) -> Optional[CurrentUser]:
        """
        Resolve decoded claims to a known, active user.

        Args:
            payload: Decoded token payload

        Returns:
            Current user or None if the subject is unknown or inactive

        Raises:
            StoreUnavailable: If the user store cannot be reached
        """
        user = await self.user_repo.get_user_by_id(payload.sub)

        if not user:
            logger.warning("get_current_user_failed_user_not_found", user_id=payload.sub)
            return None

        if not user.is_active:
            logger.warning("get_current_user_failed_user_inactive", user_id=payload.sub)
            return None

        return CurrentUser(
            id=user.id,
            username=user.username,
            role=user.role,
            is_active=user.is_active
        )

    async def get_current_user(self, token: str) -> Optional[CurrentUser]:
        """
        Get current user from JWT token.

        Args:
            token: JWT token string

        Returns:
            Current user or None if invalid
        """
        payload = self.decode_token(token)

        if not payload:
            logger.warning("get_current_user_failed_invalid_token")
            return None

        return await self.resolve_user(payload)
