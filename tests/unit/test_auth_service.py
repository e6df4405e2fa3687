"""
Unit tests for the authentication service.

Tests cover:
- bcrypt password hashing and verification
- JWT token creation and validation
- Username/password login
- Token-to-user resolution against the user store
"""

import pytest
from datetime import timedelta
from jose import jwt

from ledger_api.src.exceptions import StoreUnavailable
from ledger_api.src.models.auth import LoginRequest, Role, TokenPayload
from ledger_api.src.repositories.user_repo import UserRepository
from ledger_api.src.services.auth_service import AuthService

from conftest import TEST_SECRET, FailingCollection, FakeCollection, make_user


@pytest.fixture
def users():
    return FakeCollection("users")


@pytest.fixture
def auth_service(users, settings):
    return AuthService(UserRepository(users), settings=settings)


@pytest.fixture
def alice(users, auth_service):
    document = make_user("alice", password_hash=auth_service.hash_password("s3cret-pass"))
    users.documents.append(document)
    return document


# ============================================================================
# PASSWORD HASHING
# ============================================================================


class TestPasswordHashing:
    """Tests for bcrypt hashing."""

    def test_hash_is_bcrypt(self, auth_service):
        """Test that hashes use the bcrypt format."""
        hashed = auth_service.hash_password("password123")

        assert hashed.startswith("$2")
        assert hashed != "password123"

    def test_verify_correct_password(self, auth_service):
        """Test verification of the original password."""
        hashed = auth_service.hash_password("password123")
        assert auth_service.verify_password("password123", hashed) is True

    def test_verify_wrong_password(self, auth_service):
        """Test that a different password is rejected."""
        hashed = auth_service.hash_password("password123")
        assert auth_service.verify_password("password124", hashed) is False

    @pytest.mark.parametrize("stored", [None, "", "not-a-bcrypt-hash"])
    def test_verify_missing_or_corrupt_hash(self, auth_service, stored):
        """Test that unusable stored hashes never verify."""
        assert auth_service.verify_password("password123", stored) is False


# ============================================================================
# TOKENS
# ============================================================================


class TestTokens:
    """Tests for JWT creation and decoding."""

    def test_token_claims(self, auth_service):
        """Test that created tokens carry the identity claims."""
        token = auth_service.create_access_token("user-1", "alice", "user")
        claims = jwt.decode(token, TEST_SECRET, algorithms=["HS256"])

        assert claims["sub"] == "user-1"
        assert claims["username"] == "alice"
        assert claims["role"] == "user"
        assert claims["exp"] > claims["iat"]

    def test_default_expiry_is_seven_days(self, auth_service):
        """Test the default token lifetime."""
        token = auth_service.create_access_token("user-1", "alice", "user")
        claims = jwt.decode(token, TEST_SECRET, algorithms=["HS256"])

        assert claims["exp"] - claims["iat"] == int(timedelta(days=7).total_seconds())

    def test_decode_round_trip(self, auth_service):
        """Test decoding a freshly issued token."""
        token = auth_service.create_access_token("user-1", "alice", "admin")
        payload = auth_service.decode_token(token)

        assert isinstance(payload, TokenPayload)
        assert payload.sub == "user-1"
        assert payload.role == "admin"

    def test_expired_token(self, auth_service):
        """Test that expired tokens do not decode."""
        token = auth_service.create_access_token(
            "user-1", "alice", "user", expires_delta=timedelta(seconds=-10)
        )
        assert auth_service.decode_token(token) is None

    def test_wrong_secret(self, auth_service):
        """Test that tokens signed with another key are rejected."""
        token = jwt.encode(
            {"sub": "user-1", "exp": 4102444800},
            "another-secret-key-that-is-long-enough-000",
            algorithm="HS256"
        )
        assert auth_service.decode_token(token) is None

    def test_missing_subject(self, auth_service):
        """Test that tokens without a subject are rejected."""
        token = jwt.encode({"exp": 4102444800}, TEST_SECRET, algorithm="HS256")
        assert auth_service.decode_token(token) is None

    def test_garbage_token(self, auth_service):
        """Test that non-JWT strings are rejected."""
        assert auth_service.decode_token("not.a.jwt") is None


# ============================================================================
# LOGIN
# ============================================================================


class TestLogin:
    """Tests for username/password login."""

    @pytest.mark.asyncio
    async def test_login_success(self, auth_service, alice):
        """Test that valid credentials yield a usable token."""
        response = await auth_service.login(LoginRequest(username="alice", password="s3cret-pass"))

        assert response is not None
        assert response.token_type == "bearer"
        assert response.expires_in == 7 * 24 * 60 * 60

        payload = auth_service.decode_token(response.access_token)
        assert payload.sub == str(alice["_id"])

    @pytest.mark.asyncio
    async def test_login_wrong_password(self, auth_service, alice):
        """Test that a wrong password fails."""
        response = await auth_service.login(LoginRequest(username="alice", password="wrong"))
        assert response is None

    @pytest.mark.asyncio
    async def test_login_unknown_user(self, auth_service):
        """Test that unknown usernames fail."""
        response = await auth_service.login(LoginRequest(username="nobody", password="x"))
        assert response is None

    @pytest.mark.asyncio
    async def test_login_inactive_user(self, users, auth_service):
        """Test that deactivated accounts cannot log in."""
        users.documents.append(make_user(
            "bob",
            active=False,
            password_hash=auth_service.hash_password("pw")
        ))

        response = await auth_service.login(LoginRequest(username="bob", password="pw"))
        assert response is None


# ============================================================================
# USER RESOLUTION
# ============================================================================


class TestGetCurrentUser:
    """Tests for resolving tokens to users."""

    @pytest.mark.asyncio
    async def test_resolves_known_user(self, auth_service, alice):
        """Test that a valid token resolves to its user."""
        token = auth_service.create_access_token(str(alice["_id"]), "alice", "user")
        user = await auth_service.get_current_user(token)

        assert user is not None
        assert user.id == str(alice["_id"])
        assert user.role == Role.USER

    @pytest.mark.asyncio
    async def test_role_comes_from_store(self, users, auth_service):
        """Test that the stored role wins over the token claim."""
        admin = make_user("root", role="admin")
        users.documents.append(admin)

        token = auth_service.create_access_token(str(admin["_id"]), "root", "user")
        user = await auth_service.get_current_user(token)

        assert user.is_admin()

    @pytest.mark.asyncio
    async def test_unknown_subject(self, auth_service):
        """Test that tokens for deleted users resolve to None."""
        token = auth_service.create_access_token("65f000000000000000000000", "ghost", "user")
        assert await auth_service.get_current_user(token) is None

    @pytest.mark.asyncio
    async def test_inactive_user(self, users, auth_service):
        """Test that tokens for deactivated users resolve to None."""
        inactive = make_user("carol", active=False)
        users.documents.append(inactive)

        token = auth_service.create_access_token(str(inactive["_id"]), "carol", "user")
        assert await auth_service.get_current_user(token) is None

    @pytest.mark.asyncio
    async def test_store_failure_propagates(self, settings):
        """Test that an unreachable user store is not reported as a bad token."""
        service = AuthService(UserRepository(FailingCollection("users")), settings=settings)
        token = service.create_access_token("65f000000000000000000000", "alice", "user")

        with pytest.raises(StoreUnavailable):
            await service.get_current_user(token)
