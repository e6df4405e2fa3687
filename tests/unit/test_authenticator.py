"""
Unit tests for credential validation.

Tests cover:
- Bearer token extraction from Authorization header values
- Rejection reasons for missing, malformed and invalid credentials
- Store failures surfacing as StoreUnavailable rather than Unauthorized
"""

import pytest

from ledger_api.src.exceptions import StoreUnavailable, Unauthorized
from ledger_api.src.repositories.user_repo import UserRepository
from ledger_api.src.services.auth_service import AuthService
from ledger_api.src.services.authenticator import Authenticator, extract_bearer_token

from conftest import FailingCollection, FakeCollection, make_user


@pytest.fixture
def users():
    return FakeCollection("users")


@pytest.fixture
def auth_service(users, settings):
    return AuthService(UserRepository(users), settings=settings)


@pytest.fixture
def authenticator(auth_service, query_metrics):
    return Authenticator(auth_service, metrics=query_metrics)


def failures(metrics, reason: str) -> float:
    return metrics.auth_failures.labels(reason=reason)._value.get()


# ============================================================================
# TOKEN EXTRACTION
# ============================================================================


class TestExtractBearerToken:
    """Tests for parsing the Authorization header value."""

    @pytest.mark.parametrize("credential,expected", [
        ("Bearer abc.def.ghi", "abc.def.ghi"),
        ("bearer abc.def.ghi", "abc.def.ghi"),
        ("  Bearer   abc.def.ghi  ", "abc.def.ghi"),
        ("abc.def.ghi", "abc.def.ghi"),
    ])
    def test_accepted_forms(self, credential, expected):
        """Test bearer-prefixed and bare tokens."""
        assert extract_bearer_token(credential) == expected

    @pytest.mark.parametrize("credential", [
        None,
        "",
        "   ",
        "Basic dXNlcjpwYXNz",
        "Bearer a b",
    ])
    def test_rejected_forms(self, credential):
        """Test absent and malformed values."""
        assert extract_bearer_token(credential) is None


# ============================================================================
# AUTHENTICATION
# ============================================================================


class TestAuthenticator:
    """Tests for turning a credential into a caller."""

    @pytest.mark.asyncio
    async def test_valid_bearer_credential(self, users, auth_service, authenticator):
        """Test that a valid token resolves to the caller identity."""
        alice = make_user("alice")
        users.documents.append(alice)
        token = auth_service.create_access_token(str(alice["_id"]), "alice", "user")

        caller = await authenticator.authenticate(f"Bearer {token}")

        assert caller.id == str(alice["_id"])
        assert caller.username == "alice"

    @pytest.mark.asyncio
    async def test_valid_bare_credential(self, users, auth_service, authenticator):
        """Test that the token is accepted without the Bearer scheme."""
        alice = make_user("alice")
        users.documents.append(alice)
        token = auth_service.create_access_token(str(alice["_id"]), "alice", "user")

        caller = await authenticator.authenticate(token)

        assert caller.id == str(alice["_id"])

    @pytest.mark.asyncio
    @pytest.mark.parametrize("credential", [None, "", "  "])
    async def test_missing_credential(self, authenticator, query_metrics, users, credential):
        """Test that an absent credential is rejected without a store lookup."""
        with pytest.raises(Unauthorized):
            await authenticator.authenticate(credential)

        assert failures(query_metrics, "missing") == 1
        assert not users.touched

    @pytest.mark.asyncio
    async def test_malformed_credential(self, authenticator, query_metrics):
        """Test that a non-bearer scheme is rejected."""
        with pytest.raises(Unauthorized):
            await authenticator.authenticate("Basic dXNlcjpwYXNz")

        assert failures(query_metrics, "malformed") == 1

    @pytest.mark.asyncio
    async def test_invalid_token(self, authenticator, query_metrics, users):
        """Test that an unverifiable token is rejected without a store lookup."""
        with pytest.raises(Unauthorized):
            await authenticator.authenticate("Bearer not.a.jwt")

        assert failures(query_metrics, "invalid_token") == 1
        assert not users.touched

    @pytest.mark.asyncio
    async def test_unknown_user(self, auth_service, authenticator, query_metrics):
        """Test that a token for an unknown subject is rejected."""
        token = auth_service.create_access_token("65f000000000000000000000", "ghost", "user")

        with pytest.raises(Unauthorized):
            await authenticator.authenticate(f"Bearer {token}")

        assert failures(query_metrics, "unknown_user") == 1

    @pytest.mark.asyncio
    async def test_store_failure_is_not_unauthorized(self, settings, query_metrics):
        """Test that an unreachable user store raises StoreUnavailable."""
        service = AuthService(UserRepository(FailingCollection("users")), settings=settings)
        authenticator = Authenticator(service, metrics=query_metrics)
        token = service.create_access_token("65f000000000000000000000", "alice", "user")

        with pytest.raises(StoreUnavailable):
            await authenticator.authenticate(f"Bearer {token}")
