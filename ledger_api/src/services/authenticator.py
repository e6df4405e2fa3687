"""
Credential validation for caller-scoped endpoints.

The raw ``Authorization`` header value is passed in explicitly; nothing is
read from ambient request state. A credential is accepted as either
``Bearer <token>`` or a bare token.
"""

import structlog
from typing import Optional

from ledger_api.src.exceptions import Unauthorized
from ledger_api.src.models.auth import CurrentUser
from ledger_api.src.services.auth_service import AuthService
from shared.metrics import QueryMetrics, setup_metrics

logger = structlog.get_logger(__name__)


def extract_bearer_token(credential: Optional[str]) -> Optional[str]:
    """
    Pull the token out of an Authorization header value.

    Args:
        credential: Raw header value

    Returns:
        Token, or None if the value is absent or malformed
    """
    raw = (credential or "").strip()
    if not raw:
        return None

    parts = raw.split()
    if len(parts) == 1:
        return parts[0]

    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None

    return parts[1]


class Authenticator:
    """Turns a credential into a known caller or raises Unauthorized."""

    def __init__(self, auth_service: AuthService, metrics: Optional[QueryMetrics] = None):
        self.auth_service = auth_service
        self.metrics = metrics or setup_metrics().query

    def _reject(self, reason: str) -> Unauthorized:
        self.metrics.auth_failures.labels(reason=reason).inc()
        logger.warning("credential_rejected", reason=reason)
        return Unauthorized()

    async def authenticate(self, credential: Optional[str]) -> CurrentUser:
        """
        Validate a credential.

        Args:
            credential: Raw Authorization header value (may be None)

        Returns:
            The authenticated caller; ``caller.id`` is the caller identity

        Raises:
            Unauthorized: Credential missing, malformed, invalid, or unknown
            StoreUnavailable: The user store could not be reached
        """
        if credential is None or not credential.strip():
            raise self._reject("missing")

        token = extract_bearer_token(credential)
        if token is None:
            raise self._reject("malformed")

        payload = self.auth_service.decode_token(token)
        if payload is None:
            raise self._reject("invalid_token")

        caller = await self.auth_service.resolve_user(payload)
        if caller is None:
            raise self._reject("unknown_user")

        logger.debug("caller_authenticated", caller_id=caller.id, role=caller.role.value)
        return caller
