"""
FastAPI dependency injection for the document store, authentication and
query services.

Provides injectable dependencies for:
- The shared MongoDB client and database handle
- Repository instances
- Authentication and query service instances
- Request metadata (client IP, correlation ID)

All dependencies use FastAPI's dependency injection system and are designed
to be composable and overridable in tests.
"""

import structlog
from typing import Optional
from fastapi import Depends, Request
from pymongo import AsyncMongoClient
from pymongo.asynchronous.database import AsyncDatabase

from ledger_api.src.config import get_settings, Settings
from ledger_api.src.repositories.document_repo import DocumentRepository
from ledger_api.src.repositories.user_repo import UserRepository
from ledger_api.src.services.auth_service import AuthService
from ledger_api.src.services.authenticator import Authenticator
from ledger_api.src.services.paginator import Paginator
from ledger_api.src.services.query_service import PaginatedQueryService
from shared.models import MongoDBConfig

logger = structlog.get_logger(__name__)


# ============================================================================
# DOCUMENT STORE CLIENT
# ============================================================================

_client: Optional[AsyncMongoClient] = None


def mongo_config(settings: Settings) -> MongoDBConfig:
    """Connection configuration derived from settings."""
    return MongoDBConfig(
        connection_string=settings.mongodb_url,
        database=settings.mongodb_database,
        connect_timeout_ms=settings.mongodb_connect_timeout_ms,
        socket_timeout_ms=settings.mongodb_socket_timeout_ms,
        max_pool_size=settings.mongodb_max_pool_size,
        min_pool_size=settings.mongodb_min_pool_size,
        retry_writes=settings.mongodb_retry_writes,
        retry_reads=settings.mongodb_retry_reads,
    )


async def init_mongo_client() -> AsyncMongoClient:
    """
    Initialize the shared MongoDB client.

    Should be called during application startup. The driver connects
    lazily, so this does not fail when the server is down; readiness
    checks report connectivity.

    Returns:
        pymongo async client
    """
    global _client

    if _client is not None:
        return _client

    settings = get_settings()
    config = mongo_config(settings)

    _client = AsyncMongoClient(config.connection_string, **config.client_options())

    logger.info(
        "mongo_client_initialized",
        url=settings.mongodb_url_redacted,
        database=config.database,
        max_pool_size=config.max_pool_size
    )

    return _client


async def close_mongo_client():
    """
    Close the shared MongoDB client.

    Should be called during application shutdown.
    """
    global _client

    if _client is not None:
        await _client.close()
        logger.info("mongo_client_closed")
        _client = None


def get_mongo_client() -> AsyncMongoClient:
    """
    Get the shared MongoDB client.

    Raises:
        RuntimeError: If the client is not initialized
    """
    if _client is None:
        logger.error("mongo_client_not_initialized")
        raise RuntimeError(
            "MongoDB client not initialized. Call init_mongo_client() during startup."
        )
    return _client


def get_settings_dependency() -> Settings:
    """Get application settings."""
    return get_settings()


def get_database(settings: Settings = Depends(get_settings_dependency)) -> AsyncDatabase:
    """
    Get the application database handle.

    Example:
        @app.get("/count")
        async def count(db: AsyncDatabase = Depends(get_database)):
            return {"deposits": await db["deposits"].count_documents({})}
    """
    return get_mongo_client()[settings.mongodb_database]


# ============================================================================
# REPOSITORY DEPENDENCIES
# ============================================================================


def get_user_repository(
    db: AsyncDatabase = Depends(get_database),
    settings: Settings = Depends(get_settings_dependency)
) -> UserRepository:
    """Get user repository bound to the users collection."""
    return UserRepository(db[settings.users_collection])


def get_deposit_repository(
    db: AsyncDatabase = Depends(get_database),
    settings: Settings = Depends(get_settings_dependency)
) -> DocumentRepository:
    """Get repository over the per-user deposits collection."""
    return DocumentRepository(db[settings.deposits_collection])


def get_transaction_repository(
    db: AsyncDatabase = Depends(get_database),
    settings: Settings = Depends(get_settings_dependency)
) -> DocumentRepository:
    """Get repository over the deposit/withdrawal transactions collection."""
    return DocumentRepository(db[settings.transactions_collection])


# ============================================================================
# SERVICE DEPENDENCIES
# ============================================================================


def get_auth_service(
    user_repo: UserRepository = Depends(get_user_repository),
    settings: Settings = Depends(get_settings_dependency)
) -> AuthService:
    """
    Get authentication service.

    Example:
        @app.post("/login")
        async def login(auth_service: AuthService = Depends(get_auth_service)):
            ...
    """
    return AuthService(user_repo, settings=settings)


def get_authenticator(
    auth_service: AuthService = Depends(get_auth_service)
) -> Authenticator:
    """Get credential validator."""
    return Authenticator(auth_service)


def get_deposit_history_service(
    authenticator: Authenticator = Depends(get_authenticator),
    repository: DocumentRepository = Depends(get_deposit_repository),
    settings: Settings = Depends(get_settings_dependency)
) -> PaginatedQueryService:
    """Get the caller-scoped deposit history service."""
    return PaginatedQueryService(
        authenticator=authenticator,
        paginator=Paginator(
            default_limit=settings.pagination_default_limit,
            max_limit=settings.pagination_max_limit
        ),
        repository=repository,
        owner_field=settings.deposits_owner_field,
        created_at_field=settings.created_at_field
    )


def get_transaction_listing_service(
    authenticator: Authenticator = Depends(get_authenticator),
    repository: DocumentRepository = Depends(get_transaction_repository),
    settings: Settings = Depends(get_settings_dependency)
) -> PaginatedQueryService:
    """Get the admin transaction listing service."""
    return PaginatedQueryService(
        authenticator=authenticator,
        paginator=Paginator(
            default_limit=settings.pagination_default_limit,
            max_limit=settings.pagination_admin_max_limit
        ),
        repository=repository,
        created_at_field=settings.created_at_field
    )


# ============================================================================
# UTILITY DEPENDENCIES
# ============================================================================


async def get_client_ip(request: Request) -> str:
    """
    Get client IP address from request.

    Checks X-Forwarded-For header first (for proxies),
    then falls back to client host.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # X-Forwarded-For can contain multiple IPs, get the first one
        return forwarded.split(",")[0].strip()

    if request.client:
        return request.client.host

    return "unknown"
