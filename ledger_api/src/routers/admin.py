"""
Admin router for authentication and transaction oversight.

Provides REST API endpoints for:
- User authentication (login)
- Paginated deposit and withdrawal listings across all customers

Listing endpoints require an authenticated caller with the admin role.
"""

import structlog
from typing import Optional
from fastapi import APIRouter, Depends, Header, Query, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from ledger_api.src.dependencies import (
    get_auth_service,
    get_client_ip,
    get_transaction_listing_service
)
from ledger_api.src.models.auth import LoginRequest, TokenResponse
from ledger_api.src.models.pagination import ErrorResponse, HistoryRequest
from ledger_api.src.models.transaction import TransactionSearch, TransactionType
from ledger_api.src.routers.deposits import to_json_response
from ledger_api.src.services.auth_service import AuthService
from ledger_api.src.services.query_service import PaginatedQueryService

logger = structlog.get_logger(__name__)

# Create router for authentication endpoints
auth_router = APIRouter(
    prefix="/auth",
    tags=["Authentication"],
    responses={
        401: {"model": ErrorResponse, "description": "Unauthorized"},
        422: {"description": "Validation Error"}
    }
)

# Create router for admin endpoints
admin_router = APIRouter(
    prefix="/admin",
    tags=["Administration"],
    responses={
        401: {"model": ErrorResponse, "description": "Unauthorized"},
        403: {"model": ErrorResponse, "description": "Forbidden"},
        422: {"description": "Validation Error"},
        500: {"model": ErrorResponse, "description": "Internal server error"}
    }
)


# ============================================================================
# AUTHENTICATION ENDPOINTS
# ============================================================================


@auth_router.post(
    "/login",
    response_model=TokenResponse,
    status_code=status.HTTP_200_OK,
    summary="User Login",
    description="""
    Authenticate user with username and password.

    Returns JWT access token on successful authentication.

    **Authentication:** Not required (public endpoint)

    **Error Responses:**
    - 401: Invalid credentials or inactive user
    - 422: Validation error (invalid request format)
    """,
    responses={
        401: {
            "description": "Invalid credentials",
            "model": ErrorResponse,
            "content": {
                "application/json": {
                    "example": {"error": "Invalid credentials"}
                }
            }
        }
    }
)
async def login(
    login_request: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
    client_ip: str = Depends(get_client_ip)
):
    """
    Authenticate user and return JWT token.

    Args:
        login_request: Login credentials
        auth_service: Authentication service
        client_ip: Client IP address

    Returns:
        JWT token response, or 401 error envelope
    """
    logger.info(
        "login_attempt",
        username=login_request.username,
        ip_address=client_ip
    )

    token_response = await auth_service.login(login_request)

    if not token_response:
        logger.warning(
            "login_failed",
            username=login_request.username,
            ip_address=client_ip
        )
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"error": "Invalid credentials"},
            headers={"WWW-Authenticate": "Bearer"}
        )

    return token_response


# ============================================================================
# TRANSACTION LISTING ENDPOINTS (ADMIN ONLY)
# ============================================================================


def parse_search(status_param: Optional[str], search: Optional[str]) -> TransactionSearch:
    """Validate listing filters, reporting bad values as a 422."""
    try:
        return TransactionSearch(status=status_param, search=search)
    except ValidationError as e:
        raise RequestValidationError(e.errors(include_url=False))


async def list_transactions(
    transaction_type: TransactionType,
    service: PaginatedQueryService,
    authorization: Optional[str],
    page: Optional[str],
    limit: Optional[str],
    search: TransactionSearch
) -> JSONResponse:
    response = await service.handle_listing(
        HistoryRequest(credential=authorization, page=page, limit=limit),
        search.to_filter(transaction_type)
    )
    return to_json_response(response)


@admin_router.get(
    "/deposits",
    summary="List Deposits",
    description="""
    List deposit transactions of all customers, most recent first.

    **Authentication:** Required (admin role)

    **Query Parameters:**
    - page, limit: pagination (limit clamped to 1..50)
    - status: pending|approved|rejected|cancelled|all
    - search: matches username, transaction ID, transaction code or account number
    """
)
async def list_deposits(
    page: Optional[str] = Query(None, description="Page number"),
    limit: Optional[str] = Query(None, description="Page size"),
    status_param: Optional[str] = Query(None, alias="status", description="Transaction status"),
    search: Optional[str] = Query(None, description="Free-text search"),
    authorization: Optional[str] = Header(None),
    service: PaginatedQueryService = Depends(get_transaction_listing_service)
) -> JSONResponse:
    """List deposit transactions."""
    return await list_transactions(
        TransactionType.DEPOSIT,
        service,
        authorization,
        page,
        limit,
        parse_search(status_param, search)
    )


@admin_router.get(
    "/withdrawals",
    summary="List Withdrawals",
    description="""
    List withdrawal transactions of all customers, most recent first.

    **Authentication:** Required (admin role)

    **Query Parameters:** same as `/admin/deposits`
    """
)
async def list_withdrawals(
    page: Optional[str] = Query(None, description="Page number"),
    limit: Optional[str] = Query(None, description="Page size"),
    status_param: Optional[str] = Query(None, alias="status", description="Transaction status"),
    search: Optional[str] = Query(None, description="Free-text search"),
    authorization: Optional[str] = Header(None),
    service: PaginatedQueryService = Depends(get_transaction_listing_service)
) -> JSONResponse:
    """List withdrawal transactions."""
    return await list_transactions(
        TransactionType.WITHDRAWAL,
        service,
        authorization,
        page,
        limit,
        parse_search(status_param, search)
    )
