"""
Deposit router for caller-scoped history.

Provides:
- Paginated, most-recent-first deposit history of the authenticated caller
"""

import structlog
from typing import Optional
from fastapi import APIRouter, Depends, Header, Query, status
from fastapi.responses import JSONResponse

from ledger_api.src.dependencies import get_deposit_history_service
from ledger_api.src.models.pagination import ErrorResponse, HistoryRequest, QueryResponse
from ledger_api.src.services.query_service import PaginatedQueryService

logger = structlog.get_logger(__name__)

router = APIRouter(
    prefix="/deposits",
    tags=["Deposits"],
    responses={
        401: {"model": ErrorResponse, "description": "Unauthorized"},
        500: {"model": ErrorResponse, "description": "Internal server error"}
    }
)


def to_json_response(response: QueryResponse) -> JSONResponse:
    """Render a query outcome, challenging for credentials on 401."""
    headers = None
    if response.status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(
        status_code=response.status_code,
        content=response.body,
        headers=headers
    )


@router.get(
    "/history",
    summary="Deposit History",
    description="""
    List the authenticated caller's deposits, most recent first.

    **Authentication:** Required (`Authorization: Bearer <token>`)

    **Query Parameters:**
    - page: 1-based page number (default 1; invalid values fall back to 1)
    - limit: page size (default 10, clamped to 1..100)

    **Success Response (200):**
    `{"data": [...], "pagination": {"total", "page", "limit", "totalPages"}}`

    **Error Responses:**
    - 401: Missing or invalid credential
    - 500: Document store failure
    """
)
async def get_deposit_history(
    page: Optional[str] = Query(None, description="Page number"),
    limit: Optional[str] = Query(None, description="Page size"),
    authorization: Optional[str] = Header(None),
    service: PaginatedQueryService = Depends(get_deposit_history_service)
) -> JSONResponse:
    """
    Serve one page of the caller's deposit history.

    Args:
        page: Raw page parameter
        limit: Raw limit parameter
        authorization: Raw Authorization header
        service: Deposit history query service

    Returns:
        Result page or error envelope
    """
    response = await service.handle(
        HistoryRequest(credential=authorization, page=page, limit=limit)
    )
    return to_json_response(response)
