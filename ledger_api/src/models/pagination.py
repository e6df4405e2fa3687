"""
Pagination and response envelope models.

Provides the request-scoped structures of a paginated query:
- PageRequest: bounded page/limit pair with its derived skip
- ResultPage: one page of records plus totals
- HistoryRequest / QueryResponse: closed request and response of the
  paginated query service
"""

from typing import Any, Dict, List, Optional

from fastapi import status
from pydantic import BaseModel, ConfigDict, Field


class PageRequest(BaseModel):
    """Validated pagination window."""

    model_config = ConfigDict(frozen=True)

    page: int = Field(
        ...,
        ge=1,
        description="1-based page number"
    )
    limit: int = Field(
        ...,
        ge=1,
        description="Maximum number of records on the page"
    )

    @property
    def skip(self) -> int:
        """Number of records before this page."""
        return (self.page - 1) * self.limit


class PaginationMeta(BaseModel):
    """Pagination block of the success envelope."""

    model_config = ConfigDict(populate_by_name=True)

    total: int = Field(..., ge=0, description="Records matching the filter")
    page: int = Field(..., ge=1, description="Current page")
    limit: int = Field(..., ge=1, description="Page size")
    total_pages: int = Field(
        ...,
        ge=0,
        alias="totalPages",
        description="ceil(total / limit)"
    )


class ResultPage(BaseModel):
    """A page of records, most recent first, with totals."""

    data: List[Dict[str, Any]] = Field(default_factory=list)
    pagination: PaginationMeta

    @classmethod
    def build(
        cls,
        records: List[Dict[str, Any]],
        total: int,
        page_request: PageRequest
    ) -> "ResultPage":
        """
        Assemble a result page from an executed query.

        Args:
            records: Records of the requested page
            total: Count of all records matching the filter
            page_request: Window the records were fetched with

        Returns:
            Result page
        """
        return cls(
            data=records,
            pagination=PaginationMeta(
                total=total,
                page=page_request.page,
                limit=page_request.limit,
                total_pages=total_pages(total, page_request.limit),
            ),
        )

    def to_envelope(self) -> Dict[str, Any]:
        """JSON body of a successful response."""
        return self.model_dump(by_alias=True)


def total_pages(total: int, limit: int) -> int:
    """Return ceil(total / limit) using integer arithmetic."""
    return (total + limit - 1) // limit


class HistoryRequest(BaseModel):
    """
    Inbound request of a caller-scoped history query.

    The credential is passed explicitly rather than read from ambient
    request state.
    """

    model_config = ConfigDict(frozen=True)

    credential: Optional[str] = Field(
        None,
        description="Raw Authorization header value"
    )
    page: Optional[str] = Field(
        None,
        description="Raw 'page' query parameter"
    )
    limit: Optional[str] = Field(
        None,
        description="Raw 'limit' query parameter"
    )


class QueryResponse(BaseModel):
    """Outcome of a paginated query: HTTP status plus JSON body."""

    model_config = ConfigDict(frozen=True)

    status_code: int
    body: Dict[str, Any]

    @property
    def ok(self) -> bool:
        return self.status_code == status.HTTP_200_OK

    @classmethod
    def success(cls, result: ResultPage) -> "QueryResponse":
        return cls(status_code=status.HTTP_200_OK, body=result.to_envelope())

    @classmethod
    def error(cls, status_code: int, message: str) -> "QueryResponse":
        return cls(status_code=status_code, body={"error": message})


class ErrorResponse(BaseModel):
    """Error envelope schema."""
    error: str = Field(
        ...,
        min_length=1,
        description="Error message"
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "error": "Unauthorized"
            }
        }
    }
