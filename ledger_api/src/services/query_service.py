"""
Paginated authenticated query service.

Composes credential validation, pagination and the store lookup into a
single request/response step:

    AUTHENTICATING -> PAGINATING -> EXECUTING -> response

Every outcome is a QueryResponse. Failures never produce partial data:
the caller gets either a complete page or an ``{"error": ...}`` body.
"""

import structlog
from typing import Any, Callable, Dict, Optional

from fastapi import status

from ledger_api.src.exceptions import Forbidden, LedgerAPIError, StoreUnavailable, Unauthorized
from ledger_api.src.models.auth import CurrentUser, Role
from ledger_api.src.models.pagination import HistoryRequest, QueryResponse, ResultPage
from ledger_api.src.repositories.document_repo import (
    DocumentRepository, most_recent_first, owner_filter
)
from ledger_api.src.services.authenticator import Authenticator
from ledger_api.src.services.paginator import Paginator

logger = structlog.get_logger(__name__)

FilterBuilder = Callable[[CurrentUser], Dict[str, Any]]


def error_response(error: LedgerAPIError) -> QueryResponse:
    """Map a taxonomy error onto its envelope."""
    return QueryResponse.error(error.status_code, error.public_message)


class PaginatedQueryService:
    """Serves newest-first pages of one collection to authenticated callers."""

    def __init__(
        self,
        authenticator: Authenticator,
        paginator: Paginator,
        repository: DocumentRepository,
        owner_field: str = "user",
        created_at_field: str = "createdAt"
    ):
        """
        Initialize the query service.

        Args:
            authenticator: Credential validator
            paginator: Page/limit parser with this endpoint's bounds
            repository: Collection to read from
            owner_field: Field referencing the owning user
            created_at_field: Creation timestamp used for ordering
        """
        self.authenticator = authenticator
        self.paginator = paginator
        self.repository = repository
        self.owner_field = owner_field
        self.sort = most_recent_first(created_at_field)

    async def handle(self, request: HistoryRequest) -> QueryResponse:
        """
        Serve the caller's own records.

        Args:
            request: Credential and raw pagination parameters

        Returns:
            200 with the result page, 401 for a bad credential, 500 on
            store or unexpected failure
        """
        return await self._run(
            request,
            lambda caller: owner_filter(self.owner_field, caller.id)
        )

    async def handle_listing(
        self,
        request: HistoryRequest,
        query_filter: Dict[str, Any],
        required_role: Role = Role.ADMIN
    ) -> QueryResponse:
        """
        Serve records across all owners to a privileged caller.

        Args:
            request: Credential and raw pagination parameters
            query_filter: Mongo filter to apply
            required_role: Role the caller must hold

        Returns:
            Same outcomes as ``handle`` plus 403 for a caller without the role
        """
        return await self._run(
            request,
            lambda caller: dict(query_filter),
            required_role=required_role
        )

    async def _run(
        self,
        request: HistoryRequest,
        build_filter: FilterBuilder,
        required_role: Optional[Role] = None
    ) -> QueryResponse:
        collection = self.repository.collection_name

        # AUTHENTICATING
        try:
            caller = await self.authenticator.authenticate(request.credential)
        except Unauthorized as e:
            return error_response(e)
        except StoreUnavailable as e:
            logger.error("caller_lookup_unavailable", collection=collection)
            return error_response(e)
        except Exception as e:
            logger.error("authentication_error", error=str(e), exc_info=True)
            return QueryResponse.error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")

        if required_role is not None and not caller.has_role(required_role):
            logger.warning(
                "access_denied_role_required",
                caller_id=caller.id,
                required_role=required_role.value,
                role=caller.role.value
            )
            return error_response(Forbidden())

        # PAGINATING
        page_request = self.paginator.paginate(request.page, request.limit)

        # EXECUTING
        try:
            records, total = await self.repository.execute(
                build_filter(caller),
                self.sort,
                page_request.skip,
                page_request.limit
            )
        except StoreUnavailable as e:
            return error_response(e)
        except Exception as e:
            logger.error(
                "query_execution_error",
                collection=collection,
                caller_id=caller.id,
                error=str(e),
                exc_info=True
            )
            return QueryResponse.error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")

        result = ResultPage.build(records, total, page_request)

        logger.info(
            "query_served",
            collection=collection,
            caller_id=caller.id,
            page=page_request.page,
            limit=page_request.limit,
            returned=len(records),
            total=total
        )

        return QueryResponse.success(result)
