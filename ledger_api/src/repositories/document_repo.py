"""
Paginated document repository.

Runs filtered, sorted, paginated lookups against a MongoDB collection
(pymongo async API) and returns the page of records together with the
total number of matching documents.
"""

import base64
import math
import time
import structlog
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple
from uuid import UUID

from bson import ObjectId
from bson.decimal128 import Decimal128
from pymongo import DESCENDING
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.errors import PyMongoError

from ledger_api.src.exceptions import StoreUnavailable
from shared.metrics import QueryMetrics, setup_metrics

logger = structlog.get_logger(__name__)

SortSpec = Sequence[Tuple[str, int]]


def most_recent_first(created_at_field: str) -> List[Tuple[str, int]]:
    """
    Sort specification for newest-first listings.

    ``_id`` breaks ties so that repeated queries page identically.
    """
    return [(created_at_field, DESCENDING), ("_id", DESCENDING)]


def identity_match(identity: str) -> Any:
    """
    Match value for a field that references a user.

    References are stored as ObjectIds by the application but may have been
    written as plain strings by older code, so a hex identity matches both.
    """
    if ObjectId.is_valid(identity):
        return {"$in": [ObjectId(identity), identity]}
    return identity


def owner_filter(owner_field: str, identity: str) -> Dict[str, Any]:
    """Filter restricting a query to records owned by ``identity``."""
    return {owner_field: identity_match(identity)}


def serialize_value(value: Any) -> Any:
    """Convert BSON values into JSON-safe values."""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal128):
        return str(value.to_decimal())
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, (bytes, bytearray)):
        # bson.Binary is a bytes subclass
        return base64.b64encode(value).decode("ascii")
    if isinstance(value, Mapping):
        return {key: serialize_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [serialize_value(item) for item in value]
    if isinstance(value, float) and not math.isfinite(value):
        return str(value)
    if value is None or isinstance(value, (str, int, float)):
        return value
    # Timestamp, Regex, DBRef and other BSON extension types
    return str(value)


def serialize_document(document: Mapping[str, Any]) -> Dict[str, Any]:
    """Convert a stored document into a JSON-safe record."""
    return {key: serialize_value(value) for key, value in document.items()}


class DocumentRepository:
    """Paginated read access to one collection."""

    def __init__(self, collection: AsyncCollection, metrics: Optional[QueryMetrics] = None):
        """
        Initialize document repository.

        Args:
            collection: pymongo async collection
            metrics: Query metrics (defaults to the process-wide instance)
        """
        self.collection = collection
        self.metrics = metrics or setup_metrics().query

    @property
    def collection_name(self) -> str:
        return self.collection.name

    async def execute(
        self,
        filter: Dict[str, Any],
        sort: SortSpec,
        skip: int,
        limit: int
    ) -> Tuple[List[Dict[str, Any]], int]:
        """
        Fetch one page of matching records and the total match count.

        Args:
            filter: Mongo filter document
            sort: Sort specification, applied before skip/limit
            skip: Number of matching records to skip
            limit: Maximum number of records to return

        Returns:
            Tuple of (serialized records, total matching count)

        Raises:
            StoreUnavailable: If the store cannot be reached or rejects the query
        """
        started = time.perf_counter()

        try:
            cursor = self.collection.find(filter).sort(list(sort)).skip(skip).limit(limit)
            documents = await cursor.to_list(length=None)
            total = await self.collection.count_documents(filter)

        except PyMongoError as e:
            self.metrics.queries_total.labels(
                collection=self.collection_name,
                outcome="store_error"
            ).inc()
            logger.error(
                "store_query_failed",
                collection=self.collection_name,
                error=str(e),
                error_type=type(e).__name__
            )
            raise StoreUnavailable() from e

        duration = time.perf_counter() - started
        records = [serialize_document(document) for document in documents]

        self.metrics.queries_total.labels(
            collection=self.collection_name,
            outcome="success"
        ).inc()
        self.metrics.query_duration.labels(collection=self.collection_name).observe(duration)
        self.metrics.records_returned.labels(collection=self.collection_name).observe(len(records))

        logger.debug(
            "store_query_executed",
            collection=self.collection_name,
            skip=skip,
            limit=limit,
            returned=len(records),
            total=total,
            duration=f"{duration:.3f}s"
        )

        return records, total
