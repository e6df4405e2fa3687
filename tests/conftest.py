"""
Shared fixtures and in-memory document store doubles.

FakeCollection mimics the subset of the pymongo async collection API the
repositories use: ``find().sort().skip().limit()``, ``to_list``,
``count_documents`` and ``find_one``. Filters support equality, dotted
paths, ``$in``, ``$or`` and ``$regex``/``$options``.
"""

import re
import pytest
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from prometheus_client import CollectorRegistry
from pymongo.errors import ServerSelectionTimeoutError

from ledger_api.src.config import Settings
from shared.metrics import QueryMetrics


TEST_SECRET = "test-secret-key-for-unit-tests-minimum-32-chars"


# ============================================================================
# DOCUMENT STORE DOUBLES
# ============================================================================


_MISSING = object()


def resolve_path(document: Dict[str, Any], path: str) -> Any:
    """Follow a dotted path into nested documents."""
    value: Any = document
    for part in path.split("."):
        if not isinstance(value, dict) or part not in value:
            return _MISSING
        value = value[part]
    return value


def match_condition(value: Any, condition: Any) -> bool:
    if isinstance(condition, dict) and any(key.startswith("$") for key in condition):
        if "$in" in condition and value not in condition["$in"]:
            return False
        if "$regex" in condition:
            if not isinstance(value, str):
                return False
            flags = re.IGNORECASE if "i" in condition.get("$options", "") else 0
            if not re.search(condition["$regex"], value, flags):
                return False
        return True
    return value is not _MISSING and value == condition


def matches(document: Dict[str, Any], query: Dict[str, Any]) -> bool:
    """Evaluate a Mongo-style filter against one document."""
    for key, condition in query.items():
        if key == "$or":
            if not any(matches(document, sub) for sub in condition):
                return False
        elif not match_condition(resolve_path(document, key), condition):
            return False
    return True


class FakeCursor:
    """Chainable cursor over a filtered snapshot."""

    def __init__(self, documents: List[Dict[str, Any]]):
        self._documents = documents
        self._skip = 0
        self._limit = 0

    def sort(self, keys):
        # Stable sorts applied from the least significant key
        for field, direction in reversed(list(keys)):
            self._documents.sort(
                key=lambda doc: resolve_path(doc, field),
                reverse=direction < 0
            )
        return self

    def skip(self, count: int):
        self._skip = count
        return self

    def limit(self, count: int):
        self._limit = count
        return self

    async def to_list(self, length: Optional[int] = None) -> List[Dict[str, Any]]:
        end = self._skip + self._limit if self._limit else None
        return [dict(doc) for doc in self._documents[self._skip:end]]


class FakeCollection:
    """In-memory collection recording the calls made against it."""

    def __init__(self, name: str, documents: Optional[List[Dict[str, Any]]] = None):
        self.name = name
        self.documents = list(documents or [])
        self.find_calls: List[Dict[str, Any]] = []
        self.count_calls: List[Dict[str, Any]] = []
        self.find_one_calls: List[Dict[str, Any]] = []

    def find(self, query: Dict[str, Any]) -> FakeCursor:
        self.find_calls.append(query)
        return FakeCursor([doc for doc in self.documents if matches(doc, query)])

    async def count_documents(self, query: Dict[str, Any]) -> int:
        self.count_calls.append(query)
        return sum(1 for doc in self.documents if matches(doc, query))

    async def find_one(self, query: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        self.find_one_calls.append(query)
        for doc in self.documents:
            if matches(doc, query):
                return dict(doc)
        return None

    @property
    def touched(self) -> bool:
        return bool(self.find_calls or self.count_calls or self.find_one_calls)


class FailingCursor:
    async def to_list(self, length: Optional[int] = None):
        raise ServerSelectionTimeoutError("connection refused")

    def sort(self, keys):
        return self

    def skip(self, count: int):
        return self

    def limit(self, count: int):
        return self


class FailingCollection(FakeCollection):
    """Collection whose every operation fails like an unreachable server."""

    def find(self, query: Dict[str, Any]) -> FailingCursor:
        self.find_calls.append(query)
        return FailingCursor()

    async def count_documents(self, query: Dict[str, Any]) -> int:
        self.count_calls.append(query)
        raise ServerSelectionTimeoutError("connection refused")

    async def find_one(self, query: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        self.find_one_calls.append(query)
        raise ServerSelectionTimeoutError("connection refused")


class FakeDatabase:
    """Database handle returning pre-registered or empty collections."""

    def __init__(self, collections: Optional[Dict[str, FakeCollection]] = None):
        self.collections = dict(collections or {})

    def __getitem__(self, name: str) -> FakeCollection:
        if name not in self.collections:
            self.collections[name] = FakeCollection(name)
        return self.collections[name]


# ============================================================================
# DATA BUILDERS
# ============================================================================


BASE_TIME = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_user(
    username: str,
    role: str = "user",
    active: bool = True,
    password_hash: Optional[str] = None,
    user_id: Optional[ObjectId] = None
) -> Dict[str, Any]:
    return {
        "_id": user_id or ObjectId(),
        "username": username,
        "email": f"{username}@example.com",
        "password": password_hash,
        "role": role,
        "status": {"active": active},
        "createdAt": BASE_TIME,
    }


def make_deposits(owner: Any, count: int, start: int = 0) -> List[Dict[str, Any]]:
    """Deposits owned by ``owner``, one minute apart, oldest first."""
    return [
        {
            "_id": ObjectId(),
            "user": owner,
            "amount": 100 + i,
            "status": "pending",
            "createdAt": BASE_TIME + timedelta(minutes=start + i),
        }
        for i in range(count)
    ]


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def settings() -> Settings:
    """Settings with a known secret and cheap bcrypt rounds."""
    return Settings(
        jwt_secret_key=TEST_SECRET,
        password_bcrypt_rounds=4,
        environment="test",
        log_format="text",
    )


@pytest.fixture
def query_metrics() -> QueryMetrics:
    """Query metrics on an isolated registry."""
    return QueryMetrics(CollectorRegistry())
