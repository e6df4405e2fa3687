"""Shared Pydantic models."""

from .common import (
    HealthStatus,
    MongoDBConfig,
)

__all__ = [
    "HealthStatus",
    "MongoDBConfig",
]
