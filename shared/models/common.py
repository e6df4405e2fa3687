"""Common Pydantic models shared across services."""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class HealthStatus(str, Enum):
    """Health status enum."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DEGRADED = "degraded"


class MongoDBConfig(BaseModel):
    """MongoDB connection configuration."""

    model_config = ConfigDict(frozen=True)

    connection_string: str = Field(..., description="MongoDB connection string")
    database: str = Field(..., description="Database name")
    connect_timeout_ms: int = Field(30000, gt=0, description="Connection timeout (ms)")
    socket_timeout_ms: int = Field(45000, gt=0, description="Socket timeout (ms)")
    max_pool_size: int = Field(50, gt=0, description="Maximum pooled connections")
    min_pool_size: int = Field(10, ge=0, description="Minimum pooled connections")
    retry_writes: bool = Field(True, description="Driver-level write retry")
    retry_reads: bool = Field(True, description="Driver-level read retry")
    replica_set: Optional[str] = Field(None, description="Replica set name")

    @field_validator("connection_string")
    @classmethod
    def validate_connection_string(cls, v: str) -> str:
        """Validate the URL uses a MongoDB scheme."""
        if not v.startswith(("mongodb://", "mongodb+srv://")):
            raise ValueError("connection_string must start with mongodb:// or mongodb+srv://")
        return v

    def client_options(self) -> Dict[str, Any]:
        """Keyword arguments for the driver's client constructor."""
        options: Dict[str, Any] = {
            "connectTimeoutMS": self.connect_timeout_ms,
            "socketTimeoutMS": self.socket_timeout_ms,
            "maxPoolSize": self.max_pool_size,
            "minPoolSize": self.min_pool_size,
            "retryWrites": self.retry_writes,
            "retryReads": self.retry_reads,
        }
        if self.replica_set:
            options["replicaSet"] = self.replica_set
        return options
