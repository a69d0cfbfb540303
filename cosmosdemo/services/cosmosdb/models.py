"""
Cosmos DB Models.

Pydantic models for Azure Cosmos DB databases, containers and throughput,
matching the property names the Cosmos DB REST API returns.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator


class PartitionKeyDefinition(BaseModel):
    """Partition key definition for a container.

    Attributes:
        paths: List of partition key paths (e.g., ["/activityId"])
        kind: Partition key kind (Hash or Range)
        version: Partition key version (1 or 2)
    """

    paths: List[str]
    kind: str = "Hash"
    version: int = Field(default=2, alias="Version")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("paths", mode="before")
    @classmethod
    def validate_paths(cls, v: List[str]) -> List[str]:
        """Validate partition key paths.

        Args:
            v: Partition key paths

        Returns:
            Validated paths

        Raises:
            ValueError: If paths are invalid
        """
        if not v:
            raise ValueError("Partition key paths cannot be empty")

        for path in v:
            if not path or not path.startswith("/") or path == "/":
                raise ValueError(f"Partition key path must start with '/' and name a field: {path!r}")

        return v

    @field_validator("kind")
    @classmethod
    def validate_kind(cls, v: str) -> str:
        """Validate partition key kind."""
        if v not in ["Hash", "Range"]:
            raise ValueError(f"Partition key kind must be 'Hash' or 'Range': {v}")
        return v

    @property
    def path(self) -> str:
        """First (and for the demo, only) partition key path."""
        return self.paths[0]


class IndexingPolicy(BaseModel):
    """Simplified indexing policy.

    Attributes:
        automatic: Whether indexing is automatic
        indexing_mode: Indexing mode (consistent, lazy, none)
        included_paths: Paths included in the index
        excluded_paths: Paths excluded from the index
    """

    automatic: bool = True
    indexing_mode: str = Field(default="consistent", alias="indexingMode")
    included_paths: List[Dict[str, Any]] = Field(
        default_factory=lambda: [{"path": "/*"}], alias="includedPaths"
    )
    excluded_paths: List[Dict[str, Any]] = Field(
        default_factory=lambda: [{"path": '/"_etag"/?'}], alias="excludedPaths"
    )

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("indexing_mode")
    @classmethod
    def validate_indexing_mode(cls, v: str) -> str:
        if v not in ["consistent", "lazy", "none"]:
            raise ValueError(f"Indexing mode must be 'consistent', 'lazy' or 'none': {v}")
        return v


def _validate_resource_id(kind: str, v: str) -> str:
    if not v:
        raise ValueError(f"{kind} ID cannot be empty")

    if len(v) > 255:
        raise ValueError(f"{kind} ID must be 255 characters or less")

    # Azure Cosmos DB rejects these characters in resource ids
    forbidden = set('/\\?#')
    if any(c in forbidden for c in v) or v.endswith(" "):
        raise ValueError(f"{kind} ID cannot contain '/', '\\', '?', '#' or end with a space")

    return v


class Database(BaseModel):
    """Cosmos DB database properties.

    Attributes:
        id: Database identifier
        _rid: Resource ID (internal)
        _ts: Last-modified timestamp (Unix seconds)
        _self: Self link
        _etag: ETag
        _colls: Collections link
        _users: Users link
    """

    id: str
    rid: str = Field(default="", alias="_rid")
    ts: int = Field(default=0, alias="_ts")
    self_link: str = Field(default="", alias="_self")
    etag: str = Field(default="", alias="_etag")
    colls: str = Field(default="", alias="_colls")
    users: str = Field(default="", alias="_users")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @property
    def last_modified(self) -> datetime:
        """Last-modified time as an aware UTC datetime."""
        return datetime.fromtimestamp(self.ts, tz=timezone.utc)


class Container(BaseModel):
    """Cosmos DB container properties.

    Attributes:
        id: Container identifier
        partition_key: Partition key definition
        indexing_policy: Indexing policy
        default_ttl: Default time-to-live in seconds (-1 means no expiry by default)
        _rid: Resource ID (internal)
        _ts: Last-modified timestamp
        _self: Self link
        _etag: ETag
        _docs: Documents link
    """

    id: str
    partition_key: PartitionKeyDefinition = Field(alias="partitionKey")
    indexing_policy: Optional[IndexingPolicy] = Field(default=None, alias="indexingPolicy")
    default_ttl: Optional[int] = Field(default=None, alias="defaultTtl")
    rid: str = Field(default="", alias="_rid")
    ts: int = Field(default=0, alias="_ts")
    self_link: str = Field(default="", alias="_self")
    etag: str = Field(default="", alias="_etag")
    docs: str = Field(default="", alias="_docs")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @property
    def last_modified(self) -> datetime:
        return datetime.fromtimestamp(self.ts, tz=timezone.utc)


class ThroughputProperties(BaseModel):
    """Provisioned throughput attached to a database or container.

    Attributes:
        offer_throughput: Manual throughput in RU/s
        resource_link: Self link of the resource the offer belongs to
    """

    offer_throughput: int = Field(alias="offerThroughput")
    resource_link: str = Field(default="", alias="resource")

    model_config = ConfigDict(populate_by_name=True)


class CreateDatabaseRequest(BaseModel):
    """Request to create a database.

    Attributes:
        id: Database identifier
        throughput: Throughput in RU/s (optional)
    """

    id: str
    throughput: Optional[int] = None

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("id", mode="before")
    @classmethod
    def validate_id(cls, v: str) -> str:
        """Validate database ID.

        Raises:
            ValueError: If ID is invalid
        """
        return _validate_resource_id("Database", v)


class CreateContainerRequest(BaseModel):
    """Request to create a container.

    The partition key may be given as a definition, a dict, or a bare path
    string. It is required and cannot be changed after creation.

    Attributes:
        id: Container identifier
        partition_key: Partition key definition
        indexing_policy: Indexing policy (optional)
        throughput: Throughput in RU/s (optional)
        default_ttl: Default time-to-live in seconds (optional)
    """

    id: str
    partition_key: PartitionKeyDefinition = Field(alias="partitionKey")
    indexing_policy: Optional[IndexingPolicy] = Field(default=None, alias="indexingPolicy")
    throughput: Optional[int] = None
    default_ttl: Optional[int] = Field(default=None, alias="defaultTtl")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("id", mode="before")
    @classmethod
    def validate_id(cls, v: str) -> str:
        return _validate_resource_id("Container", v)

    @field_validator("partition_key", mode="before")
    @classmethod
    def validate_partition_key(cls, v: Union[str, Dict[str, Any], PartitionKeyDefinition, None]):
        """Accept a bare path and reject a missing one.

        Raises:
            ValueError: If no partition key path is given
        """
        if v is None or v == "":
            raise ValueError("A partition key path is required to create a container")
        if isinstance(v, str):
            return {"paths": [v]}
        return v


class DatabaseListResult(BaseModel):
    """One page of databases.

    Attributes:
        _rid: Resource ID
        databases: Databases in this page
        _count: Count of databases in this page
        _continuation: Continuation token for the next page
    """

    rid: str = Field(default="", alias="_rid")
    databases: List[Database] = Field(default_factory=list, alias="Databases")
    count: int = Field(default=0, alias="_count")
    continuation: Optional[str] = Field(default=None, alias="_continuation")

    model_config = ConfigDict(populate_by_name=True)


class ContainerListResult(BaseModel):
    """One page of containers.

    Attributes:
        _rid: Resource ID of the database
        document_collections: Containers in this page
        _count: Count of containers in this page
        _continuation: Continuation token for the next page
    """

    rid: str = Field(default="", alias="_rid")
    document_collections: List[Container] = Field(default_factory=list, alias="DocumentCollections")
    count: int = Field(default=0, alias="_count")
    continuation: Optional[str] = Field(default=None, alias="_continuation")

    model_config = ConfigDict(populate_by_name=True)


class ToDoActivity(BaseModel):
    """Example item schema for the demo container.

    Never written by the demo; it documents the shape of the items the
    `/activityId` partition key is meant for.
    """

    id: str
    activity_id: str = Field(alias="activityId")
    status: str

    model_config = ConfigDict(populate_by_name=True)
