"""
Cosmos DB Backend.

In-memory model of the Azure Cosmos DB control plane: databases, containers
and their provisioned throughput, with the rules the service enforces
(unique ids, partition key paths, minimum throughput, paged read feeds).
Used as the substitutable service behind ``InMemoryAdminClient``.
"""

import asyncio
import time
import hashlib
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from cosmosdemo.core.logging_config import get_logger

from .models import (
    Database,
    Container,
    CreateDatabaseRequest,
    CreateContainerRequest,
    DatabaseListResult,
    ContainerListResult,
    ThroughputProperties,
)
from .exceptions import (
    BadRequestError,
    DatabaseNotFoundError,
    DatabaseAlreadyExistsError,
    ContainerNotFoundError,
    ContainerAlreadyExistsError,
    InvalidPartitionKeyError,
    ThroughputNotFoundError,
)

logger = get_logger(__name__)

# Manual provisioned throughput limits enforced by the service
MIN_THROUGHPUT = 400
MAX_THROUGHPUT = 1_000_000
THROUGHPUT_INCREMENT = 100

DEFAULT_PAGE_SIZE = 100


class CosmosDBBackend:
    """Backend for Cosmos DB control-plane operations.

    Provides database, container and throughput management with in-memory
    storage. Safe for concurrent callers through a single async lock.

    Attributes:
        _databases: Dictionary of databases by ID
        _containers: Dictionary of containers by database ID and container ID
        _offers: Provisioned throughput by resource self link
        _lock: Async lock for thread safety
        request_count: Number of requests the backend has served
    """

    def __init__(self) -> None:
        """Initialize Cosmos DB backend."""
        self._databases: Dict[str, Database] = {}
        self._containers: Dict[str, Dict[str, Container]] = {}
        self._offers: Dict[str, ThroughputProperties] = {}
        self._lock = asyncio.Lock()
        self.request_count = 0

    def _generate_resource_id(self, resource_type: str, identifier: str) -> str:
        """Generate a unique resource ID.

        Args:
            resource_type: Type of resource (db, coll, etc.)
            identifier: Resource identifier

        Returns:
            Generated resource ID
        """
        hash_input = f"{resource_type}:{identifier}:{time.time_ns()}"
        return hashlib.sha256(hash_input.encode()).hexdigest()[:8]

    def _generate_timestamp(self) -> int:
        """Generate current Unix timestamp."""
        return int(datetime.now(timezone.utc).timestamp())

    def _validate_throughput(self, throughput: int) -> None:
        """Apply the service's manual throughput rules.

        Raises:
            BadRequestError: If the value is outside the allowed range or
                not a multiple of the increment
        """
        if throughput < MIN_THROUGHPUT or throughput > MAX_THROUGHPUT:
            raise BadRequestError(
                f"The offer throughput provided ({throughput}) is outside the allowed range. "
                f"Provide a throughput between {MIN_THROUGHPUT} and {MAX_THROUGHPUT} RU/s."
            )
        if throughput % THROUGHPUT_INCREMENT != 0:
            raise BadRequestError(
                f"The offer throughput provided ({throughput}) must be a multiple of {THROUGHPUT_INCREMENT}."
            )

    def _get_database_unlocked(self, database_id: str) -> Database:
        if database_id not in self._databases:
            raise DatabaseNotFoundError(
                f"Database with id '{database_id}' not found",
                database_id=database_id
            )
        return self._databases[database_id]

    def _get_container_unlocked(self, database_id: str, container_id: str) -> Container:
        self._get_database_unlocked(database_id)
        if container_id not in self._containers[database_id]:
            raise ContainerNotFoundError(
                f"Container with id '{container_id}' not found in database '{database_id}'",
                database_id=database_id,
                container_id=container_id
            )
        return self._containers[database_id][container_id]

    @staticmethod
    def _page(items: list, max_item_count: Optional[int], continuation: Optional[str]) -> Tuple[list, Optional[str]]:
        """Slice one page out of ``items``.

        The continuation token is the offset of the next page; ``None`` once
        the last page has been served.
        """
        start_index = 0
        if continuation:
            try:
                start_index = int(continuation)
            except ValueError:
                raise BadRequestError(f"Invalid continuation token: {continuation!r}")
            if start_index < 0:
                raise BadRequestError(f"Invalid continuation token: {continuation!r}")

        if max_item_count is None or max_item_count <= 0:
            max_item_count = DEFAULT_PAGE_SIZE

        end_index = start_index + max_item_count
        next_token = str(end_index) if end_index < len(items) else None
        return items[start_index:end_index], next_token

    async def create_database(self, request: CreateDatabaseRequest) -> Database:
        """Create a new database.

        Args:
            request: Database creation request

        Returns:
            Created database

        Raises:
            DatabaseAlreadyExistsError: If database already exists
            BadRequestError: If the requested throughput is not allowed
        """
        async with self._lock:
            self.request_count += 1
            if request.id in self._databases:
                raise DatabaseAlreadyExistsError(
                    f"Database with id '{request.id}' already exists",
                    database_id=request.id
                )

            if request.throughput is not None:
                self._validate_throughput(request.throughput)

            rid = self._generate_resource_id("db", request.id)
            database = Database(
                id=request.id,
                _rid=rid,
                _ts=self._generate_timestamp(),
                _self=f"dbs/{rid}/",
                _etag=f'"{rid}"',
                _colls="colls/",
                _users="users/"
            )

            self._databases[request.id] = database
            self._containers[request.id] = {}
            if request.throughput is not None:
                self._offers[database.self_link] = ThroughputProperties(
                    offer_throughput=request.throughput,
                    resource_link=database.self_link
                )

            logger.debug(f"Created database '{request.id}' (throughput={request.throughput})")
            return database

    async def list_databases(
        self,
        max_item_count: Optional[int] = None,
        continuation_token: Optional[str] = None
    ) -> DatabaseListResult:
        """Read one page of the database feed.

        Args:
            max_item_count: Maximum databases per page
            continuation_token: Token returned with the previous page

        Returns:
            Page of databases with the continuation for the next one
        """
        async with self._lock:
            self.request_count += 1
            page, next_token = self._page(list(self._databases.values()), max_item_count, continuation_token)
            return DatabaseListResult(
                _rid="",
                Databases=page,
                _count=len(page),
                _continuation=next_token
            )

    async def get_database(self, database_id: str) -> Database:
        """Get a database by ID.

        Raises:
            DatabaseNotFoundError: If database not found
        """
        async with self._lock:
            self.request_count += 1
            return self._get_database_unlocked(database_id)

    async def delete_database(self, database_id: str) -> None:
        """Delete a database and all its containers.

        Raises:
            DatabaseNotFoundError: If database not found
        """
        async with self._lock:
            self.request_count += 1
            database = self._get_database_unlocked(database_id)

            # Cascade delete: remove containers and every offer under the database
            for container in self._containers.pop(database_id, {}).values():
                self._offers.pop(container.self_link, None)
            self._offers.pop(database.self_link, None)

            del self._databases[database_id]
            logger.debug(f"Deleted database '{database_id}'")

    async def create_container(
        self,
        database_id: str,
        request: CreateContainerRequest
    ) -> Container:
        """Create a new container in a database.

        Args:
            database_id: Database identifier
            request: Container creation request

        Returns:
            Created container

        Raises:
            DatabaseNotFoundError: If database not found
            ContainerAlreadyExistsError: If container already exists
            InvalidPartitionKeyError: If partition key is invalid
            BadRequestError: If throughput or TTL is not allowed
        """
        async with self._lock:
            self.request_count += 1
            db = self._get_database_unlocked(database_id)

            if request.id in self._containers[database_id]:
                raise ContainerAlreadyExistsError(
                    f"Container with id '{request.id}' already exists in database '{database_id}'",
                    database_id=database_id,
                    container_id=request.id
                )

            for path in request.partition_key.paths:
                if not path.startswith("/"):
                    raise InvalidPartitionKeyError(
                        f"Partition key path must start with '/': {path}",
                        partition_key_path=path
                    )

            if request.throughput is not None:
                self._validate_throughput(request.throughput)

            if request.default_ttl is not None and (request.default_ttl == 0 or request.default_ttl < -1):
                raise BadRequestError(
                    f"The value of default time to live ({request.default_ttl}) must be -1 or a positive number of seconds."
                )

            rid = self._generate_resource_id("coll", request.id)
            self_link = f"{db.self_link}colls/{rid}/"
            container = Container(
                id=request.id,
                partitionKey=request.partition_key,
                indexingPolicy=request.indexing_policy,
                defaultTtl=request.default_ttl,
                _rid=rid,
                _ts=self._generate_timestamp(),
                _self=self_link,
                _etag=f'"{rid}"',
                _docs="docs/"
            )

            self._containers[database_id][request.id] = container
            if request.throughput is not None:
                self._offers[self_link] = ThroughputProperties(
                    offer_throughput=request.throughput,
                    resource_link=self_link
                )

            logger.debug(
                f"Created container '{request.id}' in '{database_id}' "
                f"(partition key={request.partition_key.paths}, throughput={request.throughput})"
            )
            return container

    async def list_containers(
        self,
        database_id: str,
        max_item_count: Optional[int] = None,
        continuation_token: Optional[str] = None
    ) -> ContainerListResult:
        """Read one page of the container feed of a database.

        Raises:
            DatabaseNotFoundError: If database not found
        """
        async with self._lock:
            self.request_count += 1
            db = self._get_database_unlocked(database_id)
            page, next_token = self._page(
                list(self._containers[database_id].values()), max_item_count, continuation_token
            )
            return ContainerListResult(
                _rid=db.rid,
                DocumentCollections=page,
                _count=len(page),
                _continuation=next_token
            )

    async def get_container(self, database_id: str, container_id: str) -> Container:
        """Get a container by ID.

        Raises:
            DatabaseNotFoundError: If database not found
            ContainerNotFoundError: If container not found
        """
        async with self._lock:
            self.request_count += 1
            return self._get_container_unlocked(database_id, container_id)

    async def delete_container(self, database_id: str, container_id: str) -> None:
        """Delete a container from a database.

        Raises:
            DatabaseNotFoundError: If database not found
            ContainerNotFoundError: If container not found
        """
        async with self._lock:
            self.request_count += 1
            container = self._get_container_unlocked(database_id, container_id)
            self._offers.pop(container.self_link, None)
            del self._containers[database_id][container_id]
            logger.debug(f"Deleted container '{container_id}' from '{database_id}'")

    async def read_database_throughput(self, database_id: str) -> Optional[ThroughputProperties]:
        """Read the throughput provisioned on a database, if any."""
        async with self._lock:
            self.request_count += 1
            db = self._get_database_unlocked(database_id)
            return self._offers.get(db.self_link)

    async def read_container_throughput(
        self,
        database_id: str,
        container_id: str
    ) -> Optional[ThroughputProperties]:
        """Read the throughput provisioned on a container, if any.

        Containers sharing their database's throughput have none of their own.
        """
        async with self._lock:
            self.request_count += 1
            container = self._get_container_unlocked(database_id, container_id)
            return self._offers.get(container.self_link)

    async def replace_database_throughput(self, database_id: str, throughput: int) -> ThroughputProperties:
        """Replace the throughput provisioned on a database.

        Raises:
            DatabaseNotFoundError: If database not found
            ThroughputNotFoundError: If the database has no provisioned throughput
            BadRequestError: If the new value is not allowed
        """
        async with self._lock:
            self.request_count += 1
            db = self._get_database_unlocked(database_id)
            return self._replace_offer_unlocked(db.self_link, f"database '{database_id}'", throughput)

    async def replace_container_throughput(
        self,
        database_id: str,
        container_id: str,
        throughput: int
    ) -> ThroughputProperties:
        """Replace the throughput provisioned on a container.

        Raises:
            ContainerNotFoundError: If container not found
            ThroughputNotFoundError: If the container has no provisioned throughput
            BadRequestError: If the new value is not allowed
        """
        async with self._lock:
            self.request_count += 1
            container = self._get_container_unlocked(database_id, container_id)
            return self._replace_offer_unlocked(container.self_link, f"container '{container_id}'", throughput)

    def _replace_offer_unlocked(self, resource_link: str, label: str, throughput: int) -> ThroughputProperties:
        if resource_link not in self._offers:
            raise ThroughputNotFoundError(
                f"Could not find ThroughputProperties for {label}",
                resource_link=resource_link
            )
        self._validate_throughput(throughput)
        offer = ThroughputProperties(offer_throughput=throughput, resource_link=resource_link)
        self._offers[resource_link] = offer
        logger.debug(f"Replaced throughput of {label} with {throughput} RU/s")
        return offer

    def database_ids(self) -> List[str]:
        """Ids of every database currently stored."""
        return list(self._databases)

    async def clear(self) -> None:
        """Clear all databases, containers and offers.

        Used for testing purposes.
        """
        async with self._lock:
            self._databases.clear()
            self._containers.clear()
            self._offers.clear()
