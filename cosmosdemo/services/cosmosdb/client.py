"""
Cosmos DB administrative clients.

``AdminClient`` is the contract the demo drives. ``AzureCosmosAdminClient``
fulfils it with the azure-cosmos async SDK; ``InMemoryAdminClient`` fulfils it
with ``CosmosDBBackend`` so the demo and its tests run without an account.
"""

import uuid
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Iterator, List, Optional, Tuple, TypeVar, TYPE_CHECKING

from azure.cosmos import PartitionKey
from azure.cosmos.aio import CosmosClient
from azure.cosmos.exceptions import CosmosHttpResponseError

from cosmosdemo.core.logging_config import get_logger

from .backend import CosmosDBBackend
from .exceptions import (
    BadRequestError,
    CosmosDBError,
    ContainerNotFoundError,
    DatabaseAlreadyExistsError,
    ContainerAlreadyExistsError,
    DatabaseNotFoundError,
    ServiceRequestError,
    ThroughputNotFoundError,
    UnauthorizedError,
)
from .feed import FeedIterator
from .models import Container, CreateContainerRequest, CreateDatabaseRequest, Database, IndexingPolicy

if TYPE_CHECKING:
    from cosmosdemo.core.config_manager import DemoConfig

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class OperationResult(Generic[T]):
    """Resource returned by an operation plus its response diagnostics.

    Attributes:
        resource: Properties (or value) returned by the service
        request_charge: Request units consumed by the operation
        activity_id: Service activity id of the last request made
    """
    resource: T
    request_charge: float = 0.0
    activity_id: Optional[str] = None


class AdminClient(ABC):
    """Administrative operations against one Cosmos DB account.

    Clients are async context managers; leaving the block closes the
    connection whether or not the body raised.
    """

    async def __aenter__(self) -> "AdminClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @staticmethod
    def build_container_request(
        container_id: str,
        partition_key_path: Optional[str],
        throughput: Optional[int] = None,
        indexing_policy: Optional[IndexingPolicy] = None,
        default_ttl: Optional[int] = None
    ) -> CreateContainerRequest:
        """
        Validate container settings before anything is sent.

        Raises:
            pydantic.ValidationError: If the id or partition key path is missing or malformed
        """
        return CreateContainerRequest(
            id=container_id,
            partitionKey=partition_key_path,
            indexingPolicy=indexing_policy,
            throughput=throughput,
            defaultTtl=default_ttl
        )

    @abstractmethod
    async def ensure_database(self, database_id: str, throughput: Optional[int] = None) -> OperationResult[Database]:
        """Create the database if absent and return its properties."""

    @abstractmethod
    async def read_database(self, database_id: str) -> OperationResult[Database]:
        """Read database properties; not-found if it does not exist."""

    @abstractmethod
    async def delete_database(self, database_id: str) -> OperationResult[None]:
        """Delete a database and everything in it."""

    @abstractmethod
    async def create_container(
        self,
        database_id: str,
        container_id: str,
        partition_key_path: Optional[str],
        throughput: Optional[int] = None,
        indexing_policy: Optional[IndexingPolicy] = None,
        default_ttl: Optional[int] = None
    ) -> OperationResult[Container]:
        """Create the container if absent and return its properties."""

    @abstractmethod
    async def read_container(self, database_id: str, container_id: str) -> OperationResult[Container]:
        """Read container properties; not-found if it does not exist."""

    @abstractmethod
    async def delete_container(self, database_id: str, container_id: str) -> OperationResult[None]:
        """Delete a container."""

    @abstractmethod
    async def read_database_throughput(self, database_id: str) -> OperationResult[Optional[int]]:
        """Read database throughput; ``None`` when none is provisioned."""

    @abstractmethod
    async def read_container_throughput(self, database_id: str, container_id: str) -> OperationResult[Optional[int]]:
        """Read container throughput; ``None`` when it shares the database's."""

    @abstractmethod
    async def replace_database_throughput(self, database_id: str, throughput: int) -> OperationResult[int]:
        """Replace the throughput provisioned on a database."""

    @abstractmethod
    async def replace_container_throughput(
        self,
        database_id: str,
        container_id: str,
        throughput: int
    ) -> OperationResult[int]:
        """Replace the throughput provisioned on a container."""

    @abstractmethod
    def list_databases(self, max_item_count: Optional[int] = None) -> FeedIterator[Database]:
        """Start a new enumeration of the account's databases."""

    @abstractmethod
    def list_containers(self, database_id: str, max_item_count: Optional[int] = None) -> FeedIterator[Container]:
        """Start a new enumeration of a database's containers."""

    @abstractmethod
    async def close(self) -> None:
        """Release the connection."""


class InMemoryAdminClient(AdminClient):
    """Admin client backed by an in-process ``CosmosDBBackend``.

    Reports a request charge of zero and a fresh activity id per operation.
    """

    def __init__(self, backend: Optional[CosmosDBBackend] = None):
        self.backend = backend if backend is not None else CosmosDBBackend()
        self.closed = False

    def _check_open(self) -> None:
        if self.closed:
            raise RuntimeError("The client has been closed")

    def _result(self, resource: T) -> OperationResult[T]:
        return OperationResult(resource=resource, activity_id=str(uuid.uuid4()))

    async def ensure_database(self, database_id: str, throughput: Optional[int] = None) -> OperationResult[Database]:
        self._check_open()
        request = CreateDatabaseRequest(id=database_id, throughput=throughput)
        try:
            database = await self.backend.create_database(request)
        except DatabaseAlreadyExistsError:
            database = await self.backend.get_database(database_id)
        return self._result(database)

    async def read_database(self, database_id: str) -> OperationResult[Database]:
        self._check_open()
        return self._result(await self.backend.get_database(database_id))

    async def delete_database(self, database_id: str) -> OperationResult[None]:
        self._check_open()
        await self.backend.delete_database(database_id)
        return self._result(None)

    async def create_container(
        self,
        database_id: str,
        container_id: str,
        partition_key_path: Optional[str],
        throughput: Optional[int] = None,
        indexing_policy: Optional[IndexingPolicy] = None,
        default_ttl: Optional[int] = None
    ) -> OperationResult[Container]:
        request = self.build_container_request(
            container_id, partition_key_path, throughput, indexing_policy, default_ttl
        )
        self._check_open()
        try:
            container = await self.backend.create_container(database_id, request)
        except ContainerAlreadyExistsError:
            container = await self.backend.get_container(database_id, container_id)
        return self._result(container)

    async def read_container(self, database_id: str, container_id: str) -> OperationResult[Container]:
        self._check_open()
        return self._result(await self.backend.get_container(database_id, container_id))

    async def delete_container(self, database_id: str, container_id: str) -> OperationResult[None]:
        self._check_open()
        await self.backend.delete_container(database_id, container_id)
        return self._result(None)

    async def read_database_throughput(self, database_id: str) -> OperationResult[Optional[int]]:
        self._check_open()
        offer = await self.backend.read_database_throughput(database_id)
        return self._result(offer.offer_throughput if offer else None)

    async def read_container_throughput(self, database_id: str, container_id: str) -> OperationResult[Optional[int]]:
        self._check_open()
        offer = await self.backend.read_container_throughput(database_id, container_id)
        return self._result(offer.offer_throughput if offer else None)

    async def replace_database_throughput(self, database_id: str, throughput: int) -> OperationResult[int]:
        self._check_open()
        offer = await self.backend.replace_database_throughput(database_id, throughput)
        return self._result(offer.offer_throughput)

    async def replace_container_throughput(
        self,
        database_id: str,
        container_id: str,
        throughput: int
    ) -> OperationResult[int]:
        self._check_open()
        offer = await self.backend.replace_container_throughput(database_id, container_id, throughput)
        return self._result(offer.offer_throughput)

    def list_databases(self, max_item_count: Optional[int] = None) -> FeedIterator[Database]:
        self._check_open()

        async def fetch(continuation: Optional[str]) -> Tuple[List[Database], Optional[str]]:
            self._check_open()
            page = await self.backend.list_databases(max_item_count, continuation)
            return page.databases, page.continuation

        return FeedIterator(fetch)

    def list_containers(self, database_id: str, max_item_count: Optional[int] = None) -> FeedIterator[Container]:
        self._check_open()

        async def fetch(continuation: Optional[str]) -> Tuple[List[Container], Optional[str]]:
            self._check_open()
            page = await self.backend.list_containers(database_id, max_item_count, continuation)
            return page.document_collections, page.continuation

        return FeedIterator(fetch)

    async def close(self) -> None:
        self.closed = True


def translate_http_error(
    error: CosmosHttpResponseError,
    not_found: Optional[Callable[[str], CosmosDBError]] = None
) -> CosmosDBError:
    """
    Map an SDK response error onto the demo's exception hierarchy.

    Args:
        error: Error raised by azure-cosmos
        not_found: Builds the error for a 404, which only the caller can name

    Returns:
        Equivalent CosmosDBError
    """
    status = error.status_code
    message = error.message or str(error)

    if status == 404 and not_found is not None:
        return not_found(message)
    if status == 400:
        return BadRequestError(message)
    if status == 401:
        return UnauthorizedError(message)
    if status == 403:
        return ServiceRequestError(message, 403, "Forbidden")
    if status == 409:
        return ServiceRequestError(message, 409, "Conflict")
    if status == 404:
        return ServiceRequestError(message, 404, "NotFound")
    return ServiceRequestError(message, status or 500)


@contextmanager
def service_errors(not_found: Optional[Callable[[str], CosmosDBError]] = None) -> Iterator[None]:
    """Translate SDK response errors raised inside the block."""
    try:
        yield
    except CosmosHttpResponseError as e:
        raise translate_http_error(e, not_found) from e


class _ResponseDiagnostics:
    """``response_hook`` collecting request charge and activity id."""

    def __init__(self) -> None:
        self.request_charge = 0.0
        self.activity_id: Optional[str] = None

    def __call__(self, headers: Any, *args: Any) -> None:
        if not headers:
            return
        charge = headers.get("x-ms-request-charge")
        if charge:
            self.request_charge += float(charge)
        self.activity_id = headers.get("x-ms-activity-id", self.activity_id)

    def result(self, resource: T) -> OperationResult[T]:
        return OperationResult(
            resource=resource,
            request_charge=round(self.request_charge, 2),
            activity_id=self.activity_id
        )


class AzureCosmosAdminClient(AdminClient):
    """Admin client backed by ``azure.cosmos.aio.CosmosClient``."""

    def __init__(
        self,
        endpoint: str,
        key: str,
        connection_timeout: Optional[int] = None,
        client: Optional[CosmosClient] = None
    ):
        """
        Args:
            endpoint: Account endpoint URL
            key: Account master key
            connection_timeout: Optional SDK connection timeout in seconds
            client: Pre-built SDK client, mainly for tests
        """
        if client is None:
            kwargs: Dict[str, Any] = {}
            if connection_timeout is not None:
                kwargs["connection_timeout"] = connection_timeout
            client = CosmosClient(endpoint, credential=key, **kwargs)
        self._client = client
        logger.info(f"Connecting to Cosmos DB account at {endpoint}")

    @staticmethod
    def _database_not_found(database_id: str) -> Callable[[str], CosmosDBError]:
        return lambda message: DatabaseNotFoundError(message, database_id=database_id)

    @staticmethod
    def _container_not_found(database_id: str, container_id: str) -> Callable[[str], CosmosDBError]:
        return lambda message: ContainerNotFoundError(
            message, container_id=container_id, database_id=database_id
        )

    async def ensure_database(self, database_id: str, throughput: Optional[int] = None) -> OperationResult[Database]:
        request = CreateDatabaseRequest(id=database_id, throughput=throughput)
        # Charge and activity id describe the create call, not the read that follows
        diagnostics = _ResponseDiagnostics()
        with service_errors(self._database_not_found(database_id)):
            proxy = await self._client.create_database_if_not_exists(
                id=request.id,
                offer_throughput=request.throughput,
                response_hook=diagnostics
            )
            properties = await proxy.read()
        return diagnostics.result(Database.model_validate(properties))

    async def read_database(self, database_id: str) -> OperationResult[Database]:
        diagnostics = _ResponseDiagnostics()
        with service_errors(self._database_not_found(database_id)):
            properties = await self._client.get_database_client(database_id).read(response_hook=diagnostics)
        return diagnostics.result(Database.model_validate(properties))

    async def delete_database(self, database_id: str) -> OperationResult[None]:
        diagnostics = _ResponseDiagnostics()
        with service_errors(self._database_not_found(database_id)):
            await self._client.delete_database(database_id, response_hook=diagnostics)
        return diagnostics.result(None)

    async def create_container(
        self,
        database_id: str,
        container_id: str,
        partition_key_path: Optional[str],
        throughput: Optional[int] = None,
        indexing_policy: Optional[IndexingPolicy] = None,
        default_ttl: Optional[int] = None
    ) -> OperationResult[Container]:
        request = self.build_container_request(
            container_id, partition_key_path, throughput, indexing_policy, default_ttl
        )

        kwargs: Dict[str, Any] = {}
        if request.throughput is not None:
            kwargs["offer_throughput"] = request.throughput
        if request.indexing_policy is not None:
            kwargs["indexing_policy"] = request.indexing_policy.model_dump(by_alias=True)
        if request.default_ttl is not None:
            kwargs["default_ttl"] = request.default_ttl

        diagnostics = _ResponseDiagnostics()
        database = self._client.get_database_client(database_id)
        with service_errors(self._database_not_found(database_id)):
            proxy = await database.create_container_if_not_exists(
                id=request.id,
                partition_key=PartitionKey(
                    path=request.partition_key.path,
                    kind=request.partition_key.kind,
                    version=request.partition_key.version
                ),
                response_hook=diagnostics,
                **kwargs
            )
            properties = await proxy.read()
        return diagnostics.result(Container.model_validate(properties))

    async def read_container(self, database_id: str, container_id: str) -> OperationResult[Container]:
        diagnostics = _ResponseDiagnostics()
        container = self._client.get_database_client(database_id).get_container_client(container_id)
        with service_errors(self._container_not_found(database_id, container_id)):
            properties = await container.read(response_hook=diagnostics)
        return diagnostics.result(Container.model_validate(properties))

    async def delete_container(self, database_id: str, container_id: str) -> OperationResult[None]:
        diagnostics = _ResponseDiagnostics()
        database = self._client.get_database_client(database_id)
        with service_errors(self._container_not_found(database_id, container_id)):
            await database.delete_container(container_id, response_hook=diagnostics)
        return diagnostics.result(None)

    async def _read_throughput(self, proxy: Any, diagnostics: _ResponseDiagnostics) -> Optional[int]:
        # The SDK reports a missing offer as 404, so the resource is read first
        # to keep a missing resource distinguishable from missing throughput.
        await proxy.read(response_hook=diagnostics)
        try:
            throughput = await proxy.get_throughput(response_hook=diagnostics)
        except CosmosHttpResponseError as e:
            if e.status_code == 404:
                return None
            raise
        return throughput.offer_throughput

    async def read_database_throughput(self, database_id: str) -> OperationResult[Optional[int]]:
        diagnostics = _ResponseDiagnostics()
        with service_errors(self._database_not_found(database_id)):
            value = await self._read_throughput(self._client.get_database_client(database_id), diagnostics)
        return diagnostics.result(value)

    async def read_container_throughput(self, database_id: str, container_id: str) -> OperationResult[Optional[int]]:
        diagnostics = _ResponseDiagnostics()
        proxy = self._client.get_database_client(database_id).get_container_client(container_id)
        with service_errors(self._container_not_found(database_id, container_id)):
            value = await self._read_throughput(proxy, diagnostics)
        return diagnostics.result(value)

    async def replace_database_throughput(self, database_id: str, throughput: int) -> OperationResult[int]:
        diagnostics = _ResponseDiagnostics()
        proxy = self._client.get_database_client(database_id)
        # A missing offer is also a 404, so the database is read first
        with service_errors(self._database_not_found(database_id)):
            await proxy.read()
        with service_errors(lambda message: ThroughputNotFoundError(message, resource_link=f"dbs/{database_id}")):
            properties = await proxy.replace_throughput(throughput, response_hook=diagnostics)
        return diagnostics.result(properties.offer_throughput)

    async def replace_container_throughput(
        self,
        database_id: str,
        container_id: str,
        throughput: int
    ) -> OperationResult[int]:
        diagnostics = _ResponseDiagnostics()
        proxy = self._client.get_database_client(database_id).get_container_client(container_id)
        with service_errors(self._container_not_found(database_id, container_id)):
            await proxy.read()
        link = f"dbs/{database_id}/colls/{container_id}"
        with service_errors(lambda message: ThroughputNotFoundError(message, resource_link=link)):
            properties = await proxy.replace_throughput(throughput, response_hook=diagnostics)
        return diagnostics.result(properties.offer_throughput)

    @staticmethod
    async def _read_page(pager: Any, continuation: Optional[str]) -> Tuple[List[Dict[str, Any]], Optional[str]]:
        pages = pager.by_page(continuation)
        try:
            page = await pages.__anext__()
        except StopAsyncIteration:
            return [], None
        items = [item async for item in page]
        return items, pages.continuation_token or None

    def list_databases(self, max_item_count: Optional[int] = None) -> FeedIterator[Database]:
        async def fetch(continuation: Optional[str]) -> Tuple[List[Database], Optional[str]]:
            with service_errors():
                items, token = await self._read_page(
                    self._client.list_databases(max_item_count=max_item_count), continuation
                )
            return [Database.model_validate(item) for item in items], token

        return FeedIterator(fetch)

    def list_containers(self, database_id: str, max_item_count: Optional[int] = None) -> FeedIterator[Container]:
        database = self._client.get_database_client(database_id)

        async def fetch(continuation: Optional[str]) -> Tuple[List[Container], Optional[str]]:
            with service_errors(self._database_not_found(database_id)):
                items, token = await self._read_page(
                    database.list_containers(max_item_count=max_item_count), continuation
                )
            return [Container.model_validate(item) for item in items], token

        return FeedIterator(fetch)

    async def close(self) -> None:
        await self._client.close()
        logger.info("Cosmos DB client closed")


def open_admin_client(config: "DemoConfig") -> AdminClient:
    """
    Build the admin client the configuration asks for.

    Raises:
        ConfigurationError: If an account client is requested without usable credentials
    """
    if config.cosmos.in_memory:
        logger.info("Using the in-memory Cosmos DB service model")
        return InMemoryAdminClient()

    config.cosmos.validate_credentials()
    return AzureCosmosAdminClient(
        config.cosmos.endpoint,
        config.cosmos.key,
        connection_timeout=config.cosmos.connection_timeout
    )
