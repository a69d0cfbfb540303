"""
Azure Cosmos DB administrative layer.

Admin clients for a Cosmos DB account, the in-memory service model behind
the offline client, and the models and errors they share.
"""

from .backend import CosmosDBBackend, MIN_THROUGHPUT
from .client import (
    AdminClient,
    AzureCosmosAdminClient,
    InMemoryAdminClient,
    OperationResult,
    open_admin_client,
    translate_http_error,
)
from .feed import FeedIterator, FeedExhaustedError
from .models import (
    Database,
    Container,
    PartitionKeyDefinition,
    IndexingPolicy,
    ThroughputProperties,
    CreateDatabaseRequest,
    CreateContainerRequest,
    DatabaseListResult,
    ContainerListResult,
    ToDoActivity,
)
from .exceptions import (
    CosmosDBError,
    DatabaseNotFoundError,
    DatabaseAlreadyExistsError,
    ContainerNotFoundError,
    ContainerAlreadyExistsError,
    ThroughputNotFoundError,
    InvalidPartitionKeyError,
    BadRequestError,
    UnauthorizedError,
    ServiceRequestError,
)

__all__ = [
    # Clients
    "AdminClient",
    "AzureCosmosAdminClient",
    "InMemoryAdminClient",
    "OperationResult",
    "open_admin_client",
    "translate_http_error",
    # Backend
    "CosmosDBBackend",
    "MIN_THROUGHPUT",
    # Feeds
    "FeedIterator",
    "FeedExhaustedError",
    # Models
    "Database",
    "Container",
    "PartitionKeyDefinition",
    "IndexingPolicy",
    "ThroughputProperties",
    "CreateDatabaseRequest",
    "CreateContainerRequest",
    "DatabaseListResult",
    "ContainerListResult",
    "ToDoActivity",
    # Exceptions
    "CosmosDBError",
    "DatabaseNotFoundError",
    "DatabaseAlreadyExistsError",
    "ContainerNotFoundError",
    "ContainerAlreadyExistsError",
    "ThroughputNotFoundError",
    "InvalidPartitionKeyError",
    "BadRequestError",
    "UnauthorizedError",
    "ServiceRequestError",
]
