"""
Cosmos DB Exceptions.

Service-reported failures raised by the admin clients, carrying the
Azure Cosmos DB error code and HTTP status of the response that caused them.
"""

from typing import Optional


class CosmosDBError(Exception):
    """Base exception for Cosmos DB service failures.

    Attributes:
        message: Error message
        error_code: Azure Cosmos DB error code
        status_code: HTTP status code returned by the service
    """

    status_code: int = 500

    def __init__(
        self,
        message: str,
        error_code: str = "InternalServerError",
        status_code: Optional[int] = None
    ):
        """Initialize Cosmos DB error.

        Args:
            message: Error message
            error_code: Azure error code
            status_code: HTTP status, defaults to the class status
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        if status_code is not None:
            self.status_code = status_code

    def __str__(self) -> str:
        return f"{self.error_code} ({self.status_code}): {self.message}"


class DatabaseNotFoundError(CosmosDBError):
    """Database not found error."""

    status_code = 404

    def __init__(self, message: str, database_id: str = ""):
        """Initialize database not found error.

        Args:
            message: Error message
            database_id: Database identifier
        """
        super().__init__(message, "NotFound")
        self.database_id = database_id


class DatabaseAlreadyExistsError(CosmosDBError):
    """Database already exists error."""

    status_code = 409

    def __init__(self, message: str, database_id: str = ""):
        """Initialize database already exists error.

        Args:
            message: Error message
            database_id: Database identifier
        """
        super().__init__(message, "Conflict")
        self.database_id = database_id


class ContainerNotFoundError(CosmosDBError):
    """Container not found error."""

    status_code = 404

    def __init__(self, message: str, container_id: str = "", database_id: str = ""):
        """Initialize container not found error.

        Args:
            message: Error message
            container_id: Container identifier
            database_id: Database identifier
        """
        super().__init__(message, "NotFound")
        self.container_id = container_id
        self.database_id = database_id


class ContainerAlreadyExistsError(CosmosDBError):
    """Container already exists error."""

    status_code = 409

    def __init__(self, message: str, container_id: str = "", database_id: str = ""):
        """Initialize container already exists error.

        Args:
            message: Error message
            container_id: Container identifier
            database_id: Database identifier
        """
        super().__init__(message, "Conflict")
        self.container_id = container_id
        self.database_id = database_id


class ThroughputNotFoundError(CosmosDBError):
    """Resource has no directly provisioned throughput."""

    status_code = 404

    def __init__(self, message: str, resource_link: str = ""):
        super().__init__(message, "NotFound")
        self.resource_link = resource_link


class InvalidPartitionKeyError(CosmosDBError):
    """Invalid partition key error."""

    status_code = 400

    def __init__(self, message: str, partition_key_path: str = ""):
        """Initialize invalid partition key error.

        Args:
            message: Error message
            partition_key_path: Invalid partition key path
        """
        super().__init__(message, "BadRequest")
        self.partition_key_path = partition_key_path


class BadRequestError(CosmosDBError):
    """Bad request error."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message, "BadRequest")


class UnauthorizedError(CosmosDBError):
    """Authorization key rejected by the service."""

    status_code = 401

    def __init__(self, message: str):
        super().__init__(message, "Unauthorized")


class ServiceRequestError(CosmosDBError):
    """Any other failure status reported by the service."""

    def __init__(self, message: str, status_code: int, error_code: str = "ServiceError"):
        super().__init__(message, error_code, status_code)
