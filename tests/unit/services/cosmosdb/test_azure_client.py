"""
Tests for the azure-cosmos backed admin client.

The SDK client is replaced with mocks shaped like ``azure.cosmos.aio``
proxies, so these run without an account.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from azure.cosmos.exceptions import CosmosHttpResponseError, CosmosResourceNotFoundError
from pydantic import ValidationError

from cosmosdemo.core.config_manager import ConfigurationError, DemoConfig
from cosmosdemo.services.cosmosdb import client as client_module
from cosmosdemo.services.cosmosdb.client import (
    AzureCosmosAdminClient,
    InMemoryAdminClient,
    open_admin_client,
    translate_http_error,
)
from cosmosdemo.services.cosmosdb.exceptions import (
    BadRequestError,
    ContainerNotFoundError,
    DatabaseNotFoundError,
    ServiceRequestError,
    ThroughputNotFoundError,
    UnauthorizedError,
)

HEADERS = {"x-ms-request-charge": "1.5", "x-ms-activity-id": "activity-1"}

DATABASE_PROPERTIES = {"id": "samples", "_rid": "rid=", "_ts": 1700000000, "_self": "dbs/rid=/"}
CONTAINER_PROPERTIES = {
    "id": "container-samples",
    "partitionKey": {"paths": ["/activityId"], "kind": "Hash", "version": 2},
    "_rid": "crid=",
    "_ts": 1700000000,
}


def responding(value, headers=None):
    """AsyncMock that reports headers to the response hook and returns ``value``."""
    async def call(*args, response_hook=None, **kwargs):
        if response_hook:
            response_hook(headers or HEADERS, value)
        return value
    return AsyncMock(side_effect=call)


async def async_items(items):
    for item in items:
        yield item


class FakePageIterator:
    """Stands in for the SDK's async page iterator."""

    def __init__(self, pages, start):
        self._pages = pages
        self._index = start
        self.continuation_token = None

    def __aiter__(self):
        return self

    async def __anext__(self):
        if self._index >= len(self._pages):
            raise StopAsyncIteration
        page = self._pages[self._index]
        self._index += 1
        self.continuation_token = str(self._index) if self._index < len(self._pages) else None
        return async_items(page)


class FakePager:
    def __init__(self, pages):
        self._pages = pages

    def by_page(self, continuation_token=None):
        return FakePageIterator(self._pages, int(continuation_token) if continuation_token else 0)


@pytest.fixture
def sdk():
    """Mock SDK client with one database proxy and one container proxy."""
    container_proxy = MagicMock()
    container_proxy.read = responding(CONTAINER_PROPERTIES)

    database_proxy = MagicMock()
    database_proxy.read = responding(DATABASE_PROPERTIES)
    database_proxy.get_container_client.return_value = container_proxy
    database_proxy.create_container_if_not_exists = responding(container_proxy)
    database_proxy.delete_container = responding(None)

    sdk_client = MagicMock()
    sdk_client.create_database_if_not_exists = responding(database_proxy)
    sdk_client.get_database_client.return_value = database_proxy
    sdk_client.delete_database = responding(None)
    sdk_client.close = AsyncMock()
    sdk_client.database_proxy = database_proxy
    sdk_client.container_proxy = container_proxy
    return sdk_client


@pytest.fixture
def admin(sdk):
    return AzureCosmosAdminClient("https://account.documents.azure.com:443/", "key", client=sdk)


class TestTranslateHttpError:
    """Tests for SDK error translation."""

    def test_not_found_uses_caller_error(self):
        error = CosmosResourceNotFoundError(status_code=404, message="Owner resource does not exist")

        translated = translate_http_error(error, lambda m: DatabaseNotFoundError(m, database_id="samples"))

        assert isinstance(translated, DatabaseNotFoundError)
        assert translated.database_id == "samples"
        assert "Owner resource does not exist" in translated.message

    def test_not_found_without_caller_error(self):
        translated = translate_http_error(CosmosHttpResponseError(status_code=404, message="gone"))

        assert isinstance(translated, ServiceRequestError)
        assert translated.status_code == 404

    @pytest.mark.parametrize("status,error_type", [
        (400, BadRequestError),
        (401, UnauthorizedError),
        (403, ServiceRequestError),
        (409, ServiceRequestError),
        (503, ServiceRequestError),
    ])
    def test_status_mapping(self, status, error_type):
        translated = translate_http_error(CosmosHttpResponseError(status_code=status, message="failed"))

        assert isinstance(translated, error_type)
        assert translated.status_code == status


class TestDatabaseOperations:
    """Tests for database calls."""

    @pytest.mark.asyncio
    async def test_ensure_database(self, admin, sdk):
        result = await admin.ensure_database("samples", throughput=400)

        sdk.create_database_if_not_exists.assert_awaited_once()
        kwargs = sdk.create_database_if_not_exists.await_args.kwargs
        assert kwargs["id"] == "samples"
        assert kwargs["offer_throughput"] == 400
        assert result.resource.id == "samples"
        assert result.request_charge == 1.5
        assert result.activity_id == "activity-1"

    @pytest.mark.asyncio
    async def test_ensure_database_reports_create_diagnostics(self, admin, sdk):
        """Test the result carries the create call's charge, not the read's."""
        sdk.create_database_if_not_exists = responding(
            sdk.database_proxy, {"x-ms-request-charge": "5.0", "x-ms-activity-id": "create-activity"}
        )
        sdk.database_proxy.read = responding(
            DATABASE_PROPERTIES, {"x-ms-request-charge": "1.0", "x-ms-activity-id": "read-activity"}
        )

        result = await admin.ensure_database("samples")

        assert result.request_charge == 5.0
        assert result.activity_id == "create-activity"

    @pytest.mark.asyncio
    async def test_ensure_database_rejects_bad_id(self, admin, sdk):
        with pytest.raises(ValidationError):
            await admin.ensure_database("bad/id")

        sdk.create_database_if_not_exists.assert_not_called()

    @pytest.mark.asyncio
    async def test_read_missing_database(self, admin, sdk):
        sdk.database_proxy.read = AsyncMock(
            side_effect=CosmosResourceNotFoundError(status_code=404, message="missing")
        )

        with pytest.raises(DatabaseNotFoundError) as exc_info:
            await admin.read_database("samples")

        assert isinstance(exc_info.value.__cause__, CosmosHttpResponseError)

    @pytest.mark.asyncio
    async def test_delete_database(self, admin, sdk):
        await admin.delete_database("samples")

        assert sdk.delete_database.await_args.args == ("samples",)


class TestContainerOperations:
    """Tests for container calls."""

    @pytest.mark.asyncio
    async def test_create_container(self, admin, sdk):
        result = await admin.create_container(
            "samples", "container-samples", "/activityId", throughput=400, default_ttl=60
        )

        kwargs = sdk.database_proxy.create_container_if_not_exists.await_args.kwargs
        assert kwargs["id"] == "container-samples"
        assert kwargs["offer_throughput"] == 400
        assert kwargs["default_ttl"] == 60
        assert "indexing_policy" not in kwargs
        assert kwargs["partition_key"]["paths"] == ["/activityId"]
        assert result.resource.partition_key.path == "/activityId"

    @pytest.mark.asyncio
    async def test_create_container_reports_create_diagnostics(self, admin, sdk):
        sdk.database_proxy.create_container_if_not_exists = responding(
            sdk.container_proxy, {"x-ms-request-charge": "5.0", "x-ms-activity-id": "create-activity"}
        )
        sdk.container_proxy.read = responding(
            CONTAINER_PROPERTIES, {"x-ms-request-charge": "1.0", "x-ms-activity-id": "read-activity"}
        )

        result = await admin.create_container("samples", "container-samples", "/activityId")

        assert result.request_charge == 5.0
        assert result.activity_id == "create-activity"

    @pytest.mark.asyncio
    async def test_create_container_requires_partition_key(self, admin, sdk):
        with pytest.raises(ValidationError):
            await admin.create_container("samples", "container-samples", None)

        sdk.get_database_client.assert_not_called()

    @pytest.mark.asyncio
    async def test_read_missing_container(self, admin, sdk):
        sdk.container_proxy.read = AsyncMock(
            side_effect=CosmosResourceNotFoundError(status_code=404, message="missing")
        )

        with pytest.raises(ContainerNotFoundError) as exc_info:
            await admin.read_container("samples", "container-samples")

        assert exc_info.value.container_id == "container-samples"
        assert exc_info.value.database_id == "samples"


class TestThroughput:
    """Tests for throughput calls."""

    @pytest.mark.asyncio
    async def test_read_container_throughput(self, admin, sdk):
        sdk.container_proxy.get_throughput = responding(SimpleNamespace(offer_throughput=400))

        result = await admin.read_container_throughput("samples", "container-samples")

        assert result.resource == 400

    @pytest.mark.asyncio
    async def test_missing_offer_reads_as_none(self, admin, sdk):
        sdk.database_proxy.get_throughput = AsyncMock(
            side_effect=CosmosResourceNotFoundError(status_code=404, message="no offer")
        )

        result = await admin.read_database_throughput("samples")

        assert result.resource is None

    @pytest.mark.asyncio
    async def test_missing_resource_is_not_none(self, admin, sdk):
        sdk.container_proxy.read = AsyncMock(
            side_effect=CosmosResourceNotFoundError(status_code=404, message="missing")
        )

        with pytest.raises(ContainerNotFoundError):
            await admin.read_container_throughput("samples", "container-samples")

    @pytest.mark.asyncio
    async def test_replace_container_throughput(self, admin, sdk):
        sdk.container_proxy.replace_throughput = responding(SimpleNamespace(offer_throughput=500))

        result = await admin.replace_container_throughput("samples", "container-samples", 500)

        assert result.resource == 500
        assert sdk.container_proxy.replace_throughput.await_args.args == (500,)

    @pytest.mark.asyncio
    async def test_replace_without_offer(self, admin, sdk):
        sdk.database_proxy.replace_throughput = AsyncMock(
            side_effect=CosmosResourceNotFoundError(status_code=404, message="no offer")
        )

        with pytest.raises(ThroughputNotFoundError):
            await admin.replace_database_throughput("samples", 500)

    @pytest.mark.asyncio
    async def test_replace_on_missing_database(self, admin, sdk):
        """Test a missing database is not reported as a missing offer."""
        sdk.database_proxy.read = AsyncMock(
            side_effect=CosmosResourceNotFoundError(status_code=404, message="missing")
        )
        sdk.database_proxy.replace_throughput = AsyncMock()

        with pytest.raises(DatabaseNotFoundError):
            await admin.replace_database_throughput("samples", 500)

        sdk.database_proxy.replace_throughput.assert_not_called()

    @pytest.mark.asyncio
    async def test_replace_on_missing_container(self, admin, sdk):
        sdk.container_proxy.read = AsyncMock(
            side_effect=CosmosResourceNotFoundError(status_code=404, message="missing")
        )
        sdk.container_proxy.replace_throughput = AsyncMock()

        with pytest.raises(ContainerNotFoundError):
            await admin.replace_container_throughput("samples", "container-samples", 500)

        sdk.container_proxy.replace_throughput.assert_not_called()

    @pytest.mark.asyncio
    async def test_replace_below_minimum(self, admin, sdk):
        sdk.container_proxy.replace_throughput = AsyncMock(
            side_effect=CosmosHttpResponseError(status_code=400, message="below minimum")
        )

        with pytest.raises(BadRequestError):
            await admin.replace_container_throughput("samples", "container-samples", 100)


class TestEnumeration:
    """Tests for paged enumeration through the SDK pager."""

    @pytest.mark.asyncio
    async def test_list_databases_follows_continuations(self, admin, sdk):
        pages = [[{"id": "a"}, {"id": "b"}], [{"id": "c"}]]
        sdk.list_databases = MagicMock(side_effect=lambda **kwargs: FakePager(pages))

        feed = admin.list_databases(max_item_count=2)
        ids = []
        while feed.has_more_results:
            ids.extend(db.id for db in await feed.read_next())

        assert ids == ["a", "b", "c"]
        assert feed.pages_read == 2
        assert sdk.list_databases.call_args.kwargs == {"max_item_count": 2}

    @pytest.mark.asyncio
    async def test_list_containers_empty(self, admin, sdk):
        sdk.database_proxy.list_containers = MagicMock(return_value=FakePager([]))

        feed = admin.list_containers("samples")

        assert await feed.read_next() == []
        assert not feed.has_more_results


class TestLifetime:
    """Tests for closing and client selection."""

    @pytest.mark.asyncio
    async def test_context_manager_closes(self, admin, sdk):
        async with admin:
            pass

        sdk.close.assert_awaited_once()

    def test_open_in_memory_client(self):
        config = DemoConfig(cosmos={"in_memory": True})

        assert isinstance(open_admin_client(config), InMemoryAdminClient)

    def test_open_rejects_placeholder_key(self):
        config = DemoConfig(cosmos={"endpoint": "https://account.documents.azure.com:443/", "key": "Super secret key"})

        with pytest.raises(ConfigurationError):
            open_admin_client(config)

    def test_open_account_client(self, monkeypatch):
        sdk_class = MagicMock()
        monkeypatch.setattr(client_module, "CosmosClient", sdk_class)
        config = DemoConfig(cosmos={
            "endpoint": "https://account.documents.azure.com:443/",
            "key": "c2VjcmV0",
            "connection_timeout": 30,
        })

        client = open_admin_client(config)

        assert isinstance(client, AzureCosmosAdminClient)
        sdk_class.assert_called_once_with(
            "https://account.documents.azure.com:443/", credential="c2VjcmV0", connection_timeout=30
        )
