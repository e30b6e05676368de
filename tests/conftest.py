"""
Pytest configuration and shared fixtures for cosmos_persistence tests.

This module provides:
- Repository options fixtures
- An in-memory container that raises the SDK's real exception types
- A feed converter double that evaluates expression queries in memory
- Mocked client provider wired into the real container provider
"""

import copy
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
from azure.cosmos.exceptions import CosmosResourceExistsError, CosmosResourceNotFoundError

from cosmos_persistence.config import RepositoryOptions
from cosmos_persistence.handlers import (CosmosCommandHandler, CosmosQueryHandler,
                                         PaginatedCosmosQueryHandler, QueryToFeedIterator)
from cosmos_persistence.items import get_path_value
from cosmos_persistence.observability import get_metrics_collector
from cosmos_persistence.providers import CosmosClientProvider, CosmosContainerProvider

REQUEST_CHARGE = 2.5


def pytest_configure(config):
    config.addinivalue_line("markers", "integration: requires a Cosmos DB emulator")


# ============================================================================
# IN-MEMORY COSMOS DOUBLES
# ============================================================================


def response_headers() -> Dict[str, str]:
    return {
        "x-ms-request-charge": str(REQUEST_CHARGE),
        "x-ms-activity-id": "activity-1",
        "x-ms-session-token": "0:1#1",
    }


async def _iterate(items: List[Any]):
    for item in items:
        yield item


class FakeFeed:
    """Stands in for ``AsyncItemPaged``: ``by_page()`` yields async pages."""

    def __init__(self, documents: List[Any], page_size: int = 2, response_hook=None):
        self._documents = documents
        self._page_size = page_size
        self._response_hook = response_hook
        self.pages_fetched = 0

    def by_page(self, continuation_token: Optional[str] = None):
        return self._pages()

    async def _pages(self):
        chunks = [
            self._documents[i : i + self._page_size]
            for i in range(0, len(self._documents), self._page_size)
        ] or [[]]
        for chunk in chunks:
            self.pages_fetched += 1
            if self._response_hook is not None:
                self._response_hook(response_headers(), chunk)
            yield _iterate(copy.deepcopy(chunk))


def _hashable(value: Any) -> Any:
    return tuple(value) if isinstance(value, list) else value


def _not_found(item_id: str) -> CosmosResourceNotFoundError:
    return CosmosResourceNotFoundError(
        status_code=404,
        message=f"Entity with the specified id {item_id} does not exist in the system.",
    )


class FakeContainer:
    """
    In-memory container keyed by (id, partition key value).

    Mirrors the parts of ``azure.cosmos.aio.ContainerProxy`` the handlers use.
    ``query_items`` understands ``SELECT * FROM c``; other SQL returns whatever
    was registered in ``sql_results``.
    """

    def __init__(self, id: str = "orders", partition_key_path: str = "/pk", page_size: int = 2):
        self.id = id
        self.partition_key_path = partition_key_path
        self.page_size = page_size
        self.documents: Dict[Any, Dict[str, Any]] = {}
        self.sql_results: Dict[str, List[Any]] = {}
        self.queries: List[Dict[str, Any]] = []

    def _key(self, body: Dict[str, Any]):
        return (body["id"], _hashable(get_path_value(body, self.partition_key_path)))

    def all_documents(self) -> List[Dict[str, Any]]:
        return [copy.deepcopy(d) for d in self.documents.values()]

    async def read_item(self, item, partition_key, response_hook=None, **kwargs):
        document = self.documents.get((item, _hashable(partition_key)))
        if document is None:
            raise _not_found(item)
        if response_hook is not None:
            response_hook(response_headers(), document)
        return copy.deepcopy(document)

    async def create_item(self, body, response_hook=None, **kwargs):
        key = self._key(body)
        if key in self.documents:
            raise CosmosResourceExistsError(
                status_code=409,
                message="Entity with the specified id already exists in the system.",
            )
        self.documents[key] = copy.deepcopy(body)
        if response_hook is not None:
            response_hook(response_headers(), body)
        return copy.deepcopy(body)

    async def upsert_item(self, body, response_hook=None, **kwargs):
        self.documents[self._key(body)] = copy.deepcopy(body)
        if response_hook is not None:
            response_hook(response_headers(), body)
        return copy.deepcopy(body)

    async def replace_item(self, item, body, response_hook=None, **kwargs):
        key = self._key(body)
        if key not in self.documents or key[0] != item:
            raise _not_found(item)
        self.documents[key] = copy.deepcopy(body)
        if response_hook is not None:
            response_hook(response_headers(), body)
        return copy.deepcopy(body)

    async def delete_item(self, item, partition_key, response_hook=None, **kwargs):
        key = (item, _hashable(partition_key))
        if key not in self.documents:
            raise _not_found(item)
        del self.documents[key]
        if response_hook is not None:
            response_hook(response_headers(), None)

    def query_items(self, query, parameters=None, response_hook=None, **kwargs):
        self.queries.append({"query": query, "parameters": parameters})
        if query in self.sql_results:
            results = self.sql_results[query]
        elif " ".join(query.split()).upper() == "SELECT * FROM C":
            results = self.all_documents()
        else:
            results = []
        return FakeFeed(results, self.page_size, response_hook)


class InMemoryFeedIterator(QueryToFeedIterator):
    """Evaluates expression queries against a FakeContainer's documents."""

    def __init__(self):
        self.queries = []

    def get_feed_iterator(self, container, item_query, response_hook=None):
        self.queries.append(item_query)
        results = item_query.evaluate(container.all_documents())
        return FakeFeed(results, container.page_size, response_hook)


# ============================================================================
# OPTIONS FIXTURES
# ============================================================================


@pytest.fixture
def repository_configuration() -> Dict[str, Any]:
    """Configuration document in the list-of-containers shape."""
    return {
        "RepositoryOptions": {
            "EndpointUri": "https://localhost:8081",
            "PrimaryKey": "dGVzdC1rZXk=",
            "DatabaseId": "test-db",
            "ConnectionMode": 0,
            "Containers": [
                {"orders": {"ContainerName": "orders", "PartitionKey": "/pk"}},
                {"customers": {"ContainerName": "customers", "PartitionKey": "/customerId"}},
            ],
        }
    }


@pytest.fixture
def repository_options(repository_configuration) -> RepositoryOptions:
    return RepositoryOptions.from_configuration(repository_configuration)


# ============================================================================
# PROVIDER AND HANDLER FIXTURES
# ============================================================================


@pytest.fixture
def orders_container() -> FakeContainer:
    return FakeContainer("orders", "/pk")


@pytest.fixture
def customers_container() -> FakeContainer:
    return FakeContainer("customers", "/customerId")


@pytest.fixture
def mock_database(orders_container, customers_container) -> MagicMock:
    containers = {"orders": orders_container, "customers": customers_container}
    database = MagicMock()
    database.create_container_if_not_exists = AsyncMock(
        side_effect=lambda id, partition_key: containers[id]
    )
    return database


@pytest.fixture
def mock_cosmos_client(mock_database) -> MagicMock:
    client = MagicMock()
    client.create_database_if_not_exists = AsyncMock(return_value=mock_database)
    client.close = AsyncMock()
    return client


@pytest.fixture
def mock_client_provider(mock_cosmos_client) -> MagicMock:
    """Client provider whose ``invoke`` runs against the mocked client."""

    async def invoke(client_invoker):
        return await client_invoker(mock_cosmos_client)

    provider = MagicMock(spec=CosmosClientProvider)
    provider.invoke = AsyncMock(side_effect=invoke)
    provider.close = AsyncMock()
    return provider


@pytest.fixture
def container_provider(repository_options, mock_client_provider) -> CosmosContainerProvider:
    return CosmosContainerProvider(repository_options, mock_client_provider)


@pytest.fixture
def feed_converter() -> InMemoryFeedIterator:
    return InMemoryFeedIterator()


@pytest.fixture
def query_handler(container_provider, feed_converter) -> CosmosQueryHandler:
    return CosmosQueryHandler(container_provider, feed_converter)


@pytest.fixture
def paginated_query_handler(container_provider, query_handler) -> PaginatedCosmosQueryHandler:
    return PaginatedCosmosQueryHandler(container_provider, query_handler)


@pytest.fixture
def command_handler(repository_options, container_provider) -> CosmosCommandHandler:
    return CosmosCommandHandler(repository_options, container_provider)


@pytest.fixture(autouse=True)
def reset_metrics():
    """Start every test with an empty global metrics collector."""
    get_metrics_collector().reset()
    yield
    get_metrics_collector().reset()


@pytest.fixture
def make_feed():
    """Factory for paged feeds: ``make_feed(documents, page_size=2, response_hook=None)``."""
    return FakeFeed


@pytest.fixture
def make_container():
    """Factory for extra in-memory containers."""
    return FakeContainer
