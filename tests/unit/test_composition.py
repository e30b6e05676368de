"""
Unit tests for the composition root.

Tests service registration, option binding, overrides and an end-to-end
flow through the resolved handlers.
"""

import os

import pytest
from azure.cosmos.exceptions import CosmosResourceNotFoundError

from cosmos_persistence import (Container, CosmosClientProvider, CosmosCommandHandler,
                                CosmosContainerProvider, CosmosQueryHandler,
                                CosmosReadOnlyRepository, F, PaginatedCosmosQueryHandler,
                                QueryToFeedIterator, ReadOnlyRepository, RepositoryOptions,
                                add_cosmos_db_dependencies, shutdown_cosmos_db_dependencies)
from cosmos_persistence.exceptions import (ConfigurationError, CosmosPersistenceError,
                                           InvalidArgumentError)


@pytest.fixture
def wired_container(repository_options, mock_client_provider, feed_converter) -> Container:
    """Container with a mocked client and the in-memory feed converter."""
    container = Container()
    container.register_instance(CosmosClientProvider, mock_client_provider)
    container.register_instance(QueryToFeedIterator, feed_converter)
    return add_cosmos_db_dependencies(container, repository_options)


class TestRegistration:
    """Test what the composition root registers."""

    def test_registers_every_service(self, repository_options):
        container = add_cosmos_db_dependencies(Container(), repository_options)

        for service in (
            RepositoryOptions,
            CosmosClientProvider,
            CosmosContainerProvider,
            QueryToFeedIterator,
            CosmosQueryHandler,
            PaginatedCosmosQueryHandler,
            CosmosCommandHandler,
            ReadOnlyRepository,
        ):
            assert container.is_registered(service)

    def test_services_are_singletons(self, repository_options):
        container = add_cosmos_db_dependencies(Container(), repository_options)

        assert container.resolve(CosmosQueryHandler) is container.resolve(CosmosQueryHandler)
        assert container.resolve(CosmosClientProvider) is container.resolve(CosmosClientProvider)

    def test_repository_implementation(self, repository_options):
        container = add_cosmos_db_dependencies(Container(), repository_options)
        assert isinstance(container.resolve(ReadOnlyRepository), CosmosReadOnlyRepository)

    def test_client_is_not_created_at_registration(self, repository_options):
        container = add_cosmos_db_dependencies(Container(), repository_options)
        assert not container.resolve(CosmosClientProvider).is_client_created

    def test_existing_registrations_are_kept(self, wired_container, mock_client_provider):
        assert wired_container.resolve(CosmosClientProvider) is mock_client_provider

    def test_returns_same_container(self, repository_options):
        container = Container()
        assert add_cosmos_db_dependencies(container, repository_options) is container

    def test_none_container_rejected(self):
        with pytest.raises(InvalidArgumentError) as exc_info:
            add_cosmos_db_dependencies(None)
        assert exc_info.value.parameter == "container"


class TestOptionsBinding:
    """Test how RepositoryOptions is bound."""

    def test_instance_is_registered_as_is(self, repository_options):
        container = add_cosmos_db_dependencies(Container(), repository_options)
        assert container.resolve(RepositoryOptions) is repository_options

    def test_mapping_is_bound_once(self, repository_configuration):
        container = add_cosmos_db_dependencies(Container(), repository_configuration)

        options = container.resolve(RepositoryOptions)

        assert options.database_id == "test-db"
        assert container.resolve(RepositoryOptions) is options

    def test_binds_from_environment(self, monkeypatch):
        monkeypatch.setenv("RepositoryOptions__EndpointUri", "https://localhost:8081")
        monkeypatch.setenv("RepositoryOptions__DatabaseId", "env-db")
        monkeypatch.setenv("RepositoryOptions__Containers__orders__ContainerName", "orders")
        monkeypatch.setenv("RepositoryOptions__Containers__orders__PartitionKey", "/pk")

        container = add_cosmos_db_dependencies(Container())
        options = container.resolve(RepositoryOptions)

        assert options.database_id == "env-db"
        assert options.get_container_options("orders").container_name == "orders"

    def test_invalid_configuration_surfaces_on_resolve(self):
        container = add_cosmos_db_dependencies(
            Container(), {"RepositoryOptions": {"Containers": {"orders": {"PartitionKey": "pk"}}}}
        )
        with pytest.raises(ConfigurationError):
            container.resolve(RepositoryOptions)

    def test_existing_options_binding_is_kept(self, repository_options, repository_configuration):
        container = Container()
        container.register_instance(RepositoryOptions, repository_options)

        add_cosmos_db_dependencies(container, repository_configuration)

        assert container.resolve(RepositoryOptions) is repository_options


class TestShutdown:
    """Test closing the shared client."""

    @pytest.mark.asyncio
    async def test_closes_client_provider(self, wired_container, mock_client_provider):
        await shutdown_cosmos_db_dependencies(wired_container)
        mock_client_provider.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_without_client_provider(self):
        await shutdown_cosmos_db_dependencies(Container())

    @pytest.mark.asyncio
    async def test_unused_container_builds_nothing(self, monkeypatch):
        for name in list(os.environ):
            if name.lower().startswith("repositoryoptions__"):
                monkeypatch.delenv(name)
        container = add_cosmos_db_dependencies(Container())

        await shutdown_cosmos_db_dependencies(container)

        assert container.try_get_instance(CosmosClientProvider) is None
        assert container.try_get_instance(RepositoryOptions) is None

    @pytest.mark.asyncio
    async def test_closes_provider_built_by_the_container(self, repository_options):
        container = add_cosmos_db_dependencies(Container(), repository_options)
        provider = container.resolve(CosmosClientProvider)

        await shutdown_cosmos_db_dependencies(container)

        with pytest.raises(CosmosPersistenceError):
            provider.client


class TestOrdersFlow:
    """Create, read, query, count and delete through resolved services."""

    @pytest.mark.asyncio
    async def test_orders_lifecycle(self, wired_container):
        commands = wired_container.resolve(CosmosCommandHandler)
        queries = wired_container.resolve(CosmosQueryHandler)
        pages = wired_container.resolve(PaginatedCosmosQueryHandler)
        order = {"id": "o1", "pk": "o1", "total": 10}

        await commands.create_item(order, "orders", "o1")

        assert await queries.read_item_by_id("o1", "orders", "o1") == order
        assert await queries.read_items("orders", "SELECT * FROM c") == [order]
        assert await pages.get_item_count("orders", F.total > 5) == 1

        await commands.delete_item("o1", "orders", "o1")

        with pytest.raises(CosmosResourceNotFoundError):
            await queries.read_item_by_id("o1", "orders", "o1")
        assert await pages.get_item_count("orders", F.total > 5) == 0
