"""
Unit tests for CosmosContainerProvider.

Tests container key resolution, provisioning calls and the logging of
failures at the resolution boundary.
"""

import logging
from unittest.mock import AsyncMock

import pytest
from azure.cosmos import PartitionKey
from azure.cosmos.exceptions import CosmosHttpResponseError

from cosmos_persistence.config import RepositoryOptions
from cosmos_persistence.exceptions import ConfigurationError, InvalidArgumentError
from cosmos_persistence.observability import get_metrics_collector
from cosmos_persistence.providers import CosmosContainerProvider


class TestContainerProviderConstruction:
    """Test constructor validation."""

    def test_requires_options(self, mock_client_provider):
        with pytest.raises(InvalidArgumentError) as exc_info:
            CosmosContainerProvider(None, mock_client_provider)
        assert exc_info.value.parameter == "options"

    def test_requires_client_provider(self, repository_options):
        with pytest.raises(InvalidArgumentError) as exc_info:
            CosmosContainerProvider(repository_options, None)
        assert exc_info.value.parameter == "client_provider"


class TestGetContainer:
    """Test container resolution."""

    @pytest.mark.asyncio
    async def test_resolves_configured_container(
        self, container_provider, orders_container, mock_cosmos_client, mock_database
    ):
        container = await container_provider.get_container("orders")

        assert container is orders_container
        mock_cosmos_client.create_database_if_not_exists.assert_awaited_once_with(id="test-db")
        mock_database.create_container_if_not_exists.assert_awaited_once()
        kwargs = mock_database.create_container_if_not_exists.await_args.kwargs
        assert kwargs["id"] == "orders"
        assert isinstance(kwargs["partition_key"], PartitionKey)
        assert kwargs["partition_key"]["paths"] == ["/pk"]

    @pytest.mark.asyncio
    async def test_no_caching_between_calls(self, container_provider, mock_cosmos_client):
        await container_provider.get_container("orders")
        await container_provider.get_container("orders")
        assert mock_cosmos_client.create_database_if_not_exists.await_count == 2

    @pytest.mark.asyncio
    async def test_unknown_key_raises_configuration_error(
        self, container_provider, mock_client_provider
    ):
        with pytest.raises(ConfigurationError) as exc_info:
            await container_provider.get_container("invoices")
        assert exc_info.value.config_key == "invoices"
        mock_client_provider.invoke.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("container_key", ["", None])
    async def test_empty_key_rejected(self, container_provider, container_key):
        with pytest.raises(InvalidArgumentError):
            await container_provider.get_container(container_key)

    @pytest.mark.asyncio
    async def test_missing_database_id(self, repository_configuration, mock_client_provider):
        del repository_configuration["RepositoryOptions"]["DatabaseId"]
        options = RepositoryOptions.from_configuration(repository_configuration)
        provider = CosmosContainerProvider(options, mock_client_provider)

        with pytest.raises(ConfigurationError) as exc_info:
            await provider.get_container("orders")
        assert exc_info.value.config_key == "DatabaseId"

    @pytest.mark.asyncio
    async def test_service_error_logged_and_rethrown(
        self, container_provider, mock_database, caplog
    ):
        error = CosmosHttpResponseError(status_code=503, message="Service unavailable")
        mock_database.create_container_if_not_exists = AsyncMock(side_effect=error)

        with caplog.at_level(logging.ERROR, logger="cosmos_persistence.providers.container"):
            with pytest.raises(CosmosHttpResponseError) as exc_info:
                await container_provider.get_container("orders")

        assert exc_info.value is error
        assert "A Cosmos DB error has occurred retrieving the container specified." in caplog.text

    @pytest.mark.asyncio
    async def test_unexpected_error_logged_with_distinct_message(
        self, container_provider, mock_cosmos_client, caplog
    ):
        error = RuntimeError("boom")
        mock_cosmos_client.create_database_if_not_exists = AsyncMock(side_effect=error)

        with caplog.at_level(logging.ERROR, logger="cosmos_persistence.providers.container"):
            with pytest.raises(RuntimeError) as exc_info:
                await container_provider.get_container("orders")

        assert exc_info.value is error
        assert "An error has occurred retrieving the container specified." in caplog.text
        assert "A Cosmos DB error" not in caplog.text

    @pytest.mark.asyncio
    async def test_records_resolution_metrics(self, container_provider):
        await container_provider.get_container("orders")
        with pytest.raises(ConfigurationError):
            await container_provider.get_container("invoices")

        metrics = get_metrics_collector().get_metrics("container.resolve")["metrics"]
        assert metrics["container.resolve[container_key=orders]"]["error_count"] == 0
        assert metrics["container.resolve[container_key=invoices]"]["error_count"] == 1
