"""
Cosmos DB container provider.

Resolves a logical container key to a live ``ContainerProxy``, creating the
database and the container when they do not exist yet. Nothing is cached
here: every call goes through ``create_database_if_not_exists`` and
``create_container_if_not_exists``, which are cheap no-ops once the
resources exist.
"""

import logging
import time

from azure.cosmos import PartitionKey
from azure.cosmos.aio import ContainerProxy
from azure.cosmos.exceptions import CosmosHttpResponseError

from ..config import RepositoryOptions
from ..constants import CONTAINER_ERROR_MESSAGE, COSMOS_CONTAINER_ERROR_MESSAGE
from ..exceptions import ConfigurationError, require
from ..observability import container_context, get_logger, record_operation
from .client import CosmosClientProvider

logger = logging.getLogger(__name__)
contextual_logger = get_logger(__name__)


class CosmosContainerProvider:
    """
    Maps container keys from RepositoryOptions to provisioned containers.

    Example:
        provider = CosmosContainerProvider(options, client_provider)
        orders = await provider.get_container("orders")
    """

    def __init__(self, options: RepositoryOptions, client_provider: CosmosClientProvider) -> None:
        require(options, "options")
        require(client_provider, "client_provider")
        self._options = options
        self._client_provider = client_provider

    async def get_container(self, container_key: str) -> ContainerProxy:
        """
        Resolve a container key, provisioning database and container as needed.

        Args:
            container_key: Logical container key configured under Containers

        Returns:
            ContainerProxy for the configured container

        Raises:
            ConfigurationError: If the key or the database id is not configured
            CosmosHttpResponseError: Propagated unmodified from the service
        """
        start_time = time.time()
        success = False
        try:
            container_options = self._options.get_container_options(container_key)
            database_id = self._options.database_id
            if not database_id:
                raise ConfigurationError("DatabaseId is not configured.", config_key="DatabaseId")

            with container_context(container_key, database_id=database_id):
                database = await self._client_provider.invoke(
                    lambda client: client.create_database_if_not_exists(id=database_id)
                )
                container = await database.create_container_if_not_exists(
                    id=container_options.container_name,
                    partition_key=PartitionKey(path=container_options.partition_key),
                )
                contextual_logger.debug(
                    "Container resolved",
                    extra={"container_name": container_options.container_name},
                )
            success = True
            return container
        except CosmosHttpResponseError:
            logger.exception(COSMOS_CONTAINER_ERROR_MESSAGE)
            raise
        except Exception:
            logger.exception(CONTAINER_ERROR_MESSAGE)
            raise
        finally:
            duration_ms = (time.time() - start_time) * 1000
            record_operation(
                "container.resolve", duration_ms, success=success, container_key=container_key
            )
