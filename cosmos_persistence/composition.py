"""
Composition root.

Registers the Cosmos DB services in a DI ``Container`` and binds
``RepositoryOptions`` once.

Usage:
    from cosmos_persistence import Container, add_cosmos_db_dependencies

    container = Container()
    add_cosmos_db_dependencies(container, configuration=settings)

    handler = container.resolve(CosmosQueryHandler)
    ...
    await shutdown_cosmos_db_dependencies(container)
"""

import logging
from collections.abc import Mapping
from typing import Any

from .config import RepositoryOptions
from .constants import REPOSITORY_OPTIONS_SECTION
from .di import Container, Scope
from .exceptions import require
from .handlers import (
    CosmosCommandHandler,
    CosmosQueryHandler,
    PaginatedCosmosQueryHandler,
    QueryToFeedIterator,
)
from .providers import CosmosClientProvider, CosmosContainerProvider
from .repositories import CosmosReadOnlyRepository, ReadOnlyRepository

logger = logging.getLogger(__name__)


def add_cosmos_db_dependencies(
    container: Container,
    configuration: RepositoryOptions | Mapping[str, Any] | None = None,
) -> Container:
    """
    Register providers, handlers and the read-only repository as singletons.

    Services already registered on ``container`` are kept, so tests and
    applications can substitute their own implementations beforehand.

    Args:
        container: DI container to populate
        configuration: ``RepositoryOptions`` instance, a configuration mapping
            holding a ``RepositoryOptions`` section, or None to bind from
            environment variables

    Returns:
        The same container, for chaining

    Raises:
        InvalidArgumentError: If container is None
    """
    require(container, "container")

    if container.is_registered(RepositoryOptions):
        logger.debug("RepositoryOptions already bound, keeping existing binding")
    elif isinstance(configuration, RepositoryOptions):
        container.register_instance(RepositoryOptions, configuration)
    else:
        # Bound on first resolve and cached for the container's lifetime
        container.register_factory(
            RepositoryOptions, lambda _: _bind_options(configuration), Scope.SINGLETON
        )

    (
        container.try_register(CosmosClientProvider)
        .try_register(CosmosContainerProvider)
        .try_register(QueryToFeedIterator)
        .try_register(CosmosQueryHandler)
        .try_register(PaginatedCosmosQueryHandler)
        .try_register(CosmosCommandHandler)
        .try_register(ReadOnlyRepository, CosmosReadOnlyRepository)
    )

    logger.info("Cosmos DB dependencies registered")
    return container


async def shutdown_cosmos_db_dependencies(container: Container) -> None:
    """
    Close the shared Cosmos client held by ``container``.

    Only a client provider that has already been built is closed; shutting
    down a container whose services were never used builds nothing.
    """
    require(container, "container")
    client_provider = container.try_get_instance(CosmosClientProvider)
    if client_provider is not None:
        await client_provider.close()


def _bind_options(configuration: Mapping[str, Any] | None) -> RepositoryOptions:
    if configuration is None:
        return RepositoryOptions.from_env()
    return RepositoryOptions.from_configuration(configuration, section=REPOSITORY_OPTIONS_SECTION)
