"""
cosmos_persistence - Azure Cosmos DB persistence layer

Dependency-injected handlers for point reads, SQL and expression queries,
pagination and item commands against containers addressed by configuration
keys.
"""

# Composition root
from .composition import add_cosmos_db_dependencies, shutdown_cosmos_db_dependencies
# Configuration
from .config import ConnectionMode, ContainerOptions, RepositoryOptions
# Dependency injection
from .di import Container, Scope
# Errors
from .exceptions import (ConfigurationError, CosmosPersistenceError,
                         InvalidArgumentError, ItemCountError)
# Handlers and query builder
from .handlers import (ALL_FIELDS, CosmosCommandHandler, CosmosQueryHandler, F,
                       Field, ItemQuery, ItemResponse,
                       PaginatedCosmosQueryHandler, QueryToFeedIterator, select)
# Items
from .items import Entity, PartitionKeyValue, Record
# Providers
from .providers import CosmosClientProvider, CosmosContainerProvider
# Repositories
from .repositories import CosmosReadOnlyRepository, ReadOnlyRepository

__version__ = "0.1.0"

__all__ = [
    # Composition
    "add_cosmos_db_dependencies",
    "shutdown_cosmos_db_dependencies",
    "Container",
    "Scope",
    # Configuration
    "RepositoryOptions",
    "ContainerOptions",
    "ConnectionMode",
    # Providers
    "CosmosClientProvider",
    "CosmosContainerProvider",
    # Handlers
    "CosmosQueryHandler",
    "PaginatedCosmosQueryHandler",
    "CosmosCommandHandler",
    "QueryToFeedIterator",
    "ItemResponse",
    # Query builder
    "F",
    "Field",
    "ItemQuery",
    "select",
    "ALL_FIELDS",
    # Repositories
    "ReadOnlyRepository",
    "CosmosReadOnlyRepository",
    # Items
    "Entity",
    "Record",
    "PartitionKeyValue",
    # Errors
    "CosmosPersistenceError",
    "ConfigurationError",
    "InvalidArgumentError",
    "ItemCountError",
]
