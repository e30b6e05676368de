"""
Dependency injection.

Usage:
    from cosmos_persistence.di import Container, Scope

    container = Container()
    container.register_instance(RepositoryOptions, options)
    container.register(CosmosClientProvider, scope=Scope.SINGLETON)

    provider = container.resolve(CosmosClientProvider)
"""

from .container import Container
from .providers import (ConstructorProvider, FactoryProvider, InstanceProvider, Provider,
                        inject)
from .scopes import Scope

__all__ = [
    "Container",
    "Scope",
    "Provider",
    "ConstructorProvider",
    "FactoryProvider",
    "InstanceProvider",
    "inject",
]
