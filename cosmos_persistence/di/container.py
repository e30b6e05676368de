"""
Service container used by the composition root.

Services are keyed by type. Each registration is a provider from
``providers.py``; the container only stores, replaces and looks them up.
"""

import logging
import threading
from collections.abc import Callable
from typing import Any, TypeVar

from .providers import (ConstructorProvider, FactoryProvider, InstanceProvider, Provider,
                        service_name)
from .scopes import Scope

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Container:
    """
    Type-keyed service registry with constructor injection.

    Usage:
        container = Container()
        container.register_instance(RepositoryOptions, options)
        container.register(CosmosClientProvider)
        container.register(ReadOnlyRepository, CosmosReadOnlyRepository)
        container.register_factory(QueryToFeedIterator, lambda c: InMemoryFeedIterator())

        repository = container.resolve(ReadOnlyRepository)

    Registrations default to ``Scope.SINGLETON``. ``try_register`` leaves an
    existing registration in place, which is how applications and tests
    substitute their own implementations before the defaults are added.
    """

    def __init__(self):
        self._providers: dict[Any, Provider] = {}
        self._lock = threading.Lock()

    def _add(self, provider: Provider, replace: bool = True) -> "Container":
        with self._lock:
            if not replace and provider.service_type in self._providers:
                logger.debug(
                    "%s already registered, keeping existing",
                    service_name(provider.service_type),
                )
                return self
            self._providers[provider.service_type] = provider
        logger.debug(
            "Registered %s (%s, %s)",
            service_name(provider.service_type),
            type(provider).__name__,
            provider.scope.value,
        )
        return self

    def register(
        self,
        service_type: type[T],
        implementation: type[T] | None = None,
        scope: Scope = Scope.SINGLETON,
    ) -> "Container":
        """
        Register ``implementation`` (default: ``service_type`` itself),
        built by constructor injection. Replaces any earlier registration.
        """
        return self._add(ConstructorProvider(service_type, implementation or service_type, scope))

    def try_register(
        self,
        service_type: type[T],
        implementation: type[T] | None = None,
        scope: Scope = Scope.SINGLETON,
    ) -> "Container":
        """Like ``register`` but keeps an existing registration."""
        return self._add(
            ConstructorProvider(service_type, implementation or service_type, scope),
            replace=False,
        )

    def register_factory(
        self,
        service_type: type[T],
        factory: Callable[["Container"], T],
        scope: Scope = Scope.SINGLETON,
    ) -> "Container":
        """Register ``factory(container)`` as the way to build ``service_type``."""
        return self._add(FactoryProvider(service_type, factory, scope))

    def register_instance(self, service_type: type[T], instance: T) -> "Container":
        """Register an already built instance."""
        return self._add(InstanceProvider(service_type, instance))

    def resolve(self, service_type: type[T]) -> T:
        """
        Return the instance for ``service_type``.

        Raises:
            KeyError: If the service, or one of its required dependencies,
                is not registered
        """
        provider = self._providers.get(service_type)
        if provider is None:
            raise KeyError(f"Service {service_name(service_type)} is not registered.")
        return provider.get(self)

    def try_resolve(self, service_type: type[T]) -> T | None:
        """Return the instance, or None when ``service_type`` is not registered."""
        if service_type not in self._providers:
            return None
        return self.resolve(service_type)

    def try_get_instance(self, service_type: type[T]) -> T | None:
        """
        Return the singleton already built for ``service_type``, or None.

        Unlike ``try_resolve`` this never builds the service or its
        dependencies; transient services always give None.
        """
        provider = self._providers.get(service_type)
        return provider.cached_instance if provider is not None else None

    def is_registered(self, service_type: Any) -> bool:
        return service_type in self._providers

    def reset(self) -> None:
        """Drop every registration and cached singleton."""
        with self._lock:
            for provider in self._providers.values():
                provider.reset()
            self._providers.clear()

    def __contains__(self, service_type: Any) -> bool:
        return self.is_registered(service_type)
