"""
Service providers.

A provider knows how to build one registered service. Lifetime handling
(build once and share, or build on every resolve) lives in the base class;
subclasses only say how an instance is made.
"""

import inspect
import logging
import threading
import typing
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from .scopes import Scope

if TYPE_CHECKING:
    from .container import Container

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Parameters annotated with these are configuration values, never services
_VALUE_TYPES = (str, int, float, bool, bytes, type(None))


def service_name(service_type: Any) -> str:
    return getattr(service_type, "__name__", repr(service_type))


def inject(implementation: Callable[..., T], container: "Container") -> T:
    """
    Call ``implementation`` with every annotated parameter resolved from
    ``container``.

    Parameters that are unannotated, annotated with a value type, or
    unregistered but defaulted are left to the callee.

    Raises:
        KeyError: If a required dependency is not registered
    """
    target = implementation.__init__ if inspect.isclass(implementation) else implementation
    try:
        hints = typing.get_type_hints(target)
    except (NameError, TypeError):
        hints = {}

    arguments: dict[str, Any] = {}
    for name, parameter in inspect.signature(implementation).parameters.items():
        if parameter.kind in (parameter.VAR_POSITIONAL, parameter.VAR_KEYWORD):
            continue
        dependency = hints.get(name, parameter.annotation)
        if dependency is parameter.empty or dependency in _VALUE_TYPES:
            continue
        if container.is_registered(dependency):
            arguments[name] = container.resolve(dependency)
        elif parameter.default is parameter.empty:
            raise KeyError(
                f"Cannot build {service_name(implementation)}: dependency "
                f"'{name}' of type {service_name(dependency)} is not registered."
            )
    return implementation(**arguments)


class Provider(ABC, Generic[T]):
    """
    Builds instances of one service and applies its lifetime.

    Singletons are built lazily on first ``get`` under a lock, so concurrent
    first use yields exactly one instance.
    """

    def __init__(self, service_type: type[T], scope: Scope):
        self.service_type = service_type
        self.scope = scope
        self._instance: T | None = None
        self._lock = threading.RLock()

    @abstractmethod
    def create(self, container: "Container") -> T:
        """Build a fresh instance."""

    def get(self, container: "Container") -> T:
        if self.scope is Scope.TRANSIENT:
            return self.create(container)
        if self._instance is None:
            with self._lock:
                if self._instance is None:
                    self._instance = self.create(container)
                    logger.debug("Built singleton %s", service_name(self.service_type))
        return self._instance

    @property
    def cached_instance(self) -> T | None:
        """The instance already built by ``get``, or None. Never builds one."""
        return self._instance

    def reset(self) -> None:
        """Forget the cached singleton."""
        self._instance = None


class ConstructorProvider(Provider[T]):
    """Builds ``implementation`` by constructor injection."""

    def __init__(self, service_type: type[T], implementation: type[T], scope: Scope):
        super().__init__(service_type, scope)
        self.implementation = implementation

    def create(self, container: "Container") -> T:
        return inject(self.implementation, container)


class FactoryProvider(Provider[T]):
    """
    Builds instances with a ``factory(container)`` callable.

    Usage:
        container.register_factory(RepositoryOptions, lambda c: RepositoryOptions.from_env())
    """

    def __init__(
        self, service_type: type[T], factory: Callable[["Container"], T], scope: Scope
    ):
        super().__init__(service_type, scope)
        self.factory = factory

    def create(self, container: "Container") -> T:
        return self.factory(container)


class InstanceProvider(Provider[T]):
    """Hands out an instance built outside the container."""

    def __init__(self, service_type: type[T], instance: T):
        super().__init__(service_type, Scope.SINGLETON)
        self._instance = instance

    def create(self, container: "Container") -> T:
        return self._instance

    def reset(self) -> None:
        # Externally owned; nothing to rebuild
        pass


__all__ = [
    "Provider",
    "ConstructorProvider",
    "FactoryProvider",
    "InstanceProvider",
    "inject",
]
