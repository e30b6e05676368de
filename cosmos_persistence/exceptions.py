"""
Custom exceptions for cosmos_persistence.

Only errors raised by this library live here. Failures reported by the
Cosmos DB service (``azure.cosmos.exceptions.CosmosHttpResponseError`` and its
subclasses) are never translated into these types; they reach the caller
unmodified.
"""

from typing import Any, Dict, Optional


class CosmosPersistenceError(RuntimeError):
    """
    Base exception for cosmos_persistence errors.

    Attributes:
        message: Error message
        context: Optional dictionary with additional context (container_key,
                 parameter, etc.)
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        """
        Initialize the exception.

        Args:
            message: Error message
            context: Optional dictionary with additional context information
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        """Return formatted error message with context if available."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} (context: {context_str})"
        return self.message


class ConfigurationError(CosmosPersistenceError):
    """
    Raised when repository configuration is invalid or missing.

    Typical causes are a container key that has no entry under
    ``RepositoryOptions.Containers``, a missing configuration section or
    an endpoint that was never configured.

    Attributes:
        message: Error message
        config_key: Configuration key that caused the error (if available)
        config_value: Configuration value that caused the error (if available)
        context: Additional context information
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if config_key:
            context["config_key"] = config_key
        if config_value is not None:
            context["config_value"] = config_value
        super().__init__(message, context=context)
        self.config_key = config_key
        self.config_value = config_value


class InvalidArgumentError(CosmosPersistenceError, ValueError):
    """
    Raised when a required argument is missing, empty or out of range.

    Always raised before any network call is made.

    Attributes:
        message: Error message
        parameter: Name of the offending parameter
    """

    def __init__(
        self,
        parameter: str,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        context["parameter"] = parameter
        super().__init__(message or f"Argument '{parameter}' must not be null or empty.", context)
        self.parameter = parameter


class ItemCountError(CosmosPersistenceError):
    """
    Raised when a count query does not produce a single integer result.

    Attributes:
        message: Error message
        observed: What the service returned instead
    """

    def __init__(self, observed: Any, context: Optional[Dict[str, Any]] = None) -> None:
        context = context or {}
        context["observed"] = observed
        super().__init__(f"Unable to determine item count, observed: {observed!r}.", context)
        self.observed = observed


def require(value: Any, parameter: str) -> None:
    """
    Raise InvalidArgumentError if ``value`` is None or an empty string.

    Args:
        value: Argument value to check
        parameter: Parameter name reported in the error
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise InvalidArgumentError(parameter)
