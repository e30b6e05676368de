"""
Configuration management for cosmos_persistence.

``RepositoryOptions`` is bound once at process start, either from a parsed
configuration mapping (for example an ``appsettings.json`` document) or from
environment variables, and is shared read-only by every provider.

Example configuration:

    {
        "RepositoryOptions": {
            "EndpointUri": "https://localhost:8081",
            "PrimaryKey": "<key>",
            "DatabaseId": "sales",
            "ConnectionMode": 0,
            "Containers": {
                "orders": {"ContainerName": "orders", "PartitionKey": "/pk"}
            }
        }
    }

The equivalent environment variables are ``RepositoryOptions__EndpointUri``,
``RepositoryOptions__Containers__orders__ContainerName`` and so on.
"""

import os
from collections.abc import Mapping
from enum import IntEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, SecretStr, ValidationError, field_validator

from .constants import ENVIRONMENT_SEPARATOR, PARTITION_KEY_PATH_PREFIX, REPOSITORY_OPTIONS_SECTION
from .exceptions import ConfigurationError, require


class ConnectionMode(IntEnum):
    """How the client talks to the service (0 = gateway, 1 = direct)."""

    GATEWAY = 0
    DIRECT = 1


class ContainerOptions(BaseModel):
    """Name and partition key path of one logical container."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    container_name: str = Field(..., alias="ContainerName", min_length=1)
    partition_key: str = Field(..., alias="PartitionKey", min_length=1)

    @field_validator("partition_key")
    @classmethod
    def _check_partition_key_path(cls, value: str) -> str:
        if not value.startswith(PARTITION_KEY_PATH_PREFIX):
            raise ValueError(
                f"partition key path must start with '{PARTITION_KEY_PATH_PREFIX}', got {value!r}"
            )
        return value


class RepositoryOptions(BaseModel):
    """
    Cosmos DB repository options.

    Attributes:
        endpoint_uri: Account endpoint (``EndpointUri``)
        primary_key: Account key (``PrimaryKey``); when absent the client
            authenticates with ``DefaultAzureCredential``
        database_id: Database holding every configured container (``DatabaseId``)
        connection_mode: Gateway or direct (``ConnectionMode``)
        containers: Container key to ``ContainerOptions`` (``Containers``)
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    endpoint_uri: str | None = Field(None, alias="EndpointUri")
    primary_key: SecretStr | None = Field(None, alias="PrimaryKey")
    database_id: str | None = Field(None, alias="DatabaseId")
    connection_mode: ConnectionMode = Field(ConnectionMode.GATEWAY, alias="ConnectionMode")
    containers: dict[str, ContainerOptions] = Field(default_factory=dict, alias="Containers")

    @field_validator("connection_mode", mode="before")
    @classmethod
    def _parse_connection_mode(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            if value.isdigit():
                return int(value)
            try:
                return ConnectionMode[value.upper()]
            except KeyError:
                raise ValueError(f"unknown connection mode {value!r}") from None
        return value

    @field_validator("containers", mode="before")
    @classmethod
    def _flatten_containers(cls, value: Any) -> Any:
        # Accepts the list-of-dictionaries shape: [{"orders": {...}}, {"customers": {...}}]
        if value is None:
            return {}
        if isinstance(value, list):
            merged: dict[str, Any] = {}
            for entry in value:
                if not isinstance(entry, Mapping):
                    raise ValueError(f"container entry must be a mapping, got {entry!r}")
                for key, container_options in entry.items():
                    if key in merged:
                        raise ValueError(f"container key {key!r} is configured more than once")
                    merged[key] = container_options
            value = merged
        if isinstance(value, Mapping):
            return {
                key: _normalise_keys(options, ContainerOptions)
                if isinstance(options, Mapping)
                else options
                for key, options in value.items()
            }
        return value

    def get_container_options(self, container_key: str) -> ContainerOptions:
        """
        Look up the options configured for a container key.

        Args:
            container_key: Logical container key

        Returns:
            The configured ContainerOptions

        Raises:
            InvalidArgumentError: If container_key is empty
            ConfigurationError: If no container is configured under the key
        """
        require(container_key, "container_key")

        container_options = self.containers.get(container_key)
        if container_options is None:
            raise ConfigurationError(
                f"Container with key: {container_key} not configured in options.",
                config_key=container_key,
            )
        return container_options

    @property
    def primary_key_value(self) -> str | None:
        """The account key in clear text, or None."""
        return self.primary_key.get_secret_value() if self.primary_key else None

    @classmethod
    def from_configuration(
        cls,
        configuration: Mapping[str, Any],
        section: str = REPOSITORY_OPTIONS_SECTION,
    ) -> "RepositoryOptions":
        """
        Bind options from a nested configuration mapping.

        Section and field names are matched case-insensitively.

        Args:
            configuration: Parsed configuration document
            section: Name of the section holding the options

        Raises:
            ConfigurationError: If the section is missing or invalid
        """
        values = _find_key(configuration, section)
        if not isinstance(values, Mapping):
            raise ConfigurationError(
                f"Configuration section '{section}' not found.", config_key=section
            )

        try:
            return cls.model_validate(_normalise_keys(values, cls))
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid '{section}' configuration: {e}", config_key=section
            ) from e

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        prefix: str = REPOSITORY_OPTIONS_SECTION,
    ) -> "RepositoryOptions":
        """
        Bind options from double-underscore environment variables.

        Example:
            RepositoryOptions__EndpointUri=https://localhost:8081
            RepositoryOptions__Containers__orders__ContainerName=orders
            RepositoryOptions__Containers__orders__PartitionKey=/pk

        Args:
            environ: Environment mapping (defaults to os.environ)
            prefix: Variable name prefix

        Raises:
            ConfigurationError: If no variable carries the prefix or the values are invalid
        """
        environ = os.environ if environ is None else environ
        tree: dict[str, Any] = {}

        for name, value in environ.items():
            parts = name.split(ENVIRONMENT_SEPARATOR)
            if len(parts) < 2 or parts[0].lower() != prefix.lower():
                continue
            node = tree
            for part in parts[1:-1]:
                node = node.setdefault(part, {})
                if not isinstance(node, dict):
                    raise ConfigurationError(
                        f"Environment variable {name} conflicts with another setting.",
                        config_key=name,
                    )
            node[parts[-1]] = value

        if not tree:
            raise ConfigurationError(
                f"No environment variables found with prefix '{prefix}{ENVIRONMENT_SEPARATOR}'.",
                config_key=prefix,
            )

        return cls.from_configuration({prefix: tree}, section=prefix)


def _find_key(values: Mapping[str, Any], key: str) -> Any:
    if key in values:
        return values[key]
    for candidate, value in values.items():
        if isinstance(candidate, str) and candidate.lower() == key.lower():
            return value
    return None


def _normalise_keys(values: Mapping[str, Any], model: type[BaseModel]) -> dict[str, Any]:
    """Rewrite keys that match a field alias case-insensitively to the exact alias."""
    aliases = {
        (field.alias or name).lower(): field.alias or name
        for name, field in model.model_fields.items()
    }
    return {
        aliases.get(key.lower(), key) if isinstance(key, str) else key: value
        for key, value in values.items()
    }
