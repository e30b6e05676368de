"""
Constants for cosmos_persistence.

This module contains shared constants used across the codebase to avoid
magic strings and numbers.
"""

from typing import Final

# ============================================================================
# CONFIGURATION CONSTANTS
# ============================================================================

REPOSITORY_OPTIONS_SECTION: Final[str] = "RepositoryOptions"
"""Configuration section (and environment variable prefix) bound to RepositoryOptions."""

ENVIRONMENT_SEPARATOR: Final[str] = "__"
"""Separator between nested keys in environment variable names."""

PARTITION_KEY_PATH_PREFIX: Final[str] = "/"
"""Every partition key path starts with this character."""

# ============================================================================
# QUERY CONSTANTS
# ============================================================================

ITEM_ALIAS: Final[str] = "c"
"""Alias used for the queried item in generated SQL (``SELECT * FROM c``)."""

SELECT_ALL_QUERY: Final[str] = f"SELECT * FROM {ITEM_ALIAS}"
"""Query returning every item in a container."""

PARAMETER_PREFIX: Final[str] = "@p"
"""Prefix for generated query parameter names (``@p0``, ``@p1``...)."""

MIN_PAGE_NUMBER: Final[int] = 1
"""Pages are numbered from one."""

MIN_PAGE_SIZE: Final[int] = 1
"""Smallest page size accepted by the paginated handler."""

# ============================================================================
# RESPONSE HEADER CONSTANTS
# ============================================================================

REQUEST_CHARGE_HEADER: Final[str] = "x-ms-request-charge"
"""Header carrying the request units consumed by an operation."""

ACTIVITY_ID_HEADER: Final[str] = "x-ms-activity-id"
"""Header carrying the service-side activity identifier."""

SESSION_TOKEN_HEADER: Final[str] = "x-ms-session-token"
"""Header carrying the session token of a write."""

# Status codes the service answers a successful write with
STATUS_OK: Final[int] = 200
STATUS_CREATED: Final[int] = 201
STATUS_NO_CONTENT: Final[int] = 204

# ============================================================================
# CLIENT CONSTANTS
# ============================================================================

USER_AGENT_SUFFIX: Final[str] = "cosmos-persistence"
"""Appended to the SDK user agent so requests can be attributed to this library."""

# ============================================================================
# LOG MESSAGES
# ============================================================================

CONTAINER_ERROR_MESSAGE: Final[str] = "An error has occurred retrieving the container specified."
"""Logged when a container key cannot be turned into a container."""

COSMOS_CONTAINER_ERROR_MESSAGE: Final[str] = (
    "A Cosmos DB error has occurred retrieving the container specified."
)
"""Logged when the service rejects database or container provisioning."""
