"""
Client and container providers.
"""

from .client import CosmosClientProvider
from .container import CosmosContainerProvider

__all__ = [
    "CosmosClientProvider",
    "CosmosContainerProvider",
]
