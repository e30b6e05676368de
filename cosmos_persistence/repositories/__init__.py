"""
Repository façade over the query handler.
"""

from .base import ReadOnlyRepository
from .read_only import CosmosReadOnlyRepository

__all__ = [
    "ReadOnlyRepository",
    "CosmosReadOnlyRepository",
]
