"""
Query and command handlers.
"""

from .command import CosmosCommandHandler
from .expressions import ALL_FIELDS, Condition, F, Field, ItemQuery, Projection, select
from .feed import QueryToFeedIterator
from .paginated import PaginatedCosmosQueryHandler
from .query import CosmosQueryHandler, FeedResultReader
from .response import ItemResponse, ResponseCapture

__all__ = [
    # Handlers
    "CosmosQueryHandler",
    "PaginatedCosmosQueryHandler",
    "CosmosCommandHandler",
    "FeedResultReader",
    "QueryToFeedIterator",
    # Query builder
    "F",
    "Field",
    "Condition",
    "Projection",
    "ItemQuery",
    "select",
    "ALL_FIELDS",
    # Responses
    "ItemResponse",
    "ResponseCapture",
]
