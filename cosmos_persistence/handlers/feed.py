"""
Conversion of a built ``ItemQuery`` into the SDK's paged iterator.
"""

import logging
from collections.abc import Callable, Mapping
from typing import Any

from azure.cosmos.aio import ContainerProxy

from ..exceptions import require
from .expressions import ItemQuery

logger = logging.getLogger(__name__)


class QueryToFeedIterator:
    """
    Turns an ``ItemQuery`` into an ``AsyncItemPaged`` over the container.

    Registered as its own singleton so tests can substitute an in-memory
    implementation; the handlers never call ``query_items`` for expression
    queries directly.
    """

    def get_feed_iterator(
        self,
        container: ContainerProxy,
        item_query: ItemQuery,
        response_hook: Callable[[Mapping[str, Any], Any], None] | None = None,
    ):
        require(container, "container")
        require(item_query, "item_query")
        query, parameters = item_query.to_query()
        logger.debug("Converted expression query: %s", query)

        kwargs: dict[str, Any] = {"query": query, "parameters": parameters}
        if response_hook is not None:
            kwargs["response_hook"] = response_hook
        return container.query_items(**kwargs)
