"""
Paginated query handler.

Pages are 1-based. Skip and take are pushed into the SQL as
``OFFSET (page_number - 1) * page_size LIMIT page_size`` so only the
requested page crosses the wire.
"""

import logging
from collections.abc import Sequence
from typing import Any, TypeVar

from ..constants import MIN_PAGE_NUMBER, MIN_PAGE_SIZE
from ..exceptions import InvalidArgumentError, ItemCountError, require
from ..providers import CosmosContainerProvider
from .expressions import Condition, Field, ItemQuery, Projection
from .query import CosmosQueryHandler

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PaginatedCosmosQueryHandler:
    """
    Skip/take pagination and counting over expression queries.

    Usage:
        page = await handler.read_paginated_items(
            "orders", select(), F.status == "open", page_number=2, page_size=25
        )
        total = await handler.get_item_count("orders", F.status == "open")
    """

    def __init__(
        self, container_provider: CosmosContainerProvider, query_handler: CosmosQueryHandler
    ) -> None:
        require(container_provider, "container_provider")
        require(query_handler, "query_handler")
        self._container_provider = container_provider
        self._query_handler = query_handler

    async def read_paginated_items(
        self,
        container_key: str,
        selector: "Projection | Sequence[Field | str]",
        predicate: Condition,
        page_number: int,
        page_size: int,
        item_type: type[T] | None = None,
    ) -> list[T | Any]:
        """
        Return one page of projected items matching ``predicate``.

        Raises:
            InvalidArgumentError: If page_number or page_size is below 1, or an
                argument is missing
        """
        require(container_key, "container_key")
        require(selector, "selector")
        require(predicate, "predicate")
        _check_positive(page_number, "page_number", MIN_PAGE_NUMBER)
        _check_positive(page_size, "page_size", MIN_PAGE_SIZE)

        item_query = (
            ItemQuery(predicate=predicate, selector=selector)
            .skip((page_number - 1) * page_size)
            .take(page_size)
        )
        container = await self._container_provider.get_container(container_key)
        return await self._query_handler.query_container(
            container,
            item_query,
            item_type,
            operation="query.read_paginated_items",
            container_key=container_key,
        )

    async def get_item_count(self, container_key: str, predicate: Condition) -> int:
        """
        Count the items matching ``predicate``.

        Raises:
            CosmosHttpResponseError: If the service rejects the count query
            ItemCountError: If the response is not a single integer
        """
        require(container_key, "container_key")
        require(predicate, "predicate")

        container = await self._container_provider.get_container(container_key)
        results = await self._query_handler.query_container(
            container,
            ItemQuery(predicate=predicate).count(),
            operation="query.get_item_count",
            container_key=container_key,
        )

        if len(results) != 1 or isinstance(results[0], bool) or not isinstance(results[0], int):
            raise ItemCountError(results)
        logger.debug("Counted %d item(s) in container %s", results[0], container_key)
        return results[0]


def _check_positive(value: Any, parameter: str, minimum: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
        raise InvalidArgumentError(
            parameter, f"Argument '{parameter}' must be an integer >= {minimum}, got {value!r}."
        )
