"""
Query handler: point reads, SQL queries and expression queries.

Every query drains the SDK's paged iterator page by page and returns a
list in the order the service produced it.
"""

import logging
from collections.abc import Sequence
from typing import Any, TypeVar

from azure.cosmos.aio import ContainerProxy
from azure.cosmos.exceptions import CosmosResourceNotFoundError

from ..exceptions import require
from ..items import PartitionKeyValue, from_document
from ..observability import track_operation
from ..providers import CosmosContainerProvider
from .expressions import Condition, Field, ItemQuery, Projection
from .feed import QueryToFeedIterator
from .response import ResponseCapture

logger = logging.getLogger(__name__)

T = TypeVar("T")


class FeedResultReader:
    """Shared drain loop for ``AsyncItemPaged`` feeds."""

    async def read_feed(self, feed: Any, item_type: type[T] | None = None) -> list[T | Any]:
        """
        Fetch every page of ``feed`` and concatenate the items.

        Cancelling the awaiting task stops the loop at the next page fetch.
        """
        require(feed, "feed")
        results: list[Any] = []
        pages = 0
        async for page in feed.by_page():
            pages += 1
            async for document in page:
                results.append(from_document(document, item_type))
        logger.debug("Drained feed: %d item(s) over %d page(s)", len(results), pages)
        return results


class CosmosQueryHandler(FeedResultReader):
    """
    Read operations against configured containers.

    Usage:
        order = await handler.read_item_by_id("o-1", "orders", "customer-7")
        open_orders = await handler.read_items(
            "orders",
            "SELECT * FROM c WHERE c.status = @status",
            [{"name": "@status", "value": "open"}],
        )
        totals = await handler.read_items_by_expression(
            "orders", select("id", "total"), F.total > 100
        )
    """

    def __init__(
        self, container_provider: CosmosContainerProvider, feed_converter: QueryToFeedIterator
    ) -> None:
        require(container_provider, "container_provider")
        require(feed_converter, "feed_converter")
        self._container_provider = container_provider
        self._feed_converter = feed_converter

    async def read_item_by_id(
        self,
        id: str,
        container_key: str,
        partition_key_value: "str | PartitionKeyValue",
        item_type: type[T] | None = None,
    ) -> T | Any:
        """
        Point read of one item.

        Raises:
            InvalidArgumentError: If id, container_key or partition_key_value is empty
            CosmosResourceNotFoundError: If no item has this id in this partition
        """
        require(id, "id")
        require(container_key, "container_key")
        partition_key = PartitionKeyValue.of(partition_key_value, "partition_key_value")

        container = await self._container_provider.get_container(container_key)
        capture = ResponseCapture()
        with track_operation("query.read_item_by_id", capture, container_key=container_key):
            document = await container.read_item(
                item=id, partition_key=partition_key.to_sdk(), response_hook=capture
            )
        return from_document(document, item_type)

    async def find_item_by_id(
        self,
        id: str,
        container_key: str,
        partition_key_value: "str | PartitionKeyValue",
        item_type: type[T] | None = None,
    ) -> T | Any | None:
        """Like ``read_item_by_id`` but returns None when the item does not exist."""
        try:
            return await self.read_item_by_id(id, container_key, partition_key_value, item_type)
        except CosmosResourceNotFoundError:
            logger.debug("Item %s not found in container %s", id, container_key)
            return None

    async def read_items(
        self,
        container_key: str,
        query: str,
        parameters: list[dict[str, Any]] | None = None,
        item_type: type[T] | None = None,
    ) -> list[T | Any]:
        """
        Run a SQL query and return every result.

        Args:
            container_key: Logical container key
            query: Cosmos SQL text
            parameters: Optional ``[{"name": "@x", "value": ...}]`` list
            item_type: Optional type each document is converted to
        """
        require(container_key, "container_key")
        require(query, "query")

        container = await self._container_provider.get_container(container_key)
        capture = ResponseCapture()
        kwargs: dict[str, Any] = {"query": query, "response_hook": capture}
        if parameters:
            kwargs["parameters"] = parameters

        with track_operation("query.read_items", capture, container_key=container_key):
            feed = container.query_items(**kwargs)
            return await self.read_feed(feed, item_type)

    async def read_items_by_expression(
        self,
        container_key: str,
        selector: "Projection | Sequence[Field | str]",
        predicate: Condition,
        item_type: type[T] | None = None,
    ) -> list[T | Any]:
        """
        Filter by ``predicate`` then project with ``selector``, on the service.

        ``selector`` is a ``Projection``; ``select()`` returns whole items.
        """
        require(container_key, "container_key")
        require(selector, "selector")
        require(predicate, "predicate")
        item_query = ItemQuery(predicate=predicate, selector=selector)
        return await self.read_query(
            container_key, item_query, item_type, operation="query.read_items_by_expression"
        )

    async def read_query(
        self,
        container_key: str,
        item_query: ItemQuery,
        item_type: type[T] | None = None,
        operation: str = "query.read_query",
    ) -> list[T | Any]:
        """Run a prebuilt ``ItemQuery`` against a configured container."""
        require(container_key, "container_key")
        require(item_query, "item_query")

        container = await self._container_provider.get_container(container_key)
        return await self.query_container(
            container, item_query, item_type, operation=operation, container_key=container_key
        )

    async def query_container(
        self,
        container: ContainerProxy,
        item_query: ItemQuery,
        item_type: type[T] | None = None,
        operation: str = "query.read_query",
        **tags: Any,
    ) -> list[T | Any]:
        """
        Run a prebuilt ``ItemQuery`` against an already resolved container.

        ``tags`` are attached to the recorded metrics.
        """
        require(container, "container")
        require(item_query, "item_query")

        capture = ResponseCapture()
        with track_operation(operation, capture, **tags):
            feed = self._feed_converter.get_feed_iterator(
                container, item_query, response_hook=capture
            )
            return await self.read_feed(feed, item_type)
