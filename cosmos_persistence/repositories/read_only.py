"""
Cosmos DB implementation of ReadOnlyRepository.
"""

from typing import Any, TypeVar

from ..handlers import CosmosQueryHandler
from .base import ReadOnlyRepository

T = TypeVar("T")


class CosmosReadOnlyRepository(ReadOnlyRepository):
    """Delegates every read to ``CosmosQueryHandler``."""

    def __init__(self, query_handler: CosmosQueryHandler) -> None:
        self._query_handler = query_handler

    async def get_item_by_id(
        self,
        id: str,
        container_key: str,
        partition_key: str | None = None,
        item_type: type[T] | None = None,
    ) -> T | Any:
        return await self._query_handler.read_item_by_id(
            id, container_key, partition_key if partition_key is not None else id, item_type
        )

    async def get_all_items_by_query(
        self,
        query: str,
        container_key: str,
        item_type: type[T] | None = None,
    ) -> list[T | Any]:
        return await self._query_handler.read_items(container_key, query, item_type=item_type)
