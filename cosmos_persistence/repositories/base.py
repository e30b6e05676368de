"""
Read-only repository interface.

Domain services depend on this interface rather than on the query handler,
so they can be tested against an in-memory implementation.
"""

from abc import ABC, abstractmethod
from typing import Any, TypeVar

T = TypeVar("T")


class ReadOnlyRepository(ABC):
    """
    Read access to items in configured containers.

    Example:
        class OrderService:
            def __init__(self, repository: ReadOnlyRepository):
                self._repository = repository

            async def get(self, order_id: str) -> Order:
                return await self._repository.get_item_by_id(
                    order_id, "orders", item_type=Order
                )
    """

    @abstractmethod
    async def get_item_by_id(
        self,
        id: str,
        container_key: str,
        partition_key: str | None = None,
        item_type: type[T] | None = None,
    ) -> T | Any:
        """
        Get one item by id.

        Args:
            id: Item id
            container_key: Logical container key
            partition_key: Partition key value, defaults to the id
            item_type: Optional type the document is converted to

        Raises:
            CosmosResourceNotFoundError: If the item does not exist
        """
        pass

    @abstractmethod
    async def get_all_items_by_query(
        self,
        query: str,
        container_key: str,
        item_type: type[T] | None = None,
    ) -> list[T | Any]:
        """
        Get every item returned by a SQL query.
        """
        pass
