"""
Command handler: create, upsert, replace and delete.

Items may be plain mappings or typed records (``Entity`` subclasses,
pydantic models, dataclasses). Typed inputs come back as the same type.

The SDK takes the partition of a written document from its body, so the
partition key passed to create/upsert/replace is checked against the value
at the container's configured partition-key path before anything is sent.

Every command accepts ``return_response=True`` to get an ``ItemResponse``
(status code, request charge, activity id, session token) instead of the
bare item.
"""

import logging
from collections.abc import Iterable, Mapping
from typing import Any, TypeVar

from ..config import ContainerOptions, RepositoryOptions
from ..constants import CONTAINER_ERROR_MESSAGE, STATUS_CREATED, STATUS_NO_CONTENT, STATUS_OK
from ..exceptions import ConfigurationError, InvalidArgumentError, require
from ..items import PartitionKeyValue, from_document, get_path_value, to_document
from ..observability import get_logger, track_operation
from ..providers import CosmosContainerProvider
from .response import ItemResponse, ResponseCapture

logger = logging.getLogger(__name__)
contextual_logger = get_logger(__name__)

T = TypeVar("T")


class CosmosCommandHandler:
    """
    Write operations against configured containers.

    Usage:
        handler = CosmosCommandHandler(options, container_provider)
        stored = await handler.create_item(
            {"id": "o-1", "pk": "customer-7", "total": 10}, "orders", "customer-7"
        )
        await handler.delete_item("o-1", "orders", "customer-7")
    """

    def __init__(
        self, options: RepositoryOptions, container_provider: CosmosContainerProvider
    ) -> None:
        require(options, "options")
        require(container_provider, "container_provider")
        self._options = options
        self._container_provider = container_provider

    async def create_item(
        self,
        item: T,
        container_key: str,
        partition_key: "str | PartitionKeyValue",
        *,
        return_response: bool = False,
    ) -> "T | ItemResponse":
        """
        Create a new item.

        Returns:
            The stored item, or its ItemResponse (status 201) when
            ``return_response`` is set

        Raises:
            InvalidArgumentError: If an argument is missing or the partition key
                does not match the item
            CosmosResourceExistsError: If an item with this id already exists
        """
        require(container_key, "container_key")
        document = self._prepare(item, container_key, partition_key)

        container = await self._container_provider.get_container(container_key)
        capture = ResponseCapture()
        with track_operation("command.create_item", capture, container_key=container_key):
            result = await container.create_item(body=document, response_hook=capture)
        return self._complete(
            "create_item", container_key, capture, _like(item, result), STATUS_CREATED,
            return_response,
        )

    async def upsert_item(
        self,
        item: T,
        container_key: str,
        partition_key: "str | PartitionKeyValue",
        *,
        return_response: bool = False,
    ) -> "T | ItemResponse":
        """
        Create the item, or replace it if it already exists.
        """
        require(container_key, "container_key")
        document = self._prepare(item, container_key, partition_key)

        container = await self._container_provider.get_container(container_key)
        capture = ResponseCapture()
        with track_operation("command.upsert_item", capture, container_key=container_key):
            result = await container.upsert_item(body=document, response_hook=capture)
        return self._complete(
            "upsert_item", container_key, capture, _like(item, result), STATUS_OK,
            return_response,
        )

    update_item = upsert_item

    async def replace_item(
        self,
        item: T,
        item_id: str,
        container_key: str,
        partition_key: "str | PartitionKeyValue",
        *,
        return_response: bool = False,
    ) -> "T | ItemResponse":
        """
        Replace an existing item.

        Raises:
            CosmosResourceNotFoundError: If no item with ``item_id`` exists
        """
        require(item_id, "item_id")
        require(container_key, "container_key")
        document = self._prepare(item, container_key, partition_key)
        if document.get("id") != item_id:
            raise InvalidArgumentError(
                "item_id",
                f"Item id {document.get('id')!r} does not match item_id {item_id!r}.",
            )

        container = await self._container_provider.get_container(container_key)
        capture = ResponseCapture()
        with track_operation("command.replace_item", capture, container_key=container_key):
            result = await container.replace_item(
                item=item_id, body=document, response_hook=capture
            )
        return self._complete(
            "replace_item", container_key, capture, _like(item, result), STATUS_OK,
            return_response,
        )

    async def delete_item(
        self,
        id: str,
        container_key: str,
        partition_key: "str | PartitionKeyValue | None" = None,
        *,
        return_response: bool = False,
    ) -> "ItemResponse | None":
        """
        Delete an item. The partition key defaults to the id.

        Returns:
            None, or the ItemResponse (status 204) when ``return_response`` is set

        Raises:
            CosmosResourceNotFoundError: If the item does not exist
        """
        require(id, "id")
        require(container_key, "container_key")
        key = PartitionKeyValue.of(id if partition_key is None else partition_key)

        container = await self._container_provider.get_container(container_key)
        capture = ResponseCapture()
        with track_operation("command.delete_item", capture, container_key=container_key):
            await container.delete_item(
                item=id, partition_key=key.to_sdk(), response_hook=capture
            )
        return self._complete(
            "delete_item", container_key, capture, None, STATUS_NO_CONTENT, return_response
        )

    async def create_items(
        self,
        items: Iterable[T],
        container_key: str,
        partition_key: "str | PartitionKeyValue | None" = None,
    ) -> list[T]:
        """
        Create several items one after another.

        When ``partition_key`` is None each item's own value at the configured
        partition-key path is used. Stops at the first failure; items created
        before it stay created.
        """
        require(items, "items")
        return [
            await self.create_item(
                item, container_key, self._key_for(item, container_key, partition_key)
            )
            for item in items
        ]

    async def upsert_items(
        self,
        items: Iterable[T],
        container_key: str,
        partition_key: "str | PartitionKeyValue | None" = None,
    ) -> list[T]:
        """Upsert several items one after another; see ``create_items``."""
        require(items, "items")
        return [
            await self.upsert_item(
                item, container_key, self._key_for(item, container_key, partition_key)
            )
            for item in items
        ]

    update_items = upsert_items

    def _prepare(
        self, item: Any, container_key: str, partition_key: "str | PartitionKeyValue"
    ) -> dict[str, Any]:
        document = to_document(item)
        key = PartitionKeyValue.of(partition_key)
        require(document.get("id"), "id")

        path = self._container_options(container_key).partition_key
        expected = key.to_sdk()
        # Hierarchical values cannot be matched against a single path
        if not isinstance(expected, list):
            actual = get_path_value(document, path)
            if actual != expected:
                raise InvalidArgumentError(
                    "partition_key",
                    f"Partition key {expected!r} does not match the item's value "
                    f"{actual!r} at '{path}'.",
                    context={"container_key": container_key},
                )
        return document

    def _key_for(
        self,
        item: Any,
        container_key: str,
        partition_key: "str | PartitionKeyValue | None",
    ) -> "str | PartitionKeyValue":
        if partition_key is not None:
            return partition_key
        path = self._container_options(container_key).partition_key
        value = get_path_value(to_document(item), path)
        if value is None:
            raise InvalidArgumentError(
                "partition_key", f"Item has no value at partition key path '{path}'."
            )
        return PartitionKeyValue.of(value)

    def _container_options(self, container_key: str) -> ContainerOptions:
        try:
            return self._options.get_container_options(container_key)
        except ConfigurationError:
            logger.exception(CONTAINER_ERROR_MESSAGE)
            raise

    def _complete(
        self,
        command: str,
        container_key: str,
        capture: ResponseCapture,
        resource: Any,
        status_code: int,
        return_response: bool,
    ) -> Any:
        response = capture.to_response(resource, status_code)
        contextual_logger.debug(
            "Cosmos command completed",
            extra={"command": command, "container_key": container_key, **response.to_dict()},
        )
        return response if return_response else resource


def _like(item: Any, document: Any) -> Any:
    """Return ``document`` as the same kind of object the caller passed in."""
    if isinstance(item, Mapping) or document is None:
        return document
    return from_document(document, type(item))
