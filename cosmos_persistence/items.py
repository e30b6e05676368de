"""
Item model helpers.

Handlers move plain ``dict`` documents to and from Cosmos DB. Callers that
prefer typed records pass an ``item_type``; supported types are ``Entity``
subclasses, pydantic models, other dataclasses and any class accepting the
document fields as keyword arguments.
"""

import dataclasses
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Protocol, TypeVar, runtime_checkable

from .exceptions import InvalidArgumentError

T = TypeVar("T")


@runtime_checkable
class Record(Protocol):
    """Anything stored in a container: it must carry a string ``id``."""

    id: str


@dataclass(kw_only=True)
class Entity:
    """
    Base class for container items.

    Subclass this for your domain models. Cosmos system properties
    (``_rid``, ``_etag``, ``_ts``...) are dropped when loading.

    Example:
        @dataclass
        class Order(Entity):
            pk: str
            total: float = 0
    """

    id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert entity to a JSON-ready document, omitting None values."""
        data = {}
        for key, value in dataclasses.asdict(self).items():
            if value is None:
                continue
            if isinstance(value, (datetime, date)):
                value = value.isoformat()
            data[key] = value
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "Entity | None":
        """Create entity from a stored document."""
        if data is None:
            return None
        field_names = {f.name for f in dataclasses.fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in field_names})


@dataclass(frozen=True)
class PartitionKeyValue:
    """
    Structured partition key value.

    Holds a single value for ``/pk`` style keys or a sequence of values for
    hierarchical keys.
    """

    value: Any

    def __post_init__(self) -> None:
        values = self.value if isinstance(self.value, (list, tuple)) else [self.value]
        if not values or any(v is None or (isinstance(v, str) and not v.strip()) for v in values):
            raise InvalidArgumentError("partition_key", "Partition key value must not be empty.")

    @classmethod
    def of(
        cls, partition_key: "str | PartitionKeyValue", parameter: str = "partition_key"
    ) -> "PartitionKeyValue":
        """Build a PartitionKeyValue from a raw string, or return it unchanged."""
        if isinstance(partition_key, PartitionKeyValue):
            return partition_key
        if partition_key is None or (isinstance(partition_key, str) and not partition_key.strip()):
            raise InvalidArgumentError(parameter)
        return cls(partition_key)

    def to_sdk(self) -> Any:
        """Value in the form the SDK expects for ``partition_key=``."""
        if isinstance(self.value, tuple):
            return list(self.value)
        return self.value

    def __str__(self) -> str:
        return str(self.value)


def get_path_value(document: Mapping[str, Any], path: str | Sequence[str]) -> Any:
    """
    Read a nested value by partition-key path (``/address/city``) or field list.

    Returns None when any segment is missing.
    """
    segments = [s for s in path.split("/") if s] if isinstance(path, str) else list(path)
    current: Any = document
    for segment in segments:
        if not isinstance(current, Mapping) or segment not in current:
            return None
        current = current[segment]
    return current


def to_document(item: Any) -> dict[str, Any]:
    """
    Convert an item into a document ready to be written.

    Raises:
        InvalidArgumentError: If item is None or of an unsupported type
    """
    if item is None:
        raise InvalidArgumentError("item")
    if isinstance(item, Mapping):
        return dict(item)
    if hasattr(item, "to_dict"):
        return item.to_dict()
    if hasattr(item, "model_dump"):
        return item.model_dump(mode="json", by_alias=True)
    if dataclasses.is_dataclass(item) and not isinstance(item, type):
        return dataclasses.asdict(item)
    raise InvalidArgumentError(
        "item", f"Unsupported item type {type(item).__name__}; expected a mapping or record."
    )


def from_document(document: Any, item_type: type[T] | None = None) -> T | Any:
    """
    Convert a stored document into ``item_type`` (or return it as-is).
    """
    if item_type is None or document is None or not isinstance(document, Mapping):
        return document
    if hasattr(item_type, "model_validate"):
        return item_type.model_validate(document)
    if hasattr(item_type, "from_dict"):
        return item_type.from_dict(document)
    if dataclasses.is_dataclass(item_type):
        field_names = {f.name for f in dataclasses.fields(item_type)}
        return item_type(**{k: v for k, v in document.items() if k in field_names})
    return item_type(**document)
