"""
Query builder for Cosmos DB SQL.

Predicates and projections are composed in Python and rendered to
parameterised Cosmos SQL, so filtering, projection, ordering and paging all
run on the service.

Usage:
    from cosmos_persistence.handlers.expressions import F, ItemQuery, select

    query = (
        ItemQuery(predicate=(F.total > 5) & F.status.is_in(["open", "paid"]),
                  selector=select("id", "total"))
        .order_by("total", descending=True)
        .skip(20)
        .take(10)
    )
    sql, parameters = query.to_query()
    # SELECT c.id, c.total FROM c WHERE (c.total > @p0) AND (ARRAY_CONTAINS(@p1, c.status))
    #   ORDER BY c.total DESC OFFSET 20 LIMIT 10

Every condition can also be evaluated against an in-memory document
(``condition.matches(doc)``, ``query.evaluate(docs)``), which is what the
test doubles rely on.
"""

import json
import operator
import re
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, replace
from typing import Any

from ..constants import ITEM_ALIAS, PARAMETER_PREFIX
from ..exceptions import InvalidArgumentError

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_MISSING = object()


class _QueryContext:
    """Collects parameters while a query is rendered."""

    def __init__(self) -> None:
        self.parameters: list[dict[str, Any]] = []

    def add(self, value: Any) -> str:
        name = f"{PARAMETER_PREFIX}{len(self.parameters)}"
        self.parameters.append({"name": name, "value": value})
        return name


class Condition(ABC):
    """A boolean expression over one item."""

    @abstractmethod
    def render(self, ctx: _QueryContext) -> str:
        """Render to SQL, registering parameter values on ``ctx``."""

    @abstractmethod
    def matches(self, document: Mapping[str, Any]) -> bool:
        """Evaluate against an in-memory document."""

    def to_sql(self) -> tuple[str, list[dict[str, Any]]]:
        """Render this condition on its own."""
        ctx = _QueryContext()
        return self.render(ctx), ctx.parameters

    def __and__(self, other: "Condition") -> "Condition":
        return And(self, _check_condition(other))

    def __or__(self, other: "Condition") -> "Condition":
        return Or(self, _check_condition(other))

    def __invert__(self) -> "Condition":
        return Not(self)

    def __bool__(self) -> bool:
        raise TypeError(
            "Conditions cannot be used as booleans; combine them with '&', '|' and '~'."
        )


def _check_condition(value: Any) -> Condition:
    if not isinstance(value, Condition):
        raise TypeError(f"Expected a Condition, got {type(value).__name__}")
    return value


class Field:
    """
    Reference to a (possibly nested) item property.

    ``Field("address.city")`` renders as ``c.address.city``; segments that are
    not plain identifiers render with bracket notation (``c["first-name"]``).
    """

    __hash__ = object.__hash__

    def __init__(self, path: str) -> None:
        if not path or not isinstance(path, str):
            raise InvalidArgumentError("path", "Field path must be a non-empty string.")
        self.path = path
        self.segments = tuple(path.split("."))

    @property
    def sql(self) -> str:
        parts = [ITEM_ALIAS]
        for segment in self.segments:
            if _IDENTIFIER.match(segment):
                parts.append(f".{segment}")
            else:
                parts.append(f"[{json.dumps(segment)}]")
        return "".join(parts)

    @property
    def name(self) -> str:
        """Property name a projection of this field produces."""
        return self.segments[-1]

    def value_of(self, document: Mapping[str, Any]) -> Any:
        current: Any = document
        for segment in self.segments:
            if not isinstance(current, Mapping) or segment not in current:
                return _MISSING
            current = current[segment]
        return current

    def _compare(self, op: str, value: Any) -> "Comparison":
        return Comparison(self, op, value)

    def __eq__(self, value: Any) -> "Comparison":  # type: ignore[override]
        return self._compare("=", value)

    def __ne__(self, value: Any) -> "Comparison":  # type: ignore[override]
        return self._compare("!=", value)

    def __lt__(self, value: Any) -> "Comparison":
        return self._compare("<", value)

    def __le__(self, value: Any) -> "Comparison":
        return self._compare("<=", value)

    def __gt__(self, value: Any) -> "Comparison":
        return self._compare(">", value)

    def __ge__(self, value: Any) -> "Comparison":
        return self._compare(">=", value)

    def contains(self, value: str) -> "FunctionCondition":
        return FunctionCondition(
            "CONTAINS", self, value, lambda a, b: isinstance(a, str) and b in a
        )

    def startswith(self, value: str) -> "FunctionCondition":
        return FunctionCondition(
            "STARTSWITH", self, value, lambda a, b: isinstance(a, str) and a.startswith(b)
        )

    def is_in(self, values: Iterable[Any]) -> "InCondition":
        return InCondition(self, list(values))

    def is_defined(self) -> "DefinedCondition":
        return DefinedCondition(self)

    def __repr__(self) -> str:
        return f"Field({self.path!r})"


class _FieldFactory:
    """``F.total`` and ``F["first-name"]`` build Field references."""

    def __getattr__(self, name: str) -> Field:
        if name.startswith("__"):
            raise AttributeError(name)
        return Field(name)

    def __getitem__(self, path: str) -> Field:
        return Field(path)


F = _FieldFactory()


def _as_field(value: "Field | str") -> Field:
    return value if isinstance(value, Field) else Field(value)


_OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "=": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}


@dataclass(frozen=True, eq=False)
class Comparison(Condition):
    """``c.<field> <op> <value or field>``"""

    field: Field
    op: str
    value: Any

    def render(self, ctx: _QueryContext) -> str:
        right = self.value.sql if isinstance(self.value, Field) else ctx.add(self.value)
        return f"{self.field.sql} {self.op} {right}"

    def matches(self, document: Mapping[str, Any]) -> bool:
        left = self.field.value_of(document)
        right = self.value.value_of(document) if isinstance(self.value, Field) else self.value
        # Undefined operands never match, mirroring the service
        if left is _MISSING or right is _MISSING:
            return False
        try:
            return bool(_OPERATORS[self.op](left, right))
        except TypeError:
            return False


@dataclass(frozen=True, eq=False)
class FunctionCondition(Condition):
    """``FUNC(c.<field>, <value>)`` for string functions."""

    function: str
    field: Field
    value: Any
    evaluator: Callable[[Any, Any], bool]

    def render(self, ctx: _QueryContext) -> str:
        return f"{self.function}({self.field.sql}, {ctx.add(self.value)})"

    def matches(self, document: Mapping[str, Any]) -> bool:
        left = self.field.value_of(document)
        return left is not _MISSING and bool(self.evaluator(left, self.value))


@dataclass(frozen=True, eq=False)
class InCondition(Condition):
    field: Field
    values: list[Any]

    def render(self, ctx: _QueryContext) -> str:
        return f"ARRAY_CONTAINS({ctx.add(self.values)}, {self.field.sql})"

    def matches(self, document: Mapping[str, Any]) -> bool:
        left = self.field.value_of(document)
        return left is not _MISSING and left in self.values


@dataclass(frozen=True, eq=False)
class DefinedCondition(Condition):
    field: Field

    def render(self, ctx: _QueryContext) -> str:
        return f"IS_DEFINED({self.field.sql})"

    def matches(self, document: Mapping[str, Any]) -> bool:
        return self.field.value_of(document) is not _MISSING


@dataclass(frozen=True, eq=False)
class And(Condition):
    left: Condition
    right: Condition

    def render(self, ctx: _QueryContext) -> str:
        return f"({self.left.render(ctx)}) AND ({self.right.render(ctx)})"

    def matches(self, document: Mapping[str, Any]) -> bool:
        return self.left.matches(document) and self.right.matches(document)


@dataclass(frozen=True, eq=False)
class Or(Condition):
    left: Condition
    right: Condition

    def render(self, ctx: _QueryContext) -> str:
        return f"({self.left.render(ctx)}) OR ({self.right.render(ctx)})"

    def matches(self, document: Mapping[str, Any]) -> bool:
        return self.left.matches(document) or self.right.matches(document)


@dataclass(frozen=True, eq=False)
class Not(Condition):
    operand: Condition

    def render(self, ctx: _QueryContext) -> str:
        return f"NOT ({self.operand.render(ctx)})"

    def matches(self, document: Mapping[str, Any]) -> bool:
        return not self.operand.matches(document)


@dataclass(frozen=True, eq=False)
class Projection:
    """
    Fields returned by a query. An empty projection returns whole items.
    """

    fields: tuple[Field, ...] = ()

    @property
    def is_identity(self) -> bool:
        return not self.fields

    def render(self) -> str:
        if self.is_identity:
            return "*"
        return ", ".join(f.sql for f in self.fields)

    def apply(self, document: Mapping[str, Any]) -> dict[str, Any]:
        if self.is_identity:
            return dict(document)
        projected = {}
        for f in self.fields:
            value = f.value_of(document)
            if value is not _MISSING:
                projected[f.name] = value
        return projected


def select(*fields: "Field | str") -> Projection:
    """Build a projection; ``select()`` keeps the whole item."""
    return Projection(tuple(_as_field(f) for f in fields))


ALL_FIELDS = select()
"""Projection returning entire items."""


def as_projection(selector: "Projection | Sequence[Field | str]") -> Projection:
    if isinstance(selector, Projection):
        return selector
    if isinstance(selector, (str, Field)):
        return select(selector)
    return select(*selector)


@dataclass(frozen=True, eq=False)
class ItemQuery:
    """
    Immutable description of a container query: filter, project, order,
    skip/take or count.
    """

    predicate: Condition | None = None
    selector: Projection = ALL_FIELDS
    ordering: tuple[tuple[Field, bool], ...] = ()
    offset: int | None = None
    limit: int | None = None
    is_count: bool = False

    def __post_init__(self) -> None:
        if self.predicate is not None:
            _check_condition(self.predicate)
        if not isinstance(self.selector, Projection):
            object.__setattr__(self, "selector", as_projection(self.selector))

    def where(self, predicate: Condition) -> "ItemQuery":
        predicate = _check_condition(predicate)
        combined = predicate if self.predicate is None else self.predicate & predicate
        return replace(self, predicate=combined)

    def select(self, selector: "Projection | Sequence[Field | str]") -> "ItemQuery":
        return replace(self, selector=as_projection(selector))

    def order_by(self, path: "Field | str", descending: bool = False) -> "ItemQuery":
        return replace(self, ordering=self.ordering + ((_as_field(path), descending),))

    def skip(self, count: int) -> "ItemQuery":
        if not isinstance(count, int) or count < 0:
            raise InvalidArgumentError(
                "count", f"Skip count must be a non-negative integer, got {count!r}."
            )
        return replace(self, offset=count)

    def take(self, count: int) -> "ItemQuery":
        if not isinstance(count, int) or count < 0:
            raise InvalidArgumentError(
                "count", f"Take count must be a non-negative integer, got {count!r}."
            )
        return replace(self, limit=count)

    def count(self) -> "ItemQuery":
        return replace(self, is_count=True)

    def to_query(self) -> tuple[str, list[dict[str, Any]]]:
        """Render to ``(sql, parameters)`` for ``ContainerProxy.query_items``."""
        ctx = _QueryContext()
        if self.is_count:
            sql = f"SELECT VALUE COUNT(1) FROM {ITEM_ALIAS}"
        else:
            sql = f"SELECT {self.selector.render()} FROM {ITEM_ALIAS}"

        if self.predicate is not None:
            sql += f" WHERE {self.predicate.render(ctx)}"

        if self.is_count:
            return sql, ctx.parameters

        if self.ordering:
            sql += " ORDER BY " + ", ".join(
                f"{f.sql} {'DESC' if descending else 'ASC'}" for f, descending in self.ordering
            )

        if self.offset is not None or self.limit is not None:
            if self.limit is None:
                raise InvalidArgumentError("take", "Skip requires take; OFFSET needs a LIMIT.")
            sql += f" OFFSET {self.offset or 0} LIMIT {self.limit}"

        return sql, ctx.parameters

    def evaluate(self, documents: Iterable[Mapping[str, Any]]) -> list[Any]:
        """Apply the query to in-memory documents."""
        matched = [
            d for d in documents if self.predicate is None or self.predicate.matches(d)
        ]
        if self.is_count:
            return [len(matched)]

        for f, descending in reversed(self.ordering):
            matched.sort(key=lambda d, f=f: _sort_key(f.value_of(d)), reverse=descending)

        start = self.offset or 0
        end = start + self.limit if self.limit is not None else None
        return [self.selector.apply(d) for d in matched[start:end]]


def _sort_key(value: Any) -> tuple[int, Any]:
    if value is _MISSING or value is None:
        return (0, 0)
    if isinstance(value, bool):
        return (1, value)
    if isinstance(value, (int, float)):
        return (2, value)
    if isinstance(value, str):
        return (3, value)
    return (4, json.dumps(value, sort_keys=True, default=str))
