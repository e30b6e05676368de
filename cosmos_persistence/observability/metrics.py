"""
In-process metrics for Cosmos DB operations.

Every container resolution, query and command is recorded with its
duration, outcome and request charge (RU). Series are keyed by operation
name plus tags, e.g. ``query.read_items[container_key=orders]``.
"""

import contextlib
import functools
import inspect
import logging
import threading
import time
from collections import OrderedDict
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

logger = logging.getLogger(__name__)

SeriesKey = tuple[str, tuple[tuple[str, str], ...]]


def _series_key(operation_name: str, tags: dict[str, Any]) -> SeriesKey:
    return operation_name, tuple(sorted((k, str(v)) for k, v in tags.items()))


def _render_key(key: SeriesKey) -> str:
    operation_name, tags = key
    if not tags:
        return operation_name
    return f"{operation_name}[{','.join(f'{k}={v}' for k, v in tags)}]"


@dataclass
class OperationStats:
    """Running totals for one series."""

    operation_name: str
    count: int = 0
    error_count: int = 0
    total_duration_ms: float = 0.0
    min_duration_ms: float | None = None
    max_duration_ms: float = 0.0
    total_request_charge: float = 0.0
    max_request_charge: float = 0.0
    last_execution: datetime | None = field(default=None, compare=False)

    def add(self, duration_ms: float, success: bool, request_charge: float) -> None:
        self.count += 1
        self.error_count += 0 if success else 1
        self.total_duration_ms += duration_ms
        self.min_duration_ms = (
            duration_ms if self.min_duration_ms is None else min(self.min_duration_ms, duration_ms)
        )
        self.max_duration_ms = max(self.max_duration_ms, duration_ms)
        self.total_request_charge += request_charge
        self.max_request_charge = max(self.max_request_charge, request_charge)
        self.last_execution = datetime.now()

    def merge(self, other: "OperationStats") -> None:
        """Fold another series of the same operation into this one."""
        self.count += other.count
        self.error_count += other.error_count
        self.total_duration_ms += other.total_duration_ms
        if other.min_duration_ms is not None:
            self.min_duration_ms = (
                other.min_duration_ms
                if self.min_duration_ms is None
                else min(self.min_duration_ms, other.min_duration_ms)
            )
        self.max_duration_ms = max(self.max_duration_ms, other.max_duration_ms)
        self.total_request_charge += other.total_request_charge
        self.max_request_charge = max(self.max_request_charge, other.max_request_charge)
        if other.last_execution and (
            self.last_execution is None or other.last_execution > self.last_execution
        ):
            self.last_execution = other.last_execution

    def to_dict(self) -> dict[str, Any]:
        average = self.total_duration_ms / self.count if self.count else 0.0
        error_rate = self.error_count / self.count * 100 if self.count else 0.0
        return {
            "operation": self.operation_name,
            "count": self.count,
            "avg_duration_ms": round(average, 2),
            "min_duration_ms": round(self.min_duration_ms or 0.0, 2),
            "max_duration_ms": round(self.max_duration_ms, 2),
            "error_count": self.error_count,
            "error_rate_percent": round(error_rate, 2),
            "total_request_charge": round(self.total_request_charge, 2),
            "max_request_charge": round(self.max_request_charge, 2),
            "last_execution": self.last_execution.isoformat() if self.last_execution else None,
        }


class MetricsCollector:
    """
    Thread-safe store of ``OperationStats`` series.

    At most ``max_metrics`` series are kept. Recording to or reading a
    series marks it as recently used; the least recently used one is dropped
    when a new series would exceed the bound.
    """

    def __init__(self, max_metrics: int = 10000):
        self._series: OrderedDict[SeriesKey, OperationStats] = OrderedDict()
        self._lock = threading.Lock()
        self._max_metrics = max_metrics

    def record_operation(
        self,
        operation_name: str,
        duration_ms: float,
        success: bool = True,
        request_charge: float = 0.0,
        **tags: Any,
    ) -> None:
        """
        Add one execution to the series for ``operation_name`` and ``tags``.

        Args:
            operation_name: Dotted operation name, e.g. ``command.create_item``
            duration_ms: Wall time in milliseconds
            success: False when the operation raised
            request_charge: RU reported by the service, 0 when unknown
            **tags: Series tags such as ``container_key``
        """
        key = _series_key(operation_name, tags)
        with self._lock:
            stats = self._series.get(key)
            if stats is None:
                while len(self._series) >= self._max_metrics:
                    evicted, _ = self._series.popitem(last=False)
                    logger.debug("Evicted metrics series %s", _render_key(evicted))
                stats = self._series[key] = OperationStats(operation_name)
            else:
                self._series.move_to_end(key)
            stats.add(duration_ms, success, request_charge)

    def get_metrics(self, operation_name: str | None = None) -> dict[str, Any]:
        """
        Per-series metrics, optionally limited to operations starting with
        ``operation_name``.
        """
        with self._lock:
            selected = [
                key
                for key in self._series
                if not operation_name or key[0].startswith(operation_name)
            ]
            metrics = {}
            for key in selected:
                metrics[_render_key(key)] = self._series[key].to_dict()
                self._series.move_to_end(key)
            total = len(self._series)

        return {
            "timestamp": datetime.now().isoformat(),
            "metrics": metrics,
            "total_operations": total,
        }

    def get_summary(self) -> dict[str, Any]:
        """Metrics per operation name with all tag combinations folded together."""
        with self._lock:
            folded: dict[str, OperationStats] = {}
            for stats in self._series.values():
                folded.setdefault(
                    stats.operation_name, OperationStats(stats.operation_name)
                ).merge(stats)
            total = len(self._series)

        return {
            "timestamp": datetime.now().isoformat(),
            "total_operations": total,
            "summary": {name: stats.to_dict() for name, stats in folded.items()},
        }

    def get_operation_count(self, operation_name: str) -> int:
        """Executions of ``operation_name`` across every tag combination."""
        with self._lock:
            return sum(s.count for s in self._series.values() if s.operation_name == operation_name)

    def get_request_charge(self, operation_name: str | None = None, **tags: Any) -> float:
        """
        Total RU recorded for series matching ``operation_name`` (prefix) and
        carrying every given tag.
        """
        wanted = {(k, str(v)) for k, v in tags.items()}
        with self._lock:
            return sum(
                stats.total_request_charge
                for (name, series_tags), stats in self._series.items()
                if (not operation_name or name.startswith(operation_name))
                and wanted.issubset(series_tags)
            )

    def reset(self) -> None:
        with self._lock:
            self._series.clear()


_metrics_collector: MetricsCollector | None = None
_collector_lock = threading.Lock()


def get_metrics_collector() -> MetricsCollector:
    """Process-wide collector, created on first use."""
    global _metrics_collector
    if _metrics_collector is None:
        with _collector_lock:
            if _metrics_collector is None:
                _metrics_collector = MetricsCollector()
    return _metrics_collector


def record_operation(
    operation_name: str,
    duration_ms: float,
    success: bool = True,
    request_charge: float = 0.0,
    **tags: Any,
) -> None:
    """Record into the process-wide collector; see ``MetricsCollector.record_operation``."""
    get_metrics_collector().record_operation(
        operation_name, duration_ms, success, request_charge, **tags
    )


@contextlib.contextmanager
def track_operation(
    operation_name: str, charge_source: Any = None, **tags: Any
) -> Iterator[None]:
    """
    Time the enclosed block and record it in the process-wide collector.

    ``charge_source`` is read for a ``request_charge`` attribute when the
    block exits, so a response hook filled during the block contributes the
    RU it saw. An exception marks the execution failed and propagates.

    Usage:
        capture = ResponseCapture()
        with track_operation("command.create_item", capture, container_key="orders"):
            await container.create_item(body, response_hook=capture)
    """
    started = time.perf_counter()
    success = False
    try:
        yield
        success = True
    finally:
        request_charge = getattr(charge_source, "request_charge", 0.0) or 0.0
        record_operation(
            operation_name,
            (time.perf_counter() - started) * 1000,
            success,
            request_charge,
            **tags,
        )


def timed_operation(operation_name: str, **tags: Any) -> Callable[[Callable], Callable]:
    """
    Decorator form of ``track_operation`` for coroutine functions.

    Usage:
        @timed_operation("container.warm_up")
        async def warm_up(self):
            ...
    """

    def decorator(func: Callable) -> Callable:
        if not inspect.iscoroutinefunction(func):
            raise TypeError(f"timed_operation expects a coroutine function, got {func!r}")

        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            with track_operation(operation_name, **tags):
                return await func(*args, **kwargs)

        return wrapper

    return decorator
