"""
Helper functions for lazystream.

Thin adapters between sequences and plain callables, logging setup, and the
performance measurement helpers used to check that lazy pipelines keep their
memory bounded.
"""

import time
import gc
import functools
import logging
import threading
import tracemalloc
from collections import deque
from typing import Any, Callable, Deque, Dict, Iterable, Optional, TypeVar

from .errors import InvalidArgumentError, WrappedProducerError
from .lazy import LazySequence, sequence_from_iterable
from .models import LibrarySettings, validate

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


DEFAULT_METRICS_HISTORY = 100


def lines(text: str) -> LazySequence[str]:
    """Split ``text`` on newlines, dropping trailing empty lines."""
    parts = text.split("\n")
    if text:
        while parts and parts[-1] == "":
            parts.pop()
    return sequence_from_iterable(parts)


def supplier_for(sequence: Iterable[T]) -> Callable[[], Optional[T]]:
    """Return a thread-safe callable producing the next element, or None once exhausted."""
    it = iter(sequence)
    lock = threading.Lock()

    def supplier():
        with lock:
            return next(it, None)
    return supplier


def unchecked(fn: Callable[..., R]) -> Callable[..., R]:
    """Re-raise any exception from ``fn`` as WrappedProducerError."""
    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except Exception as e:
            raise WrappedProducerError(f"{getattr(fn, '__name__', fn)!s} failed: {e}") from e
    return wrapper


def configure_logging(level: Optional[str] = None) -> LibrarySettings:
    """Configure root logging from LAZYSTREAM_LOG_LEVEL unless ``level`` is given."""
    settings = LibrarySettings.from_env()
    if level is not None:
        settings = validate(LibrarySettings, topk_overshoot=settings.topk_overshoot, log_level=level)
    logging.basicConfig(level=settings.log_level)
    logging.getLogger("lazystream").setLevel(settings.log_level)
    return settings


def measure_performance(operation_name: str, func, *args, **kwargs) -> Dict[str, Any]:
    """
    Call ``func`` and record its wall time and peak traced memory.

    Peak memory is measured relative to what was already traced when the call
    started. Tracing is started and stopped here only if it was off on entry;
    a caller that is already tracing keeps its session.
    """
    owns_tracing = not tracemalloc.is_tracing()
    gc.collect()
    if owns_tracing:
        tracemalloc.start()
    else:
        tracemalloc.reset_peak()
    baseline, _ = tracemalloc.get_traced_memory()
    start_time = time.perf_counter()

    entry = {"operation": operation_name, "success": False}
    try:
        result = func(*args, **kwargs)
    except Exception as e:
        entry["error"] = str(e)
        logger.debug(f"{operation_name} failed: {e}")
        raise
    else:
        entry["success"] = True
        entry["result_size"] = len(result) if hasattr(result, "__len__") else None
    finally:
        entry["execution_time_ms"] = (time.perf_counter() - start_time) * 1000
        _, peak = tracemalloc.get_traced_memory()
        entry["peak_bytes"] = max(peak - baseline, 0)
        if owns_tracing:
            tracemalloc.stop()
        _metrics.record(entry)
        logger.debug(
            f"{operation_name} took {entry['execution_time_ms']:.2f}ms, peak {entry['peak_bytes']} bytes"
        )

    return {**entry, "result": result}


class _Metrics:
    """Running totals plus a bounded window of the most recent measurements."""

    def __init__(self, history: int = DEFAULT_METRICS_HISTORY):
        self._lock = threading.Lock()
        self.recent: Deque[Dict[str, Any]] = deque(maxlen=history)
        self.operation_count = 0
        self.failure_count = 0
        self.total_time_ms = 0.0
        self.max_peak_bytes = 0

    def record(self, entry: Dict[str, Any]) -> None:
        with self._lock:
            self.recent.append(entry)
            self.operation_count += 1
            if not entry["success"]:
                self.failure_count += 1
            self.total_time_ms += entry["execution_time_ms"]
            self.max_peak_bytes = max(self.max_peak_bytes, entry["peak_bytes"])


_metrics = _Metrics()


def get_performance_summary() -> Dict[str, Any]:
    """Totals over every measured call since the last clear, plus the recent entries."""
    with _metrics._lock:
        count = _metrics.operation_count
        return {
            "total_operations": count,
            "failed_operations": _metrics.failure_count,
            "total_time_ms": _metrics.total_time_ms,
            "avg_time_ms": _metrics.total_time_ms / count if count else 0.0,
            "max_peak_bytes": _metrics.max_peak_bytes,
            "recent": list(_metrics.recent),
        }


def clear_performance_metrics(history: int = DEFAULT_METRICS_HISTORY) -> None:
    """Drop all recorded metrics; ``history`` bounds how many entries are kept from now on."""
    global _metrics
    if history < 1:
        raise InvalidArgumentError(f"history must be at least 1, got {history}")
    _metrics = _Metrics(history)
