"""
Bounded top-K selection as a mergeable reduction.

``TopKSelector`` keeps the K best elements seen so far in a heap whose head is
the worst of them. Eviction is batched: the heap may grow to
``overshoot * K`` elements (2K by default) before it is compacted back to K,
trading that transient memory for O(1) amortized inserts. ``merge`` folds one
selector into another, so partial selections over partitions can be combined
in any order or tree shape.
"""

import heapq
import itertools
import logging
from functools import cmp_to_key, reduce as builtin_reduce
from typing import Any, Callable, Generic, Iterable, List, Optional, Tuple, TypeVar

from .lazy import LazySequence, sequence_from_iterable
from .models import LibrarySettings, TopKSettings, validate

logger = logging.getLogger(__name__)

T = TypeVar("T")
A = TypeVar("A")
R = TypeVar("R")

Comparator = Callable[[Any, Any], int]


def natural_order(a, b) -> int:
    return (a > b) - (a < b)


def _make_comparator(comparator: Optional[Comparator], key: Optional[Callable[[Any], Any]]) -> Comparator:
    if comparator is not None and key is not None:
        raise TypeError("Pass either comparator or key, not both")
    if comparator is not None:
        return comparator
    if key is not None:
        return lambda a, b: natural_order(key(a), key(b))
    return natural_order


class _Inverted:
    """Heap key that orders elements worst-first under ``cmp``."""
    __slots__ = ("element", "cmp")

    def __init__(self, element, cmp: Comparator):
        self.element = element
        self.cmp = cmp

    def __lt__(self, other: "_Inverted") -> bool:
        return self.cmp(self.element, other.element) > 0

    def __eq__(self, other) -> bool:
        return self.cmp(self.element, other.element) == 0


class TopKSelector(Generic[T]):
    """Retains the ``limit`` best elements under ``comparator`` (ascending = best first)."""

    def __init__(self, limit: int, comparator: Optional[Comparator] = None, *,
                 key: Optional[Callable[[T], Any]] = None, overshoot: Optional[int] = None):
        if overshoot is None:
            overshoot = LibrarySettings.from_env().topk_overshoot
        settings = validate(TopKSettings, limit=limit, overshoot=overshoot)
        self._limit = settings.limit
        self._capacity = settings.limit * settings.overshoot
        self._cmp = _make_comparator(comparator, key)
        self._heap: List[Tuple[_Inverted, int]] = []
        self._counter = itertools.count()
        self._since_compaction = 0

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def capacity(self) -> int:
        """Most elements held between compactions."""
        return self._capacity

    def __len__(self) -> int:
        return len(self._heap)

    def insert(self, element: T) -> "TopKSelector[T]":
        """Add ``element``; the heap never holds more than ``capacity`` entries, even transiently."""
        # counter breaks ties between equivalent elements
        entry = (_Inverted(element, self._cmp), next(self._counter))
        if len(self._heap) >= self._capacity:
            self.compact()
        self._since_compaction += 1
        if len(self._heap) >= self._capacity:
            # limit == capacity: the new entry replaces the worst one, or is dropped
            heapq.heappushpop(self._heap, entry)
        else:
            heapq.heappush(self._heap, entry)
        return self

    def compact(self) -> "TopKSelector[T]":
        """Drop the worst elements until at most ``limit`` remain."""
        evicted = 0
        while len(self._heap) > self._limit:
            heapq.heappop(self._heap)
            evicted += 1
        if evicted:
            logger.debug(
                f"Compacted top-{self._limit} selector: evicted {evicted} after "
                f"{self._since_compaction} inserts"
            )
        self._since_compaction = 0
        return self

    def retained(self) -> List[T]:
        """Elements currently held, in no particular order (may exceed ``limit`` before compaction)."""
        return [entry.element for entry, _ in self._heap]

    def merge(self, other: "TopKSelector[T]") -> "TopKSelector[T]":
        """Fold every element retained by ``other`` into this selector."""
        if other is self:
            return self
        incoming = other.retained()
        for element in incoming:
            self.insert(element)
        logger.debug(f"Merged {len(incoming)} elements into top-{self._limit} selector")
        return self

    def finish(self) -> LazySequence[T]:
        """Best-first sequence of at most ``limit`` elements; the selector is left untouched."""
        ordered = sorted(self.retained(), key=cmp_to_key(self._cmp))
        return sequence_from_iterable(ordered[:self._limit])


class Reducer(Generic[T, A, R]):
    """
    A reduction split into its four parts.

    ``supplier`` creates an empty container, ``accumulator`` adds one element,
    ``combiner`` merges two containers built from disjoint inputs, and
    ``finisher`` turns the final container into the result.
    """

    def __init__(self, supplier: Callable[[], A], accumulator: Callable[[A, T], A],
                 combiner: Callable[[A, A], A], finisher: Callable[[A], R]):
        self.supplier = supplier
        self.accumulator = accumulator
        self.combiner = combiner
        self.finisher = finisher

    def accumulate(self, elements: Iterable[T]) -> A:
        container = self.supplier()
        for element in elements:
            container = self.accumulator(container, element)
        return container

    def reduce(self, elements: Iterable[T]) -> R:
        return self.finisher(self.accumulate(elements))

    def reduce_partitions(self, partitions: Iterable[Iterable[T]]) -> R:
        """Accumulate each partition separately, then combine left to right."""
        containers = [self.accumulate(partition) for partition in partitions]
        if not containers:
            return self.finisher(self.supplier())
        return self.finisher(builtin_reduce(self.combiner, containers))


def top_k_collector(n: int, comparator: Optional[Comparator] = None, *,
                    key: Optional[Callable[[T], Any]] = None) -> Reducer:
    """
    Reducer keeping the ``n`` best elements, returned best-first.

    >>> LazySequence.of("B", "A", "E", "Z", "C", "Q", "T").collect(top_k_collector(3)).to_list()
    ['A', 'B', 'C']
    """
    cmp = _make_comparator(comparator, key)
    # n is validated eagerly, not per supplier() call
    overshoot = LibrarySettings.from_env().topk_overshoot
    validate(TopKSettings, limit=n, overshoot=overshoot)

    return Reducer(
        supplier=lambda: TopKSelector(n, cmp, overshoot=overshoot),
        accumulator=lambda selector, element: selector.insert(element),
        combiner=lambda a, b: a.merge(b),
        finisher=lambda selector: selector.finish(),
    )
