"""
Pull cursors and single-pass lazy sequences.

A producer is a zero-argument callable returning either ``Item(value)`` or
``END``. ``GeneratorCursor`` memoizes one outcome at a time so the producer
runs at most once per position, and ``LazySequence`` puts a chainable,
iterator-friendly face on a cursor.
"""

import logging
import threading
from functools import reduce as builtin_reduce
from typing import Any, Callable, Generic, Iterable, Iterator, List, Optional, TypeVar, Union

from .errors import IllegalStateError, InvalidArgumentError
from .models import WindowSettings, validate

logger = logging.getLogger(__name__)

T = TypeVar("T")
U = TypeVar("U")
K = TypeVar("K")


class Item(Generic[T]):
    """A produced element. ``Item(None)`` is a real element, not the end."""
    __slots__ = ("value",)

    def __init__(self, value: T):
        self.value = value

    def __eq__(self, other):
        return isinstance(other, Item) and other.value == self.value

    def __hash__(self):
        return hash(("Item", self.value))

    def __repr__(self):
        return f"Item({self.value!r})"


class _End:
    """Singleton marking the end of a sequence."""
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "END"

    def __bool__(self):
        return False


END = _End()

Outcome = Union[Item[T], _End]
Producer = Callable[[], Outcome]

# Marks an empty memo; END itself is a valid memoized outcome.
_UNSET = object()


def item_or_end(value: Optional[T]) -> Outcome:
    """Map ``None`` to END and anything else to Item(value)."""
    return END if value is None else Item(value)


class GeneratorCursor(Generic[T]):
    """
    Memoizing pull cursor over a producer callback.

    ``probe`` asks the producer for the next outcome at most once and keeps it
    until ``take`` consumes it. Every operation holds the cursor's lock, so
    concurrent callers see a serialized view and the producer never runs twice
    for the same position.

    A producer must not pull from its own cursor: such a re-entrant call
    raises IllegalStateError instead of recursing into the producer.
    """

    def __init__(self, producer: Producer):
        self._producer = producer
        self._lock = threading.RLock()
        self._pending = _UNSET
        self._producing = False

    def probe(self) -> bool:
        """Return whether another element exists, without consuming it."""
        with self._lock:
            return self._peek() is not END

    def take(self) -> T:
        """Consume and return the next element."""
        with self._lock:
            outcome = self._peek()
            if outcome is END:
                raise IllegalStateError("Cannot take from an exhausted cursor")
            self._pending = _UNSET
            return outcome.value

    def __iter__(self) -> "GeneratorCursor[T]":
        return self

    def __next__(self) -> T:
        # probe and take under a single lock hold
        with self._lock:
            outcome = self._peek()
            if outcome is END:
                raise StopIteration
            self._pending = _UNSET
            return outcome.value

    @property
    def exhausted(self) -> bool:
        """True once END has been observed."""
        return self._pending is END

    def _peek(self) -> Outcome:
        # caller holds self._lock
        if self._pending is _UNSET:
            if self._producing:
                raise IllegalStateError("Producer pulled from its own cursor")
            self._producing = True
            try:
                outcome = self._producer()
            finally:
                self._producing = False
            if outcome is END:
                logger.debug(f"Producer {self._producer!r} signalled end of sequence")
            elif not isinstance(outcome, Item):
                raise TypeError(
                    f"Producer must return Item(...) or END, got {type(outcome).__name__}"
                )
            self._pending = outcome
        return self._pending


def next_outcome(source: Iterator[T]) -> Outcome:
    """Pull one element from ``source`` as an Item, or END when it is exhausted."""
    try:
        return Item(next(source))
    except StopIteration:
        return END


def _iterator_producer(it: Iterator[T]) -> Producer:
    return lambda: next_outcome(it)


def _iterable_producer(source: Iterable[T]) -> Producer:
    it = None

    def produce():
        nonlocal it
        if it is None:
            it = iter(source)
        return next_outcome(it)
    return produce


class LazySequence(Generic[T]):
    """
    A single-pass, lazily evaluated sequence.

    Transformations (``map``, ``filter``, ``skip``, ``limit``, ``until``) return
    new sequences that pull from this one on demand; nothing runs until an
    element is requested. Once an element has been consumed it is gone, both
    from this sequence and from anything derived from it.
    """

    def __init__(self, cursor: GeneratorCursor[T]):
        self._cursor = cursor

    @classmethod
    def of(cls, *values: T) -> "LazySequence[T]":
        return sequence_from_iterable(values)

    # --------- pull protocol ----------
    def probe(self) -> bool:
        return self._cursor.probe()

    def take(self) -> T:
        return self._cursor.take()

    def __iter__(self) -> "LazySequence[T]":
        return self

    def __next__(self) -> T:
        return next(self._cursor)

    # --------- chainable operators (lazy) ----------
    # Derived sequences are producers over this cursor, so a failing callback
    # loses only the element it was given and later pulls carry on.
    def map(self, fn: Callable[[T], U]) -> "LazySequence[U]":
        source = self._cursor

        def produce():
            outcome = next_outcome(source)
            if outcome is END:
                return END
            return Item(fn(outcome.value))
        return sequence_from_generator(produce)

    def filter(self, pred: Callable[[T], bool]) -> "LazySequence[T]":
        source = self._cursor

        def produce():
            while True:
                outcome = next_outcome(source)
                if outcome is END or pred(outcome.value):
                    return outcome
        return sequence_from_generator(produce)

    def skip(self, n: int) -> "LazySequence[T]":
        remaining = validate(WindowSettings, count=n).count
        source = self._cursor

        def produce():
            nonlocal remaining
            while remaining:
                if next_outcome(source) is END:
                    return END
                remaining -= 1
            return next_outcome(source)
        return sequence_from_generator(produce)

    def limit(self, n: int) -> "LazySequence[T]":
        """Keep at most ``n`` elements; the element after them is never pulled."""
        remaining = validate(WindowSettings, count=n).count
        source = self._cursor

        def produce():
            nonlocal remaining
            if remaining <= 0:
                return END
            outcome = next_outcome(source)
            if outcome is not END:
                remaining -= 1
            return outcome
        return sequence_from_generator(produce)

    def until(self, pred: Callable[[T], bool]) -> "LazySequence[T]":
        """Stop before the first element for which ``pred`` holds; that element is dropped."""
        source = self._cursor

        def produce():
            outcome = next_outcome(source)
            if outcome is END or pred(outcome.value):
                # END is memoized by the derived cursor, so source is not pulled again
                return END
            return outcome
        return sequence_from_generator(produce)

    def chunk(self, size: int) -> "LazySequence[LazySequence[T]]":
        """Group into chunks of ``size``; the last chunk may be shorter."""
        from .builder import builder_from
        return builder_from(self).chunk(size).build()

    # --------- reducing operations (force evaluation) ----------
    def to_list(self) -> List[T]:
        return list(self)

    def count(self) -> int:
        """Return the count of remaining elements"""
        count = 0
        for _ in self:
            count += 1
        return count

    def first(self, default: Optional[T] = None) -> Optional[T]:
        """Return the next element, or default if empty"""
        for item in self:
            return item
        return default

    def reduce(self, fn: Callable[[Any, T], Any], *initial: Any) -> Any:
        """Fold left to right; raises TypeError when empty and no initial value is given."""
        if len(initial) > 1:
            raise TypeError("reduce() takes at most one initial value")
        return builtin_reduce(fn, self, *initial)

    def collect(self, reducer) -> Any:
        """Run a terminal ``Reducer`` (e.g. ``top_k_collector``) over the sequence."""
        return reducer.reduce(self)


def sequence_from_generator(producer: Producer) -> LazySequence[T]:
    """Sequence that ends when ``producer`` returns END."""
    return LazySequence(GeneratorCursor(producer))


def sequence_from_nullable_generator(producer: Callable[[], Optional[T]]) -> LazySequence[T]:
    """Sequence that ends when ``producer`` returns None."""
    return sequence_from_generator(lambda: item_or_end(producer()))


def sequence_from_iterator(iterator: Iterator[T]) -> LazySequence[T]:
    return sequence_from_generator(_iterator_producer(iterator))


def sequence_from_iterable(iterable: Iterable[T]) -> LazySequence[T]:
    """Wrap an iterable without copying it; ``iter()`` is called at the first pull."""
    if isinstance(iterable, LazySequence):
        return iterable
    return sequence_from_generator(_iterable_producer(iterable))


def cycle(*elements: T) -> LazySequence[T]:
    """Infinite sequence repeating ``elements`` in order."""
    if not elements:
        raise InvalidArgumentError("cycle() needs at least one element")
    index = 0

    def rollover():
        nonlocal index
        value = elements[index % len(elements)]
        index += 1
        return Item(value)
    return sequence_from_generator(rollover)


class SeedGenerator(Generic[K]):
    """
    Builds sequences from a stateful seed that is not itself iterable.

    >>> buf = io.StringIO("a\\nb\\n")
    >>> from_seed(buf).stream_nullable(lambda f: f.readline() or None).to_list()
    ['a\\n', 'b\\n']
    """

    def __init__(self, seed: K):
        self._seed = seed

    @property
    def seed(self) -> K:
        return self._seed

    def stream_nullable(self, next_fn: Callable[[K], Optional[T]]) -> LazySequence[T]:
        """Call ``next_fn(seed)`` per element; None ends the sequence."""
        seed = self._seed
        return sequence_from_nullable_generator(lambda: next_fn(seed))

    def stream_optional(self, next_fn: Callable[[K], Outcome]) -> LazySequence[T]:
        """Call ``next_fn(seed)`` per element; END ends the sequence."""
        seed = self._seed
        return sequence_from_generator(lambda: next_fn(seed))

    def stream_while(self, pred: Callable[[K], bool]) -> LazySequence[K]:
        """Yield the seed itself for as long as ``pred(seed)`` holds."""
        seed = self._seed
        return sequence_from_generator(lambda: Item(seed) if pred(seed) else END)


def from_seed(seed: K) -> SeedGenerator[K]:
    return SeedGenerator(seed)
