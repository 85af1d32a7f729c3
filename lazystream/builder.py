"""
Lazy concatenation and chunking of sequences.

``SequenceBuilder`` collects sources and stitches them together only when the
built sequence is pulled. ``ChunkBuffer`` is the small state machine used by
``SequenceBuilder.chunk``.
"""

import logging
from typing import Any, Callable, Generic, Iterable, List, NamedTuple, Optional, Tuple, TypeVar

from .errors import IllegalStateError, InvalidArgumentError
from .lazy import (
    END,
    Item,
    LazySequence,
    next_outcome,
    sequence_from_generator,
    sequence_from_iterable,
    sequence_from_nullable_generator,
)
from .models import ChunkSettings, validate
from .utils import supplier_for

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Transition(NamedTuple):
    """Result of ``ChunkBuffer.accept``: the buffer to use next, and a sealed chunk if one was completed."""
    buffer: "ChunkBuffer"
    sealed: Optional[Tuple[Any, ...]]


class ChunkBuffer(Generic[T]):
    """
    Fixed-capacity, append-only buffer.

    ``accept`` never lets the buffer grow past ``capacity``: the element that
    fills it seals the buffer and the returned transition carries a fresh
    empty buffer together with the sealed contents.
    """
    __slots__ = ("capacity", "_items", "_sealed")

    def __init__(self, capacity: int):
        self.capacity = validate(ChunkSettings, size=capacity).size
        self._items: List[T] = []
        self._sealed = False

    @property
    def sealed(self) -> bool:
        return self._sealed

    @property
    def items(self) -> Tuple[T, ...]:
        return tuple(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def accept(self, element: T) -> Transition:
        if self._sealed:
            raise IllegalStateError("Cannot accept into a sealed chunk buffer")
        self._items.append(element)
        if len(self._items) < self.capacity:
            return Transition(self, None)
        self._sealed = True
        return Transition(ChunkBuffer(self.capacity), tuple(self._items))

    def flush(self) -> Optional[Tuple[T, ...]]:
        """Seal a partial buffer at end of input; None if nothing was buffered."""
        if self._sealed:
            raise IllegalStateError("Chunk buffer was already sealed")
        self._sealed = True
        if not self._items:
            return None
        return tuple(self._items)


def _chunk_producer(source: LazySequence[T], size: int):
    buffer = ChunkBuffer(size)
    emitted = 0

    def produce():
        nonlocal buffer, emitted
        while buffer is not None:
            outcome = next_outcome(source)
            if outcome is END:
                tail = buffer.flush()
                buffer = None
                if tail is None:
                    break
                emitted += 1
                logger.debug(f"Flushed final chunk {emitted} ({len(tail)} of {size} elements)")
                return Item(sequence_from_iterable(tail))
            buffer, sealed = buffer.accept(outcome.value)
            if sealed is not None:
                emitted += 1
                logger.debug(f"Sealed chunk {emitted} ({size} elements)")
                return Item(sequence_from_iterable(sealed))
        return END
    return produce


def _as_sequence(source) -> LazySequence:
    if isinstance(source, LazySequence):
        return source
    if isinstance(source, Iterable):
        return sequence_from_iterable(source)
    # zero-argument supplier; None ends it
    return sequence_from_nullable_generator(source)


class SequenceBuilder(Generic[T]):
    """
    Concatenates sources in append order without materializing them.

    Accepted sources: a ``LazySequence``, any iterable, or a zero-argument
    callable that returns the next element or None when done. ``build``
    snapshots the sources appended so far, so later ``append`` calls only
    affect later builds.
    """

    def __init__(self):
        self._sources: List[Any] = []

    def append(self, source) -> "SequenceBuilder[T]":
        if not (isinstance(source, (LazySequence, Iterable)) or callable(source)):
            raise InvalidArgumentError(
                f"Cannot append {type(source).__name__}: expected a sequence, iterable or callable"
            )
        self._sources.append(source)
        return self

    def append_values(self, *values: T) -> "SequenceBuilder[T]":
        self._sources.append(values)
        return self

    def build(self) -> LazySequence[T]:
        snapshot = tuple(self._sources)
        position = 0
        current = None

        def concat():
            nonlocal position, current
            while position < len(snapshot):
                if current is None:
                    current = _as_sequence(snapshot[position])
                outcome = next_outcome(current)
                if outcome is not END:
                    return outcome
                position += 1
                current = None
            return END
        return sequence_from_generator(concat)

    def until(self, pred: Callable[[T], bool]) -> "SequenceBuilder[T]":
        """Builder over this one's elements, stopping before the first match of ``pred``."""
        return builder_from(self.build().until(pred))

    def chunk(self, size: int) -> "SequenceBuilder[LazySequence[T]]":
        """
        Builder of chunks of ``size`` elements each.

        Every chunk but the last has exactly ``size`` elements; the last holds
        the remainder and is omitted when the input is empty.
        """
        size = validate(ChunkSettings, size=size).size
        return builder_from(sequence_from_generator(_chunk_producer(self.build(), size)))

    def supplier(self) -> Callable[[], Optional[T]]:
        return supplier_for(self.build())


def builder_from(sequence) -> SequenceBuilder[T]:
    return SequenceBuilder().append(sequence)
