"""
lazystream - lazy sequences over pull-based sources, plus mergeable top-K selection.
"""

import logging

from .errors import (
    IllegalStateError,
    InvalidArgumentError,
    LazyStreamError,
    WrappedProducerError,
)
from .lazy import (
    END,
    GeneratorCursor,
    Item,
    LazySequence,
    SeedGenerator,
    cycle,
    from_seed,
    item_or_end,
    sequence_from_generator,
    sequence_from_iterable,
    sequence_from_iterator,
    sequence_from_nullable_generator,
)
from .builder import ChunkBuffer, SequenceBuilder, Transition, builder_from
from .topk import Reducer, TopKSelector, natural_order, top_k_collector
from .models import ChunkSettings, LibrarySettings, TopKSettings, WindowSettings
from .utils import configure_logging, lines, supplier_for, unchecked

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Errors
    "LazyStreamError",
    "InvalidArgumentError",
    "IllegalStateError",
    "WrappedProducerError",
    # Sequences
    "Item",
    "END",
    "item_or_end",
    "GeneratorCursor",
    "LazySequence",
    "SeedGenerator",
    "sequence_from_generator",
    "sequence_from_nullable_generator",
    "sequence_from_iterator",
    "sequence_from_iterable",
    "cycle",
    "from_seed",
    # Concatenation and chunking
    "SequenceBuilder",
    "ChunkBuffer",
    "Transition",
    "builder_from",
    # Top-K
    "TopKSelector",
    "Reducer",
    "natural_order",
    "top_k_collector",
    # Settings
    "ChunkSettings",
    "WindowSettings",
    "TopKSettings",
    "LibrarySettings",
    # Adapters
    "lines",
    "supplier_for",
    "unchecked",
    "configure_logging",
]
