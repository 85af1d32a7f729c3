import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from lazystream import END, Item
from lazystream.utils import clear_performance_metrics


class CountingProducer:
    """Explicit-form producer over a list that records every invocation."""

    def __init__(self, values):
        self.values = list(values)
        self.calls = 0
        self._index = 0

    def __call__(self):
        self.calls += 1
        if self._index >= len(self.values):
            return END
        value = self.values[self._index]
        self._index += 1
        return Item(value)


class CountingIterable:
    """Iterable that records how many elements were pulled from it."""

    def __init__(self, values):
        self.values = list(values)
        self.pulled = 0

    def __iter__(self):
        for value in self.values:
            self.pulled += 1
            yield value


@pytest.fixture
def counting_producer():
    return CountingProducer


@pytest.fixture
def counting_iterable():
    return CountingIterable


@pytest.fixture
def letters():
    return ["B", "A", "E", "Z", "C", "Q", "T"]


@pytest.fixture(autouse=True)
def reset_metrics(monkeypatch):
    monkeypatch.delenv("LAZYSTREAM_TOPK_OVERSHOOT", raising=False)
    monkeypatch.delenv("LAZYSTREAM_LOG_LEVEL", raising=False)
    clear_performance_metrics()
    yield
    clear_performance_metrics()
