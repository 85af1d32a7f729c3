import pytest
import io
import re

from lazystream import (
    END,
    IllegalStateError,
    InvalidArgumentError,
    Item,
    LazySequence,
    cycle,
    from_seed,
    sequence_from_generator,
    sequence_from_iterable,
    sequence_from_iterator,
    sequence_from_nullable_generator,
)


class TestSequenceConstruction:
    """Test the ways of creating a LazySequence"""

    def test_from_iterable_preserves_order(self):
        """Full traversal yields the source elements in order"""
        data = [3, 1, 4, 1, 5, 9, 2, 6]
        result = sequence_from_iterable(data).to_list()
        assert result == data, f"Unexpected result: {result}"

    def test_from_iterable_is_lazy(self, counting_iterable):
        """iter() is not even called until the first pull"""
        source = counting_iterable(range(10))
        seq = sequence_from_iterable(source)
        assert source.pulled == 0

        assert seq.take() == 0
        assert source.pulled == 1, f"Expected 1 pull, got {source.pulled}"

    def test_from_iterator(self):
        """An existing iterator is consumed in place"""
        it = iter("abc")
        seq = sequence_from_iterator(it)
        assert seq.take() == "a"
        assert next(it) == "b", "Sequence should not read ahead of demand"
        assert seq.to_list() == ["c"]

    def test_from_generator(self, counting_producer):
        """Explicit producer ends on END; calls = elements + 1"""
        producer = counting_producer([1, 2, 3])
        result = sequence_from_generator(producer).to_list()
        assert result == [1, 2, 3]
        assert producer.calls == 4, f"Expected 4 calls, got {producer.calls}"

    def test_from_nullable_generator(self):
        """None ends a nullable producer"""
        values = iter([1, 2, None, 3])
        result = sequence_from_nullable_generator(lambda: next(values)).to_list()
        assert result == [1, 2], f"Unexpected result: {result}"

    def test_of(self):
        assert LazySequence.of("x", None, "y").to_list() == ["x", None, "y"]

    def test_take_after_end(self):
        """take() past the end raises IllegalStateError"""
        seq = LazySequence.of(1)
        assert seq.take() == 1
        assert not seq.probe()
        with pytest.raises(IllegalStateError):
            seq.take()

    def test_single_pass(self):
        """A consumed element is not replayed"""
        seq = sequence_from_iterable([1, 2, 3])
        assert seq.to_list() == [1, 2, 3]
        assert seq.to_list() == [], "Sequence should be single-pass"

    def test_errors_surface_at_demand(self):
        """An error in the 3rd element surfaces only when it is pulled"""
        def source():
            yield 1
            yield 2
            raise KeyError("third")

        seq = sequence_from_iterator(source())
        assert seq.take() == 1
        assert seq.take() == 2
        with pytest.raises(KeyError):
            seq.take()


class TestCycle:
    """Test the infinite cycle sequence"""

    def test_cycle_bounded_by_limit(self):
        result = cycle("x", "y").limit(5).to_list()
        assert result == ["x", "y", "x", "y", "x"], f"Unexpected result: {result}"

    def test_cycle_allows_none(self):
        assert cycle(None).limit(3).to_list() == [None, None, None]

    def test_cycle_requires_elements(self):
        with pytest.raises(InvalidArgumentError):
            cycle()


class TestSeedGenerator:
    """Test sequences driven by a stateful seed"""

    def test_stream_nullable_over_reader(self):
        """readline() until empty, mapped to None"""
        buf = io.StringIO("alpha\nbeta\ngamma\n")
        result = from_seed(buf).stream_nullable(lambda f: f.readline() or None).map(str.strip).to_list()
        assert result == ["alpha", "beta", "gamma"], f"Unexpected result: {result}"

    def test_stream_optional(self):
        stack = [3, 2, 1]
        result = from_seed(stack).stream_optional(lambda s: Item(s.pop()) if s else END).to_list()
        assert result == [1, 2, 3]

    def test_stream_while(self):
        """The seed itself is yielded while the predicate advances it"""
        matches = re.compile(r"([A-Z])([0-9])").finditer("A1B2C3D4E5")

        class Matcher:
            current = None

            def find(self):
                self.current = next(matches, None)
                return self.current is not None

        result = (
            from_seed(Matcher())
            .stream_while(lambda m: m.find())
            .map(lambda m: f"{m.current.group(1)}.{m.current.group(2)}")
            .to_list()
        )
        assert ";".join(result) == "A.1;B.2;C.3;D.4;E.5", f"Unexpected result: {result}"


class TestTransformations:
    """Test chainable lazy transformations"""

    def test_until_excludes_matching_element(self):
        """until() stops before the first match and drops it"""
        result = LazySequence.of("a", "b", "c", "d").until(lambda x: x == "c").to_list()
        assert result == ["a", "b"], f"Unexpected result: {result}"

    def test_until_stops_pulling(self, counting_iterable):
        """Nothing after the matching element is pulled"""
        source = counting_iterable(range(100))
        result = sequence_from_iterable(source).until(lambda x: x == 3).to_list()
        assert result == [0, 1, 2]
        assert source.pulled == 4, f"Expected 4 pulls, got {source.pulled}"

    def test_until_on_infinite_sequence(self):
        n = {"v": 0}

        def naturals():
            n["v"] += 1
            return Item(n["v"])

        result = sequence_from_generator(naturals).until(lambda x: x > 4).to_list()
        assert result == [1, 2, 3, 4]

    def test_map_filter_are_deferred(self):
        """No transformation runs during definition"""
        call_count = 0

        def track_calls(x):
            nonlocal call_count
            call_count += 1
            return x * 2

        seq = sequence_from_iterable(range(10)).map(track_calls).filter(lambda x: x % 4 == 0)
        assert call_count == 0, "Operations should not execute during definition"

        assert seq.take() == 0
        assert seq.take() == 4
        assert call_count == 3, f"Expected 3 calls, got {call_count}"

    def test_limit_pulls_exactly_n(self, counting_iterable):
        source = counting_iterable(range(100))
        result = sequence_from_iterable(source).limit(5).to_list()
        assert result == [0, 1, 2, 3, 4]
        assert source.pulled == 5, f"Expected 5 pulls, got {source.pulled}"

    def test_skip_then_limit(self):
        result = sequence_from_iterable(range(100)).skip(10).limit(3).to_list()
        assert result == [10, 11, 12]

    @pytest.mark.parametrize("n", [-1, 2.5, "3", True])
    def test_window_rejects_bad_counts(self, n):
        with pytest.raises(InvalidArgumentError):
            LazySequence.of(1, 2).limit(n)
        with pytest.raises(InvalidArgumentError):
            LazySequence.of(1, 2).skip(n)

    def test_limit_zero(self):
        assert cycle(1).limit(0).to_list() == []


class TestCallbackFailures:
    """Test that a failing callback loses only the element it was given"""

    def test_map_continues_after_error(self):
        def invert(x):
            if x == 2:
                raise ZeroDivisionError("bad element")
            return x

        seq = LazySequence.of(1, 2, 3, 4).map(invert)
        assert seq.take() == 1
        with pytest.raises(ZeroDivisionError):
            seq.take()
        assert seq.to_list() == [3, 4], "Remaining elements should still be produced"

    def test_filter_continues_after_error(self):
        def is_odd(x):
            if x == 3:
                raise ValueError("cannot judge 3")
            return x % 2 == 1

        seq = LazySequence.of(1, 2, 3, 4, 5).filter(is_odd)
        assert seq.take() == 1
        with pytest.raises(ValueError):
            seq.take()
        assert seq.to_list() == [5]

    def test_until_continues_after_error(self):
        def stop_at_five(x):
            if x == 2:
                raise KeyError(x)
            return x == 5

        seq = LazySequence.of(1, 2, 3, 4, 5, 6).until(stop_at_five)
        assert seq.take() == 1
        with pytest.raises(KeyError):
            seq.take()
        assert seq.to_list() == [3, 4]

    def test_skip_resumes_after_source_error(self):
        """A source error during skipping does not count as a skipped element"""
        calls = {"count": 0}

        def producer():
            calls["count"] += 1
            if calls["count"] == 2:
                raise IOError("read failed")
            return Item(calls["count"]) if calls["count"] <= 6 else END

        seq = sequence_from_generator(producer).skip(2)
        with pytest.raises(IOError):
            seq.probe()
        assert seq.to_list() == [4, 5, 6]

    def test_limit_counts_only_delivered_elements(self):
        calls = {"count": 0}

        def producer():
            calls["count"] += 1
            if calls["count"] == 1:
                raise IOError("read failed")
            return Item(calls["count"])

        seq = sequence_from_generator(producer).limit(2)
        with pytest.raises(IOError):
            seq.take()
        assert seq.to_list() == [2, 3]


class TestReductions:
    """Test terminal operations"""

    def test_count(self):
        assert sequence_from_iterable(range(20)).filter(lambda x: x % 3 == 0).count() == 7

    def test_first(self):
        assert LazySequence.of(5, 6).first() == 5
        assert LazySequence.of().first("empty") == "empty"

    def test_reduce(self):
        assert sequence_from_iterable(range(1, 6)).reduce(lambda a, b: a + b) == 15
        assert LazySequence.of().reduce(lambda a, b: a + b, 0) == 0

    def test_reduce_empty_without_initial(self):
        with pytest.raises(TypeError):
            LazySequence.of().reduce(lambda a, b: a + b)
