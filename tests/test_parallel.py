"""Tests for parallel execution helpers."""

import operator

import pytest

from neardup.performance.parallel import (
    ParallelExecutor,
    parallel_context,
    parallel_map,
    tree_reduce,
)


def square(x):
    return x * x


def fail_on_three(x):
    if x == 3:
        raise RuntimeError("boom")
    return x


class TestParallelExecutor:
    """Test ParallelExecutor."""

    def test_map_preserves_order(self):
        with ParallelExecutor(max_workers=4, chunk_size=3) as executor:
            assert executor.map(square, list(range(20))) == [x * x for x in range(20)]

    def test_map_empty(self):
        with ParallelExecutor(max_workers=2) as executor:
            assert executor.map(square, []) == []

    def test_map_propagates_errors(self):
        with ParallelExecutor(max_workers=2) as executor:
            with pytest.raises(RuntimeError, match="boom"):
                executor.map(fail_on_three, list(range(6)))

    def test_process_pool(self):
        with ParallelExecutor(max_workers=2, use_processes=True) as executor:
            assert executor.map(square, [1, 2, 3], chunk_size=2) == [1, 4, 9]

    def test_map_reduce(self):
        with ParallelExecutor(max_workers=3) as executor:
            total = executor.map_reduce(square, operator.add, list(range(11)))

        assert total == sum(x * x for x in range(11))

    def test_map_reduce_keeps_order(self):
        """Non-commutative reductions still see items in order."""
        with ParallelExecutor(max_workers=3) as executor:
            joined = executor.map_reduce(str, operator.add, list(range(7)))

        assert joined == "0123456"

    def test_map_reduce_empty(self):
        with ParallelExecutor(max_workers=2) as executor:
            assert executor.map_reduce(square, operator.add, [], initial=0) == 0

    def test_restart_after_shutdown(self):
        executor = ParallelExecutor(max_workers=2)
        executor.start()
        executor.shutdown()

        assert executor.map(square, [2]) == [4]
        executor.shutdown()


class TestHelpers:
    """Test module-level helpers."""

    def test_tree_reduce(self):
        assert tree_reduce(operator.add, [1, 2, 3, 4, 5]) == 15
        assert tree_reduce(operator.add, ["a", "b", "c"]) == "abc"
        assert tree_reduce(operator.add, [7]) == 7

    def test_tree_reduce_empty(self):
        with pytest.raises(ValueError):
            tree_reduce(operator.add, [])

    def test_parallel_map(self):
        assert parallel_map(square, [1, 2, 3], max_workers=2) == [1, 4, 9]

    def test_parallel_context(self):
        with parallel_context(max_workers=2) as executor:
            assert executor.map(square, [5]) == [25]
        assert executor._executor is None
