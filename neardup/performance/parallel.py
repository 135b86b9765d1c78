"""
Parallel processing utilities.

Signature computation and per-batch index construction are independent per
document, so they fan out over a thread or process pool; partial results are
folded back together with a pairwise reduction tree.
"""

import logging
import multiprocessing as mp
from concurrent.futures import ThreadPoolExecutor, ProcessPoolExecutor, Future
from contextlib import contextmanager
from typing import Any, Callable, Dict, List, Optional, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')
R = TypeVar('R')


class ParallelExecutor:
    """
    Thread or process pool with order-preserving chunked ``map``.

    Exceptions raised by a task are re-raised in the caller after the
    remaining tasks are cancelled.
    """

    def __init__(
        self,
        max_workers: Optional[int] = None,
        use_processes: bool = False,
        chunk_size: Optional[int] = None
    ):
        """
        Initialize parallel executor.

        Args:
            max_workers: Maximum number of workers
            use_processes: Use processes instead of threads
            chunk_size: Default chunk size for batching
        """
        self.max_workers = max_workers or mp.cpu_count()
        self.use_processes = use_processes
        self.chunk_size = chunk_size

        self._executor: Optional[Any] = None
        self._shutdown = False

    def __enter__(self):
        """Context manager entry."""
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.shutdown()

    def start(self):
        """Start the executor."""
        if self._executor is None:
            if self.use_processes:
                self._executor = ProcessPoolExecutor(max_workers=self.max_workers)
            else:
                self._executor = ThreadPoolExecutor(max_workers=self.max_workers)
            self._shutdown = False

    def shutdown(self, wait: bool = True):
        """Shutdown the executor."""
        if self._executor and not self._shutdown:
            self._executor.shutdown(wait=wait)
            self._executor = None
            self._shutdown = True

    def map(
        self,
        func: Callable[[T], R],
        items: Sequence[T],
        chunk_size: Optional[int] = None,
        timeout: Optional[float] = None
    ) -> List[R]:
        """
        Map function over items in parallel.

        Args:
            func: Function to apply
            items: Items to process
            chunk_size: Items per chunk
            timeout: Timeout per chunk

        Returns:
            List of results in original order
        """
        if not items:
            return []

        self.start()
        chunk_size = chunk_size or self.chunk_size or 1

        futures: Dict[int, Future] = {}
        for i in range(0, len(items), chunk_size):
            chunk = list(items[i:i + chunk_size])
            futures[i] = self._executor.submit(_process_chunk, func, chunk)

        results: List[R] = []
        try:
            for i in sorted(futures):
                results.extend(futures[i].result(timeout=timeout))
        except Exception as e:
            logger.error(f"Task failed: {e}")
            for future in futures.values():
                future.cancel()
            raise

        return results

    def map_reduce(
        self,
        map_func: Callable[[T], R],
        reduce_func: Callable[[R, R], R],
        items: Sequence[T],
        initial: Optional[R] = None,
        chunk_size: Optional[int] = None
    ) -> Optional[R]:
        """
        Parallel map followed by a pairwise tree reduction.

        ``reduce_func`` must be associative; each level of the tree is
        reduced in parallel.

        Args:
            map_func: Map function
            reduce_func: Associative reduce function
            items: Items to process
            initial: Returned when ``items`` is empty
            chunk_size: Items per map chunk

        Returns:
            Reduced result
        """
        if not items:
            return initial

        level = self.map(map_func, items, chunk_size=chunk_size)
        while len(level) > 1:
            pairs = [(level[i], level[i + 1]) for i in range(0, len(level) - 1, 2)]
            reduced = self.map(_ReducePair(reduce_func), pairs)
            if len(level) % 2:
                reduced.append(level[-1])
            level = reduced
        return level[0]


class _ReducePair:
    """Picklable adapter applying a binary function to a 2-tuple."""

    def __init__(self, func: Callable[[R, R], R]):
        self.func = func

    def __call__(self, pair):
        return self.func(pair[0], pair[1])


def _process_chunk(func: Callable, chunk: List) -> List:
    """Process a chunk of items."""
    return [func(item) for item in chunk]


def tree_reduce(func: Callable[[T, T], T], values: Sequence[T]) -> T:
    """
    Reduce ``values`` pairwise, level by level, in the calling thread.

    For an associative ``func`` the result equals a left fold, but the depth
    of nested calls is logarithmic in ``len(values)``.
    """
    if not values:
        raise ValueError("tree_reduce() of empty sequence")
    level = list(values)
    while len(level) > 1:
        nxt = [func(level[i], level[i + 1]) for i in range(0, len(level) - 1, 2)]
        if len(level) % 2:
            nxt.append(level[-1])
        level = nxt
    return level[0]


@contextmanager
def parallel_context(max_workers: Optional[int] = None, use_processes: bool = False):
    """
    Context manager for parallel processing.

    Args:
        max_workers: Maximum workers
        use_processes: Use processes instead of threads

    Yields:
        ParallelExecutor instance
    """
    executor = ParallelExecutor(max_workers, use_processes)
    executor.start()

    try:
        yield executor
    finally:
        executor.shutdown()


def parallel_map(
    func: Callable[[T], R],
    items: Sequence[T],
    max_workers: Optional[int] = None,
    use_processes: bool = False
) -> List[R]:
    """
    Convenience function for parallel mapping.

    Args:
        func: Function to apply
        items: Items to process
        max_workers: Maximum workers
        use_processes: Use processes instead of threads

    Returns:
        List of results
    """
    with parallel_context(max_workers, use_processes) as executor:
        return executor.map(func, items)
