"""Parallel execution helpers."""

from .parallel import ParallelExecutor, parallel_context, parallel_map, tree_reduce

__all__ = ["ParallelExecutor", "parallel_context", "parallel_map", "tree_reduce"]
