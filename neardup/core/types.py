"""Shared type definitions for the neardup pipeline.

Document ids are opaque and hashable (strings in most corpora); ids of
mixed types are ordered through :func:`order_key`. Signatures are plain
tuples of unsigned 64-bit integers so they pickle cheaply across worker
processes.
"""

from __future__ import annotations

from typing import (
    Any,
    Callable,
    Hashable,
    Iterable,
    Mapping,
    NamedTuple,
    Protocol,
    Tuple,
    Union,
    runtime_checkable,
)

# =============================================================================
# Aliases
# =============================================================================

DocId = Hashable
Token = Hashable
Signature = Tuple[int, ...]
TokenSet = Iterable[Token]

# (band_index, bucket_key)
BucketAddress = Tuple[int, str]

SimilarityFn = Callable[[Any, Any], float]


@runtime_checkable
class Accessor(Protocol):
    """Anything that returns the comparable representation of a document."""

    def __call__(self, doc_id: DocId) -> Any: ...


AccessorLike = Union[Accessor, Mapping[DocId, Any]]


def order_key(doc_id: DocId) -> Tuple[str, Any]:
    """Sort key giving a total order over ids of mixed types.

    Ids of one type keep their natural order; ints and floats sort together.
    """
    if isinstance(doc_id, (int, float)):
        return ("", doc_id)
    return (type(doc_id).__name__, doc_id)


# =============================================================================
# Core Data Structures
# =============================================================================

class CandidatePair(NamedTuple):
    """Unordered pair of document ids, stored in ascending order.

    Always construct through :meth:`of` so ``(a, b)`` and ``(b, a)`` compare
    and hash equal.
    """
    first: DocId
    second: DocId

    @classmethod
    def of(cls, a: DocId, b: DocId) -> "CandidatePair":
        if order_key(b) < order_key(a):
            a, b = b, a
        return cls(a, b)


class BucketRow(NamedTuple):
    """One row of the flat bucket relation."""
    doc_id: DocId
    band_index: int
    bucket_key: str
