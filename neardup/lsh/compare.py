# neardup/lsh/compare.py
"""
Scoring of candidate pairs with an external similarity function.

The similarity function is only ever called for the pairs handed in, never
for the full cross product of documents.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, Mapping

from ..core.types import AccessorLike, CandidatePair, DocId, SimilarityFn
from .candidates import pairwise_candidates

logger = logging.getLogger(__name__)


def _as_callable(accessor: AccessorLike) -> Callable[[DocId], Any]:
    if isinstance(accessor, Mapping):
        return accessor.__getitem__
    return accessor


def compare(
    pairs: Iterable[CandidatePair],
    accessor: AccessorLike,
    similarity_fn: SimilarityFn,
) -> Dict[CandidatePair, float]:
    """
    Score each candidate pair.

    Args:
        pairs: Candidate pairs, usually from ``all_candidates``
        accessor: Callable or mapping returning a document's comparable
            representation
        similarity_fn: ``(repr_a, repr_b) -> float``

    Returns:
        Mapping of pair to score
    """
    fetch = _as_callable(accessor)
    cache: Dict[DocId, Any] = {}

    def representation(doc_id: DocId) -> Any:
        if doc_id not in cache:
            cache[doc_id] = fetch(doc_id)
        return cache[doc_id]

    scores: Dict[CandidatePair, float] = {}
    for pair in pairs:
        pair = CandidatePair.of(*pair)
        if pair in scores:
            continue
        a, b = pair
        scores[pair] = float(similarity_fn(representation(a), representation(b)))

    logger.debug(f"Scored {len(scores)} candidate pairs")
    return scores


def pairwise_compare(
    doc_ids: Iterable[DocId],
    accessor: AccessorLike,
    similarity_fn: SimilarityFn,
) -> Dict[CandidatePair, float]:
    """Score every pair of ``doc_ids``; quadratic, for evaluation only."""
    return compare(pairwise_candidates(doc_ids), accessor, similarity_fn)


def filter_scores(scores: Mapping[CandidatePair, float], minimum: float) -> Dict[CandidatePair, float]:
    """Pairs scoring at or above ``minimum``."""
    return {pair: score for pair, score in scores.items() if score >= minimum}
