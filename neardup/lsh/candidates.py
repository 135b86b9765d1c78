# neardup/lsh/candidates.py
"""
Candidate extraction from a :class:`BucketIndex`.

Work is proportional to bucket occupancy, not corpus size: a near-duplicate
pair only has to collide in one band to surface, while dissimilar documents
rarely share any bucket.
"""
from __future__ import annotations

from itertools import combinations
from typing import Iterable, Iterator, Sequence, Set

from ..core.types import CandidatePair, DocId, order_key
from .bucket_index import BucketIndex


def query(index: BucketIndex, doc_id: DocId) -> Set[DocId]:
    """
    Documents sharing at least one bucket with ``doc_id``.

    Only the buckets holding ``doc_id`` are visited, at most one per band.
    ``doc_id`` itself is excluded; an id that is not indexed yields an
    empty set.
    """
    found: Set[DocId] = set()
    for address in index.addresses_of(doc_id):
        found.update(index.buckets[address])
    found.discard(doc_id)
    return found


def query_signature(index: BucketIndex, signature: Sequence[int]) -> Set[DocId]:
    """Indexed documents co-bucketed with a signature that is not in the index."""
    found: Set[DocId] = set()
    for address in index.band_addresses(signature):
        members = index.buckets.get(address)
        if members:
            found.update(members)
    return found


def iter_candidates(index: BucketIndex) -> Iterator[CandidatePair]:
    """
    Yield each candidate pair once, however many bands it collides in.
    """
    seen: Set[CandidatePair] = set()
    for members in index.buckets.values():
        if len(members) < 2:
            continue
        for a, b in combinations(sorted(members, key=order_key), 2):
            pair = CandidatePair(a, b)
            if pair not in seen:
                seen.add(pair)
                yield pair


def all_candidates(index: BucketIndex) -> Set[CandidatePair]:
    """Deduplicated set of every pair that shares at least one bucket."""
    return set(iter_candidates(index))


def pairwise_candidates(doc_ids: Iterable[DocId]) -> Set[CandidatePair]:
    """Every unordered pair of ``doc_ids``; the brute-force baseline."""
    return {CandidatePair(a, b) for a, b in combinations(sorted(set(doc_ids), key=order_key), 2)}
