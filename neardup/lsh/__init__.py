"""
MinHash signatures and banded locality-sensitive hashing.

This module turns token sets into minhash signatures, bands them into a
bucket index, extracts candidate pairs and scores only those pairs.
"""

from .hash_family import HashFamily, generate
from .signature import compute_signature, compute_signatures, estimate_similarity
from .bucket_index import (
    BucketIndex,
    IndexStats,
    SynchronizedBucketIndex,
    band_key,
    build,
    merge,
    merge_all,
)
from .candidates import (
    all_candidates,
    iter_candidates,
    pairwise_candidates,
    query,
    query_signature,
)
from .probability import (
    false_negative_rate,
    false_positive_rate,
    optimal_bands,
    probability,
    probability_curve,
    rows_per_band,
    suggest_bands,
    threshold,
)
from .compare import compare, filter_scores, pairwise_compare
from .similarity import (
    jaccard_bag_similarity,
    jaccard_dissimilarity,
    jaccard_similarity,
    ratio_of_matches,
)

__all__ = [
    # Hashing
    'HashFamily',
    'generate',
    'compute_signature',
    'compute_signatures',
    'estimate_similarity',

    # Index
    'BucketIndex',
    'IndexStats',
    'SynchronizedBucketIndex',
    'band_key',
    'build',
    'merge',
    'merge_all',

    # Candidates
    'all_candidates',
    'iter_candidates',
    'pairwise_candidates',
    'query',
    'query_signature',

    # Parameter selection
    'false_negative_rate',
    'false_positive_rate',
    'optimal_bands',
    'probability',
    'probability_curve',
    'rows_per_band',
    'suggest_bands',
    'threshold',

    # Scoring
    'compare',
    'filter_scores',
    'pairwise_compare',
    'jaccard_bag_similarity',
    'jaccard_dissimilarity',
    'jaccard_similarity',
    'ratio_of_matches',
]
