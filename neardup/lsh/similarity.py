"""
Exact similarity functions for confirmed candidate pairs.

All functions take two token collections and return a float in ``[0, 1]``.
They are symmetric and pure, so they can be handed to
:func:`neardup.lsh.compare.compare` directly.
"""

from collections import Counter
from typing import Collection, Hashable, Iterable


def jaccard_similarity(a: Iterable[Hashable], b: Iterable[Hashable]) -> float:
    """
    Size of the intersection over size of the union.

    Two empty sets have similarity 0.0.
    """
    set_a = set(a)
    set_b = set(b)
    union_count = len(set_a | set_b)
    if union_count == 0:
        return 0.0
    return len(set_a & set_b) / union_count


def jaccard_dissimilarity(a: Iterable[Hashable], b: Iterable[Hashable]) -> float:
    """Jaccard distance, ``1 - jaccard_similarity``."""
    return 1.0 - jaccard_similarity(a, b)


def jaccard_bag_similarity(a: Iterable[Hashable], b: Iterable[Hashable]) -> float:
    """
    Jaccard similarity over multisets.

    Intersection counts are the minimum multiplicity and the denominator is
    the combined size of both bags, so identical bags score 0.5.
    """
    bag_a = Counter(a)
    bag_b = Counter(b)
    total = sum(bag_a.values()) + sum(bag_b.values())
    if total == 0:
        return 0.0
    intersection = sum((bag_a & bag_b).values())
    return intersection / total


def ratio_of_matches(a: Collection[Hashable], b: Collection[Hashable]) -> float:
    """
    Share of the distinct tokens of ``b`` that also occur in ``a``.

    Not symmetric; useful to ask how much of ``b`` is borrowed from ``a``.
    """
    set_b = set(b)
    if not set_b:
        return 0.0
    return len(set_b & set(a)) / len(set_b)
