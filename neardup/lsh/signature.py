# neardup/lsh/signature.py
"""
MinHash signatures for token sets.

A signature holds, for every function of a :class:`HashFamily`, the minimum
hash value over a document's tokens. The fraction of positions at which two
signatures agree is an unbiased estimate of the Jaccard similarity of the
underlying token sets.
"""
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from ..core.types import DocId, Signature, Token
from ..errors import EmptyInputError, MismatchError
from ..performance.parallel import ParallelExecutor
from .hash_family import HashFamily, UINT64_MAX, base_hash_array

logger = logging.getLogger(__name__)

# Tokens hashed per numpy block; bounds the (num_hashes, block) work array.
TOKEN_BLOCK = 4096


def compute_signature(tokens: Iterable[Token], family: HashFamily) -> Signature:
    """
    Compute the minhash signature of a token set.

    Args:
        tokens: Tokens of one document; duplicates and order are ignored
        family: Hash family shared by every document of the corpus

    Returns:
        Tuple of ``family.num_hashes`` unsigned 64-bit integers

    Raises:
        EmptyInputError: if ``tokens`` is empty
    """
    unique = list(set(tokens))
    if not unique:
        raise EmptyInputError("cannot compute a signature for an empty token set")

    salts = family.salt_column
    mins = np.full(family.num_hashes, UINT64_MAX, dtype=np.uint64)
    for start in range(0, len(unique), TOKEN_BLOCK):
        base = base_hash_array(unique[start:start + TOKEN_BLOCK])
        # (num_hashes, 1) ^ (1, block) -> (num_hashes, block)
        hashed = np.bitwise_xor(salts, base.reshape(1, -1))
        np.minimum(mins, hashed.min(axis=1), out=mins)
    return tuple(mins.tolist())


def estimate_similarity(sig_a: Sequence[int], sig_b: Sequence[int]) -> float:
    """Fraction of positions where two signatures agree."""
    if len(sig_a) != len(sig_b):
        raise MismatchError(
            "signatures have different lengths",
            expected=len(sig_a),
            actual=len(sig_b),
        )
    if not sig_a:
        return 0.0
    matches = sum(1 for a, b in zip(sig_a, sig_b) if a == b)
    return matches / float(len(sig_a))


class _SignatureTask:
    """Picklable per-document worker for process pools."""

    def __init__(self, family: HashFamily, skip_empty: bool) -> None:
        self.family = family
        self.skip_empty = skip_empty

    def __call__(self, item: Tuple[DocId, Iterable[Token]]) -> Tuple[DocId, Optional[Signature]]:
        doc_id, tokens = item
        try:
            return doc_id, compute_signature(tokens, self.family)
        except EmptyInputError as e:
            if not self.skip_empty:
                raise EmptyInputError(
                    f"document {doc_id!r} has no tokens", doc_id=doc_id
                ) from e
            return doc_id, None


def compute_signatures(
    token_sets: Mapping[DocId, Iterable[Token]],
    family: HashFamily,
    *,
    max_workers: Optional[int] = None,
    use_processes: bool = False,
    chunk_size: Optional[int] = None,
    skip_empty: bool = False,
    skipped: Optional[List[DocId]] = None,
) -> Dict[DocId, Signature]:
    """
    Compute signatures for many documents, optionally in parallel.

    Documents are independent, so the work is spread over a thread or
    process pool with no shared mutable state.

    Args:
        token_sets: Mapping of document id to its tokens
        family: Hash family
        max_workers: Pool size; ``1`` computes inline
        use_processes: Use a process pool instead of threads
        chunk_size: Documents per submitted task
        skip_empty: Leave out empty documents instead of raising
        skipped: Optional list that receives the ids of skipped documents

    Returns:
        Mapping of document id to signature, in input order
    """
    items = [(doc_id, list(tokens)) for doc_id, tokens in token_sets.items()]
    task = _SignatureTask(family, skip_empty)

    if max_workers == 1 or len(items) <= 1:
        results = [task(item) for item in items]
    else:
        if chunk_size is None:
            chunk_size = max(1, len(items) // (4 * (max_workers or 4)))
        with ParallelExecutor(max_workers=max_workers, use_processes=use_processes) as executor:
            results = executor.map(task, items, chunk_size=chunk_size)

    signatures: Dict[DocId, Signature] = {}
    for doc_id, sig in results:
        if sig is None:
            logger.info(f"Skipping document with no tokens: {doc_id!r}")
            if skipped is not None:
                skipped.append(doc_id)
            continue
        signatures[doc_id] = sig

    logger.debug(f"Computed {len(signatures)} signatures ({family.num_hashes} hashes each)")
    return signatures
