"""
End-to-end near-duplicate detection.

Token sets are signed in parallel, indexed in independent batches, merged
with a reduction tree, and only the resulting candidate pairs are scored
with the exact similarity function.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple

from .config import DedupConfig
from .core.types import AccessorLike, CandidatePair, DocId, Signature, SimilarityFn, Token, order_key
from .lsh.bucket_index import BucketIndex, IndexStats, build, merge, merge_all
from .lsh.candidates import all_candidates
from .lsh.compare import compare, filter_scores
from .lsh.hash_family import HashFamily, generate
from .lsh.signature import compute_signatures
from .lsh.similarity import jaccard_similarity
from .performance.parallel import ParallelExecutor
from .utils.logging_setup import log_operation

logger = logging.getLogger(__name__)


@dataclass
class DedupResult:
    """Outcome of one pipeline run."""
    index: BucketIndex
    candidates: Set[CandidatePair]
    scores: Dict[CandidatePair, float]
    skipped: List[DocId] = field(default_factory=list)
    duration: float = 0.0

    @property
    def stats(self) -> IndexStats:
        return self.index.stats()

    def ranked(self) -> List[Tuple[CandidatePair, float]]:
        """Scored pairs, most similar first."""
        return sorted(
            self.scores.items(),
            key=lambda item: (-item[1], order_key(item[0].first), order_key(item[0].second)),
        )

    def as_dict(self) -> Dict[str, Any]:
        return {
            "pairs": [
                {"a": pair.first, "b": pair.second, "score": score}
                for pair, score in self.ranked()
            ],
            "candidates": len(self.candidates),
            "skipped": list(self.skipped),
            "stats": self.stats.as_dict(),
            "duration": self.duration,
        }


class _BatchBuilder:
    """Picklable ``build`` bound to one banding."""

    def __init__(self, bands: int, num_hashes: int):
        self.bands = bands
        self.num_hashes = num_hashes

    def __call__(self, batch: Dict[DocId, Signature]) -> BucketIndex:
        return build(batch, self.bands, num_hashes=self.num_hashes)


class DedupPipeline:
    """
    Orchestrates signatures, banding, candidate extraction and scoring.

    All parameters come from a validated :class:`DedupConfig`; the hash
    family is generated once so every batch shares it.
    """

    def __init__(self, config: Optional[DedupConfig] = None):
        self.config = config or DedupConfig()
        self.family: HashFamily = generate(self.config.seed, self.config.num_hashes)

    def signatures(
        self,
        token_sets: Mapping[DocId, Iterable[Token]],
        skipped: Optional[List[DocId]] = None,
    ) -> Dict[DocId, Signature]:
        """Signatures for every document with at least one token."""
        return compute_signatures(
            token_sets,
            self.family,
            max_workers=self.config.max_workers,
            use_processes=self.config.use_processes,
            skip_empty=self.config.skip_empty,
            skipped=skipped,
        )

    def build_index(self, signatures: Mapping[DocId, Signature]) -> BucketIndex:
        """Index signatures batch by batch and merge the partial indices."""
        cfg = self.config
        batches = _split(signatures, cfg.batch_size)
        builder = _BatchBuilder(cfg.bands, cfg.num_hashes)

        if not batches:
            return builder({})
        if len(batches) == 1 or cfg.max_workers == 1:
            return merge_all([builder(batch) for batch in batches])

        with ParallelExecutor(max_workers=cfg.max_workers, use_processes=cfg.use_processes) as executor:
            return executor.map_reduce(builder, merge, batches)

    def index(
        self,
        token_sets: Mapping[DocId, Iterable[Token]],
        skipped: Optional[List[DocId]] = None,
    ) -> BucketIndex:
        """Bucket index for a corpus of token sets."""
        return self.build_index(self.signatures(token_sets, skipped=skipped))

    def candidates(self, token_sets: Mapping[DocId, Iterable[Token]]) -> Set[CandidatePair]:
        """Candidate pairs for a corpus of token sets."""
        return all_candidates(self.index(token_sets))

    def run(
        self,
        token_sets: Mapping[DocId, Iterable[Token]],
        similarity_fn: SimilarityFn = jaccard_similarity,
        accessor: Optional[AccessorLike] = None,
    ) -> DedupResult:
        """
        Find and score near-duplicate pairs.

        Args:
            token_sets: Mapping of document id to tokens
            similarity_fn: Exact similarity for candidate pairs
            accessor: Representation passed to ``similarity_fn``; defaults to
                the document's token set

        Returns:
            DedupResult with pairs scoring at least ``min_similarity``
        """
        started = time.perf_counter()
        docs = {doc_id: list(tokens) for doc_id, tokens in token_sets.items()}
        log_operation(logger, "dedup_run", documents=len(docs),
                      num_hashes=self.config.num_hashes, bands=self.config.bands)

        skipped: List[DocId] = []
        index = self.index(docs, skipped=skipped)
        pairs = all_candidates(index)
        if accessor is None:
            accessor = {doc_id: frozenset(tokens) for doc_id, tokens in docs.items()}
        scores = filter_scores(compare(pairs, accessor, similarity_fn), self.config.min_similarity)

        duration = time.perf_counter() - started
        logger.info(
            f"Indexed {len(docs) - len(skipped)} documents into {len(index)} buckets; "
            f"{len(pairs)} candidate pairs, {len(scores)} kept ({duration:.2f}s)"
        )
        return DedupResult(index=index, candidates=pairs, scores=scores,
                           skipped=skipped, duration=duration)


def _split(signatures: Mapping[DocId, Signature], size: int) -> List[Dict[DocId, Signature]]:
    items = list(signatures.items())
    return [dict(items[i:i + size]) for i in range(0, len(items), size)]


def find_near_duplicates(
    token_sets: Mapping[DocId, Iterable[Token]],
    similarity_fn: SimilarityFn = jaccard_similarity,
    **config_overrides,
) -> DedupResult:
    """
    One-call near-duplicate detection.

    Keyword arguments override :class:`DedupConfig` defaults.
    """
    config = DedupConfig(**config_overrides)
    return DedupPipeline(config).run(token_sets, similarity_fn=similarity_fn)
