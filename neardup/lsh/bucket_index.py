# neardup/lsh/bucket_index.py
"""
Banded bucket index over minhash signatures.

Each signature of length ``num_hashes`` is cut into ``bands`` contiguous slices
of ``rows_per_band`` values. Every slice is digested into a bucket key, and the
document id is added to the set stored at ``(band_index, bucket_key)``.
Documents sharing a bucket in any band become candidate pairs.

An index only grows. Indices built from disjoint batches with the same
``(num_hashes, bands)`` combine by per-bucket set union, which is commutative
and associative, so batches can be merged in any order or by a reduction tree.
"""
from __future__ import annotations

import hashlib
import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Set, Tuple

from ..core.types import BucketAddress, BucketRow, DocId, Signature
from ..errors import ConfigError, MismatchError
from ..performance.parallel import tree_reduce
from .probability import rows_per_band

logger = logging.getLogger(__name__)


@dataclass
class IndexStats:
    total_documents: int = 0
    total_buckets: int = 0
    non_singleton_buckets: int = 0
    avg_bucket_size: float = 0.0
    max_bucket_size: int = 0

    def as_dict(self) -> Dict[str, float]:
        return {
            "total_documents": float(self.total_documents),
            "total_buckets": float(self.total_buckets),
            "non_singleton_buckets": float(self.non_singleton_buckets),
            "avg_bucket_size": float(self.avg_bucket_size),
            "max_bucket_size": float(self.max_bucket_size),
        }


@dataclass
class BucketIndex:
    """
    Mapping ``(band_index, bucket_key) -> set of document ids``.

    Use :func:`build` to index a batch of signatures and :func:`merge` to
    combine batches. ``add`` and ``update`` mutate in place and are not
    thread-safe; see :class:`SynchronizedBucketIndex`.
    """
    num_hashes: int
    bands: int
    buckets: Dict[BucketAddress, Set[DocId]] = field(default_factory=dict)
    # doc_id -> addresses it is stored under; kept in step with ``buckets``
    _doc_addresses: Dict[DocId, Set[BucketAddress]] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        self._rows = rows_per_band(self.num_hashes, self.bands)
        for address, members in self.buckets.items():
            for doc_id in members:
                self._doc_addresses.setdefault(doc_id, set()).add(address)

    @property
    def rows_per_band(self) -> int:
        return self._rows

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.num_hashes, self.bands)

    @property
    def doc_ids(self) -> Set[DocId]:
        """Every document id present in the index."""
        return set(self._doc_addresses)

    def __len__(self) -> int:
        return len(self.buckets)

    def members(self, address: BucketAddress) -> Set[DocId]:
        """Documents stored at one bucket address (empty if absent)."""
        return set(self.buckets.get(address, ()))

    def addresses_of(self, doc_id: DocId) -> Set[BucketAddress]:
        """Bucket addresses holding ``doc_id`` (empty if not indexed)."""
        return set(self._doc_addresses.get(doc_id, ()))

    # --- insertion ---

    def band_addresses(self, signature: Sequence[int]) -> List[BucketAddress]:
        """Bucket addresses of a signature, one per band."""
        sig_t = tuple(signature)
        if len(sig_t) != self.num_hashes:
            raise MismatchError(
                f"signature length {len(sig_t)} does not match index num_hashes {self.num_hashes}",
                expected=self.num_hashes,
                actual=len(sig_t),
            )
        r = self._rows
        return [(band, band_key(band, sig_t[band * r:(band + 1) * r])) for band in range(self.bands)]

    def add(self, doc_id: DocId, signature: Sequence[int]) -> None:
        """Insert one document under every band of its signature."""
        for address in self.band_addresses(signature):
            self._store(address, (doc_id,))

    def update(self, other: "BucketIndex") -> None:
        """Union ``other`` into this index in place."""
        self._check_compatible(other)
        for address, members in other.buckets.items():
            self._store(address, members)

    def _store(self, address: BucketAddress, members: Iterable[DocId]) -> None:
        bucket = self.buckets.setdefault(address, set())
        for doc_id in members:
            bucket.add(doc_id)
            self._doc_addresses.setdefault(doc_id, set()).add(address)

    def union(self, other: "BucketIndex") -> "BucketIndex":
        """New index holding the per-bucket union of ``self`` and ``other``."""
        self._check_compatible(other)
        result = self.copy()
        result.update(other)
        return result

    def copy(self) -> "BucketIndex":
        return BucketIndex(
            num_hashes=self.num_hashes,
            bands=self.bands,
            buckets={address: set(members) for address, members in self.buckets.items()},
        )

    def _check_compatible(self, other: "BucketIndex") -> None:
        if self.shape != other.shape:
            raise MismatchError(
                f"cannot merge index (num_hashes, bands)={other.shape} into {self.shape}",
                expected=self.shape,
                actual=other.shape,
            )

    # --- flat relation ---

    def to_rows(self) -> Iterator[BucketRow]:
        """
        Flatten to ``(doc_id, band_index, bucket_key)`` rows.

        Rows from independently built indices can be concatenated and fed to
        :meth:`from_rows`.
        """
        for (band_index, key), members in self.buckets.items():
            for doc_id in members:
                yield BucketRow(doc_id, band_index, key)

    @classmethod
    def from_rows(cls, rows: Iterable[Tuple[DocId, int, str]], num_hashes: int, bands: int) -> "BucketIndex":
        """Group rows by ``(band_index, bucket_key)`` into a new index."""
        rows_per_band(num_hashes, bands)
        buckets: Dict[BucketAddress, Set[DocId]] = {}
        for doc_id, band_index, key in rows:
            if not 0 <= band_index < bands:
                raise MismatchError(
                    f"row band index {band_index} outside 0..{bands - 1}",
                    expected=bands,
                    actual=band_index,
                )
            buckets.setdefault((band_index, key), set()).add(doc_id)
        return cls(num_hashes=num_hashes, bands=bands, buckets=buckets)

    # --- observability ---

    def stats(self) -> IndexStats:
        sizes = [len(m) for m in self.buckets.values()]
        return IndexStats(
            total_documents=len(self.doc_ids),
            total_buckets=len(sizes),
            non_singleton_buckets=sum(1 for s in sizes if s > 1),
            avg_bucket_size=(sum(sizes) / len(sizes)) if sizes else 0.0,
            max_bucket_size=max(sizes) if sizes else 0,
        )


@dataclass
class SynchronizedBucketIndex(BucketIndex):
    """
    BucketIndex whose in-place mutations hold a lock.

    For workers inserting directly into one shared index. Building
    independent indices and merging them afterwards avoids the lock.
    """
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False, compare=False)

    def add(self, doc_id: DocId, signature: Sequence[int]) -> None:
        addresses = self.band_addresses(signature)
        with self._lock:
            for address in addresses:
                self._store(address, (doc_id,))

    def update(self, other: BucketIndex) -> None:
        self._check_compatible(other)
        snapshot = {address: set(members) for address, members in other.buckets.items()}
        with self._lock:
            for address, members in snapshot.items():
                self._store(address, members)

    def copy(self) -> BucketIndex:
        with self._lock:
            return super().copy()


# ----------------------------
# Construction and merging
# ----------------------------

def band_key(band_index: int, rows: Sequence[int]) -> str:
    """
    Stable key for one band slice, scoped by band index.

    Identical slices at different band positions get different keys.
    """
    m = hashlib.blake2b(digest_size=8)
    m.update(band_index.to_bytes(4, "little"))
    for v in rows:
        m.update(int(v).to_bytes(8, "little"))
    return m.hexdigest()


def build(
    signatures: Mapping[DocId, Signature],
    b: int,
    *,
    num_hashes: Optional[int] = None,
) -> BucketIndex:
    """
    Index a batch of signatures into ``b`` bands.

    All parameters and signature lengths are checked before indexing starts,
    so a failure never leaves a partial index behind.

    Args:
        signatures: Mapping of document id to signature
        b: Number of bands
        num_hashes: Signature length; required when ``signatures`` is empty

    Raises:
        ConfigError: if ``b <= 0``, the signature length is zero, or ``b``
            does not divide the signature length
        MismatchError: if signatures have differing lengths
    """
    lengths = {len(sig) for sig in signatures.values()}
    if num_hashes is not None:
        lengths.add(num_hashes)
    if not lengths:
        raise ConfigError(
            "cannot infer signature length from an empty batch; pass num_hashes",
            parameter="num_hashes",
        )
    if len(lengths) > 1:
        raise MismatchError(
            f"signatures of differing lengths in one batch: {sorted(lengths)}",
            expected=num_hashes if num_hashes is not None else min(lengths),
            actual=sorted(lengths),
        )
    n = lengths.pop()

    index = BucketIndex(num_hashes=n, bands=b)
    for doc_id, sig in signatures.items():
        index.add(doc_id, sig)

    logger.debug(f"Built bucket index: {len(signatures)} documents, {len(index)} buckets")
    return index


def merge(a: BucketIndex, b: BucketIndex) -> BucketIndex:
    """
    Per-bucket union of two indices with the same ``(num_hashes, bands)``.

    Neither operand is modified.

    Raises:
        MismatchError: if the shapes differ
    """
    return a.union(b)


def merge_all(indices: Sequence[BucketIndex]) -> BucketIndex:
    """Merge many indices with a pairwise reduction tree."""
    if not indices:
        raise ConfigError("merge_all() needs at least one index", parameter="indices", value=0)
    shapes = {idx.shape for idx in indices}
    if len(shapes) > 1:
        raise MismatchError(
            f"cannot merge indices of differing shapes: {sorted(shapes)}",
            expected=indices[0].shape,
            actual=sorted(shapes),
        )
    if len(indices) == 1:
        return indices[0].copy()
    merged = tree_reduce(merge, indices)
    logger.debug(f"Merged {len(indices)} indices into {len(merged)} buckets")
    return merged
