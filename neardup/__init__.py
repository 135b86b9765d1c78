"""Near-duplicate document detection with minhash signatures and LSH banding."""

__version__ = "0.1.0"
__author__ = "Rohan Vinaik"
__email__ = "rohanpvinaik@gmail.com"

from .errors import NearDupError, ConfigError, EmptyInputError, MismatchError
from .core.types import CandidatePair, BucketRow
from .lsh import (
    HashFamily,
    BucketIndex,
    generate,
    compute_signature,
    build,
    merge,
    query,
    all_candidates,
    threshold,
    probability,
    compare,
    jaccard_similarity,
)
from .config import DedupConfig
from .pipeline import DedupPipeline, DedupResult, find_near_duplicates

__all__ = [
    "NearDupError",
    "ConfigError",
    "EmptyInputError",
    "MismatchError",
    "CandidatePair",
    "BucketRow",
    "HashFamily",
    "BucketIndex",
    "generate",
    "compute_signature",
    "build",
    "merge",
    "query",
    "all_candidates",
    "threshold",
    "probability",
    "compare",
    "jaccard_similarity",
    "DedupConfig",
    "DedupPipeline",
    "DedupResult",
    "find_near_duplicates",
    "__version__",
]
