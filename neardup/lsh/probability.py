# neardup/lsh/probability.py
"""
Banding probability model.

With ``h`` hash functions split into ``b`` bands of ``r = h / b`` rows, a pair
of documents with Jaccard similarity ``s`` lands in at least one common
bucket with probability ``1 - (1 - s**r) ** b``. The S-shaped curve has its
knee near ``(1 / b) ** (1 / r)``. These helpers pick ``h`` and ``b`` before
any indexing happens; none of them has side effects.
"""
from __future__ import annotations

import logging
from typing import List, Tuple, Union

import numpy as np
from scipy import integrate

from ..errors import ConfigError

logger = logging.getLogger(__name__)

ArrayLike = Union[float, np.ndarray]


def rows_per_band(h: int, b: int) -> int:
    """
    Validate a banding and return the number of rows per band.

    Raises:
        ConfigError: if ``h`` or ``b`` is not positive, or ``b`` does not
            divide ``h``
    """
    if h <= 0:
        raise ConfigError(f"signature length must be > 0, got {h}", parameter="num_hashes", value=h)
    if b <= 0:
        raise ConfigError(f"number of bands must be > 0, got {b}", parameter="bands", value=b)
    if h % b != 0:
        raise ConfigError(
            f"signature length {h} is not evenly divisible by {b} bands",
            parameter="bands",
            value=b,
            details={"num_hashes": h, "remainder": h % b},
        )
    return h // b


def threshold(h: int, b: int) -> float:
    """Similarity at which a pair has roughly even odds of becoming a candidate."""
    r = rows_per_band(h, b)
    return (1.0 / b) ** (1.0 / r)


def probability(h: int, b: int, s: ArrayLike) -> ArrayLike:
    """
    Probability that a pair with Jaccard similarity ``s`` becomes a candidate.

    ``s`` may be a float or a numpy array of similarities.
    """
    r = rows_per_band(h, b)
    s_arr = np.asarray(s, dtype=float)
    if np.any((s_arr < 0.0) | (s_arr > 1.0)) or np.any(np.isnan(s_arr)):
        raise ConfigError("similarity must be within [0, 1]", parameter="s", value=s)
    p = 1.0 - (1.0 - s_arr ** r) ** b
    if p.ndim == 0:
        return float(p)
    return p


def probability_curve(h: int, b: int, points: int = 101) -> Tuple[np.ndarray, np.ndarray]:
    """Evenly spaced similarities in ``[0, 1]`` and their candidate probabilities."""
    if points < 2:
        raise ConfigError(f"points must be >= 2, got {points}", parameter="points", value=points)
    s = np.linspace(0.0, 1.0, points)
    return s, probability(h, b, s)


def band_options(h: int) -> List[int]:
    """All band counts that evenly divide ``h``."""
    if h <= 0:
        raise ConfigError(f"signature length must be > 0, got {h}", parameter="num_hashes", value=h)
    return [b for b in range(1, h + 1) if h % b == 0]


def suggest_bands(h: int, target: float) -> int:
    """Band count whose threshold lies closest to ``target``."""
    _check_unit("target", target)
    best_b = 1
    best_diff = float("inf")
    for b in band_options(h):
        diff = abs(threshold(h, b) - target)
        if diff < best_diff:
            best_diff = diff
            best_b = b
    logger.debug(f"LSH params: bands={best_b}, rows={h // best_b} for threshold={target}")
    return best_b


def false_positive_rate(h: int, b: int, t: float) -> float:
    """Area under the candidate curve for similarities below ``t``."""
    _check_unit("t", t)
    rows_per_band(h, b)
    area, _err = integrate.quad(lambda s: probability(h, b, s), 0.0, t)
    return float(area)


def false_negative_rate(h: int, b: int, t: float) -> float:
    """Area above the candidate curve for similarities at or above ``t``."""
    _check_unit("t", t)
    rows_per_band(h, b)
    area, _err = integrate.quad(lambda s: 1.0 - probability(h, b, s), t, 1.0)
    return float(area)


def optimal_bands(h: int, t: float, fp_weight: float = 0.5, fn_weight: float = 0.5) -> int:
    """
    Band count minimising the weighted false positive / false negative area.

    Only band counts dividing ``h`` are considered.
    """
    if fp_weight < 0 or fn_weight < 0 or fp_weight + fn_weight == 0:
        raise ConfigError(
            "error weights must be non-negative and not both zero",
            parameter="weights",
            value=(fp_weight, fn_weight),
        )
    best_b = 1
    best_err = float("inf")
    for b in band_options(h):
        err = fp_weight * false_positive_rate(h, b, t) + fn_weight * false_negative_rate(h, b, t)
        if err < best_err:
            best_err = err
            best_b = b
    return best_b


def _check_unit(name: str, value: float) -> None:
    if not 0.0 <= value <= 1.0:
        raise ConfigError(f"{name} must be within [0, 1], got {value}", parameter=name, value=value)
