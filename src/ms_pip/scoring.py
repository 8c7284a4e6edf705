"""Propagation confidence from nearest-neighbour distances.

Each prototype row of the (n_prototypes, k) distance matrix is turned into a
Gaussian-kernel score with a row-local bandwidth (the median of that row's own
neighbour distances). Candidates whose charge differs from the prototype's are
masked to zero, and the masked row is normalized to a probability distribution.

Three normalizations are available:

  - "masked_sum"   (default) masked / sum(masked); a proper distribution
  - "unmasked_sum" masked / sum(kernel); charge-mismatched mass is lost
  - "raw"          masked kernel scores without normalization

Only "masked_sum" yields probabilities that sum to one per row.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

import numpy as np


class Normalization(str, Enum):
    MASKED_SUM = "masked_sum"
    UNMASKED_SUM = "unmasked_sum"
    RAW = "raw"


def as_normalization(value: Union[str, Normalization]) -> Normalization:
    try:
        return Normalization(str(getattr(value, "value", value)).lower().strip())
    except ValueError:
        options = ", ".join(m.value for m in Normalization)
        raise ValueError(f"Unsupported normalization {value!r} (expected one of: {options}).") from None


@dataclass(frozen=True)
class CandidateScores:
    kernel: np.ndarray
    mask: np.ndarray
    probabilities: np.ndarray


def adaptive_bandwidth(distances: np.ndarray) -> np.ndarray:
    """Per-row median neighbour distance."""
    distances = np.asarray(distances, dtype=float)
    if distances.shape[0] == 0:
        return np.zeros(0, dtype=float)
    return np.median(distances, axis=1)


def kernel_scores(distances: np.ndarray) -> np.ndarray:
    """exp(-0.5 * d^2 / bandwidth) with the bandwidth recomputed for every row."""
    d = np.asarray(distances, dtype=float)
    bw = adaptive_bandwidth(d)
    with np.errstate(divide="ignore", invalid="ignore"):
        z = d ** 2 / bw[:, np.newaxis]
    # An exact hit keeps full weight even when the bandwidth collapses to zero.
    z[d == 0] = 0.0
    return np.exp(-0.5 * z)


def charge_mask(
    prototype_charge: np.ndarray,
    query_charge: np.ndarray,
    indices: np.ndarray,
) -> np.ndarray:
    """1.0 where the candidate's charge equals the prototype's, else 0.0."""
    prototype_charge = np.asarray(prototype_charge, dtype=float)
    query_charge = np.asarray(query_charge, dtype=float)
    indices = np.asarray(indices, dtype=int)
    candidate_charge = query_charge[indices]
    return (candidate_charge == prototype_charge[:, np.newaxis]).astype(float)


def normalize_scores(
    masked: np.ndarray,
    kernel: np.ndarray,
    method: Union[str, Normalization] = Normalization.MASKED_SUM,
) -> np.ndarray:
    method = as_normalization(method)
    masked = np.asarray(masked, dtype=float)
    if method is Normalization.RAW:
        return masked.copy()
    denom_src = masked if method is Normalization.MASKED_SUM else np.asarray(kernel, dtype=float)
    denom = denom_src.sum(axis=1, keepdims=True)
    # 0/0 rows become NaN and are later treated as degenerate.
    with np.errstate(divide="ignore", invalid="ignore"):
        return masked / denom


def score_candidates(
    distances: np.ndarray,
    indices: np.ndarray,
    prototype_charge: np.ndarray,
    query_charge: np.ndarray,
    *,
    normalization: Union[str, Normalization] = Normalization.MASKED_SUM,
) -> CandidateScores:
    kernel = kernel_scores(distances)
    mask = charge_mask(prototype_charge, query_charge, indices)
    probs = normalize_scores(mask * kernel, kernel, normalization)
    return CandidateScores(kernel=kernel, mask=mask, probabilities=probs)
