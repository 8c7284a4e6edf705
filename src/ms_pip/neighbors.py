from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np
import pandas as pd
from sklearn.neighbors import NearestNeighbors

from .errors import InsufficientCandidatesError


@dataclass(frozen=True)
class NeighborResult:
    indices: np.ndarray  # shape: (n_prototypes, k), row positions into the query set
    distances: np.ndarray  # shape: (n_prototypes, k), ascending per row


def build_embedding(df: pd.DataFrame, columns: Sequence[str]) -> np.ndarray:
    """Numeric matrix of the embedding attributes (rows follow `df`)."""
    return df[list(columns)].apply(pd.to_numeric, errors="coerce").to_numpy(dtype=float)


def match_prototypes(
    prototypes: np.ndarray,
    queries: np.ndarray,
    k: int = 10,
    *,
    n_jobs: Optional[int] = None,
) -> NeighborResult:
    """For every prototype, find its `k` nearest query points (Euclidean).

    The index is built over the queries and searched from the prototypes, so each
    prototype always gets exactly `k` candidates. Asking for more neighbours than
    there are queries raises InsufficientCandidatesError instead of truncating.
    """
    prototypes = np.asarray(prototypes, dtype=float)
    queries = np.asarray(queries, dtype=float)
    k = int(k)
    if k < 1:
        raise ValueError(f"k must be >= 1, got {k}")
    if prototypes.ndim != 2 or queries.ndim != 2 or prototypes.shape[1] != queries.shape[1]:
        raise ValueError(
            f"prototype and query embeddings must be 2D with equal width, got {prototypes.shape} and {queries.shape}"
        )

    n_queries = int(queries.shape[0])
    if k > n_queries:
        raise InsufficientCandidatesError(k, n_queries)
    if prototypes.shape[0] == 0:
        return NeighborResult(
            indices=np.zeros((0, k), dtype=int),
            distances=np.zeros((0, k), dtype=float),
        )

    index = NearestNeighbors(n_neighbors=k, algorithm="kd_tree", n_jobs=n_jobs)
    index.fit(queries)
    distances, indices = index.kneighbors(prototypes, n_neighbors=k, return_distance=True)
    return NeighborResult(indices=indices.astype(int, copy=False), distances=distances.astype(float, copy=False))
