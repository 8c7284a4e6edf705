from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class Assignment:
    """Top-1 candidate per surviving prototype row."""

    rows: np.ndarray  # prototype row positions that survived
    query_index: np.ndarray  # winning query position for each surviving row
    probability: np.ndarray  # winning probability for each surviving row
    n_degenerate: int


def degenerate_rows(probabilities: np.ndarray, min_finite: int = 2) -> np.ndarray:
    """Rows too uninformative to assign.

    A row is degenerate when it has fewer than `min(min_finite, k)` finite
    entries, or when none of its finite entries is positive (every candidate
    failed the charge check).
    """
    p = np.asarray(probabilities, dtype=float)
    if p.ndim != 2:
        raise ValueError(f"probabilities must be 2D, got shape {p.shape}")
    required = min(int(min_finite), p.shape[1])
    finite = np.isfinite(p)
    n_finite = finite.sum(axis=1)
    has_positive = (finite & (np.where(finite, p, 0.0) > 0)).any(axis=1)
    return (n_finite < required) | ~has_positive


def first_argmax(probabilities: np.ndarray) -> np.ndarray:
    """Column of the row maximum; ties go to the earliest column.

    Non-finite entries never win. Candidates are ordered by increasing
    distance, so the earliest tied column is also the nearest one.
    """
    p = np.asarray(probabilities, dtype=float)
    p = np.where(np.isfinite(p), p, -np.inf)
    row_max = p.max(axis=1, keepdims=True)
    is_max = p == row_max
    # argmax over booleans returns the first True.
    return np.argmax(is_max, axis=1)


def select_assignments(
    probabilities: np.ndarray,
    indices: np.ndarray,
    *,
    min_finite: int = 2,
) -> Assignment:
    """Pick one candidate per prototype, dropping degenerate rows."""
    p = np.asarray(probabilities, dtype=float)
    idx = np.asarray(indices, dtype=int)
    if p.shape != idx.shape:
        raise ValueError(f"probabilities {p.shape} and indices {idx.shape} must have the same shape")

    if p.shape[0] == 0:
        return Assignment(
            rows=np.zeros(0, dtype=int),
            query_index=np.zeros(0, dtype=int),
            probability=np.zeros(0, dtype=float),
            n_degenerate=0,
        )

    bad = degenerate_rows(p, min_finite=min_finite)
    rows = np.flatnonzero(~bad)
    col = first_argmax(p[rows]) if rows.size else np.zeros(0, dtype=int)
    return Assignment(
        rows=rows,
        query_index=idx[rows, col],
        probability=p[rows, col],
        n_degenerate=int(bad.sum()),
    )
