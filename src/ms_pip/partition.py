"""Per-run reconciliation of identifications and unidentified MS1 features.

An identification (evidence row) counts as a concrete MS1 detection when its
anchor tuple (run, charge, intensity, shape attribute) equals that of a row in
the detection table. Everything detected but not claimed this way is an
unidentified feature, eligible to receive a propagated identity.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np
import pandas as pd

from .schema import AttributeSet


@dataclass
class RunPartition:
    """Inputs for propagating identities into one run."""

    run_id: object
    missing_idents: List[str]
    prototypes: pd.DataFrame
    queries: pd.DataFrame
    n_dropped: int = 0


def _anchor_keys(df: pd.DataFrame, anchors: Sequence[str], run_col: str) -> pd.DataFrame:
    keys = pd.DataFrame(index=df.index)
    for col in anchors:
        if col == run_col:
            keys[col] = df[col].astype(str)
        else:
            keys[col] = pd.to_numeric(df[col], errors="coerce").astype(float)
    return keys


def _in_anchor_set(x: pd.DataFrame, y: pd.DataFrame, attrs: AttributeSet) -> np.ndarray:
    anchors = list(attrs.anchors)
    kx = _anchor_keys(x, anchors, attrs.run_col).reset_index(drop=True)
    ky = _anchor_keys(y, anchors, attrs.run_col).drop_duplicates()
    if ky.empty or kx.empty:
        return np.zeros(len(x), dtype=bool)
    # pandas merge matches NaN keys to NaN keys, like dplyr's default `na_matches`.
    hit = kx.merge(ky, how="left", on=anchors, indicator=True)
    return (hit["_merge"] == "both").to_numpy()


def split_identified(
    evidence: pd.DataFrame,
    all_peptides: pd.DataFrame,
    attrs: AttributeSet,
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """Return (identified, unidentified) features.

    `identified` is the semi-join of `evidence` onto `all_peptides` by anchor
    attributes; `unidentified` is the anti-join of `all_peptides` against
    `identified`. Input row order is preserved in both.
    """
    identified = evidence.loc[_in_anchor_set(evidence, all_peptides, attrs)]
    unidentified = all_peptides.loc[~_in_anchor_set(all_peptides, identified, attrs)]
    return identified.reset_index(drop=True), unidentified.reset_index(drop=True)


def iter_run_ids(evidence: pd.DataFrame, all_peptides: pd.DataFrame, run_col: str) -> List[object]:
    """Run identifiers: evidence order first, then runs only seen in the detections."""
    runs = pd.concat([evidence[run_col], all_peptides[run_col]], ignore_index=True)
    return list(pd.unique(runs.dropna()))


def missing_identifications(identified: pd.DataFrame, run_id: object, attrs: AttributeSet) -> List[str]:
    """Peptide keys quantified in some other run but not in `run_id`."""
    quantified = identified[identified[attrs.intensity_col].notna()]
    in_run = quantified[attrs.run_col] == run_id
    here = set(quantified.loc[in_run, attrs.peptide_id_col])
    elsewhere = pd.unique(quantified.loc[~in_run, attrs.peptide_id_col])
    return [pid for pid in elsewhere if pid not in here]


def _finite_embedding(df: pd.DataFrame, columns: Sequence[str]) -> np.ndarray:
    values = df[list(columns)].apply(pd.to_numeric, errors="coerce").to_numpy(dtype=float)
    return np.isfinite(values).all(axis=1)


def partition_run(
    identified: pd.DataFrame,
    unidentified: pd.DataFrame,
    run_id: object,
    attrs: AttributeSet,
) -> RunPartition:
    """Collect prototypes (other runs) and query features (this run) for `run_id`.

    Prototypes are identified features from runs other than `run_id` whose key
    is missing from `run_id`; they never come from `run_id` itself. Rows whose
    embedding has non-finite values cannot be indexed and are dropped.
    """
    missing = missing_identifications(identified, run_id, attrs)

    keep = identified[attrs.peptide_id_col].isin(missing) & (identified[attrs.run_col] != run_id)
    prototypes = identified.loc[keep]
    queries = unidentified.loc[unidentified[attrs.run_col] == run_id]

    n_dropped = 0
    if not prototypes.empty:
        ok = _finite_embedding(prototypes, attrs.embedding)
        n_dropped += int((~ok).sum())
        prototypes = prototypes.loc[ok]
    if not queries.empty:
        ok = _finite_embedding(queries, attrs.embedding)
        n_dropped += int((~ok).sum())
        queries = queries.loc[ok]

    return RunPartition(
        run_id=run_id,
        missing_idents=missing,
        prototypes=prototypes.reset_index(drop=True),
        queries=queries.reset_index(drop=True),
        n_dropped=n_dropped,
    )
