"""Peptide Identity Propagation (PIP).

Identities of peptides identified by MS/MS (or PASEF) in some runs are
propagated onto MS1 features that were detected, but not fragmented, in the
runs where the peptide is missing. For every run:

  1. collect prototypes (identifications from other runs of peptides missing
     here) and query features (unidentified detections of this run),
  2. find the k nearest query features of every prototype,
  3. score candidates with an adaptive Gaussian kernel, zero out
     charge-mismatched candidates and row-normalize,
  4. keep the most probable candidate per prototype.

Runs are independent and may be processed in parallel; the per-run results are
concatenated in run order, thresholded, and appended to the original
identifications. The reported probabilities can be used as observation-level
weights in downstream linear models.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import numpy as np
import pandas as pd
from joblib import Parallel, delayed

from .assignment import select_assignments
from .errors import InsufficientCandidatesError
from .loader import load_tables
from .neighbors import build_embedding, match_prototypes
from .partition import iter_run_ids, partition_run, split_identified
from .schema import AttributeSet, SchemaConfig, add_peptide_id, normalize_schema, resolve_attributes
from .scoring import Normalization, as_normalization, score_candidates

logger = logging.getLogger(__name__)

PROBABILITY_COL = "probability"
WEIGHT_COL = "weight"

SKIP_NO_MISSING = "no_missing_identifications"
SKIP_NO_QUERIES = "no_query_features"
SKIP_INSUFFICIENT = "insufficient_candidates"


@dataclass
class PIPConfig:
    """Configuration for peptide identity propagation."""

    # Nearest neighbours retrieved per prototype.
    k: int = 10
    # Propagations with probability <= thresh are discarded.
    thresh: float = 0.0
    # When False, the output carries a `weight` column (1.0 for identifications).
    skip_weights: bool = True
    # Ion-mobility acquisition: shape attribute is the ion mobility index.
    tims_ms: bool = False
    normalization: str = Normalization.MASKED_SUM.value
    # Rows need at least min(min_finite, k) finite probabilities to be assigned.
    min_finite: int = 2
    # joblib workers across runs (1 = sequential, -1 = all cores).
    n_jobs: int = 1
    # Workers for the neighbour queries within a run (None = single thread).
    knn_n_jobs: Optional[int] = None
    schema: SchemaConfig = field(default_factory=SchemaConfig)

    def validate(self) -> None:
        if int(self.k) < 1:
            raise ValueError(f"k must be >= 1, got {self.k!r}")
        if not np.isfinite(float(self.thresh)):
            raise ValueError(f"thresh must be finite, got {self.thresh!r}")
        if int(self.min_finite) < 1:
            raise ValueError(f"min_finite must be >= 1, got {self.min_finite!r}")
        if int(self.n_jobs) == 0:
            raise ValueError("n_jobs must be non-zero (use 1 for sequential processing)")
        as_normalization(self.normalization)


@dataclass
class RunPropagation:
    """Propagated identities for a single run, with per-run counts."""

    run_id: object
    identities: pd.DataFrame
    n_missing_idents: int = 0
    n_prototypes: int = 0
    n_queries: int = 0
    n_degenerate: int = 0
    n_dropped: int = 0
    skipped: Optional[str] = None


@dataclass
class PIPDiagnostics:
    n_runs: int = 0
    n_runs_without_features: int = 0
    n_runs_insufficient_candidates: int = 0
    n_degenerate_rows: int = 0
    n_dropped_nonfinite: int = 0
    n_propagated: int = 0
    n_low_confidence: int = 0
    n_retained: int = 0

    def as_dict(self) -> Dict[str, int]:
        return {k: int(v) for k, v in asdict(self).items()}


@dataclass
class PIPResult:
    """Result of a propagation pass."""

    table: pd.DataFrame  # identifications + retained propagations
    transferred: pd.DataFrame  # every propagation before thresholding
    diagnostics: PIPDiagnostics
    runs: List[RunPropagation] = field(default_factory=list)


def _identity_columns(attrs: AttributeSet, schema: SchemaConfig) -> List[str]:
    return [
        attrs.run_col,
        attrs.peptide_id_col,
        attrs.intensity_col,
        PROBABILITY_COL,
        attrs.charge_col,
        schema.rt_col,
        schema.mz_col,
        schema.mass_col,
    ]


def _empty_identities(attrs: AttributeSet, schema: SchemaConfig) -> pd.DataFrame:
    return pd.DataFrame({c: pd.Series(dtype=float) for c in _identity_columns(attrs, schema)}).astype(
        {attrs.run_col: object, attrs.peptide_id_col: object}
    )


def propagate_run(
    run_id: object,
    identified: pd.DataFrame,
    unidentified: pd.DataFrame,
    attrs: AttributeSet,
    config: PIPConfig,
) -> RunPropagation:
    """Propagate identities into one run.

    Pure function of its inputs: nothing outside the returned RunPropagation is
    modified, so runs can be evaluated in any order or in parallel.
    """
    schema = config.schema
    part = partition_run(identified, unidentified, run_id, attrs)
    logger.info(
        f"{run_id}: {len(part.missing_idents)} missing identifications, "
        f"{len(part.queries)} detected features available for PIP"
    )
    result = RunPropagation(
        run_id=run_id,
        identities=_empty_identities(attrs, schema),
        n_missing_idents=len(part.missing_idents),
        n_prototypes=len(part.prototypes),
        n_queries=len(part.queries),
        n_dropped=part.n_dropped,
    )
    if part.prototypes.empty:
        result.skipped = SKIP_NO_MISSING
        return result
    if part.queries.empty:
        result.skipped = SKIP_NO_QUERIES
        return result

    try:
        nn = match_prototypes(
            build_embedding(part.prototypes, attrs.embedding),
            build_embedding(part.queries, attrs.embedding),
            k=int(config.k),
            n_jobs=config.knn_n_jobs,
        )
    except InsufficientCandidatesError as e:
        logger.debug(f"{run_id}: skipped, {e}")
        result.skipped = SKIP_INSUFFICIENT
        return result

    scores = score_candidates(
        nn.distances,
        nn.indices,
        pd.to_numeric(part.prototypes[attrs.charge_col], errors="coerce").to_numpy(dtype=float),
        pd.to_numeric(part.queries[attrs.charge_col], errors="coerce").to_numpy(dtype=float),
        normalization=config.normalization,
    )
    assignment = select_assignments(scores.probabilities, nn.indices, min_finite=int(config.min_finite))
    result.n_degenerate = assignment.n_degenerate
    if assignment.n_degenerate:
        logger.debug(
            f"{run_id}: no MS1 feature was found for {assignment.n_degenerate} identifications. "
            "You may wish to increase k."
        )
    if assignment.rows.size == 0:
        return result

    chosen = part.queries.iloc[assignment.query_index]
    result.identities = pd.DataFrame(
        {
            attrs.run_col: [run_id] * int(assignment.rows.size),
            attrs.peptide_id_col: part.prototypes[attrs.peptide_id_col].to_numpy()[assignment.rows],
            attrs.intensity_col: chosen[attrs.intensity_col].to_numpy(),
            PROBABILITY_COL: assignment.probability,
            attrs.charge_col: chosen[attrs.charge_col].to_numpy(),
            schema.rt_col: chosen[schema.rt_col].to_numpy(),
            schema.mz_col: chosen[schema.mz_col].to_numpy(),
            schema.mass_col: chosen[schema.mass_col].to_numpy(),
        }
    )
    return result


def aggregate(
    evidence: pd.DataFrame,
    transferred: pd.DataFrame,
    thresh: float = 0.0,
    skip_weights: bool = True,
    schema: Optional[SchemaConfig] = None,
) -> Tuple[pd.DataFrame, int]:
    """Append confident propagations to the original identifications.

    Returns the combined table (run, peptide key, intensity[, weight]) and the
    number of propagations discarded because their probability does not exceed
    `thresh`.
    """
    schema = schema or SchemaConfig()
    cols = [schema.run_col, schema.peptide_id_col, schema.intensity_col]

    prob = pd.to_numeric(transferred[PROBABILITY_COL], errors="coerce")
    keep = (prob > float(thresh)).to_numpy()
    n_discarded = int((~keep).sum())
    logger.info(f"Discarding {n_discarded} low-confidence PIPs at threshold {thresh}")

    base = evidence.loc[:, cols].reset_index(drop=True)
    pip = transferred.loc[keep, cols].reset_index(drop=True)
    if not skip_weights:
        base[WEIGHT_COL] = 1.0
        pip[WEIGHT_COL] = prob.to_numpy(dtype=float)[keep]

    frames = [f for f in (base, pip) if not f.empty]
    if not frames:
        return base, n_discarded
    combined = pd.concat(frames, ignore_index=True)

    # One contiguous block per run, runs in first-appearance order; identifications
    # stay ahead of propagations within a run.
    run = combined[schema.run_col]
    order = pd.Categorical(run, categories=pd.unique(run.dropna())).codes
    combined = (
        combined.assign(_run_order=order)
        .sort_values("_run_order", kind="stable")
        .drop(columns="_run_order")
        .reset_index(drop=True)
    )
    return combined, n_discarded


def _prepare_inputs(
    evidence: pd.DataFrame,
    all_peptides: pd.DataFrame,
    attrs: AttributeSet,
    schema: SchemaConfig,
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    needed = tuple(attrs.anchors) + tuple(attrs.embedding)
    if schema.peptide_id_col in evidence.columns:
        evidence = normalize_schema(evidence, schema, required=needed + (schema.peptide_id_col,))
    else:
        evidence = normalize_schema(evidence, schema, required=needed + (schema.sequence_col,))
        evidence = add_peptide_id(evidence, schema)
    all_peptides = normalize_schema(all_peptides, schema, required=needed)
    return evidence, all_peptides


def propagate(
    evidence: pd.DataFrame,
    all_peptides: pd.DataFrame,
    config: Optional[PIPConfig] = None,
) -> PIPResult:
    """Run PIP over every run of an identification / detection table pair."""
    cfg = config or PIPConfig()
    cfg.validate()
    schema = cfg.schema
    attrs = resolve_attributes(cfg.tims_ms, schema)

    evidence, all_peptides = _prepare_inputs(evidence, all_peptides, attrs, schema)

    logger.info("Extracting unidentified MS1 peptide features")
    identified, unidentified = split_identified(evidence, all_peptides, attrs)
    runs = iter_run_ids(evidence, all_peptides, attrs.run_col)

    logger.info(f"Propagating Peptide Identities within {cfg.k} nearest neighbors per run")
    per_run: List[RunPropagation] = Parallel(n_jobs=int(cfg.n_jobs))(
        delayed(propagate_run)(run_id, identified, unidentified, attrs, cfg) for run_id in runs
    )

    frames = [r.identities for r in per_run if not r.identities.empty]
    transferred = pd.concat(frames, ignore_index=True) if frames else _empty_identities(attrs, schema)
    table, n_discarded = aggregate(evidence, transferred, cfg.thresh, cfg.skip_weights, schema)

    diagnostics = PIPDiagnostics(
        n_runs=len(per_run),
        n_runs_without_features=sum(r.skipped in (SKIP_NO_MISSING, SKIP_NO_QUERIES) for r in per_run),
        n_runs_insufficient_candidates=sum(r.skipped == SKIP_INSUFFICIENT for r in per_run),
        n_degenerate_rows=sum(r.n_degenerate for r in per_run),
        n_dropped_nonfinite=sum(r.n_dropped for r in per_run),
        n_propagated=len(transferred),
        n_low_confidence=n_discarded,
        n_retained=len(transferred) - n_discarded,
    )
    if diagnostics.n_runs_insufficient_candidates:
        logger.warning(
            f"{diagnostics.n_runs_insufficient_candidates} runs skipped: fewer than k={cfg.k} detected features"
        )
    if diagnostics.n_degenerate_rows:
        logger.warning(f"{diagnostics.n_degenerate_rows} identifications had no charge-compatible MS1 feature")
    logger.info(f"PIP completed: {diagnostics.n_retained} of {diagnostics.n_propagated} propagations retained")

    return PIPResult(table=table, transferred=transferred, diagnostics=diagnostics, runs=list(per_run))


def propagate_from_directory(path_txt: Union[str, Path], config: Optional[PIPConfig] = None) -> PIPResult:
    cfg = config or PIPConfig()
    cfg.validate()
    evidence, all_peptides = load_tables(path_txt, cfg.schema, tims_ms=cfg.tims_ms)
    return propagate(evidence, all_peptides, cfg)


def mspip(
    path_txt: Union[str, Path],
    k: int = 10,
    thresh: float = 0.0,
    skip_weights: bool = True,
    tims_ms: bool = False,
    **kwargs: object,
) -> pd.DataFrame:
    """Fill missing values by Peptide Identity Propagation from a MaxQuant `txt` directory.

    Args:
        path_txt: directory holding `evidence.txt` and `allPeptides.txt`
        k: nearest neighbours considered per identification
        thresh: propagations with probability <= thresh are discarded
        skip_weights: omit the `weight` column from the output
        tims_ms: data acquired by TIMS-MS (ion mobility shape attribute)
        **kwargs: further PIPConfig fields (normalization, min_finite, n_jobs, schema)

    Returns:
        Combined table of identified and propagated (run, PeptideID, Intensity[, weight]).
    """
    cfg = PIPConfig(k=k, thresh=thresh, skip_weights=skip_weights, tims_ms=tims_ms, **kwargs)
    return propagate_from_directory(path_txt, cfg).table


__all__ = [
    "PIPConfig",
    "PIPDiagnostics",
    "PIPResult",
    "RunPropagation",
    "aggregate",
    "mspip",
    "propagate",
    "propagate_from_directory",
    "propagate_run",
]
