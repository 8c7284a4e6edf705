from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple

import numpy as np
import pandas as pd


@dataclass(frozen=True)
class SchemaConfig:
    """Column names of the MaxQuant `evidence.txt` / `allPeptides.txt` tables."""

    run_col: str = "Raw file"
    sequence_col: str = "Modified sequence"
    charge_col: str = "Charge"
    intensity_col: str = "Intensity"
    rt_col: str = "Retention time"
    mz_col: str = "m/z"
    mass_col: str = "Mass"
    isotope_peaks_col: str = "Number of isotopic peaks"
    ion_mobility_col: str = "Ion mobility index"
    peptide_id_col: str = "PeptideID"


@dataclass(frozen=True)
class AttributeSet:
    """Resolved attribute selection for one acquisition mode.

    `anchors` equate an identification with a detection event; `embedding` is the
    coordinate space for the nearest-neighbour search. Intensity is an anchor but
    never part of the embedding.
    """

    anchors: Tuple[str, ...]
    embedding: Tuple[str, ...]
    shape_col: str
    charge_col: str
    run_col: str
    intensity_col: str
    peptide_id_col: str


def resolve_attributes(tims_ms: bool = False, schema: Optional[SchemaConfig] = None) -> AttributeSet:
    s = schema or SchemaConfig()
    shape = s.ion_mobility_col if tims_ms else s.isotope_peaks_col
    return AttributeSet(
        anchors=(s.run_col, s.charge_col, s.intensity_col, shape),
        embedding=(s.rt_col, s.charge_col, s.mz_col, s.mass_col, shape),
        shape_col=shape,
        charge_col=s.charge_col,
        run_col=s.run_col,
        intensity_col=s.intensity_col,
        peptide_id_col=s.peptide_id_col,
    )


def _r_spelling(name: str) -> str:
    # read.delim(check.names=TRUE) turns every non-alphanumeric character into "."
    return "".join(ch if ch.isalnum() else "." for ch in name)


def normalize_schema(
    ds: pd.DataFrame,
    schema: SchemaConfig,
    *,
    required: Iterable[str] = (),
) -> pd.DataFrame:
    """Return a copy using the canonical column names of `schema`.

    Columns exported through R (`Raw.file`, `m.z`, ...) or with stray whitespace
    are renamed to their canonical spelling. Raises ValueError when any of
    `required` is still absent afterwards.
    """
    df = ds.copy()
    df.columns = [str(c).strip() for c in df.columns]

    canonical = [
        schema.run_col,
        schema.sequence_col,
        schema.charge_col,
        schema.intensity_col,
        schema.rt_col,
        schema.mz_col,
        schema.mass_col,
        schema.isotope_peaks_col,
        schema.ion_mobility_col,
    ]
    rename: Dict[str, str] = {}
    for name in canonical:
        if name in df.columns:
            continue
        alias = _r_spelling(name)
        if alias in df.columns and alias not in rename:
            rename[alias] = name
    if rename:
        df = df.rename(columns=rename)

    missing = [c for c in required if c not in df.columns]
    if missing:
        raise ValueError(f"Input table is missing required columns: {missing}")
    return df


def add_peptide_id(df: pd.DataFrame, schema: SchemaConfig) -> pd.DataFrame:
    """Derive the peptide species key: modified sequence followed by the charge."""
    out = df.copy()
    charge = pd.to_numeric(out[schema.charge_col], errors="coerce")
    charge_str = charge.map(lambda z: str(int(z)) if np.isfinite(z) else "NA")
    out[schema.peptide_id_col] = out[schema.sequence_col].astype(str) + charge_str
    return out
