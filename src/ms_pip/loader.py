from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Optional, Tuple, Union

import pandas as pd

from .errors import MissingInputFileError
from .schema import SchemaConfig, add_peptide_id, normalize_schema, resolve_attributes

logger = logging.getLogger(__name__)

EVIDENCE_PATTERN = "*evidence*.txt"
ALL_PEPTIDES_PATTERN = "*allPeptides*.txt"


def discover_inputs(path_txt: Union[str, Path]) -> Dict[str, Path]:
    """Locate `evidence.txt` and `allPeptides.txt` in a MaxQuant `txt` directory."""
    root = Path(path_txt)
    found: Dict[str, Optional[Path]] = {"evidence": None, "allPeptides": None}
    if root.is_dir():
        for key, pattern in (("evidence", EVIDENCE_PATTERN), ("allPeptides", ALL_PEPTIDES_PATTERN)):
            hits = sorted(p for p in root.glob(pattern) if p.is_file())
            if hits:
                found[key] = hits[0]
                if len(hits) > 1:
                    logger.warning(f"Multiple {key} tables in {root}; using {hits[0].name}")

    missing = [f"{key}.txt" for key, p in found.items() if p is None]
    if missing:
        raise MissingInputFileError(str(root), missing)
    return {key: p for key, p in found.items() if p is not None}


def read_table(file_path: Union[str, Path], **read_csv_kwargs: object) -> pd.DataFrame:
    """Read a tab-separated MaxQuant table."""
    kwargs = {"sep": "\t", "low_memory": False}
    kwargs.update(read_csv_kwargs)
    return pd.read_csv(file_path, **kwargs)


def load_tables(
    path_txt: Union[str, Path],
    schema: Optional[SchemaConfig] = None,
    *,
    tims_ms: bool = False,
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """Load the identification (evidence) and detection (allPeptides) tables.

    Both are returned with canonical column names; the evidence table also
    carries the derived peptide species key.
    """
    schema = schema or SchemaConfig()
    paths = discover_inputs(path_txt)
    attrs = resolve_attributes(tims_ms, schema)

    logger.info("Reading evidence table")
    evidence = normalize_schema(
        read_table(paths["evidence"]),
        schema,
        required=tuple(attrs.anchors) + tuple(attrs.embedding) + (schema.sequence_col,),
    )
    evidence = add_peptide_id(evidence, schema)

    logger.info("Reading allPeptides table")
    all_peptides = normalize_schema(
        read_table(paths["allPeptides"]),
        schema,
        required=tuple(attrs.anchors) + tuple(attrs.embedding),
    )
    return evidence, all_peptides
