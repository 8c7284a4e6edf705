"""Exceptions raised by the propagation pipeline."""

from __future__ import annotations

from typing import Sequence


class PIPError(Exception):
    """Base class for peptide identity propagation errors."""

    error_code: str = "PIP_ERROR"


class MissingInputFileError(PIPError, FileNotFoundError):
    """Required MaxQuant tables are not present in the input directory."""

    error_code = "MISSING_INPUT_FILE"

    def __init__(self, path: str, missing: Sequence[str]):
        self.path = str(path)
        self.missing = list(missing)
        super().__init__(
            f"Required MaxQuant tables are not found in {self.path!r}: {', '.join(self.missing)}"
        )


class InsufficientCandidatesError(PIPError, ValueError):
    """A run has fewer detected features than neighbours requested."""

    error_code = "INSUFFICIENT_CANDIDATES"

    def __init__(self, k: int, n_candidates: int):
        self.k = int(k)
        self.n_candidates = int(n_candidates)
        super().__init__(
            f"k={self.k} nearest neighbours requested but only {self.n_candidates} candidate features available"
        )
