"""
ms_pip: Peptide Identity Propagation (PIP) for label-free LC–MS proteomics.
"""

from .errors import InsufficientCandidatesError, MissingInputFileError, PIPError
from .propagation import (
    PIPConfig,
    PIPDiagnostics,
    PIPResult,
    RunPropagation,
    aggregate,
    mspip,
    propagate,
    propagate_from_directory,
    propagate_run,
)
from .schema import AttributeSet, SchemaConfig, resolve_attributes
from .scoring import Normalization

__version__ = "0.1.0"

__all__ = [
    "AttributeSet",
    "InsufficientCandidatesError",
    "MissingInputFileError",
    "Normalization",
    "PIPConfig",
    "PIPDiagnostics",
    "PIPError",
    "PIPResult",
    "RunPropagation",
    "SchemaConfig",
    "aggregate",
    "mspip",
    "propagate",
    "propagate_from_directory",
    "propagate_run",
    "resolve_attributes",
    "__version__",
]
