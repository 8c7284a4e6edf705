"""Shared MaxQuant-like tables for the propagation tests."""

import pandas as pd
import pytest

COLUMNS = [
    "Raw file",
    "Modified sequence",
    "Charge",
    "Intensity",
    "Retention time",
    "m/z",
    "Mass",
    "Number of isotopic peaks",
]


def make_evidence(rows):
    return pd.DataFrame(rows, columns=COLUMNS)


def make_all_peptides(rows):
    cols = [c for c in COLUMNS if c != "Modified sequence"]
    return pd.DataFrame(rows, columns=cols)


@pytest.fixture
def two_run_tables():
    """Peptide P (charge 2) identified in run A only; run B has two unidentified features."""
    evidence = make_evidence(
        [
            ["A", "_PEPTIDE_", 2, 100.0, 10.0, 500.0, 998.0, 3],
        ]
    )
    all_peptides = make_all_peptides(
        [
            ["A", 2, 100.0, 10.0, 500.0, 998.0, 3],
            ["B", 2, 90.0, 10.1, 500.2, 998.1, 3],
            ["B", 3, 80.0, 10.05, 333.8, 998.4, 3],
        ]
    )
    return evidence, all_peptides


@pytest.fixture
def three_run_tables():
    """_AAA_ (z=2) identified in A and B, _CCC_ (z=3) in A; C identifies nothing."""
    evidence = make_evidence(
        [
            ["A", "_AAA_", 2, 1000.0, 20.0, 600.3, 1198.6, 3],
            ["B", "_AAA_", 2, 1100.0, 20.2, 600.3, 1198.6, 3],
            ["A", "_CCC_", 3, 500.0, 35.0, 450.2, 1347.6, 4],
        ]
    )
    all_peptides = make_all_peptides(
        [
            ["A", 2, 1000.0, 20.0, 600.3, 1198.6, 3],
            ["B", 2, 1100.0, 20.2, 600.3, 1198.6, 3],
            ["A", 3, 500.0, 35.0, 450.2, 1347.6, 4],
            ["A", 1, 30.0, 5.0, 300.0, 299.0, 1],
            ["B", 3, 450.0, 35.3, 450.21, 1347.61, 4],
            ["B", 2, 50.0, 50.0, 800.0, 1598.0, 2],
            ["C", 2, 900.0, 20.4, 600.31, 1198.61, 3],
            ["C", 3, 520.0, 35.1, 450.2, 1347.6, 4],
            ["C", 2, 70.0, 60.0, 700.0, 1398.0, 2],
        ]
    )
    return evidence, all_peptides
