import pandas as pd
import pytest

from ms_pip import SchemaConfig, resolve_attributes
from ms_pip.schema import add_peptide_id, normalize_schema


def test_attribute_sets_switch_shape_attribute_and_exclude_intensity():
    msms = resolve_attributes(tims_ms=False)
    tims = resolve_attributes(tims_ms=True)

    assert msms.shape_col == "Number of isotopic peaks"
    assert tims.shape_col == "Ion mobility index"
    assert msms.anchors == ("Raw file", "Charge", "Intensity", "Number of isotopic peaks")
    assert tims.embedding == ("Retention time", "Charge", "m/z", "Mass", "Ion mobility index")
    for attrs in (msms, tims):
        assert "Intensity" not in attrs.embedding


def test_normalize_schema_accepts_r_style_column_names():
    df = pd.DataFrame(
        {
            "Raw.file": ["r1"],
            "Modified.sequence": ["_AK_"],
            "Charge": [2],
            "m.z": [400.0],
            "Retention.time": [12.0],
            "Number.of.isotopic.peaks": [3],
        }
    )
    out = normalize_schema(df, SchemaConfig(), required=["Raw file", "m/z", "Retention time"])
    assert {"Raw file", "Modified sequence", "m/z", "Retention time", "Number of isotopic peaks"} <= set(out.columns)
    # input untouched
    assert "Raw.file" in df.columns


def test_normalize_schema_reports_missing_columns():
    df = pd.DataFrame({"Raw file": ["r1"], "Charge": [2]})
    with pytest.raises(ValueError, match="Mass"):
        normalize_schema(df, SchemaConfig(), required=["Raw file", "Mass"])


def test_peptide_id_concatenates_sequence_and_charge():
    df = pd.DataFrame({"Modified sequence": ["_PEPTIDE_", "_M(ox)K_"], "Charge": [2.0, 3]})
    out = add_peptide_id(df, SchemaConfig())
    assert list(out["PeptideID"]) == ["_PEPTIDE_2", "_M(ox)K_3"]
