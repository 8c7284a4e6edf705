import pytest

from ms_pip import MissingInputFileError, mspip
from ms_pip.loader import discover_inputs, load_tables


def _write_txt_dir(path, evidence, all_peptides, *, r_style=False):
    path.mkdir(parents=True, exist_ok=True)
    if r_style:
        evidence = evidence.rename(columns=lambda c: c.replace(" ", ".").replace("/", "."))
        all_peptides = all_peptides.rename(columns=lambda c: c.replace(" ", ".").replace("/", "."))
    evidence.to_csv(path / "evidence.txt", sep="\t", index=False)
    all_peptides.to_csv(path / "allPeptides.txt", sep="\t", index=False)
    return path


def test_discover_inputs_reports_every_missing_table(tmp_path):
    with pytest.raises(MissingInputFileError) as exc:
        discover_inputs(tmp_path)
    assert exc.value.missing == ["evidence.txt", "allPeptides.txt"]

    (tmp_path / "evidence.txt").write_text("Raw file\n")
    with pytest.raises(MissingInputFileError) as exc:
        discover_inputs(tmp_path)
    assert exc.value.missing == ["allPeptides.txt"]
    assert isinstance(exc.value, FileNotFoundError)


def test_missing_directory_is_fatal(tmp_path):
    with pytest.raises(MissingInputFileError):
        mspip(tmp_path / "does_not_exist")


def test_load_tables_reads_maxquant_exports(tmp_path, three_run_tables):
    txt = _write_txt_dir(tmp_path / "txt", *three_run_tables, r_style=True)

    evidence, all_peptides = load_tables(txt)

    assert "Raw file" in evidence.columns
    assert "m/z" in all_peptides.columns
    assert evidence["PeptideID"].tolist() == ["_AAA_2", "_AAA_2", "_CCC_3"]
    assert len(all_peptides) == 9


def test_mspip_end_to_end(tmp_path, three_run_tables):
    txt = _write_txt_dir(tmp_path / "txt", *three_run_tables)

    table = mspip(txt, k=2, thresh=0.0, skip_weights=False)

    assert list(table.columns) == ["Raw file", "PeptideID", "Intensity", "weight"]
    assert len(table) == 3 + 4
    assert table["Raw file"].tolist() == ["A", "A", "B", "B", "C", "C", "C"]
    assert (table["weight"] <= 1.0).all()
