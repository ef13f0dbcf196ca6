"""Tests for the TSV codec and result assembly."""

from pathlib import Path

import pytest

from pathclass.classification import ClassifiedRecord, PathwayRecord
from pathclass.tabular import (
    OUTPUT_COLUMNS,
    ResultAssembler,
    TabularFormatError,
    read_tsv,
    read_tsv_file,
    write_tsv,
)


def _classified(name: str, klass: str, subclass: str, **fields: str) -> ClassifiedRecord:
    record = PathwayRecord.model_validate({"Pathway": name, **fields})
    return ClassifiedRecord(record=record, assigned_class=klass, assigned_subclass=subclass)


def test_read_tsv_skips_blank_lines_and_defaults_missing_columns() -> None:
    text = "Pathway\tSource\tExtra\n\nGlycolysis\tKEGG\tx\n   \nOther X\n"

    rows = read_tsv(text)

    assert len(rows) == 2
    assert rows[0]["Pathway"] == "Glycolysis"
    assert rows[0]["Source"] == "KEGG"
    assert rows[0]["UniProt IDS"] == ""
    assert rows[0]["Extra"] == "x"
    assert rows[1]["Source"] == ""


def test_read_tsv_requires_pathway_column() -> None:
    with pytest.raises(TabularFormatError):
        read_tsv("Name\tSource\nGlycolysis\tKEGG\n")

    with pytest.raises(TabularFormatError):
        read_tsv("\n\n")


def test_read_tsv_file_tolerates_bom_and_crlf(tmp_path: Path) -> None:
    path = tmp_path / "input.tsv"
    path.write_bytes("\ufeffPathway\tSpecies\r\nGlycolysis\tHomo sapiens\r\n".encode("utf-8"))

    rows = read_tsv_file(path)

    assert rows == [
        {
            "Pathway": "Glycolysis",
            "Pathway Class": "",
            "Subclass": "",
            "Species": "Homo sapiens",
            "Source": "",
            "URL": "",
            "UniProt IDS": "",
        }
    ]


def test_write_tsv_replaces_embedded_separators() -> None:
    text = write_tsv([{"Pathway": "A\tB\nC", "Species": "Homo sapiens"}])

    header, row = text.split("\n")
    assert header.split("\t") == list(OUTPUT_COLUMNS)
    assert row.split("\t")[0] == "A B C"
    assert len(row.split("\t")) == len(OUTPUT_COLUMNS)


def test_assemble_sorts_stably_by_class_then_subclass() -> None:
    others = [
        _classified("First", "Signal Transduction", "Signaling by WNT"),
        _classified("Second", "Metabolism", "Photosynthesis"),
        _classified("Third", "Metabolism", "Carbohydrate metabolism"),
        _classified("Fourth", "Metabolism", "Photosynthesis"),
    ]
    trusted = [
        _classified("Fifth", "Metabolism", "Photosynthesis", Source="Reactome"),
        _classified("Sixth", "Hemostasis", "Platelet activation", Source="Reactome"),
    ]

    result = ResultAssembler().assemble(others, trusted)

    assert [row["Pathway"] for row in result.rows] == [
        "Sixth",
        "Third",
        "Second",
        "Fourth",
        "Fifth",
        "First",
    ]
    keys = [(row["AI Class Assigned"], row["AI Subclass Assigned"]) for row in result.rows]
    assert keys == sorted(keys)


def test_assemble_uses_code_point_ordering() -> None:
    result = ResultAssembler().assemble(
        [_classified("Lower", "metabolism", "a"), _classified("Upper", "Zeta", "a")], []
    )

    assert [row["Pathway"] for row in result.rows] == ["Upper", "Lower"]


def test_assembled_tsv_and_preview_columns() -> None:
    result = ResultAssembler().assemble(
        [
            _classified(
                "Glycolysis",
                "Metabolism",
                "Carbohydrate metabolism",
                Species="Homo sapiens",
                Source="KEGG",
                URL="https://example.org/glycolysis",
                **{"UniProt IDS": "P04406"},
            )
        ],
        [],
    )

    lines = result.tsv.split("\n")
    assert lines[0] == "\t".join(OUTPUT_COLUMNS)
    assert lines[1].split("\t") == [
        "Glycolysis",
        "",
        "",
        "Homo sapiens",
        "KEGG",
        "https://example.org/glycolysis",
        "P04406",
        "Metabolism",
        "Carbohydrate metabolism",
    ]
    [preview] = result.preview_rows()
    assert "UniProt IDS" not in preview
    assert preview["AI Subclass Assigned"] == "Carbohydrate metabolism"
