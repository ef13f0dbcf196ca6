"""Fixed-column TSV codec for pathway tables."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Sequence

from pathclass.classification.errors import InvalidInputError

INPUT_COLUMNS: tuple[str, ...] = (
    "Pathway",
    "Pathway Class",
    "Subclass",
    "Species",
    "Source",
    "URL",
    "UniProt IDS",
)
OUTPUT_COLUMNS: tuple[str, ...] = INPUT_COLUMNS + ("AI Class Assigned", "AI Subclass Assigned")
REQUIRED_COLUMNS: tuple[str, ...] = ("Pathway",)


class TabularFormatError(InvalidInputError):
    """Raised when a table lacks a header or a mandatory column."""


def read_tsv(text: str) -> List[Dict[str, str]]:
    """Parse TSV text into row dictionaries keyed by the input columns.

    Blank lines are skipped, unknown columns are kept, and missing optional columns
    default to empty strings.

    Raises:
        TabularFormatError: If the header is absent or lacks a mandatory column.
    """
    lines = [line for line in text.replace("\r\n", "\n").split("\n") if line.strip()]
    if not lines:
        raise TabularFormatError("Input table is empty; a header row is required.")

    header = [column.strip() for column in lines[0].split("\t")]
    missing = [column for column in REQUIRED_COLUMNS if column not in header]
    if missing:
        raise TabularFormatError(f"Input table is missing required column(s): {', '.join(missing)}")

    rows: List[Dict[str, str]] = []
    for line in lines[1:]:
        values = line.split("\t")
        row = {column: "" for column in INPUT_COLUMNS}
        for position, column in enumerate(header):
            if position < len(values):
                row[column] = values[position].strip()
        rows.append(row)
    return rows


def read_tsv_file(path: Path) -> List[Dict[str, str]]:
    """Read and parse a TSV file (UTF-8, BOM tolerated)."""
    return read_tsv(Path(path).read_text(encoding="utf-8-sig"))


def _clean(value: object) -> str:
    text = "" if value is None else str(value)
    return text.replace("\t", " ").replace("\r", " ").replace("\n", " ")


def write_tsv(
    rows: Iterable[Mapping[str, object]], columns: Sequence[str] = OUTPUT_COLUMNS
) -> str:
    """Serialize rows under ``columns``; header first, rows joined by newlines."""
    lines = ["\t".join(columns)]
    for row in rows:
        lines.append("\t".join(_clean(row.get(column, "")) for column in columns))
    return "\n".join(lines)


__all__ = [
    "INPUT_COLUMNS",
    "OUTPUT_COLUMNS",
    "REQUIRED_COLUMNS",
    "TabularFormatError",
    "read_tsv",
    "read_tsv_file",
    "write_tsv",
]
