"""Merge, order and serialize classified records."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from pathclass.classification.models import ClassifiedRecord

from .tsv import OUTPUT_COLUMNS, write_tsv

PREVIEW_COLUMNS: tuple[str, ...] = tuple(column for column in OUTPUT_COLUMNS if column != "UniProt IDS")


def to_row(item: ClassifiedRecord) -> Dict[str, str]:
    """Flatten a classified record into output-column keyed values."""
    record = item.record
    return {
        "Pathway": record.pathway_name,
        "Pathway Class": record.original_class or "",
        "Subclass": record.original_subclass or "",
        "Species": record.species,
        "Source": record.source,
        "URL": record.url,
        "UniProt IDS": record.external_ids,
        "AI Class Assigned": item.assigned_class,
        "AI Subclass Assigned": item.assigned_subclass,
    }


@dataclass
class AssembledResult:
    """Sorted output rows with their TSV rendering."""

    records: List[ClassifiedRecord]
    tsv: str
    rows: List[Dict[str, str]] = field(default_factory=list)

    def preview_rows(self) -> List[Dict[str, str]]:
        """Return rows for interactive display, without the external id column."""
        return [{column: row[column] for column in PREVIEW_COLUMNS} for row in self.rows]


class ResultAssembler:
    """Combine classified and trusted rows into the final ordered table."""

    def assemble(
        self,
        classified_others: Sequence[ClassifiedRecord],
        classified_trusted: Sequence[ClassifiedRecord],
    ) -> AssembledResult:
        """Concatenate others then trusted and stable-sort by (class, subclass)."""
        ordered = sorted([*classified_others, *classified_trusted], key=lambda item: item.sort_key)
        rows = [to_row(item) for item in ordered]
        return AssembledResult(records=ordered, tsv=write_tsv(rows), rows=rows)


__all__ = ["AssembledResult", "PREVIEW_COLUMNS", "ResultAssembler", "to_row"]
