"""Tabular input/output for pathway tables."""

from .assembler import PREVIEW_COLUMNS, AssembledResult, ResultAssembler
from .tsv import (
    INPUT_COLUMNS,
    OUTPUT_COLUMNS,
    TabularFormatError,
    read_tsv,
    read_tsv_file,
    write_tsv,
)

__all__ = [
    "INPUT_COLUMNS",
    "OUTPUT_COLUMNS",
    "PREVIEW_COLUMNS",
    "AssembledResult",
    "ResultAssembler",
    "TabularFormatError",
    "read_tsv",
    "read_tsv_file",
    "write_tsv",
]
