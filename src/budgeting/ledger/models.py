#!/usr/bin/env python3
"""
Ledger Domain Models

A ledger workbook holds one sheet per pay period (a partition). Each partition
has a fixed-size transaction window: rows of date/name/cost cells, a
category/type metadata block offset from the name column, and a column of
split checkboxes. The window's position comes from the sheet's variables.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, tzinfo
from typing import Any

from openpyxl.utils.cell import column_index_from_string, coordinate_from_string, get_column_letter
from openpyxl.utils.exceptions import CellCoordinatesException

from ..core.dates import to_ledger_date
from ..core.errors import ConfigError
from ..core.models import Receipt

GAP_MARKER = "(Gap)"


def parse_a1(ref: str) -> tuple[int, int]:
    """
    Parse an A1 cell reference into 1-based (row, column).

    Example:
        parse_a1("B5") -> (5, 2)
        parse_a1("AA10") -> (10, 27)

    Raises:
        ValueError: If the reference is not a single-cell A1 reference
    """
    try:
        letters, row = coordinate_from_string(str(ref).strip())
    except CellCoordinatesException as e:
        raise ValueError(f"Not an A1 cell reference: {ref!r}") from e
    return row, column_index_from_string(letters)


def to_a1(row: int, column: int) -> str:
    """Format 1-based (row, column) as an A1 reference."""
    return f"{get_column_letter(column)}{row}"


def is_blank(value: Any) -> bool:
    """A cell value counts as blank when it is missing or an empty string."""
    return value is None or value == ""


@dataclass
class Cell:
    """One ledger cell: value (a literal or an "=..." expression), note and background."""

    value: Any = None
    note: str = ""
    background: str | None = None

    @property
    def is_blank(self) -> bool:
        return is_blank(self.value) and not self.note and self.background is None


@dataclass
class TransactionRow:
    """
    Values of one transaction row.

    ``cost`` is a number or an expression string beginning with "=". ``name``
    may carry a " | " suffix marking a split group.
    """

    date: Any = None
    name: Any = None
    cost: Any = None
    category: Any = None
    type: Any = None

    @property
    def primary_empty(self) -> bool:
        """Date, name and cost are all blank (metadata ignored)."""
        return is_blank(self.date) and is_blank(self.name) and is_blank(self.cost)

    @property
    def is_empty(self) -> bool:
        """All five fields are blank."""
        return self.primary_empty and is_blank(self.category) and is_blank(self.type)


@dataclass(frozen=True)
class PartitionLayout:
    """
    Position of a partition's transaction window, in 1-based sheet coordinates.

    The date, name and cost columns are contiguous starting at
    ``date_column``; the category/type block starts ``metadata_offset``
    columns to the right of the name column.
    """

    start_row: int
    date_column: int
    max_rows: int
    checkbox_column: int | None = None
    metadata_offset: int = 3

    @property
    def name_column(self) -> int:
        return self.date_column + 1

    @property
    def cost_column(self) -> int:
        return self.date_column + 2

    @property
    def category_column(self) -> int:
        return self.name_column + self.metadata_offset

    @property
    def type_column(self) -> int:
        return self.category_column + 1

    @property
    def row_columns(self) -> tuple[int, ...]:
        """Every column that belongs to a transaction row."""
        return (self.date_column, self.name_column, self.cost_column, self.category_column, self.type_column)

    def sheet_row(self, index: int) -> int:
        """Sheet row number of a 0-based transaction index."""
        return self.start_row + index

    def index_for_sheet_row(self, row: int) -> int | None:
        """Transaction index of a sheet row, or None if the row is outside the window."""
        index = row - self.start_row
        if 0 <= index < self.max_rows:
            return index
        return None

    @classmethod
    def from_variables(cls, variables: Mapping[str, Any]) -> "PartitionLayout":
        """
        Build a layout from a sheet's variables.

        Required keys: ``TransactionsStart`` (A1 of the first date cell) and
        ``TransactionsMax``. Optional: ``SplitCheckboxesStart`` (A1 of the
        first checkbox) and ``MetadataOffset``.

        Raises:
            ConfigError: If a required key is missing or malformed
        """
        for key in ("TransactionsStart", "TransactionsMax"):
            if is_blank(variables.get(key)):
                raise ConfigError(f"Sheet variable {key} is required")

        try:
            start_row, date_column = parse_a1(variables["TransactionsStart"])
            max_rows = int(variables["TransactionsMax"])

            checkbox_column = None
            if not is_blank(variables.get("SplitCheckboxesStart")):
                _, checkbox_column = parse_a1(variables["SplitCheckboxesStart"])

            metadata_offset = int(variables.get("MetadataOffset") or 3)
        except ValueError as e:
            raise ConfigError(f"Invalid sheet variables: {e}") from e

        if max_rows <= 0:
            raise ConfigError(f"TransactionsMax must be positive, got {max_rows}")

        return cls(
            start_row=start_row,
            date_column=date_column,
            max_rows=max_rows,
            checkbox_column=checkbox_column,
            metadata_offset=metadata_offset,
        )


@dataclass
class LedgerPartition:
    """
    A pay-period sheet of the ledger.

    The window is inclusive on both ends: a receipt belongs to the partition
    when its calendar date in the ledger timezone falls on or between the
    start and end dates.
    """

    name: str
    start_date: date
    end_date: date
    pending_receipts: list[Receipt] = field(default_factory=list)

    @property
    def is_gap(self) -> bool:
        return GAP_MARKER in self.name

    def contains(self, moment: date | datetime, tz: tzinfo | None = None) -> bool:
        return self.start_date <= to_ledger_date(moment, tz) <= self.end_date


@dataclass(frozen=True)
class RowRange:
    """Transaction rows ``start`` (inclusive) to ``stop`` (exclusive) of a partition."""

    partition: str
    start: int
    stop: int

    def __len__(self) -> int:
        return self.stop - self.start

    @property
    def indices(self) -> range:
        return range(self.start, self.stop)
