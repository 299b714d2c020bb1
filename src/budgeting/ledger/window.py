#!/usr/bin/env python3
"""
Transaction Window

Row-level access to one partition's fixed-size transaction window. Rows are
addressed by 0-based index from the first transaction row; the layout maps
them to sheet cells.
"""

import logging
from decimal import Decimal
from typing import Any

from ..core.errors import NoRoomError
from .formula import FormulaError, evaluate
from .models import PartitionLayout, TransactionRow, is_blank
from .store import Sheet

logger = logging.getLogger(__name__)


class TransactionWindow:
    """The transaction rows of one partition sheet."""

    def __init__(self, sheet: Sheet, layout: PartitionLayout):
        self.sheet = sheet
        self.layout = layout

    @property
    def name(self) -> str:
        return self.sheet.name

    @property
    def max_rows(self) -> int:
        return self.layout.max_rows

    def _check(self, index: int) -> int:
        if not 0 <= index < self.layout.max_rows:
            raise IndexError(f"Row {index} is outside the transaction window of {self.name} (0-{self.max_rows - 1})")
        return self.layout.sheet_row(index)

    def read_row(self, index: int) -> TransactionRow:
        row = self._check(index)
        layout = self.layout
        return TransactionRow(
            date=self.sheet.get_value(row, layout.date_column),
            name=self.sheet.get_value(row, layout.name_column),
            cost=self.sheet.get_value(row, layout.cost_column),
            category=self.sheet.get_value(row, layout.category_column),
            type=self.sheet.get_value(row, layout.type_column),
        )

    def read_rows(self) -> list[TransactionRow]:
        return [self.read_row(i) for i in range(self.max_rows)]

    def write_primary(self, index: int, date: Any, name: Any, cost: Any) -> None:
        """Write the date, name and cost cells of a row."""
        row = self._check(index)
        self.sheet.set_values(row, self.layout.date_column, [[date, name, cost]])

    def write_metadata(self, index: int, category: Any, type: Any) -> None:
        """Write the category and type cells of a row."""
        row = self._check(index)
        self.sheet.set_values(row, self.layout.category_column, [[category, type]])

    def write_row(self, index: int, values: TransactionRow) -> None:
        self.write_primary(index, values.date, values.name, values.cost)
        self.write_metadata(index, values.category, values.type)

    def annotate_name(self, index: int, note: str, background: str | None) -> None:
        row = self._check(index)
        self.sheet.set_note(row, self.layout.name_column, note)
        self.sheet.set_background(row, self.layout.name_column, background)

    def mark_cost(self, index: int, background: str) -> None:
        row = self._check(index)
        self.sheet.set_background(row, self.layout.cost_column, background)

    def name_note(self, index: int) -> str:
        return self.sheet.get_note(self._check(index), self.layout.name_column)

    def cell_background(self, index: int, column: int) -> str | None:
        return self.sheet.get_background(self._check(index), column)

    def move_row(self, source: int, target: int) -> None:
        """Copy every cell of a row (values, notes, backgrounds) onto another row."""
        source_row, target_row = self._check(source), self._check(target)
        for column in self.layout.row_columns:
            self.sheet.copy_cell((source_row, column), (target_row, column))

    def clear_row(self, index: int) -> None:
        """Clear values, notes and backgrounds of a row."""
        row = self._check(index)
        for column in self.layout.row_columns:
            self.sheet.clear(row, column)

    def is_checked(self, index: int) -> bool:
        if self.layout.checkbox_column is None:
            return False
        return self.sheet.get_value(self._check(index), self.layout.checkbox_column) is True

    def set_checked(self, index: int, checked: bool) -> None:
        if self.layout.checkbox_column is None:
            raise ValueError(f"Sheet {self.name} has no split checkbox column")
        self.sheet.set_value(self._check(index), self.layout.checkbox_column, checked)

    def checked_rows(self) -> list[int]:
        return [i for i in range(self.max_rows) if self.is_checked(i)]

    def first_open_tail_row(self) -> int:
        """
        Index of the first row after the last row with a date, name or cost.

        Blank rows between filled rows are skipped, never reused. Returns
        ``max_rows`` when the last row is filled.
        """
        index = self.max_rows - 1
        while index >= 0 and self.read_row(index).primary_empty:
            index -= 1
        return index + 1

    def find_open_tail(self, count: int) -> int:
        """
        First row of ``count`` consecutive open rows at the tail of the window.

        Raises:
            NoRoomError: If the tail has fewer than ``count`` open rows
        """
        first_open = self.first_open_tail_row()
        if first_open + count > self.max_rows:
            raise NoRoomError(
                f"There are not enough empty transaction rows in sheet {self.name} to get {count} "
                f"transaction rows! First empty transaction row: {self.layout.sheet_row(first_open)}. "
                f"TransactionsMax: {self.max_rows}."
            )
        return first_open

    def next_empty_row(self, start: int) -> int | None:
        """First fully-empty row at or after ``start``, or None."""
        for index in range(start, self.max_rows):
            if self.read_row(index).is_empty:
                return index
        return None

    def evaluate_cost(self, index: int) -> Decimal:
        """
        Numeric value of a row's cost, following relative references.

        Raises:
            FormulaError: If the cost or a referenced cell is not evaluable
        """
        row = self._check(index)
        return self._evaluate_cell(row, self.layout.cost_column, set())

    def _evaluate_cell(self, row: int, column: int, visiting: set[tuple[int, int]]) -> Decimal:
        if (row, column) in visiting:
            raise FormulaError(f"Circular reference at row {row}, column {column} of {self.name}")
        visiting = visiting | {(row, column)}

        value = self.sheet.get_value(row, column)
        if is_blank(value):
            return Decimal(0)

        def resolve(row_offset: int, column_offset: int) -> Decimal:
            return self._evaluate_cell(row + row_offset, column + column_offset, visiting)

        return evaluate(value, resolve)
