#!/usr/bin/env python3
"""
Split Engine

Splits one recorded transaction row into two. The row's cost becomes
"original minus the new row", and a new row with the same date, name,
category and type is added after the row's split group with a cost of
``=<TaxMultiplier>*(0)`` for the user to fill in.

Rows that already belong together (earlier splits of the same transaction)
form a group; the new row goes after the whole group.
"""

import logging
from typing import Any

from ..core.dates import are_dates_equal
from ..core.errors import NoRoomError, SplitPreconditionError
from .models import RowRange, TransactionRow, is_blank
from .store import LedgerStore
from .variables import VariablesCache
from .window import TransactionWindow

logger = logging.getLogger(__name__)

GROUP_DELIMITER = "|"
NAME_GROUP_SUFFIX = " | "


def _name_prefix(name: str) -> str:
    return name.split(GROUP_DELIMITER)[0].rstrip()


def rows_seem_equal(a: TransactionRow, b: TransactionRow) -> bool:
    """
    Whether two rows look like parts of the same logical transaction.

    Dates must be equal (see are_dates_equal). Names must be equal, or equal
    before the first "|" (trailing spaces ignored), or share their leading
    characters up to a third of the shorter name's length (rounded down, so
    names under three characters always match). A missing name matches only
    another missing name.
    """
    if not are_dates_equal(a.date, b.date):
        return False

    if a.name == b.name:
        return True
    if is_blank(a.name) or is_blank(b.name):
        return False

    name_a, name_b = str(a.name), str(b.name)
    if _name_prefix(name_a) == _name_prefix(name_b):
        return True

    third = min(len(name_a), len(name_b)) // 3
    return name_a[:third] == name_b[:third]


def difference_cost(cost: Any, group_size: int) -> str:
    """First-row cost after a split: the original minus the row ``group_size`` rows below."""
    if is_blank(cost):
        cost = 0
    text = str(cost)
    prefix = "" if text.startswith("=") else "="
    return f"{prefix}{text}-R[{group_size}]C[0]"


def grouped_name(name: Any) -> str:
    text = "" if is_blank(name) else str(name)
    return text if GROUP_DELIMITER in text else f"{text}{NAME_GROUP_SUFFIX}"


class SplitEngine:
    """
    Splits transaction rows of partition sheets.

    Args:
        store: Ledger workbook
        variables: Per-run variables cache; a fresh one is made when omitted
    """

    def __init__(self, store: LedgerStore, variables: VariablesCache | None = None):
        self.store = store
        self.variables = variables or VariablesCache(store)

    def window(self, sheet_name: str) -> TransactionWindow:
        return TransactionWindow(self.store.get_sheet(sheet_name), self.variables.layout(sheet_name))

    def find_group(self, window: TransactionWindow, row_index: int) -> list[TransactionRow]:
        """
        The target row and the following rows that seem equal to it.

        Raises:
            SplitPreconditionError: If the target row is empty
        """
        first = window.read_row(row_index)
        if first.is_empty:
            raise SplitPreconditionError(
                f"Checked row {window.layout.sheet_row(row_index)} on sheet {window.name}, "
                f"but the transaction row has no content!"
            )

        group = [first]
        index = row_index + 1
        while index < window.max_rows:
            candidate = window.read_row(index)
            if not rows_seem_equal(candidate, first):
                break
            group.append(candidate)
            index += 1
        return group

    def split(self, partition_name: str, row_index: int) -> RowRange:
        """
        Split a row into two.

        Every precondition is checked before the sheet is touched.

        Returns:
            Range from ``row_index`` through the new row

        Raises:
            SplitPreconditionError: If the row is empty, out of range or already inside a group
            NoRoomError: If the group reaches the end of the window or no empty row is left to shift into
        """
        window = self.window(partition_name)
        if not 0 <= row_index < window.max_rows:
            raise SplitPreconditionError(f"Row {row_index} is outside the transaction window of {partition_name}")

        group = self.find_group(window, row_index)
        first = group[0]
        after = row_index + len(group)

        if after >= window.max_rows:
            raise NoRoomError(
                f"No room on sheet {partition_name} to split group of {len(group)} "
                f"starting at row {window.layout.sheet_row(row_index)}!"
            )

        if row_index > 0 and rows_seem_equal(window.read_row(row_index - 1), first):
            raise SplitPreconditionError(
                f"Transaction in sheet {partition_name} at row {window.layout.sheet_row(row_index)} "
                f"seems to be in a transaction group already!"
            )

        shift_end = None
        if not window.read_row(after).is_empty:
            shift_end = window.next_empty_row(after + 1)
            if shift_end is None:
                raise NoRoomError(f"No empty row left on sheet {partition_name} to move transactions into")

        name = grouped_name(first.name)
        new_row = TransactionRow(
            date=first.date,
            name=name,
            cost=f"={self.variables.tax_multiplier}*(0)",
            category=first.category,
            type=first.type,
        )

        if shift_end is not None:
            logger.debug(f"Moving rows {after}-{shift_end - 1} of {partition_name} down one")
            for index in range(shift_end - 1, after - 1, -1):
                window.move_row(index, index + 1)
            window.clear_row(after)

        window.write_row(after, new_row)
        window.write_primary(row_index, first.date, name, difference_cost(first.cost, len(group)))

        logger.info(f"Split row {row_index} of {partition_name} into a group of {len(group) + 1}")
        return RowRange(partition=partition_name, start=row_index, stop=after + 1)

    def split_checked(self, partition_name: str) -> list[RowRange]:
        """
        Split every row whose split checkbox is ticked, unticking it afterwards.

        Rows are handled bottom-up so earlier splits do not move later targets.
        """
        window = self.window(partition_name)
        ranges = []
        for row_index in sorted(window.checked_rows(), reverse=True):
            ranges.append(self.split(partition_name, row_index))
            window.set_checked(row_index, False)
        return ranges
