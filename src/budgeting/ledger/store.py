#!/usr/bin/env python3
"""
Ledger Store

The ledger is an external workbook: an ordered list of sheets made of cells
(value, note, background), plus workbook-level variables. ``Workbook`` keeps it
in memory; ``JsonLedgerStore`` persists it as a JSON file.

JSON format:
    {
      "variables": {"PayPeriodDays": 14, "TemplateName": "Template", ...},
      "sheets": [
        {"name": "3/1/24 - 3/14/24", "tab_color": null,
         "variables": {"TransactionsStart": "B5", "TransactionsMax": 50},
         "cells": [{"cell": "B5", "value": {"$date": "2024-03-01"},
                    "note": "", "background": null}]}
      ]
    }

Dates, datetimes and decimals are tagged so they survive a round trip.
"""

import copy
import logging
from collections.abc import Iterator
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Protocol

from ..core.errors import PartitionNotFound
from ..core.json_utils import read_json, write_json
from .models import Cell, parse_a1, to_a1

logger = logging.getLogger(__name__)


class Sheet:
    """A sparse grid of cells addressed by 1-based (row, column)."""

    def __init__(
        self,
        name: str,
        cells: dict[tuple[int, int], Cell] | None = None,
        variables: dict[str, Any] | None = None,
        tab_color: str | None = None,
    ):
        self.name = name
        self.cells: dict[tuple[int, int], Cell] = cells or {}
        self.variables: dict[str, Any] = variables or {}
        self.tab_color = tab_color

    def __repr__(self) -> str:
        return f"Sheet(name={self.name!r}, cells={len(self.cells)})"

    def cell(self, row: int, column: int) -> Cell:
        """Cell at a position; a detached blank Cell when nothing is stored there."""
        return self.cells.get((row, column)) or Cell()

    def _mutable(self, row: int, column: int) -> Cell:
        return self.cells.setdefault((row, column), Cell())

    def get_value(self, row: int, column: int) -> Any:
        return self.cell(row, column).value

    def set_value(self, row: int, column: int, value: Any) -> None:
        self._mutable(row, column).value = value

    def get_note(self, row: int, column: int) -> str:
        return self.cell(row, column).note

    def set_note(self, row: int, column: int, note: str) -> None:
        self._mutable(row, column).note = note or ""

    def get_background(self, row: int, column: int) -> str | None:
        return self.cell(row, column).background

    def set_background(self, row: int, column: int, color: str | None) -> None:
        self._mutable(row, column).background = color

    def clear(self, row: int, column: int) -> None:
        """Remove value, note and background."""
        self.cells.pop((row, column), None)

    def copy_cell(self, source: tuple[int, int], target: tuple[int, int]) -> None:
        """Copy value, note and background from one cell to another."""
        if source in self.cells:
            self.cells[target] = copy.copy(self.cells[source])
        else:
            self.cells.pop(target, None)

    def get_values(self, row: int, column: int, num_rows: int, num_columns: int) -> list[list[Any]]:
        """Rectangular block of values."""
        return [[self.get_value(r, c) for c in range(column, column + num_columns)] for r in range(row, row + num_rows)]

    def set_values(self, row: int, column: int, values: list[list[Any]]) -> None:
        for r, row_values in enumerate(values):
            for c, value in enumerate(row_values):
                self.set_value(row + r, column + c, value)

    def duplicate(self, name: str) -> "Sheet":
        """Deep copy of this sheet under a new name, without its tab color."""
        return Sheet(
            name=name,
            cells={position: copy.copy(cell) for position, cell in self.cells.items()},
            variables=copy.deepcopy(self.variables),
        )


class LedgerStore(Protocol):
    """The workbook operations the partitioner and split engine rely on."""

    def sheet_names(self) -> list[str]:
        """Sheet names in display order."""
        ...

    def get_sheet(self, name: str) -> Sheet:
        """
        Raises:
            PartitionNotFound: If no sheet has the name
        """
        ...

    def sheet_index(self, name: str) -> int:
        """0-based display position of a sheet."""
        ...

    def duplicate_sheet(self, template_name: str, new_name: str, index: int) -> Sheet:
        """Copy a sheet and insert the copy at a display position."""
        ...

    def set_tab_color(self, name: str, color: str | None) -> None: ...

    def get_variables(self) -> dict[str, Any]:
        """Workbook-level variables."""
        ...

    def save(self) -> None:
        """Persist pending changes."""
        ...


class Workbook:
    """In-memory LedgerStore."""

    def __init__(self, sheets: list[Sheet] | None = None, variables: dict[str, Any] | None = None):
        self.sheets: list[Sheet] = sheets or []
        self.variables: dict[str, Any] = variables or {}

    def __iter__(self) -> Iterator[Sheet]:
        return iter(self.sheets)

    def sheet_names(self) -> list[str]:
        return [sheet.name for sheet in self.sheets]

    def get_sheet(self, name: str) -> Sheet:
        for sheet in self.sheets:
            if sheet.name == name:
                return sheet
        raise PartitionNotFound(f"Sheet {name!r} not found")

    def has_sheet(self, name: str) -> bool:
        return name in self.sheet_names()

    def sheet_index(self, name: str) -> int:
        return self.sheet_names().index(name)

    def add_sheet(self, sheet: Sheet, index: int | None = None) -> Sheet:
        if self.has_sheet(sheet.name):
            raise ValueError(f"A sheet named {sheet.name!r} already exists")
        if index is None:
            self.sheets.append(sheet)
        else:
            self.sheets.insert(index, sheet)
        return sheet

    def duplicate_sheet(self, template_name: str, new_name: str, index: int) -> Sheet:
        new_sheet = self.get_sheet(template_name).duplicate(new_name)
        return self.add_sheet(new_sheet, index)

    def set_tab_color(self, name: str, color: str | None) -> None:
        self.get_sheet(name).tab_color = color

    def get_variables(self) -> dict[str, Any]:
        return self.variables

    def save(self) -> None:
        pass


def encode_value(value: Any) -> Any:
    """Tag values JSON cannot represent."""
    if isinstance(value, datetime):
        return {"$datetime": value.isoformat()}
    if isinstance(value, date):
        return {"$date": value.isoformat()}
    if isinstance(value, Decimal):
        return {"$decimal": str(value)}
    return value


def decode_value(value: Any) -> Any:
    if isinstance(value, dict):
        if "$datetime" in value:
            return datetime.fromisoformat(value["$datetime"])
        if "$date" in value:
            return date.fromisoformat(value["$date"])
        if "$decimal" in value:
            return Decimal(value["$decimal"])
    return value


def sheet_to_dict(sheet: Sheet) -> dict[str, Any]:
    return {
        "name": sheet.name,
        "tab_color": sheet.tab_color,
        "variables": sheet.variables,
        "cells": [
            {
                "cell": to_a1(row, column),
                "value": encode_value(cell.value),
                "note": cell.note,
                "background": cell.background,
            }
            for (row, column), cell in sorted(sheet.cells.items())
            if not cell.is_blank
        ],
    }


def sheet_from_dict(data: dict[str, Any]) -> Sheet:
    cells = {}
    for item in data.get("cells", []):
        cells[parse_a1(item["cell"])] = Cell(
            value=decode_value(item.get("value")),
            note=item.get("note") or "",
            background=item.get("background"),
        )
    return Sheet(
        name=data["name"],
        cells=cells,
        variables=dict(data.get("variables") or {}),
        tab_color=data.get("tab_color"),
    )


class JsonLedgerStore(Workbook):
    """Workbook persisted as a JSON file; changes are written on ``save()``."""

    def __init__(self, path: Path):
        self.path = Path(path)
        super().__init__()
        if self.path.exists():
            self.load()
        else:
            logger.warning(f"Ledger workbook {self.path} does not exist yet; starting empty")

    def load(self) -> None:
        data = read_json(self.path)
        self.variables = dict(data.get("variables") or {})
        self.sheets = [sheet_from_dict(item) for item in data.get("sheets", [])]
        logger.debug(f"Loaded {len(self.sheets)} sheets from {self.path}")

    def save(self) -> None:
        write_json(
            self.path,
            {
                "variables": self.variables,
                "sheets": [sheet_to_dict(sheet) for sheet in self.sheets],
            },
        )
        logger.debug(f"Saved {len(self.sheets)} sheets to {self.path}")
