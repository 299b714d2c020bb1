#!/usr/bin/env python3
"""Tests for in-memory and JSON ledger workbooks."""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from budgeting.core.errors import PartitionNotFound
from budgeting.ledger.store import JsonLedgerStore, Sheet, decode_value, encode_value
from tests.fixtures.builders import make_sheet, make_workbook


@pytest.mark.ledger
class TestSheet:
    """Test sparse sheet cell access."""

    def test_values_notes_backgrounds(self):
        sheet = Sheet("s")
        sheet.set_values(2, 3, [[1, 2], [3, 4]])
        sheet.set_note(2, 3, "note")
        sheet.set_background(2, 3, "#FF0000")

        assert sheet.get_values(2, 3, 2, 2) == [[1, 2], [3, 4]]
        assert sheet.get_note(2, 3) == "note"
        assert sheet.get_background(2, 3) == "#FF0000"
        assert sheet.get_value(9, 9) is None
        assert (9, 9) not in sheet.cells

    def test_copy_and_clear(self):
        sheet = Sheet("s")
        sheet.set_value(1, 1, "x")
        sheet.set_note(1, 1, "n")

        sheet.copy_cell((1, 1), (2, 1))
        sheet.set_value(1, 1, "changed")
        sheet.copy_cell((5, 5), (2, 2))
        sheet.clear(1, 1)

        assert sheet.get_value(2, 1) == "x"
        assert sheet.get_note(2, 1) == "n"
        assert sheet.get_value(1, 1) is None

    def test_duplicate_is_independent(self):
        original = make_sheet("Template", [(date(2024, 3, 1), "Example Store", 5)])
        original.tab_color = "#00FF00"

        copy = original.duplicate("3/29/24 - 4/11/24")
        copy.set_value(5, 3, "Other")
        copy.variables["TransactionsMax"] = 99

        assert original.get_value(5, 3) == "Example Store"
        assert original.variables["TransactionsMax"] == 10
        assert copy.tab_color is None


@pytest.mark.ledger
class TestWorkbook:
    """Test workbook sheet management."""

    def test_sheet_lookup(self, workbook):
        assert workbook.sheet_names() == ["3/15/24 - 3/28/24", "3/1/24 - 3/14/24", "Template"]
        assert workbook.sheet_index("Template") == 2
        with pytest.raises(PartitionNotFound):
            workbook.get_sheet("missing")

    def test_duplicate_sheet_inserts_at_index(self, workbook):
        workbook.duplicate_sheet("Template", "new", 0)

        assert workbook.sheet_names()[0] == "new"
        with pytest.raises(ValueError):
            workbook.duplicate_sheet("Template", "new", 0)


@pytest.mark.ledger
class TestJsonLedgerStore:
    """Test persisting workbooks as JSON."""

    @pytest.mark.parametrize(
        "value",
        [
            datetime(2024, 3, 5, 10, 0, tzinfo=timezone.utc),
            date(2024, 3, 5),
            Decimal("42.10"),
            "=42.10-R[1]C[0]",
            True,
            None,
        ],
    )
    def test_value_tags(self, value):
        assert decode_value(encode_value(value)) == value
        assert type(decode_value(encode_value(value))) is type(value)

    def test_save_and_load(self, tmp_path):
        path = tmp_path / "ledger.json"
        store = JsonLedgerStore(path)
        assert store.sheets == []

        source = make_workbook()
        sheet = source.get_sheet("3/1/24 - 3/14/24")
        sheet.set_value(5, 2, datetime(2024, 3, 5, 10, 0, tzinfo=timezone.utc))
        sheet.set_value(5, 4, Decimal("42.10"))
        sheet.set_note(5, 3, "a note")
        source.set_tab_color("3/15/24 - 3/28/24", "#E8A9CA")
        store.sheets, store.variables = source.sheets, source.variables
        store.save()

        reloaded = JsonLedgerStore(path)

        assert reloaded.sheet_names() == source.sheet_names()
        assert reloaded.get_variables()["PayPeriodDays"] == 14
        loaded = reloaded.get_sheet("3/1/24 - 3/14/24")
        assert loaded.get_value(5, 2) == datetime(2024, 3, 5, 10, 0, tzinfo=timezone.utc)
        assert loaded.get_value(5, 4) == Decimal("42.10")
        assert loaded.get_note(5, 3) == "a note"
        assert loaded.variables["TransactionsStart"] == "B5"
        assert reloaded.get_sheet("3/15/24 - 3/28/24").tab_color == "#E8A9CA"
