#!/usr/bin/env python3
"""
Integration tests for the receipt workflow.

Runs alert .eml files through classification, aggregation and placement into
a JSON workbook, then checks the ledger and the mail labels.
"""

from datetime import date, datetime
from decimal import Decimal
from zoneinfo import ZoneInfo

import pytest

from budgeting.core.errors import MailStoreError, PartitionNotFound
from budgeting.core.json_utils import read_json
from budgeting.ledger.store import JsonLedgerStore
from budgeting.mail.aggregator import ERROR_BANNER
from budgeting.workflow import PlacementReport, ReceiptWorkflow
from tests.fixtures.builders import (
    COST_COL,
    FIRST_ROW,
    NAME_COL,
    TYPE_COL,
    eml,
    make_workbook,
    save_workbook,
    write_mail_dir,
)

EARLY = "3/1/24 - 3/14/24"
LATE = "3/15/24 - 3/28/24"


@pytest.fixture
def alerts(app_config):
    return write_mail_dir(
        app_config.mail.mail_dir,
        {
            "purchase.eml": eml(
                "Your $42.10 transaction with Example Store",
                message_id="<purchase@example.com>",
                date_header="Tue, 05 Mar 2024 10:00:00 -0600",
            ),
            "statement.eml": eml(
                "Your statement is ready",
                message_id="<statement@example.com>",
                references="<purchase@example.com>",
                date_header="Tue, 05 Mar 2024 11:00:00 -0600",
            ),
            "credit.eml": eml(
                "You have a $5.00 credit pending on your credit card",
                body="Merchant    Refund Store",
                message_id="<credit@example.com>",
                date_header="Wed, 20 Mar 2024 09:00:00 -0500",
            ),
        },
    )


@pytest.fixture
def ledger(app_config):
    return save_workbook(make_workbook(), app_config.ledger.workbook_path)


@pytest.mark.integration
class TestImportReceipts:
    """Test importing alert threads into the ledger."""

    def test_import_and_mark(self, app_config, alerts, ledger):
        workflow = ReceiptWorkflow.from_config(app_config)

        report = workflow.import_receipts(mark_processed=True)

        assert report.placed == {EARLY: 1, LATE: 1}
        assert report.error_count == 0
        assert sorted(report.marked) == ["<credit@example.com>", "<purchase@example.com>"]
        assert report.summary() is None

        reloaded = JsonLedgerStore(app_config.ledger.workbook_path)
        early = reloaded.get_sheet(EARLY)
        assert early.get_value(FIRST_ROW, NAME_COL) == "Example Store"
        assert early.get_value(FIRST_ROW, COST_COL) == Decimal("42.10")
        assert early.get_value(FIRST_ROW, TYPE_COL) == "Chase"
        assert "Message is not a receipt" in early.get_note(FIRST_ROW, NAME_COL)
        assert early.get_value(FIRST_ROW, 2).astimezone(ZoneInfo("America/Chicago")).date() == date(2024, 3, 5)
        late = reloaded.get_sheet(LATE)
        assert late.get_value(FIRST_ROW, NAME_COL) == "Refund Store"
        assert late.get_value(FIRST_ROW, COST_COL) == Decimal("-5.00")

        labels = read_json(alerts / "labels.json")
        assert labels["<purchase@example.com>"] == ["Receipts", "Receipts/Scripted"]

        # Processed threads no longer match the search
        assert ReceiptWorkflow.from_config(app_config).fetch_threads() == []

    def test_without_marking_threads_stay_unprocessed(self, app_config, alerts, ledger):
        report = ReceiptWorkflow.from_config(app_config).import_receipts(mark_processed=False)

        assert report.marked == []
        assert len(report.unmarked) == 2
        assert not (alerts / "labels.json").exists()

    def test_errors_block_marking(self, app_config, alerts, ledger):
        (alerts / "unknown.eml").write_bytes(
            eml(
                "Hello",
                sender="someone@unknown.example",
                message_id="<unknown@example.com>",
                references="<credit@example.com>",
                date_header="Wed, 20 Mar 2024 09:30:00 -0500",
            )
        )
        # Widen the search so the unknown sender's reply is part of the thread
        app_config.mail.search_query = "in:inbox"

        report = ReceiptWorkflow.from_config(app_config).import_receipts(mark_processed=True)

        assert report.error_count == 1
        assert report.marked == ["<purchase@example.com>"]
        assert "<credit@example.com>" in report.unmarked
        assert report.summary() == "There were 1 errors while processing. Please review."

        late = JsonLedgerStore(app_config.ledger.workbook_path).get_sheet(LATE)
        note = late.get_note(FIRST_ROW, NAME_COL)
        assert "UnknownProvider" in note
        assert ERROR_BANNER not in note
        assert late.get_background(FIRST_ROW, NAME_COL) == app_config.ledger.error_color

    def test_paging(self, app_config, alerts, ledger):
        workflow = ReceiptWorkflow.from_config(app_config)

        assert [t.id for t in workflow.fetch_threads(0, 1)] == ["<credit@example.com>"]
        assert [t.id for t in workflow.fetch_threads(1, 1)] == ["<purchase@example.com>"]
        assert len(workflow.fetch_threads()) == 2

    def test_receipt_outside_every_partition(self, app_config, alerts, ledger):
        (alerts / "old.eml").write_bytes(
            eml(
                "Your $1.00 transaction with Old Store",
                message_id="<old@example.com>",
                date_header="Thu, 01 Feb 2024 10:00:00 -0600",
            )
        )

        with pytest.raises(PartitionNotFound):
            ReceiptWorkflow.from_config(app_config).import_receipts(mark_processed=True)

        reloaded = JsonLedgerStore(app_config.ledger.workbook_path)
        assert reloaded.get_sheet(EARLY).get_value(FIRST_ROW, NAME_COL) is None
        assert not (alerts / "labels.json").exists()

    def test_ledger_only_workflow_has_no_mail(self, app_config, ledger):
        workflow = ReceiptWorkflow.from_config(app_config, with_mail=False)

        with pytest.raises(MailStoreError):
            workflow.fetch_threads()


@pytest.mark.integration
class TestLedgerMaintenance:
    """Test partition catch-up and splitting through the workflow."""

    def test_catch_up_and_split_are_saved(self, app_config, ledger):
        ledger.get_sheet(EARLY).set_values(FIRST_ROW, 2, [[date(2024, 3, 5), "Example Store", Decimal("30.00")]])
        ledger.save()
        workflow = ReceiptWorkflow.from_config(app_config, with_mail=False)

        created = workflow.ensure_partitions_current(datetime(2024, 4, 20, 12, tzinfo=ZoneInfo("America/Chicago")))
        row_range = workflow.split_entry(EARLY, 0)

        reloaded = JsonLedgerStore(app_config.ledger.workbook_path)
        assert created == 2
        assert reloaded.sheet_names()[:2] == ["4/12/24 - 4/25/24", "3/29/24 - 4/11/24"]
        assert len(row_range) == 2
        assert reloaded.get_sheet(EARLY).get_value(FIRST_ROW, COST_COL) == "=30.00-R[1]C[0]"


def test_placement_report_to_dict():
    report = PlacementReport(placed={EARLY: 2}, errors=["e"], marked=["a"], unmarked=["b"])

    assert report.total_placed == 2
    assert report.to_dict() == {
        "placed": {EARLY: 2},
        "error_count": 1,
        "errors": ["e"],
        "marked": ["a"],
        "unmarked": ["b"],
    }
