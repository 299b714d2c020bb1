#!/usr/bin/env python3
"""
Synthetic Test Data Builders

Builds alert messages, threads, raw .eml files and ledger workbooks for unit
and integration tests. All names, addresses and amounts are synthetic.
"""

from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

from budgeting.ledger.partitioner import partition_name
from budgeting.ledger.store import JsonLedgerStore, Sheet, Workbook
from budgeting.mail.models import MailMessage, MailThread

CHASE_ADDRESS = "no.reply.alerts@chase.com"
VENMO_ADDRESS = "venmo@venmo.com"
PAYPAL_ADDRESS = "service@paypal.com"
RELAY_ADDRESS = "relay@example.com"
OWNER_ADDRESS = "owner@example.com"

# Sheet layout used by every test workbook: first date cell B5, ten rows,
# checkboxes in column A, metadata (category/type) in columns F/G
TEST_SHEET_VARIABLES = {
    "TransactionsStart": "B5",
    "TransactionsMax": 10,
    "SplitCheckboxesStart": "A5",
}
TEST_WORKBOOK_VARIABLES = {
    "PayPeriodDays": 14,
    "TemplateName": "Template",
    "TaxMultiplier": "1.0825",
}

DATE_COL, NAME_COL, COST_COL, CATEGORY_COL, TYPE_COL, CHECKBOX_COL = 2, 3, 4, 6, 7, 1
FIRST_ROW = 5


def make_message(
    subject: str,
    sender: str = f"Chase <{CHASE_ADDRESS}>",
    body: str = "",
    when: datetime | None = None,
    message_id: str = "msg-1",
    thread_id: str = "thread-1",
    destination: str = OWNER_ADDRESS,
    html: str | None = None,
) -> MailMessage:
    """Build a MailMessage with synthetic defaults."""
    return MailMessage(
        id=message_id,
        sender=sender,
        destination=destination,
        subject=subject,
        date=when or datetime(2024, 3, 5, 16, 0, tzinfo=timezone.utc),
        thread_id=thread_id,
        text_content=body or None,
        html_content=html,
    )


def make_thread(messages: list[MailMessage], thread_id: str = "thread-1") -> MailThread:
    """Build a MailThread whose last activity is its newest message."""
    return MailThread(
        id=thread_id,
        last_activity_date=max(m.date for m in messages),
        messages=list(messages),
        labels={"INBOX"},
    )


def make_sheet(name: str, rows: list[tuple[Any, ...]] | None = None, **variables: Any) -> Sheet:
    """
    Build a partition (or template) sheet with the test layout.

    Each row tuple is (date, name, cost[, category[, type]]) starting at the
    first transaction row.
    """
    sheet = Sheet(name=name, variables={**TEST_SHEET_VARIABLES, **variables})
    for offset, values in enumerate(rows or []):
        padded = list(values) + [None] * (5 - len(values))
        row = FIRST_ROW + offset
        for column, value in zip((DATE_COL, NAME_COL, COST_COL, CATEGORY_COL, TYPE_COL), padded):
            if value is not None:
                sheet.set_value(row, column, value)
    return sheet


def make_workbook(
    windows: list[tuple[date, date]] | None = None,
    gap_starts: set[date] | None = None,
    **variables: Any,
) -> Workbook:
    """
    Build a workbook of partitions plus a template sheet.

    Args:
        windows: (start, end) pairs, newest first; two March 2024 pay periods by default
        gap_starts: Start dates of windows that are gap periods
        variables: Workbook variable overrides
    """
    if windows is None:
        windows = [(date(2024, 3, 15), date(2024, 3, 28)), (date(2024, 3, 1), date(2024, 3, 14))]

    sheets = []
    for start, end in windows:
        sheets.append(make_sheet(partition_name(start, end, start in (gap_starts or set()))))
    sheets.append(make_sheet("Template"))

    return Workbook(sheets=sheets, variables={**TEST_WORKBOOK_VARIABLES, **variables})


def save_workbook(workbook: Workbook, path: Path) -> JsonLedgerStore:
    """Persist an in-memory workbook as a JSON ledger file."""
    store = JsonLedgerStore(path)
    store.sheets = workbook.sheets
    store.variables = workbook.variables
    store.save()
    return store


def eml(
    subject: str,
    sender: str = f"Chase <{CHASE_ADDRESS}>",
    body: str = "Synthetic alert body.",
    date_header: str = "Tue, 05 Mar 2024 10:00:00 -0600",
    message_id: str = "<alert-1@example.com>",
    references: str | None = None,
    to: str = OWNER_ADDRESS,
) -> bytes:
    """Raw RFC 822 bytes of a plain-text alert."""
    headers = [
        f"From: {sender}",
        f"To: {to}",
        f"Subject: {subject}",
        f"Date: {date_header}",
        f"Message-ID: {message_id}",
    ]
    if references:
        headers.append(f"References: {references}")
    headers.append("Content-Type: text/plain; charset=utf-8")
    return ("\r\n".join(headers) + "\r\n\r\n" + body + "\r\n").encode("utf-8")


def write_mail_dir(mail_dir: Path, messages: dict[str, bytes]) -> Path:
    """Write named .eml files into a mail directory."""
    mail_dir.mkdir(parents=True, exist_ok=True)
    for filename, raw in messages.items():
        (mail_dir / filename).write_bytes(raw)
    return mail_dir
