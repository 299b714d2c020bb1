#!/usr/bin/env python3
"""Tests for thread aggregation and receipt flattening."""

from datetime import datetime, timedelta, timezone

import pytest

from budgeting.core.models import Receipt
from budgeting.core.money import Money
from budgeting.mail.aggregator import (
    ERROR_BANNER,
    NOTE_SEPARATOR,
    ThreadAggregator,
    flatten_receipts,
    receipts_to_dataframe,
    sort_receipts_by_date,
    thread_receipts_for_placement,
)
from budgeting.mail.classifier import ProviderClassifier
from budgeting.mail.models import MailThread, ThreadResult
from tests.fixtures.builders import make_message, make_thread

T0 = datetime(2024, 3, 5, 16, 0, tzinfo=timezone.utc)


@pytest.fixture
def aggregator() -> ThreadAggregator:
    return ThreadAggregator(ProviderClassifier())


def receipt_message(n: int = 1, amount: str = "42.10", when: datetime = T0):
    return make_message(f"Your ${amount} transaction with Example Store", message_id=f"msg-{n}", when=when)


def other_message(n: int = 2, when: datetime = T0 + timedelta(minutes=5)):
    return make_message("Your statement is ready", body="Your monthly statement is available.", message_id=f"msg-{n}", when=when)


def unknown_message(n: int = 3, when: datetime = T0 + timedelta(minutes=10)):
    return make_message("Hello", sender="someone@unknown.example", message_id=f"msg-{n}", when=when)


@pytest.mark.mail
class TestAggregateThread:
    """Test per-thread aggregation."""

    def test_receipt_and_non_receipt(self, aggregator):
        result = aggregator.aggregate_thread(make_thread([receipt_message(), other_message()]))

        assert result is not None
        assert len(result.receipts) == 1
        assert len(result.notes) == 1
        assert result.errors == []
        assert result.can_mark_processed
        assert result.notes[0].startswith("Message is not a receipt:\nProvider: Chase\nSubject: Your statement is ready")
        assert "Your monthly statement is available." in result.notes[0]

    def test_notes_only_thread_is_discarded(self, aggregator):
        assert aggregator.aggregate_thread(make_thread([other_message()])) is None

    def test_bad_message_does_not_stop_thread(self, aggregator):
        result = aggregator.aggregate_thread(make_thread([unknown_message(1, T0), receipt_message(2, when=T0 + timedelta(minutes=1))]))

        assert len(result.receipts) == 1
        assert len(result.errors) == 1
        assert not result.can_mark_processed
        error = result.errors[0]
        assert "Error while processing message with ID msg-1" in error
        assert "Thread ID: thread-1" in error
        assert "UnknownProvider" in error

    def test_thread_enumeration_error(self, aggregator):
        def broken_loader():
            raise RuntimeError("connection reset")

        thread = MailThread(id="thread-9", last_activity_date=T0, loader=broken_loader)

        result = aggregator.aggregate_thread(thread)

        assert result.receipts == []
        assert result.errors == [
            "Error while processing thread with ID thread-9. Skipping marking as processed. connection reset"
        ]

    def test_messages_classified_in_date_order(self, aggregator):
        later = receipt_message(1, "2.00", T0 + timedelta(hours=1))
        earlier = receipt_message(2, "1.00", T0)

        result = aggregator.aggregate_thread(make_thread([later, earlier]))

        assert [r.amount.to_cents() for r in result.receipts] == [100, 200]

    def test_aggregate_keeps_only_results_worth_recording(self, aggregator):
        threads = [
            make_thread([receipt_message()], thread_id="a"),
            make_thread([other_message()], thread_id="b"),
            make_thread([unknown_message()], thread_id="c"),
        ]

        results = aggregator.aggregate(threads)

        assert [r.thread.id for r in results] == ["a", "c"]


@pytest.mark.mail
class TestFlattenReceipts:
    """Test attaching thread notes and errors to receipts."""

    def test_note_rides_on_first_receipt(self, aggregator):
        result = aggregator.aggregate_thread(make_thread([receipt_message(), other_message()]))

        receipts = flatten_receipts([result])

        assert len(receipts) == 1
        assert receipts[0].note == result.notes[0]
        assert receipts[0].error_message == ""

    def test_placeholder_for_thread_without_receipts(self, aggregator):
        thread = make_thread([unknown_message(1, T0), unknown_message(2, T0 + timedelta(hours=2))])
        result = aggregator.aggregate_thread(thread)

        receipts = thread_receipts_for_placement(result)

        assert len(receipts) == 1
        placeholder = receipts[0]
        assert placeholder.is_unclassifiable
        assert placeholder.date == T0 + timedelta(hours=2)
        assert placeholder.error_message == ERROR_BANNER.join(result.errors)
        assert placeholder.error_message.count(ERROR_BANNER) == 1

    def test_only_first_receipt_annotated(self):
        thread = make_thread([receipt_message()])
        first = Receipt(date=T0, amount=Money.from_cents(100), counterparty="A")
        second = Receipt(date=T0, amount=Money.from_cents(200), counterparty="B")
        result = ThreadResult(thread=thread, receipts=[first, second], notes=["n1", "n2"], errors=["e1"])

        receipts = thread_receipts_for_placement(result)

        assert receipts[0].note == f"n1{NOTE_SEPARATOR}n2"
        assert receipts[0].error_message == "e1"
        assert receipts[1].note == "" and receipts[1].error_message == ""
        # The thread's own receipts are left untouched
        assert first.note == ""

    def test_sorted_by_date_and_stable(self):
        a = Receipt(date=T0 + timedelta(days=1), counterparty="A")
        b = Receipt(date=T0, counterparty="B")
        c = Receipt(date=T0, counterparty="C")

        assert [r.counterparty for r in sort_receipts_by_date([a, b, c])] == ["B", "C", "A"]
        assert [r.counterparty for r in sort_receipts_by_date([c, a, b])] == ["C", "B", "A"]

    def test_flatten_merges_threads(self, aggregator):
        results = aggregator.aggregate(
            [
                make_thread([receipt_message(1, "2.00", T0 + timedelta(days=2))], thread_id="late"),
                make_thread([receipt_message(2, "1.00", T0)], thread_id="early"),
            ]
        )

        assert [r.amount.to_cents() for r in flatten_receipts(results)] == [100, 200]


@pytest.mark.mail
class TestReceiptsDataFrame:
    """Test the tabular preview."""

    def test_columns_and_values(self):
        receipts = [
            Receipt(date=T0, amount=Money.from_cents(4210), counterparty="Example Store", provider_label="Chase"),
            Receipt(date=T0, error_message="boom"),
        ]

        df = receipts_to_dataframe(receipts)

        assert list(df.columns) == ["date", "counterparty", "amount", "category", "provider", "has_note", "has_error"]
        assert df.loc[0, "amount"] == pytest.approx(42.10)
        assert bool(df.loc[1, "has_error"])
        assert len(df) == 2

    def test_empty(self):
        assert receipts_to_dataframe([]).empty
