#!/usr/bin/env python3
"""
Thread Aggregator

Walks each thread's messages through the provider classifier. Good receipts
are kept, non-receipt messages become notes, and failures become errors; a bad
message never stops the rest of its thread.

Flattening turns thread results into the receipt list handed to the ledger:
a thread's errors and notes ride on its first receipt (or on a placeholder
receipt when it has none) and the list is sorted by date.
"""

import functools
import logging
from collections.abc import Iterable
from dataclasses import replace

import pandas as pd

from ..core.dates import are_dates_equal
from ..core.json_utils import format_json
from ..core.models import Receipt
from .classifier import ProviderClassifier
from .models import MailThread, ThreadResult

logger = logging.getLogger(__name__)

# Separates individual error messages in a receipt's error text
ERROR_BANNER = "\n\n========== ERROR ==========\n\n"
NOTE_SEPARATOR = "\n\n"
BODY_PREVIEW_CHARS = 140


class ThreadAggregator:
    """Builds ThreadResults from mail threads using a ProviderClassifier."""

    def __init__(self, classifier: ProviderClassifier):
        self.classifier = classifier

    def aggregate_thread(self, thread: MailThread) -> ThreadResult | None:
        """
        Classify every message of a thread.

        Returns:
            ThreadResult, or None when the thread produced neither receipts
            nor errors (its notes are logged and discarded)
        """
        result = ThreadResult(thread=thread)

        try:
            messages = thread.get_messages()
        except Exception as e:
            result.errors.append(
                f"Error while processing thread with ID {thread.id}. Skipping marking as processed. {e}"
            )
            logger.error(f"Could not enumerate messages of thread {thread.id}: {e}")
            return result

        for message in messages:
            try:
                receipt = self.classifier.classify(message)
            except Exception as e:
                result.errors.append(
                    f"Error while processing message with ID {message.id}:\n"
                    f"Subject: {message.subject}\n"
                    f"Date: {message.date}\n"
                    f"Thread ID: {thread.id}\n"
                    f"Cause: {type(e).__name__}: {e}"
                )
                logger.error(f"Failed to classify message {message.id} in thread {thread.id}: {e}")
                continue

            if receipt.is_unclassifiable:
                result.notes.append(
                    f"Message is not a receipt:\n"
                    f"Provider: {receipt.provider_label}\n"
                    f"Subject: {message.subject}\n"
                    f"Date: {message.date}\n"
                    f"Thread ID: {thread.id}\n"
                    f"{BODY_PREVIEW_CHARS} Chars of Plain Body:\n"
                    f"{message.plain_body[:BODY_PREVIEW_CHARS]}"
                )
                continue

            result.receipts.append(receipt)

        if not result.should_keep:
            if result.notes:
                logger.warning(f"Discarding notes for thread {thread.id} with no receipts or errors: {result.notes}")
            else:
                logger.info(f"Thread {thread.id} has nothing to record")
            return None

        return result

    def aggregate(self, threads: Iterable[MailThread]) -> list[ThreadResult]:
        """Aggregate threads, keeping only results worth recording."""
        results = []
        for thread in threads:
            result = self.aggregate_thread(thread)
            if result is not None:
                results.append(result)

        logger.debug(format_json([r.to_dict() for r in results], default=str))
        return results


def thread_receipts_for_placement(result: ThreadResult) -> list[Receipt]:
    """
    Receipts of one thread with its errors and notes attached.

    All errors and all notes go on the first receipt; a thread without receipts
    gets a placeholder dated at its last activity to carry them.
    """
    receipts = list(result.receipts)

    if not receipts:
        if not (result.errors or result.notes):
            return []
        receipts = [Receipt(date=result.thread.last_activity_date, thread_id=result.thread.id)]

    first = receipts[0]
    errors = [first.error_message, *result.errors] if first.error_message else result.errors
    notes = [first.note, *result.notes] if first.note else result.notes
    receipts[0] = replace(first, error_message=ERROR_BANNER.join(errors), note=NOTE_SEPARATOR.join(notes))

    return receipts


def compare_receipts_by_date(a: Receipt, b: Receipt) -> int:
    """Ascending date comparison; dates equal under are_dates_equal compare as 0."""
    if are_dates_equal(a.date, b.date):
        return 0
    return 1 if a.date > b.date else -1


def sort_receipts_by_date(receipts: list[Receipt]) -> list[Receipt]:
    """Stable ascending sort by date."""
    return sorted(receipts, key=functools.cmp_to_key(compare_receipts_by_date))


def flatten_receipts(results: Iterable[ThreadResult]) -> list[Receipt]:
    """All receipts of all threads, ready for placement, sorted by date."""
    receipts: list[Receipt] = []
    for result in results:
        receipts.extend(thread_receipts_for_placement(result))
    return sort_receipts_by_date(receipts)


def receipts_to_dataframe(receipts: list[Receipt]) -> pd.DataFrame:
    """
    Tabular view of receipts for previews.

    Returns:
        DataFrame with date, counterparty, amount (dollars), category,
        provider and flag columns
    """
    columns = ["date", "counterparty", "amount", "category", "provider", "has_note", "has_error"]
    if not receipts:
        return pd.DataFrame(columns=columns)

    return pd.DataFrame(
        [
            {
                "date": r.date,
                "counterparty": r.counterparty,
                "amount": float(r.amount.to_decimal()) if r.amount is not None else None,
                "category": r.category,
                "provider": r.provider_label,
                "has_note": bool(r.note),
                "has_error": r.has_error,
            }
            for r in receipts
        ],
        columns=columns,
    )
