#!/usr/bin/env python3
"""
Receipt Workflow

The operations exposed to callers, wiring the mail store, classifier,
aggregator and ledger together:

- classify_and_aggregate: threads -> ThreadResults
- place_receipts: ThreadResults -> receipts on partitions, threads marked
- ensure_partitions_current: catch the ledger up to today
- split_entry: split one recorded row
- import_receipts: fetch, aggregate and place in one call

A workflow object is one run: its variables cache lives and dies with it.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .core.config import Config
from .core.errors import MailStoreError
from .ledger.models import RowRange
from .ledger.partitioner import LedgerPartitioner
from .ledger.split import SplitEngine
from .ledger.store import JsonLedgerStore, LedgerStore
from .ledger.variables import VariablesCache
from .mail.aggregator import ThreadAggregator, flatten_receipts
from .mail.classifier import ProviderClassifier
from .mail.models import MailThread, ThreadResult
from .mail.store import MailStore, create_mail_store

logger = logging.getLogger(__name__)


@dataclass
class PlacementReport:
    """Outcome of recording a batch of thread results."""

    placed: dict[str, int] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)
    marked: list[str] = field(default_factory=list)
    unmarked: list[str] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def total_placed(self) -> int:
        return sum(self.placed.values())

    def summary(self) -> str | None:
        """User-facing error summary, or None when there were no errors."""
        if not self.errors:
            return None
        return f"There were {self.error_count} errors while processing. Please review."

    def to_dict(self) -> dict[str, Any]:
        return {
            "placed": self.placed,
            "error_count": self.error_count,
            "errors": self.errors,
            "marked": self.marked,
            "unmarked": self.unmarked,
        }


class ReceiptWorkflow:
    """
    One run of the receipt pipeline.

    Args:
        mail_store: Source of alert threads (may be None for ledger-only runs)
        ledger_store: Ledger workbook
        config: Application configuration
    """

    def __init__(self, mail_store: MailStore | None, ledger_store: LedgerStore, config: Config):
        self.mail_store = mail_store
        self.ledger_store = ledger_store
        self.config = config

        self.variables = VariablesCache(ledger_store)
        self.classifier = ProviderClassifier.from_config(config.mail)
        self.aggregator = ThreadAggregator(self.classifier)
        self.partitioner = LedgerPartitioner(ledger_store, config.ledger, self.variables)
        self.splitter = SplitEngine(ledger_store, self.variables)

    @classmethod
    def from_config(cls, config: Config, with_mail: bool = True) -> "ReceiptWorkflow":
        """Workflow over the configured JSON workbook and, optionally, mail store."""
        mail_store = create_mail_store(config.mail) if with_mail else None
        return cls(mail_store, JsonLedgerStore(config.ledger.workbook_path), config)

    def _require_mail_store(self) -> MailStore:
        if self.mail_store is None:
            raise MailStoreError("This workflow has no mail store")
        return self.mail_store

    def fetch_threads(self, start: int | None = None, count: int | None = None) -> list[MailThread]:
        """Threads matching the configured search query; start and count None for all."""
        return self._require_mail_store().search(self.config.mail.search_query, start, count)

    def classify_and_aggregate(self, threads: Iterable[MailThread]) -> list[ThreadResult]:
        results = self.aggregator.aggregate(threads)
        logger.info(f"{len(results)} threads have receipts or errors to record")
        return results

    def place_receipts(self, results: list[ThreadResult], mark_processed: bool = False) -> PlacementReport:
        """
        Record the receipts of thread results and mark clean threads processed.

        Threads with errors are never marked, even when some of their receipts
        were recorded. Without ``mark_processed`` the marking is only logged.

        Raises:
            PartitionNotFound: If a receipt has no partition (nothing is recorded or marked)
            NoRoomError: If a partition is full
        """
        report = PlacementReport()
        receipts = flatten_receipts(results)

        if receipts:
            try:
                report.placed = self.partitioner.place_receipts(receipts)
            finally:
                # Rows written before a failure stay written
                self.ledger_store.save()

        for result in results:
            thread_id = result.thread.id
            if not result.can_mark_processed:
                report.errors.extend(result.errors)
                report.unmarked.append(thread_id)
                logger.error(f"Not marking thread {thread_id} processed: {result.errors}")
                continue

            if mark_processed:
                self._require_mail_store().mark_processed(result.thread)
                report.marked.append(thread_id)
            else:
                logger.info(f"Would mark thread {thread_id} processed")
                report.unmarked.append(thread_id)

        summary = report.summary()
        if summary:
            logger.warning(summary)

        return report

    def import_receipts(
        self, start: int | None = 0, count: int | None = 10, mark_processed: bool = False
    ) -> PlacementReport:
        """Fetch threads, aggregate them and record their receipts."""
        threads = self.fetch_threads(start, count)
        results = self.classify_and_aggregate(threads)
        return self.place_receipts(results, mark_processed)

    def ensure_partitions_current(self, now: datetime | None = None) -> int:
        """
        Returns:
            Number of partitions created
        """
        created = self.partitioner.ensure_partitions_current(now)
        if created:
            self.ledger_store.save()
        return created

    def split_entry(self, partition_name: str, row_index: int) -> RowRange:
        row_range = self.splitter.split(partition_name, row_index)
        self.ledger_store.save()
        return row_range

    def split_checked(self, partition_name: str) -> list[RowRange]:
        ranges = self.splitter.split_checked(partition_name)
        if ranges:
            self.ledger_store.save()
        return ranges

    def close(self) -> None:
        """Release the mail store connection, if it holds one."""
        disconnect = getattr(self.mail_store, "disconnect", None)
        if disconnect is not None:
            disconnect()
