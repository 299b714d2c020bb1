#!/usr/bin/env python3
"""
Ledger Partitioner

Maps receipts onto pay-period sheets and keeps the sheet list current.

Partition sheets are named "M/D/YY - M/D/YY", optionally followed by
" (Gap)". Windows are inclusive on both ends and compared by calendar date in
the ledger timezone. New partitions are made by duplicating the template sheet.
"""

import functools
import logging
import re
from collections.abc import Iterable
from datetime import date, datetime, timedelta, tzinfo

from ..core.config import LedgerConfig
from ..core.dates import FinancialDate, are_dates_equal, to_ledger_date
from ..core.errors import PartitionError, PartitionNotFound, TemplateNotFound
from ..core.models import Receipt
from .models import GAP_MARKER, LedgerPartition
from .store import LedgerStore
from .variables import VariablesCache
from .window import TransactionWindow

logger = logging.getLogger(__name__)

SHEET_NAME_PATTERN = re.compile(r"(?P<start>\S+)\s*-\s*(?P<end>\S+)")


def parse_partition_name(name: str) -> LedgerPartition | None:
    """Partition for a sheet name, or None when the name is not a date range."""
    found = SHEET_NAME_PATTERN.search(name)
    if not found:
        return None
    try:
        start = FinancialDate.from_sheet_string(found.group("start"))
        end = FinancialDate.from_sheet_string(found.group("end"))
    except ValueError:
        logger.debug(f"Sheet {name!r} looks like a range but its dates do not parse")
        return None
    return LedgerPartition(name=name, start_date=start.date, end_date=end.date)


def partition_name(start: date, end: date, gap: bool = False) -> str:
    """Sheet name for a window: "3/15/24 - 3/28/24" or "3/15/24 - 3/28/24 (Gap)"."""
    name = f"{FinancialDate(start).to_sheet_string()} - {FinancialDate(end).to_sheet_string()}"
    return f"{name} {GAP_MARKER}" if gap else name


def discover_partitions(store: LedgerStore) -> list[LedgerPartition]:
    """All partition sheets, in display order."""
    partitions = []
    for name in store.sheet_names():
        partition = parse_partition_name(name)
        if partition is not None:
            partitions.append(partition)
    return partitions


def _compare_by_start_descending(a: LedgerPartition, b: LedgerPartition) -> int:
    if are_dates_equal(a.start_date, b.start_date):
        return 0
    return -1 if a.start_date > b.start_date else 1


def sort_by_start_descending(partitions: Iterable[LedgerPartition]) -> list[LedgerPartition]:
    return sorted(partitions, key=functools.cmp_to_key(_compare_by_start_descending))


def find_partition_for(moment: date | datetime, partitions: Iterable[LedgerPartition], tz: tzinfo | None = None) -> LedgerPartition:
    """
    Partition whose window contains a moment.

    Raises:
        PartitionNotFound: If no partition window contains the moment
    """
    for partition in partitions:
        if partition.contains(moment, tz):
            return partition
    raise PartitionNotFound(f"Could not find transaction sheet for {moment} ({to_ledger_date(moment, tz)})")


class LedgerPartitioner:
    """
    Places receipts into partitions and creates partitions as time advances.

    Args:
        store: Ledger workbook
        config: Timezone, gap and color settings
        variables: Per-run variables cache; a fresh one is made when omitted
    """

    def __init__(self, store: LedgerStore, config: LedgerConfig, variables: VariablesCache | None = None):
        self.store = store
        self.config = config
        self.variables = variables or VariablesCache(store)

    @property
    def tz(self) -> tzinfo:
        return self.config.tzinfo

    def partitions(self) -> list[LedgerPartition]:
        return discover_partitions(self.store)

    def window(self, sheet_name: str) -> TransactionWindow:
        return TransactionWindow(self.store.get_sheet(sheet_name), self.variables.layout(sheet_name))

    def create_next_partition_if_needed(self, now: datetime | None = None) -> bool:
        """
        Add the partition after the latest one if the latest has fully elapsed.

        Returns:
            True if a partition was created, False if the latest covers now

        Raises:
            PartitionError: If the workbook has no partitions to extend
            TemplateNotFound: If the template sheet is missing
        """
        partitions = sort_by_start_descending(self.partitions())
        if not partitions:
            raise PartitionError("No transaction sheets found in order to add more")

        latest = partitions[0]
        today = to_ledger_date(now or datetime.now(self.tz), self.tz)
        if today <= latest.end_date:
            return False

        new_start = latest.end_date + timedelta(days=1)
        new_end = latest.end_date + timedelta(days=self.variables.pay_period_days)

        lookback = self.config.gap_lookback
        is_gap = len(partitions) >= lookback and partitions[lookback - 1].is_gap
        new_name = partition_name(new_start, new_end, is_gap)

        template_name = self.variables.template_name
        if template_name not in self.store.sheet_names():
            raise TemplateNotFound(f"{template_name} sheet not found! Cannot duplicate to create sheet {new_name}.")

        # Newest partitions are shown first: insert before the previous latest
        self.store.duplicate_sheet(template_name, new_name, self.store.sheet_index(latest.name))
        if is_gap:
            self.store.set_tab_color(new_name, self.config.gap_tab_color)

        logger.info(f"Created transaction sheet {new_name}{' (gap period)' if is_gap else ''}")
        return True

    def ensure_partitions_current(self, now: datetime | None = None) -> int:
        """
        Create partitions until the latest covers now.

        Returns:
            Number of partitions created
        """
        created = 0
        while self.create_next_partition_if_needed(now):
            created += 1
        if created:
            logger.info(f"Added {created} transaction sheets")
        return created

    def group_receipts(self, receipts: Iterable[Receipt]) -> list[LedgerPartition]:
        """
        Assign every receipt to its partition before anything is written.

        Raises:
            PartitionNotFound: On the first receipt outside every partition
        """
        partitions = self.partitions()
        for receipt in receipts:
            try:
                partition = find_partition_for(receipt.date, partitions, self.tz)
            except PartitionNotFound as e:
                raise PartitionNotFound(f"Could not find transaction sheet for receipt {receipt.to_dict()}") from e
            partition.pending_receipts.append(receipt)
        return [p for p in partitions if p.pending_receipts]

    def write_receipts(self, partition: LedgerPartition) -> int:
        """
        Write a partition's pending receipts into the open tail of its window.

        Raises:
            NoRoomError: If the tail is too short for all pending receipts
        """
        window = self.window(partition.name)
        receipts = partition.pending_receipts
        first = window.find_open_tail(len(receipts))

        for offset, receipt in enumerate(receipts):
            index = first + offset
            window.write_primary(
                index,
                receipt.date.astimezone(self.tz) if isinstance(receipt.date, datetime) else receipt.date,
                receipt.counterparty,
                receipt.amount.to_decimal() if receipt.amount is not None else None,
            )
            if receipt.category or receipt.provider_label:
                window.write_metadata(index, receipt.category, receipt.provider_label)

            if receipt.amount is None:
                window.mark_cost(index, self.config.note_color)

            if receipt.error_message or receipt.note:
                window.annotate_name(
                    index,
                    receipt.combined_note(),
                    self.config.error_color if receipt.has_error else self.config.note_color,
                )

        logger.info(f"Recorded {len(receipts)} receipts on {partition.name}")
        return len(receipts)

    def place_receipts(self, receipts: list[Receipt]) -> dict[str, int]:
        """
        Record receipts on their partitions.

        Returns:
            Partition name -> number of receipts written

        Raises:
            PartitionNotFound: If any receipt has no partition (nothing is written)
            NoRoomError: If a partition runs out of rows; earlier partitions stay written
        """
        if not receipts:
            return {}

        placed: dict[str, int] = {}
        for partition in self.group_receipts(receipts):
            placed[partition.name] = self.write_receipts(partition)
        return placed
