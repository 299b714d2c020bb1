"""
Ledger Package

Pay-period partitions of the ledger workbook: placing receipts, creating new
partitions as time advances and splitting recorded rows.

Key Components:
- store: in-memory and JSON-file workbooks
- variables: per-run cache of workbook and per-sheet variables
- window: row access to a partition's transaction window
- formula: evaluation of cost expressions
- partitioner: partition discovery, creation and receipt placement
- split: row splitting
"""

from .formula import FormulaError, evaluate
from .models import Cell, LedgerPartition, PartitionLayout, RowRange, TransactionRow, parse_a1, to_a1
from .partitioner import LedgerPartitioner, discover_partitions, find_partition_for, partition_name
from .split import SplitEngine, rows_seem_equal
from .store import JsonLedgerStore, LedgerStore, Sheet, Workbook
from .variables import VariablesCache
from .window import TransactionWindow

__all__ = [
    # Models
    "Cell",
    "LedgerPartition",
    "PartitionLayout",
    "RowRange",
    "TransactionRow",
    "parse_a1",
    "to_a1",
    # Stores
    "JsonLedgerStore",
    "LedgerStore",
    "Sheet",
    "Workbook",
    "VariablesCache",
    "TransactionWindow",
    # Operations
    "FormulaError",
    "evaluate",
    "LedgerPartitioner",
    "discover_partitions",
    "find_partition_for",
    "partition_name",
    "SplitEngine",
    "rows_seem_equal",
]
