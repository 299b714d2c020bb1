"""
Budgeting Receipts - Alert Emails to Ledger Entries

Turns payment-provider alert emails (Chase, Venmo, PayPal) into transaction
rows of a pay-period ledger workbook, and splits recorded rows on request.

Domain Packages:
- core: Money and date primitives, Receipt model, configuration, errors
- mail: Pattern matching, forward resolution, classification, thread aggregation, mail stores
- ledger: Workbook stores, partition placement and creation, row splitting
- cli: Command-line interface

Example Usage:
    from budgeting import ReceiptWorkflow, get_config
    from budgeting.ledger import JsonLedgerStore
    from budgeting.mail import LocalMailStore

    config = get_config()
    workflow = ReceiptWorkflow(LocalMailStore(config.mail.mail_dir), JsonLedgerStore(config.ledger.workbook_path), config)
    workflow.ensure_partitions_current()
    workflow.import_receipts(start=0, count=50, mark_processed=False)
"""

__version__ = "0.3.0"

from .core.config import Environment, get_config
from .core.models import Receipt
from .core.money import Money
from .workflow import PlacementReport, ReceiptWorkflow

__all__ = [
    # Configuration
    "Environment",
    "get_config",
    # Core models
    "Money",
    "Receipt",
    # Operations
    "PlacementReport",
    "ReceiptWorkflow",
]
