"""
Core Utilities Package

Shared primitives and configuration used by the mail and ledger packages.

This package provides:
- Currency handling with integer cents for precision
- Date helpers that tolerate the mixed values read back from ledger cells
- The Receipt model that flows from classification into the ledger
- Environment-based configuration and the error hierarchy
"""

from .config import (
    Config,
    Environment,
    LedgerConfig,
    MailBackend,
    MailConfig,
    get_config,
    reload_config,
)
from .currency import (
    cents_to_dollars_str,
    format_cents,
    parse_dollars_to_cents,
)
from .dates import FinancialDate, are_dates_equal, to_ledger_date
from .errors import (
    BudgetingError,
    ClassificationError,
    ConfigError,
    MailStoreError,
    NoRoomError,
    PartitionError,
    PartitionNotFound,
    SplitPreconditionError,
    TemplateNotFound,
    UnknownProvider,
    UnresolvableForward,
)
from .models import NOTES_BANNER, Receipt
from .money import Money

__all__ = [
    # Configuration
    "Config",
    "Environment",
    "LedgerConfig",
    "MailBackend",
    "MailConfig",
    "get_config",
    "reload_config",
    # Currency utilities
    "cents_to_dollars_str",
    "format_cents",
    "parse_dollars_to_cents",
    # Dates
    "FinancialDate",
    "are_dates_equal",
    "to_ledger_date",
    # Errors
    "BudgetingError",
    "ClassificationError",
    "ConfigError",
    "MailStoreError",
    "NoRoomError",
    "PartitionError",
    "PartitionNotFound",
    "SplitPreconditionError",
    "TemplateNotFound",
    "UnknownProvider",
    "UnresolvableForward",
    # Data models
    "NOTES_BANNER",
    "Money",
    "Receipt",
]
