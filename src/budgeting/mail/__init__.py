"""
Mail Processing Package

Turns payment-provider alert threads into Receipts.

Key Components:
- patterns: per-provider subject/body text patterns with named capture slots
- forwarding: recovery of the original sender and body of forwarded alerts
- classifier: provider dispatch and Receipt extraction
- aggregator: per-thread aggregation, notes, errors and flattening
- store: local .eml directory and Gmail IMAP mail stores
"""

from .aggregator import (
    ERROR_BANNER,
    ThreadAggregator,
    flatten_receipts,
    receipts_to_dataframe,
    sort_receipts_by_date,
)
from .classifier import PROVIDER_ADDRESSES, Provider, ProviderClassifier
from .forwarding import ForwardedOrigin, normalize_address, resolve_forward
from .models import MailMessage, MailThread, ThreadResult
from .patterns import PatternMatch, TextPattern, match
from .store import ImapMailStore, LocalMailStore, MailStore, create_mail_store

__all__ = [
    # Aggregation
    "ERROR_BANNER",
    "ThreadAggregator",
    "flatten_receipts",
    "receipts_to_dataframe",
    "sort_receipts_by_date",
    # Classification
    "PROVIDER_ADDRESSES",
    "Provider",
    "ProviderClassifier",
    "ForwardedOrigin",
    "normalize_address",
    "resolve_forward",
    "PatternMatch",
    "TextPattern",
    "match",
    # Models
    "MailMessage",
    "MailThread",
    "ThreadResult",
    # Stores
    "ImapMailStore",
    "LocalMailStore",
    "MailStore",
    "create_mail_store",
]
