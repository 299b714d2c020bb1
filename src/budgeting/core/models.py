#!/usr/bin/env python3
"""
Core Data Models for Budgeting Receipts

The Receipt is the unit that flows from message classification through thread
aggregation into a ledger partition row.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from .money import Money

# Rendered between an error message and a note when a receipt carries both
NOTES_BANNER = "\n\n>>>>>>>>>> NOTES <<<<<<<<<<\n\n"


@dataclass
class Receipt:
    """
    Structured transaction candidate extracted from one alert message.

    A receipt with neither amount nor counterparty is unclassifiable: it is
    never a real transaction, but it can carry a note or error into the ledger.

    Note: a positive amount is a charge, a negative amount is a credit.
    """

    date: datetime
    amount: Money | None = None
    counterparty: str | None = None
    category: str | None = None
    provider_label: str | None = None
    # Empty string means no note / no error
    note: str = ""
    error_message: str = ""

    # Source identifiers, for diagnostics only
    message_id: str | None = None
    thread_id: str | None = None

    @property
    def is_unclassifiable(self) -> bool:
        """True when the message was not a recognized transaction at all."""
        return self.amount is None and self.counterparty is None

    @property
    def has_error(self) -> bool:
        return bool(self.error_message)

    def combined_note(self) -> str:
        """Error message first, then the note, separated by a banner when both exist."""
        banner = NOTES_BANNER if self.error_message and self.note else ""
        return f"{self.error_message}{banner}{self.note}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization (amount in cents)."""
        return {
            "date": self.date.isoformat(),
            "amount": self.amount.to_cents() if self.amount is not None else None,
            "counterparty": self.counterparty,
            "category": self.category,
            "provider_label": self.provider_label,
            "note": self.note,
            "error_message": self.error_message,
            "message_id": self.message_id,
            "thread_id": self.thread_id,
        }
