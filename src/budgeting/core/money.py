#!/usr/bin/env python3
"""
Money Primitive Type

Immutable currency value wrapper that uses integer cents internally.
Prevents floating-point errors and provides type-safe currency operations.
"""

from dataclasses import dataclass
from decimal import Decimal

from .currency import cents_to_decimal, cents_to_dollars_str, parse_dollars_to_cents


@dataclass(frozen=True)
class Money:
    """
    Immutable money value in cents (USD).

    Ledger convention: positive amounts are charges (money out), negative
    amounts are credits such as refunds or payments received.

    Examples:
        >>> charge = Money.from_dollars("42.10")
        >>> str(charge)
        '$42.10'
        >>> str(-Money.from_dollars("5.00"))
        '$-5.00'
    """

    cents: int

    @classmethod
    def from_cents(cls, cents: int) -> "Money":
        """Create Money from cents."""
        return cls(cents=cents)

    @classmethod
    def from_dollars(cls, dollars: str | int) -> "Money":
        """
        Parse from dollar string like '$123.45' or integer dollars.

        Raises:
            ValueError: If the string is not a dollar amount
        """
        if isinstance(dollars, int):
            return cls(cents=dollars * 100)
        return cls(cents=parse_dollars_to_cents(dollars))

    def to_cents(self) -> int:
        """Get value in cents."""
        return self.cents

    def to_decimal(self) -> Decimal:
        """Get value as a Decimal number of dollars (for ledger cells)."""
        return cents_to_decimal(self.cents)

    def to_dollars(self) -> str:
        """Get formatted dollar string."""
        return str(self)

    def abs(self) -> "Money":
        """Return absolute value of Money."""
        return Money(cents=abs(self.cents))

    def __neg__(self) -> "Money":
        """Flip the sign (charge <-> credit)."""
        return Money(cents=-self.cents)

    def __add__(self, other: "Money") -> "Money":
        """Add two Money objects."""
        return Money(cents=self.cents + other.cents)

    def __sub__(self, other: "Money") -> "Money":
        """Subtract two Money objects."""
        return Money(cents=self.cents - other.cents)

    def __lt__(self, other: "Money") -> bool:
        return self.cents < other.cents

    def __le__(self, other: "Money") -> bool:
        return self.cents <= other.cents

    def __gt__(self, other: "Money") -> bool:
        return self.cents > other.cents

    def __ge__(self, other: "Money") -> bool:
        return self.cents >= other.cents

    def __str__(self) -> str:
        """Format as dollar string."""
        return f"${cents_to_dollars_str(self.cents)}"

    def __repr__(self) -> str:
        return f"Money(cents={self.cents})"
