#!/usr/bin/env python3
"""
Currency Conversion and Handling Utilities

All amounts are held as integer cents. Alert emails carry dollar strings
("$1,234.56") and ledger cells carry numbers or cost expressions, so the
helpers here convert between those representations without touching floats.

Key Principles:
- Never use floating-point arithmetic for currency calculations
- Parse dollar strings with integer arithmetic
- Use Decimal only where ledger expressions need to be evaluated
"""

from decimal import Decimal


def cents_to_dollars_str(cents: int) -> str:
    """
    Convert cents to dollar string using pure integer arithmetic.

    Example:
        cents_to_dollars_str(4599) -> "45.99"
        cents_to_dollars_str(-500) -> "-5.00"
    """
    is_negative = cents < 0
    abs_cents = abs(int(cents))

    dollars = abs_cents // 100
    remainder = abs_cents % 100

    if is_negative:
        return f"-{dollars}.{remainder:02d}"
    return f"{dollars}.{remainder:02d}"


def parse_dollars_to_cents(dollars_str: str) -> int:
    """
    Parse dollar string to cents using integer arithmetic only.

    Args:
        dollars_str: String representation of dollar amount

    Returns:
        Amount in cents

    Raises:
        ValueError: If the string is not a decimal amount

    Examples:
        parse_dollars_to_cents("12.34") -> 1234
        parse_dollars_to_cents("$12.34") -> 1234
        parse_dollars_to_cents("1,234.56") -> 123456
        parse_dollars_to_cents("12") -> 1200
        parse_dollars_to_cents("12.5") -> 1250
    """
    clean = dollars_str.replace("$", "").replace(",", "").strip()

    if not clean:
        raise ValueError(f"Empty dollar amount: {dollars_str!r}")

    is_negative = clean.startswith("-")
    if is_negative:
        clean = clean[1:]

    if "." in clean:
        whole, fraction = clean.split(".", 1)
        if (whole and not whole.isdigit()) or not fraction.isdigit():
            raise ValueError(f"Not a dollar amount: {dollars_str!r}")
        dollars = int(whole) if whole else 0
        # Pad to 2 digits, truncate beyond 2
        cents = int(fraction.ljust(2, "0")[:2])
        total = dollars * 100 + cents
    else:
        if not clean.isdigit():
            raise ValueError(f"Not a dollar amount: {dollars_str!r}")
        total = int(clean) * 100

    return -total if is_negative else total


def format_cents(cents: int) -> str:
    """Format cents as dollar string with $ prefix."""
    return f"${cents_to_dollars_str(cents)}"


def cents_to_decimal(cents: int) -> Decimal:
    """Convert cents to a Decimal dollar value (4599 -> Decimal('45.99'))."""
    return Decimal(cents) / Decimal(100)

