#!/usr/bin/env python3
"""
Provider Text Patterns

Each payment provider has an ordered set of subject patterns. Patterns expose
named capture slots:

- ``amount``: decimal string, always captured as a positive magnitude
- ``counterparty``: merchant or person on the other side
- ``detail``: extra free text (payment description, memo)

Subject patterns match the whole subject. Body patterns are searched anywhere
in the body and are only consulted as follow-ups of a matched subject pattern.
The sign of the amount is decided by the provider routine, never here.
"""

import re
from collections.abc import Sequence
from dataclasses import dataclass

from ..core.money import Money

AMOUNT = r"(?P<amount>\d{1,3}(?:,\d{3})*(?:\.\d{1,2})?|\d+(?:\.\d{1,2})?)"


@dataclass(frozen=True)
class TextPattern:
    """A single named pattern with its matching mode and follow-up body patterns."""

    name: str
    regex: re.Pattern
    anchored: bool = True
    # A credit (refund, payment received) negates the amount
    credit: bool = False
    category: str | None = None
    body: tuple["TextPattern", ...] = ()

    def find(self, text: str) -> re.Match | None:
        if self.anchored:
            return self.regex.fullmatch(text.strip())
        return self.regex.search(text)


@dataclass(frozen=True)
class PatternMatch:
    """Captured slots of the first pattern that matched."""

    pattern: TextPattern
    amount: Money | None = None
    counterparty: str | None = None
    detail: str | None = None


def subject_pattern(
    name: str,
    regex: str,
    credit: bool = False,
    category: str | None = None,
    body: Sequence[TextPattern] = (),
) -> TextPattern:
    """Build an anchored (whole-subject) pattern."""
    return TextPattern(
        name=name,
        regex=re.compile(regex),
        anchored=True,
        credit=credit,
        category=category,
        body=tuple(body),
    )


def body_pattern(name: str, regex: str) -> TextPattern:
    """Build an unanchored, multi-line body pattern."""
    return TextPattern(name=name, regex=re.compile(regex, re.MULTILINE), anchored=False)


def _slot(found: re.Match, slot: str) -> str | None:
    if slot not in found.re.groupindex:
        return None
    value = found.group(slot)
    if value is None:
        return None
    value = value.strip()
    return value or None


def match(text: str | None, patterns: Sequence[TextPattern]) -> PatternMatch | None:
    """
    Try patterns in priority order and return the captures of the first match.

    Args:
        text: Subject or body text
        patterns: Ordered patterns; earlier patterns win

    Returns:
        PatternMatch for the first matching pattern, or None
    """
    if not text:
        return None

    for pattern in patterns:
        found = pattern.find(text)
        if found is None:
            continue

        amount_str = _slot(found, "amount")
        return PatternMatch(
            pattern=pattern,
            amount=Money.from_dollars(amount_str).abs() if amount_str else None,
            counterparty=_slot(found, "counterparty"),
            detail=_slot(found, "detail"),
        )

    return None


# Chase credit card alerts
CHASE_MERCHANT_LINE = body_pattern("merchant line", r"^Merchant[ \t]+(?P<counterparty>\S.*?)[ \t]*\r?$")

CHASE_PATTERNS: tuple[TextPattern, ...] = (
    subject_pattern("transaction", rf"Your \${AMOUNT} transaction with (?P<counterparty>.+)"),
    subject_pattern(
        "credit pending",
        rf"You have a \${AMOUNT} credit pending on your credit card",
        credit=True,
        body=(CHASE_MERCHANT_LINE,),
    ),
    subject_pattern("zelle payment", rf"You sent \${AMOUNT} to (?P<counterparty>.+)", category="Transfer"),
)

# Venmo payment notifications
VENMO_PATTERNS: tuple[TextPattern, ...] = (
    subject_pattern("payment sent", rf"You paid (?P<counterparty>.+?) \${AMOUNT}"),
    subject_pattern("payment received", rf"(?P<counterparty>.+?) paid you \${AMOUNT}", credit=True, category="Income"),
    subject_pattern("charge completed", rf"You completed (?P<counterparty>.+?)['’]s \${AMOUNT} charge request"),
)

# PayPal receipts
PAYPAL_BODY_AMOUNT = body_pattern("usd amount", rf"\${AMOUNT} USD")
PAYPAL_BODY_DESCRIPTION = body_pattern("description", r"^Description:?[ \t]*(?P<detail>\S.*?)[ \t]*\r?$")
PAYPAL_BODY_SENDER = body_pattern("money sender", rf"^(?P<counterparty>\S.*?) sent you \${AMOUNT} USD")

PAYPAL_PATTERNS: tuple[TextPattern, ...] = (
    subject_pattern("payment sent", rf"You sent a \${AMOUNT} USD payment to (?P<counterparty>.+)"),
    subject_pattern(
        "payment receipt",
        r"Receipt for your payment to (?P<counterparty>.+)",
        body=(PAYPAL_BODY_AMOUNT, PAYPAL_BODY_DESCRIPTION),
    ),
    subject_pattern("refund", r"Refund from (?P<counterparty>.+)", credit=True, body=(PAYPAL_BODY_AMOUNT,)),
    subject_pattern("money received", r"You['’]ve got money", credit=True, category="Income", body=(PAYPAL_BODY_SENDER,)),
)
