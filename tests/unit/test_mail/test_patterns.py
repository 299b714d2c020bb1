#!/usr/bin/env python3
"""Tests for provider subject and body patterns."""

import pytest

from budgeting.mail.patterns import (
    CHASE_MERCHANT_LINE,
    CHASE_PATTERNS,
    PAYPAL_PATTERNS,
    VENMO_PATTERNS,
    body_pattern,
    match,
    subject_pattern,
)


@pytest.mark.mail
class TestPatternMatching:
    """Test first-match-wins pattern lookup."""

    def test_chase_transaction_subject(self):
        found = match("Your $42.10 transaction with Example Store", CHASE_PATTERNS)

        assert found is not None
        assert found.pattern.name == "transaction"
        assert found.amount.to_cents() == 4210
        assert found.counterparty == "Example Store"

    def test_amount_with_thousands_separator(self):
        found = match("Your $1,234.56 transaction with Example Store", CHASE_PATTERNS)
        assert found.amount.to_cents() == 123456

    def test_amount_always_captured_positive(self):
        found = match("You have a $5.00 credit pending on your credit card", CHASE_PATTERNS)

        assert found.pattern.name == "credit pending"
        assert found.pattern.credit
        assert found.amount.to_cents() == 500
        assert found.counterparty is None

    def test_subject_must_match_whole_text(self):
        assert match("Re: Your $42.10 transaction with Example Store", CHASE_PATTERNS) is None

    def test_no_match_and_empty_text(self):
        assert match("Your statement is ready", CHASE_PATTERNS) is None
        assert match("", CHASE_PATTERNS) is None
        assert match(None, CHASE_PATTERNS) is None

    def test_earlier_pattern_wins(self):
        patterns = (
            subject_pattern("specific", r"Paid (?P<counterparty>Example Store)"),
            subject_pattern("general", r"Paid (?P<counterparty>.+)"),
        )
        assert match("Paid Example Store", patterns).pattern.name == "specific"
        assert match("Paid Someone Else", patterns).pattern.name == "general"

    def test_body_pattern_searches_anywhere(self):
        body = "Hello,\nMerchant    Example Store\nThanks"
        found = match(body, (CHASE_MERCHANT_LINE,))
        assert found.counterparty == "Example Store"

    def test_missing_slot_is_none(self):
        pattern = body_pattern("detail only", r"Memo: (?P<detail>.*)")
        found = match("Memo:   ", (pattern,))
        assert found.detail is None
        assert found.amount is None


@pytest.mark.mail
class TestProviderPatterns:
    """Test each provider's subject patterns."""

    @pytest.mark.parametrize(
        "subject,name,cents,counterparty",
        [
            ("You paid Sam Example $12.00", "payment sent", 1200, "Sam Example"),
            ("Sam Example paid you $20.00", "payment received", 2000, "Sam Example"),
            ("You completed Sam Example's $7.50 charge request", "charge completed", 750, "Sam Example"),
        ],
    )
    def test_venmo(self, subject, name, cents, counterparty):
        found = match(subject, VENMO_PATTERNS)
        assert found.pattern.name == name
        assert found.amount.to_cents() == cents
        assert found.counterparty == counterparty

    @pytest.mark.parametrize(
        "subject,name",
        [
            ("You sent a $15.99 USD payment to Widget Co", "payment sent"),
            ("Receipt for your payment to Widget Co", "payment receipt"),
            ("Refund from Widget Co", "refund"),
            ("You've got money", "money received"),
        ],
    )
    def test_paypal(self, subject, name):
        assert match(subject, PAYPAL_PATTERNS).pattern.name == name

    def test_chase_zelle_is_a_transfer(self):
        found = match("You sent $100.00 to Sam Example", CHASE_PATTERNS)
        assert found.pattern.category == "Transfer"
        assert found.counterparty == "Sam Example"
