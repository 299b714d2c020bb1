#!/usr/bin/env python3
"""Tests for forwarded message resolution."""

import pytest

from budgeting.core.errors import UnresolvableForward
from budgeting.mail.forwarding import normalize_address, resolve_forward, strip_forward_prefix
from tests.fixtures.builders import RELAY_ADDRESS, make_message

GMAIL_FORWARD = """FYI

---------- Forwarded message ---------
From: Chase <no.reply.alerts@chase.com>
Date: Tue, Mar 5, 2024 at 10:00 AM
Subject: Your $42.10 transaction with Example Store
To: <spouse@example.com>

You made a $42.10 transaction with Example Store.
"""

APPLE_FORWARD = """Begin forwarded message:

From: Venmo <venmo@venmo.com>
Subject: You paid Sam Example $12.00
Date: March 5, 2024 at 10:00:00 AM CST
To: spouse@example.com

Payment details
"""

OUTLOOK_FORWARD = """-----Original Message-----
From: service@paypal.com
Sent: Tuesday, March 5, 2024 10:00 AM
To: spouse@example.com
Subject: Refund from Widget Co

$5.00 USD
"""


@pytest.mark.mail
class TestNormalizeAddress:
    """Test address normalization."""

    @pytest.mark.parametrize(
        "value",
        ["Chase <no.reply.alerts@chase.com>", "no.reply.alerts@chase.com", "<No.Reply.Alerts@Chase.com>"],
    )
    def test_normalizes_to_bare_lowercase(self, value):
        assert normalize_address(value) == "no.reply.alerts@chase.com"

    def test_idempotent(self):
        once = normalize_address('"Example, Store" <Alerts@Example.com>')
        assert normalize_address(once) == once == "alerts@example.com"

    def test_strip_forward_prefix(self):
        assert strip_forward_prefix("Fwd: FW: Refund from Widget Co") == "Refund from Widget Co"
        assert strip_forward_prefix("Refund from Widget Co") == "Refund from Widget Co"


@pytest.mark.mail
class TestResolveForward:
    """Test unwrapping each banner dialect."""

    def test_gmail_banner(self):
        message = make_message("Fwd: Your $42.10 transaction", sender=RELAY_ADDRESS, body=GMAIL_FORWARD)

        origin = resolve_forward(message)

        assert origin.banner == "gmail"
        assert origin.origin_address == "no.reply.alerts@chase.com"
        assert origin.origin_subject == "Your $42.10 transaction with Example Store"
        assert origin.origin_body == "You made a $42.10 transaction with Example Store."

    def test_apple_banner(self):
        origin = resolve_forward(make_message("Fwd: payment", sender=RELAY_ADDRESS, body=APPLE_FORWARD))

        assert origin.banner == "apple"
        assert origin.origin_address == "venmo@venmo.com"
        assert origin.origin_subject == "You paid Sam Example $12.00"

    def test_outlook_banner(self):
        origin = resolve_forward(make_message("FW: Refund from Widget Co", sender=RELAY_ADDRESS, body=OUTLOOK_FORWARD))

        assert origin.banner == "outlook"
        assert origin.origin_address == "service@paypal.com"
        assert origin.origin_body.strip() == "$5.00 USD"

    def test_quoted_banner(self):
        quoted = "\n".join(f"> {line}" if line else ">" for line in GMAIL_FORWARD.splitlines())
        origin = resolve_forward(make_message("Fwd: x", sender=RELAY_ADDRESS, body=quoted))
        assert origin.banner == "gmail"

    def test_no_banner_is_unresolvable(self):
        message = make_message("Fwd: something", sender=RELAY_ADDRESS, body="Just a note, nothing forwarded.")

        with pytest.raises(UnresolvableForward):
            resolve_forward(message)

    def test_banner_without_from_is_unresolvable(self):
        body = "---------- Forwarded message ---------\nDate: today\nSubject: hi\n\nbody"

        with pytest.raises(UnresolvableForward, match="From"):
            resolve_forward(make_message("Fwd: hi", sender=RELAY_ADDRESS, body=body))
