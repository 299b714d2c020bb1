#!/usr/bin/env python3
"""
Provider Classifier

Dispatches an alert message to the extraction routine of the payment provider
that sent it. Messages relayed through the configured forwarding address are
unwrapped first so the original provider can be identified.

Classification is a pure function of the message and the classifier's
configuration. "Not a receipt" is a normal result (a Receipt with neither
amount nor counterparty); only an unknown origin or an unresolvable forward
raise.
"""

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum

from ..core.config import MailConfig
from ..core.errors import UnknownProvider
from ..core.models import Receipt
from ..core.money import Money
from .forwarding import normalize_address, resolve_forward
from .models import MailMessage
from .patterns import CHASE_PATTERNS, PAYPAL_PATTERNS, VENMO_PATTERNS, PatternMatch, TextPattern, match

logger = logging.getLogger(__name__)

# Joins a counterparty and its detail; the ledger groups names on the part before it
NAME_DETAIL_SEPARATOR = " | "


class Provider(Enum):
    """Known payment providers. The value is the display name."""

    CHASE = "Chase"
    VENMO = "Venmo"
    PAYPAL = "PayPal"


PROVIDER_ADDRESSES: dict[str, Provider] = {
    "no.reply.alerts@chase.com": Provider.CHASE,
    "venmo@venmo.com": Provider.VENMO,
    "service@paypal.com": Provider.PAYPAL,
}


@dataclass(frozen=True)
class EffectiveMessage:
    """Origin address, subject and body to classify, after unwrapping any forward."""

    origin_address: str
    subject: str
    body: str
    forwarded: bool = False


@dataclass(frozen=True)
class Extraction:
    """Fields a provider routine pulled out of a message."""

    amount: Money | None = None
    counterparty: str | None = None
    category: str | None = None


EMPTY_EXTRACTION = Extraction()


def extract_with_patterns(patterns: tuple[TextPattern, ...], subject: str, body: str) -> Extraction:
    """
    Shared routine: subject patterns in priority order, body follow-ups only
    when the subject leaves the amount or counterparty unresolved.
    """
    found = match(subject, patterns)
    if found is None:
        return EMPTY_EXTRACTION

    amount = found.amount
    counterparty = found.counterparty
    detail = found.detail

    if amount is None or counterparty is None:
        for follow_up in found.pattern.body:
            body_found: PatternMatch | None = match(body, (follow_up,))
            if body_found is None:
                continue
            amount = amount if amount is not None else body_found.amount
            counterparty = counterparty if counterparty is not None else body_found.counterparty
            detail = detail if detail is not None else body_found.detail

    if amount is not None and found.pattern.credit:
        amount = -amount

    if counterparty and detail:
        counterparty = f"{counterparty}{NAME_DETAIL_SEPARATOR}{detail}"

    return Extraction(amount=amount, counterparty=counterparty, category=found.pattern.category)


def classify_chase(subject: str, body: str) -> Extraction:
    """Chase card alerts: purchases, pending credits (merchant in body), Zelle payments."""
    return extract_with_patterns(CHASE_PATTERNS, subject, body)


def classify_venmo(subject: str, body: str) -> Extraction:
    """Venmo notifications: payments sent, payments received, completed charge requests."""
    return extract_with_patterns(VENMO_PATTERNS, subject, body)


def classify_paypal(subject: str, body: str) -> Extraction:
    """PayPal receipts: payments sent, payment receipts, refunds, money received."""
    return extract_with_patterns(PAYPAL_PATTERNS, subject, body)


PROVIDER_ROUTINES: dict[Provider, Callable[[str, str], Extraction]] = {
    Provider.CHASE: classify_chase,
    Provider.VENMO: classify_venmo,
    Provider.PAYPAL: classify_paypal,
}


class ProviderClassifier:
    """
    Classifies alert messages into Receipts.

    Args:
        forwarding_relay: Address whose messages are forwarded copies to unwrap
        attribution_labels: Destination address -> label of whose inbox relayed it
        default_attribution: Label used when the destination is not in the map
        provider_addresses: Origin address -> provider dispatch table
    """

    def __init__(
        self,
        forwarding_relay: str | None = None,
        attribution_labels: Mapping[str, str] | None = None,
        default_attribution: str = "Forwarded",
        provider_addresses: Mapping[str, Provider] | None = None,
    ):
        self.forwarding_relay = normalize_address(forwarding_relay) if forwarding_relay else None
        self.attribution_labels = {
            normalize_address(address): label for address, label in (attribution_labels or {}).items()
        }
        self.default_attribution = default_attribution
        self.provider_addresses = dict(provider_addresses or PROVIDER_ADDRESSES)

    @classmethod
    def from_config(cls, config: MailConfig) -> "ProviderClassifier":
        return cls(
            forwarding_relay=config.forwarding_relay,
            attribution_labels=config.attribution_labels,
            default_attribution=config.default_attribution,
        )

    def is_relayed(self, message: MailMessage) -> bool:
        return self.forwarding_relay is not None and normalize_address(message.sender) == self.forwarding_relay

    def resolve_origin(self, message: MailMessage) -> EffectiveMessage:
        """
        Determine the effective origin of a message.

        Raises:
            UnresolvableForward: If a relayed message has no recognizable banner
        """
        if self.is_relayed(message):
            origin = resolve_forward(message)
            return EffectiveMessage(
                origin_address=origin.origin_address,
                subject=origin.origin_subject or message.subject,
                body=origin.origin_body,
                forwarded=True,
            )

        return EffectiveMessage(
            origin_address=normalize_address(message.sender),
            subject=message.subject,
            body=message.plain_body,
        )

    def provider_for(self, address: str) -> Provider:
        """
        Raises:
            UnknownProvider: If no provider routine handles the address
        """
        provider = self.provider_addresses.get(normalize_address(address))
        if provider is None:
            raise UnknownProvider(address)
        return provider

    def provider_label(self, provider: Provider, message: MailMessage, forwarded: bool) -> str:
        """Provider display name, prefixed with whose inbox relayed it for forwarded mail."""
        if not forwarded:
            return provider.value
        attribution = self.attribution_labels.get(normalize_address(message.destination), self.default_attribution)
        return f"{attribution} via {provider.value}"

    def classify(self, message: MailMessage) -> Receipt:
        """
        Extract a Receipt from a message.

        Returns:
            Receipt; amount and counterparty are both None when the message is
            not a recognized transaction

        Raises:
            UnknownProvider: If the effective origin has no provider routine
            UnresolvableForward: If a relayed message cannot be unwrapped
        """
        effective = self.resolve_origin(message)
        provider = self.provider_for(effective.origin_address)

        extraction = PROVIDER_ROUTINES[provider](effective.subject, effective.body)

        receipt = Receipt(
            date=message.date,
            amount=extraction.amount,
            counterparty=extraction.counterparty,
            category=extraction.category,
            provider_label=self.provider_label(provider, message, effective.forwarded),
            message_id=message.id,
            thread_id=message.thread_id,
        )

        if receipt.is_unclassifiable:
            logger.debug(f"Message {message.id} from {provider.value} is not a receipt: {effective.subject!r}")
        else:
            logger.debug(f"Message {message.id}: {receipt.amount} with {receipt.counterparty} ({receipt.provider_label})")

        return receipt
