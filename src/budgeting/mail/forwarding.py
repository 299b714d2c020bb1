#!/usr/bin/env python3
"""
Forwarded Message Resolution

Alerts relayed through a forwarding address arrive with the original message
quoted below a client-specific banner. Each banner dialect is followed by a
fixed block of header lines (From first); the original body starts after it.
"""

import email.utils
import logging
import re
from dataclasses import dataclass

from ..core.errors import UnresolvableForward
from .models import MailMessage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ForwardBanner:
    """A forwarding banner dialect and the number of header lines it quotes."""

    name: str
    marker: re.Pattern
    header_lines: int


FORWARD_BANNERS: tuple[ForwardBanner, ...] = (
    # Gmail: From / Date / Subject / To
    ForwardBanner("gmail", re.compile(r"^-{5,}\s*Forwarded message\s*-{5,}\s*$", re.IGNORECASE), 4),
    # Apple Mail: From / Subject / Date / To
    ForwardBanner("apple", re.compile(r"^Begin forwarded message:\s*$", re.IGNORECASE), 4),
    # Outlook: From / Sent / To / Subject
    ForwardBanner("outlook", re.compile(r"^-{3,}\s*Original Message\s*-{3,}\s*$", re.IGNORECASE), 4),
)

_HEADER_LINE = re.compile(r"^\*?(?P<name>[A-Za-z-]+):\*?\s*(?P<value>.*)$")
_FORWARD_SUBJECT_PREFIX = re.compile(r"^\s*((fwd?|fw)\s*:\s*)+", re.IGNORECASE)
_QUOTE_PREFIX = re.compile(r"^>+ ?")


@dataclass(frozen=True)
class ForwardedOrigin:
    """Original sender, subject and body recovered from a forwarded message."""

    origin_address: str
    origin_body: str
    origin_subject: str | None = None
    banner: str | None = None


def normalize_address(value: str) -> str:
    """
    Reduce a From value to a bare lower-case address.

    Idempotent: "Chase <no.reply.alerts@chase.com>" and
    "no.reply.alerts@chase.com" both give "no.reply.alerts@chase.com".
    """
    _, address = email.utils.parseaddr(value or "")
    if not address:
        address = value or ""
    return address.strip().strip("<>").strip().lower()


def strip_forward_prefix(subject: str) -> str:
    """Remove "Fwd:"/"FW:" prefixes from a subject."""
    return _FORWARD_SUBJECT_PREFIX.sub("", subject or "").strip()


def _find_banner(lines: list[str]) -> tuple[ForwardBanner, int] | None:
    for index, line in enumerate(lines):
        # Quoted forwards ("> ---------- Forwarded message") are unwrapped by the client
        stripped = line.lstrip("> ").rstrip()
        for banner in FORWARD_BANNERS:
            if banner.marker.match(stripped):
                return banner, index
    return None


def resolve_forward(message: MailMessage) -> ForwardedOrigin:
    """
    Recover the original sender and body from a forwarded message.

    Args:
        message: Message received from the forwarding relay

    Returns:
        ForwardedOrigin with the normalized origin address and unwrapped body

    Raises:
        UnresolvableForward: If no banner is recognized or no From header follows it
    """
    lines = message.plain_body.splitlines()

    found = _find_banner(lines)
    if found is None:
        raise UnresolvableForward(f"No forwarding banner found in message {message.id}")
    banner, banner_index = found
    if lines[banner_index].startswith(">"):
        lines = lines[:banner_index] + [_QUOTE_PREFIX.sub("", line) for line in lines[banner_index:]]

    # Skip blank lines between the banner and the first header line
    cursor = banner_index + 1
    while cursor < len(lines) and not lines[cursor].strip():
        cursor += 1

    headers: dict[str, str] = {}
    for line in lines[cursor : cursor + banner.header_lines]:
        header = _HEADER_LINE.match(line.strip())
        if header:
            headers[header.group("name").lower()] = header.group("value").strip()

    from_value = headers.get("from")
    if not from_value:
        raise UnresolvableForward(
            f"Forwarding banner '{banner.name}' in message {message.id} is not followed by a From header"
        )

    body_lines = lines[cursor + banner.header_lines :]
    while body_lines and not body_lines[0].strip():
        body_lines = body_lines[1:]

    origin = ForwardedOrigin(
        origin_address=normalize_address(from_value),
        origin_body="\n".join(body_lines),
        origin_subject=headers.get("subject") or strip_forward_prefix(message.subject),
        banner=banner.name,
    )
    logger.debug(f"Resolved forwarded message {message.id} to {origin.origin_address} via {banner.name} banner")
    return origin
