#!/usr/bin/env python3
"""
RFC 822 Message Parsing

Turns raw email bytes into MailMessage objects. Shared by the local .eml
store and the IMAP store.
"""

import email
import email.header
import email.message
import email.utils
import logging
import re
from datetime import datetime, timezone

from .models import MailMessage

logger = logging.getLogger(__name__)


def decode_header(header: str) -> str:
    """Decode email header with proper encoding handling."""
    if not header:
        return ""

    # Unfold continuation lines
    header = re.sub(r"\r?\n[ \t]+", " ", str(header))

    try:
        decoded_parts = []
        for part, encoding in email.header.decode_header(header):
            if isinstance(part, bytes):
                decoded_parts.append(part.decode(encoding or "utf-8", errors="ignore"))
            else:
                decoded_parts.append(str(part))
        return "".join(decoded_parts)
    except (LookupError, ValueError) as e:
        logger.warning(f"Error decoding header {header}: {e}")
        return header


def extract_content(msg: email.message.Message) -> tuple[str | None, str | None]:
    """Extract HTML and text content from email message."""
    html_content = None
    text_content = None

    parts = msg.walk() if msg.is_multipart() else [msg]
    for part in parts:
        if "attachment" in str(part.get("Content-Disposition", "")):
            continue

        content_type = part.get_content_type()
        if content_type not in ("text/html", "text/plain"):
            continue

        payload = part.get_payload(decode=True)
        if not payload or not isinstance(payload, bytes):
            continue
        charset = part.get_content_charset() or "utf-8"
        try:
            content = payload.decode(charset, errors="ignore")
        except LookupError:
            content = payload.decode("utf-8", errors="ignore")

        if content_type == "text/html" and html_content is None:
            html_content = content
        elif content_type == "text/plain" and text_content is None:
            text_content = content

    return html_content, text_content


def parse_date(date_str: str) -> datetime:
    """Parse a Date header; falls back to the epoch so ordering stays defined."""
    try:
        parsed = email.utils.parsedate_to_datetime(date_str)
    except (TypeError, ValueError):
        logger.warning(f"Unparseable Date header {date_str!r}")
        return datetime.fromtimestamp(0, tz=timezone.utc)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def thread_key(msg: email.message.Message) -> str:
    """
    Root Message-ID of the conversation a message belongs to.

    Uses the first entry of References, then In-Reply-To, then the message's
    own Message-ID.
    """
    references = msg.get("References", "").split()
    if references:
        return references[0].strip()
    in_reply_to = msg.get("In-Reply-To", "").strip()
    if in_reply_to:
        return in_reply_to
    return msg.get("Message-ID", "").strip()


def message_from_bytes(raw: bytes, fallback_id: str, thread_id: str | None = None) -> MailMessage:
    """
    Parse raw email bytes into a MailMessage.

    Args:
        raw: Complete RFC 822 message
        fallback_id: Identifier used when the message has no Message-ID
        thread_id: Thread identifier; derived from the headers when omitted
    """
    msg = email.message_from_bytes(raw)

    html_content, text_content = extract_content(msg)
    message_id = msg.get("Message-ID", "").strip() or fallback_id

    return MailMessage(
        id=message_id,
        sender=decode_header(msg.get("From", "")),
        destination=decode_header(msg.get("Delivered-To", "") or msg.get("To", "")),
        subject=decode_header(msg.get("Subject", "")),
        date=parse_date(msg.get("Date", "")),
        thread_id=thread_id or thread_key(msg) or message_id,
        text_content=text_content,
        html_content=html_content,
    )
