#!/usr/bin/env python3
"""
Mail Domain Models

Read-only views of alert messages and the threads that group them, plus the
per-thread aggregation result.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from bs4 import BeautifulSoup, NavigableString

from ..core.models import Receipt

_BLOCK_TAGS = [
    "p", "div", "tr", "li", "ul", "ol", "table", "blockquote",
    "h1", "h2", "h3", "h4", "h5", "h6", "section", "header", "footer",
]
_CELL_TAGS = ["td", "th"]
_WHITESPACE = re.compile(r"\s+")


def html_to_text(html: str) -> str:
    """
    Flatten an HTML body into plain text lines.

    Inline markup stays on its line and the cells of a table row are joined
    with a space, so a "Merchant" label and its value, or a forwarded
    "From: Name <address>" header, each come out as a single line.
    """
    soup = BeautifulSoup(html, "lxml")
    for tag in soup(["script", "style", "head"]):
        tag.decompose()

    # Source line breaks inside text render as spaces
    for text in soup.find_all(string=True):
        if type(text) is NavigableString:
            text.replace_with(_WHITESPACE.sub(" ", text))

    for br in soup.find_all("br"):
        br.replace_with("\n")
    for tag in soup.find_all(_CELL_TAGS):
        tag.insert_after(" ")
    for tag in soup.find_all(_BLOCK_TAGS):
        tag.insert_before("\n")
        tag.insert_after("\n")

    lines = [" ".join(line.split()) for line in soup.get_text().splitlines()]
    return "\n".join(line for line in lines if line)


@dataclass(frozen=True)
class MailMessage:
    """A single alert message, as handed over by a mail store."""

    id: str
    sender: str
    destination: str
    subject: str
    date: datetime
    thread_id: str
    text_content: str | None = None
    html_content: str | None = None

    @property
    def plain_body(self) -> str:
        """Plain-text body, derived from the HTML part when no text part exists."""
        if self.text_content:
            return self.text_content
        if self.html_content:
            return html_to_text(self.html_content)
        return ""


@dataclass
class MailThread:
    """
    A conversation of alert messages.

    Messages are loaded lazily through ``loader`` when the store provides one,
    so enumerating them can fail independently of the search that found the
    thread.
    """

    id: str
    last_activity_date: datetime
    messages: list[MailMessage] | None = None
    loader: Callable[[], list[MailMessage]] | None = field(default=None, repr=False)
    labels: set[str] = field(default_factory=set)

    def get_messages(self) -> list[MailMessage]:
        """Messages in arrival order."""
        if self.messages is None:
            if self.loader is None:
                raise RuntimeError(f"Thread {self.id} has no messages and no loader")
            self.messages = self.loader()
        return sorted(self.messages, key=lambda m: m.date)


@dataclass
class ThreadResult:
    """
    Receipts, notes and errors collected from one thread.

    Receipts are in message order. Errors block marking the thread as processed
    but never discard the receipts that were extracted.
    """

    thread: MailThread
    receipts: list[Receipt] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def should_keep(self) -> bool:
        """Only results with receipts or errors are kept; notes alone are discarded."""
        return bool(self.receipts or self.errors)

    @property
    def can_mark_processed(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON logging."""
        return {
            "thread_id": self.thread.id,
            "receipts": [r.to_dict() for r in self.receipts],
            "notes": self.notes,
            "errors": self.errors,
        }
