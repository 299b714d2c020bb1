#!/usr/bin/env python3
"""
Mail Store Adapters

Threads of alert messages come from a mail store that supports a Gmail-style
search query and can mark a thread as processed (two labels plus archiving).

- LocalMailStore: a directory of .eml files, with thread labels kept in a
  JSON sidecar. Used for offline runs and tests.
- ImapMailStore: a Gmail IMAP account, using the X-GM-RAW search extension,
  X-GM-THRID for threading and X-GM-LABELS for marking.
"""

import imaplib
import logging
import re
from collections import defaultdict
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

from ..core.config import MailBackend, MailConfig
from ..core.errors import MailStoreError
from ..core.json_utils import read_json, write_json
from .forwarding import normalize_address
from .models import MailMessage, MailThread
from .parsing import message_from_bytes

logger = logging.getLogger(__name__)

PROCESSED_LABELS = ("Receipts/Scripted", "Receipts")
INBOX_LABEL = "INBOX"
LABELS_FILENAME = "labels.json"


class MailStore(Protocol):
    """Source of alert threads."""

    def search(self, query: str, start: int | None = None, count: int | None = None) -> list[MailThread]:
        """
        Find threads matching a search query, most recently active first.

        Args:
            query: Gmail-style search query
            start: Index of the first thread to return; None with count None for all
            count: Maximum number of threads to return
        """
        ...

    def mark_processed(self, thread: MailThread) -> None:
        """Apply the processed labels and archive the thread. Idempotent."""
        ...


def label_slug(label: str) -> str:
    """Search form of a label name: "Receipts/Scripted" -> "receipts-scripted"."""
    return re.sub(r"[/\s]+", "-", label.strip()).lower()


def page(threads: list[MailThread], start: int | None, count: int | None) -> list[MailThread]:
    """Slice a result list the way the search API pages it."""
    if start is None and count is None:
        return threads
    first = start or 0
    return threads[first:] if count is None else threads[first : first + count]


_QUERY_TERM = re.compile(r"(?P<negate>NOT\s+|-)?(?P<field>[a-z]+):(?:\((?P<group>[^)]*)\)|(?P<value>\S+))", re.IGNORECASE)


class ThreadQuery:
    """
    The subset of Gmail search syntax used for alert queries.

    Supported terms: ``from:addr``, ``from:(addr1 addr2)``, ``label:name``,
    ``in:inbox``, each optionally negated with ``NOT`` or ``-``. Unsupported
    terms are logged and ignored.
    """

    def __init__(self, query: str):
        self.query = query
        self.senders: set[str] = set()
        self.required_labels: set[str] = set()
        self.excluded_labels: set[str] = set()

        for term in _QUERY_TERM.finditer(query or ""):
            negate = bool(term.group("negate"))
            field = term.group("field").lower()
            values = (term.group("group") or term.group("value") or "").split()

            if field == "from" and not negate:
                self.senders.update(normalize_address(v) for v in values if v.upper() != "OR")
            elif field in ("label", "in"):
                target = self.excluded_labels if negate else self.required_labels
                target.update(label_slug(v) for v in values)
            else:
                logger.warning(f"Ignoring unsupported search term {term.group(0)!r}")

    def matches(self, senders: Iterable[str], labels: Iterable[str]) -> bool:
        slugs = {label_slug(label) for label in labels}
        if self.senders and not self.senders.intersection(normalize_address(s) for s in senders):
            return False
        if not self.required_labels.issubset(slugs):
            return False
        return not self.excluded_labels.intersection(slugs)


class LocalMailStore:
    """
    Mail store backed by a directory of .eml files.

    Messages are grouped into threads by their References/In-Reply-To
    headers. Thread labels live in ``labels.json``; a thread without an entry
    is in the inbox with no other labels.
    """

    def __init__(self, mail_dir: Path):
        self.mail_dir = Path(mail_dir)
        self.labels_path = self.mail_dir / LABELS_FILENAME

    @classmethod
    def from_config(cls, config: MailConfig) -> "LocalMailStore":
        if config.mail_dir is None:
            raise MailStoreError("MAIL_DIR is required for the local mail backend")
        return cls(config.mail_dir)

    def _load_labels(self) -> dict[str, list[str]]:
        if not self.labels_path.exists():
            return {}
        return read_json(self.labels_path)

    def _save_labels(self, labels: dict[str, list[str]]) -> None:
        write_json(self.labels_path, labels, sort_keys=True)

    def load_threads(self) -> list[MailThread]:
        """Parse every .eml file and group the messages into threads."""
        if not self.mail_dir.exists():
            raise MailStoreError(f"Mail directory does not exist: {self.mail_dir}")

        grouped: dict[str, list[MailMessage]] = defaultdict(list)
        for eml_path in sorted(self.mail_dir.rglob("*.eml")):
            message = message_from_bytes(eml_path.read_bytes(), fallback_id=eml_path.stem)
            grouped[message.thread_id].append(message)

        stored_labels = self._load_labels()
        threads = [
            MailThread(
                id=thread_id,
                last_activity_date=max(m.date for m in messages),
                messages=messages,
                labels=set(stored_labels.get(thread_id, [INBOX_LABEL])),
            )
            for thread_id, messages in grouped.items()
        ]
        threads.sort(key=lambda t: t.last_activity_date, reverse=True)
        return threads

    def search(self, query: str, start: int | None = None, count: int | None = None) -> list[MailThread]:
        thread_query = ThreadQuery(query)
        matching = [
            thread
            for thread in self.load_threads()
            if thread_query.matches((m.sender for m in thread.get_messages()), thread.labels)
        ]
        logger.info(f"Found {len(matching)} threads in {self.mail_dir} matching {query!r}")
        return page(matching, start, count)

    def mark_processed(self, thread: MailThread) -> None:
        labels = self._load_labels()
        current = set(labels.get(thread.id, [INBOX_LABEL]))
        current.update(PROCESSED_LABELS)
        current.discard(INBOX_LABEL)

        labels[thread.id] = sorted(current)
        self._save_labels(labels)
        thread.labels = current
        logger.info(f"Marking thread {thread.id} processed!")


_UID = re.compile(rb"UID (\d+)")
_THRID = re.compile(rb"X-GM-THRID (\d+)")
_INTERNALDATE = re.compile(rb'INTERNALDATE "([^"]+)"')


def imap_quote(value: str) -> str:
    """Quote a string argument for an IMAP command."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


class ImapMailStore:
    """
    Gmail IMAP mail store.

    Searches with X-GM-RAW so the same query works as in the Gmail UI, groups
    results by X-GM-THRID and loads message bodies only when a thread's
    messages are requested.
    """

    def __init__(self, config: MailConfig, mailbox: str = "INBOX"):
        self.config = config
        self.mailbox = mailbox
        self.connection: imaplib.IMAP4_SSL | None = None
        self._thread_uids: dict[str, list[bytes]] = {}

    def connect(self) -> bool:
        """
        Connect to IMAP server.

        Returns:
            True if connection successful, False otherwise
        """
        try:
            logger.info(f"Connecting to IMAP server: {self.config.imap_server}:{self.config.imap_port}")
            self.connection = imaplib.IMAP4_SSL(self.config.imap_server, self.config.imap_port)
            self.connection.login(self.config.username or "", self.config.password or "")

            result, _ = self.connection.select(imap_quote(self.mailbox))
            if result != "OK":
                logger.error(f"Cannot select mailbox {self.mailbox}")
                return False

            logger.info("Successfully connected to IMAP server")
            return True

        except (imaplib.IMAP4.error, OSError) as e:
            logger.error(f"Failed to connect to IMAP server: {e}")
            return False

    def disconnect(self) -> None:
        """Disconnect from IMAP server."""
        if self.connection:
            try:
                self.connection.close()
                self.connection.logout()
                logger.info("Disconnected from IMAP server")
            except (imaplib.IMAP4.error, OSError) as e:
                logger.warning(f"Error during disconnect: {e}")
            finally:
                self.connection = None

    def __enter__(self) -> "ImapMailStore":
        if not self.connect():
            raise MailStoreError(f"Could not connect to {self.config.imap_server}")
        return self

    def __exit__(self, *exc_info) -> None:
        self.disconnect()

    def _require_connection(self) -> imaplib.IMAP4_SSL:
        if not self.connection and not self.connect():
            raise MailStoreError("Cannot use the mail store without a connection")
        assert self.connection is not None
        return self.connection

    def search(self, query: str, start: int | None = None, count: int | None = None) -> list[MailThread]:
        connection = self._require_connection()

        result, data = connection.uid("SEARCH", "X-GM-RAW", imap_quote(query))
        if result != "OK":
            raise MailStoreError(f"Search failed for {query!r}: {data}")
        uids = data[0].split() if data and data[0] else []
        if not uids:
            logger.info(f"No messages match {query!r}")
            return []

        result, data = connection.uid("FETCH", b",".join(uids).decode(), "(X-GM-THRID INTERNALDATE)")
        if result != "OK":
            raise MailStoreError(f"Could not fetch thread ids: {data}")

        thread_uids: dict[str, list[bytes]] = defaultdict(list)
        last_activity: dict[str, datetime] = {}
        for item in data:
            line = item[0] if isinstance(item, tuple) else item
            if not isinstance(line, bytes):
                continue
            uid, thrid, internal = _UID.search(line), _THRID.search(line), _INTERNALDATE.search(line)
            if not (uid and thrid):
                continue

            thread_id = thrid.group(1).decode()
            thread_uids[thread_id].append(uid.group(1))
            if internal:
                moment = datetime.strptime(internal.group(1).decode(), "%d-%b-%Y %H:%M:%S %z")
                if thread_id not in last_activity or moment > last_activity[thread_id]:
                    last_activity[thread_id] = moment

        self._thread_uids.update(thread_uids)
        threads = [
            MailThread(
                id=thread_id,
                last_activity_date=last_activity.get(thread_id, datetime.fromtimestamp(0, tz=timezone.utc)),
                loader=self._loader_for(thread_id),
                labels={INBOX_LABEL},
            )
            for thread_id in thread_uids
        ]
        threads.sort(key=lambda t: t.last_activity_date, reverse=True)

        logger.info(f"Found {len(threads)} threads ({len(uids)} messages) matching {query!r}")
        return page(threads, start, count)

    def _loader_for(self, thread_id: str):
        def load() -> list[MailMessage]:
            return self.fetch_messages(thread_id)

        return load

    def fetch_messages(self, thread_id: str) -> list[MailMessage]:
        """Fetch and parse every message of a thread found by the last search."""
        connection = self._require_connection()
        uids = self._thread_uids.get(thread_id, [])

        messages = []
        for uid in uids:
            result, data = connection.uid("FETCH", uid.decode(), "(BODY.PEEK[])")
            if result != "OK" or not data or not isinstance(data[0], tuple):
                raise MailStoreError(f"Could not fetch message UID {uid.decode()} of thread {thread_id}")

            raw = data[0][1]
            if not isinstance(raw, bytes):
                raise MailStoreError(f"Expected bytes for UID {uid.decode()} but got {type(raw)}")
            messages.append(message_from_bytes(raw, fallback_id=f"{self.mailbox}_{uid.decode()}", thread_id=thread_id))

        return messages

    def mark_processed(self, thread: MailThread) -> None:
        connection = self._require_connection()
        uids = self._thread_uids.get(thread.id)
        if not uids:
            raise MailStoreError(f"Thread {thread.id} was not returned by a search on this connection")

        uid_set = b",".join(uids).decode()
        labels = "(" + " ".join(imap_quote(label) for label in PROCESSED_LABELS) + ")"

        logger.info(f"Marking thread {thread.id} processed!")
        result, data = connection.uid("STORE", uid_set, "+X-GM-LABELS", labels)
        if result != "OK":
            raise MailStoreError(f"Could not label thread {thread.id}: {data}")

        # Archiving in Gmail is removing the Inbox label
        result, data = connection.uid("STORE", uid_set, "-X-GM-LABELS", "(\\Inbox)")
        if result != "OK":
            raise MailStoreError(f"Could not archive thread {thread.id}: {data}")

        thread.labels = (thread.labels | set(PROCESSED_LABELS)) - {INBOX_LABEL}


def create_mail_store(config: MailConfig) -> MailStore:
    """Build the mail store selected by MAIL_BACKEND."""
    if config.backend == MailBackend.IMAP:
        return ImapMailStore(config)
    return LocalMailStore.from_config(config)
