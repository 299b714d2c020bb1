#!/usr/bin/env python3
"""
FinancialDate Primitive Type and Date Helpers

Immutable date wrapper with the short "M/D/YY" formatting used in ledger sheet
names, plus helpers for comparing the mixed date/string values that come back
from ledger cells.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Any

# Formats accepted in sheet names, tried in order
SHEET_DATE_FORMATS = ("%m/%d/%y", "%m/%d/%Y", "%Y-%m-%d")


@dataclass(frozen=True)
class FinancialDate:
    """Immutable financial date wrapper with consistent formatting."""

    date: date

    @classmethod
    def from_string(cls, date_str: str, format: str = "%Y-%m-%d") -> "FinancialDate":
        """
        Parse from string in specified format.

        Args:
            date_str: Date string to parse
            format: Date format (default: ISO format "%Y-%m-%d")

        Returns:
            FinancialDate object
        """
        return cls(date=datetime.strptime(date_str, format).date())

    @classmethod
    def from_sheet_string(cls, date_str: str) -> "FinancialDate":
        """
        Parse a date as written in a ledger sheet name ("3/14/24", "03/14/2024" or ISO).

        Raises:
            ValueError: If none of the sheet date formats match
        """
        for fmt in SHEET_DATE_FORMATS:
            try:
                return cls.from_string(date_str.strip(), fmt)
            except ValueError:
                continue
        raise ValueError(f"Unrecognized sheet date: {date_str!r}")

    @classmethod
    def today(cls) -> "FinancialDate":
        """Get today's date."""
        return cls(date=date.today())

    def to_iso_string(self) -> str:
        """Format as YYYY-MM-DD."""
        return self.date.isoformat()

    def to_sheet_string(self) -> str:
        """Format as M/D/YY without zero padding, as sheet names are written."""
        return f"{self.date.month}/{self.date.day}/{self.date.year % 100:02d}"

    def add_days(self, days: int) -> "FinancialDate":
        """Return a new date shifted by the given number of days."""
        return FinancialDate(date=self.date + timedelta(days=days))

    def __str__(self) -> str:
        return self.to_iso_string()

    def __lt__(self, other: "FinancialDate") -> bool:
        return self.date < other.date

    def __le__(self, other: "FinancialDate") -> bool:
        return self.date <= other.date

    def __gt__(self, other: "FinancialDate") -> bool:
        return self.date > other.date

    def __ge__(self, other: "FinancialDate") -> bool:
        return self.date >= other.date

    def __repr__(self) -> str:
        return f"FinancialDate(date={self.date!r})"


def to_ledger_date(moment: date | datetime, tz: tzinfo | None = None) -> date:
    """
    Calendar date of a moment as seen in the ledger's timezone.

    Aware datetimes are converted to ``tz`` first; naive datetimes and plain
    dates are taken as already local.
    """
    if isinstance(moment, datetime):
        if moment.tzinfo is not None and tz is not None:
            moment = moment.astimezone(tz)
        return moment.date()
    return moment


def _as_datetime(value: date | datetime) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min)


def are_dates_equal(date1: Any, date2: Any) -> bool:
    """
    Determine whether two "date"-ish ledger values are equal.

    Ledger cells are expected to hold dates but may hold strings (a blank cell
    or hand-typed text). Two date values compare by instant; anything else
    compares by its string form. Two missing values are equal.
    """
    if isinstance(date1, date) and isinstance(date2, date):
        return _as_datetime(date1) == _as_datetime(date2)
    if date1 is None or date2 is None:
        return date1 is None and date2 is None
    return str(date1) == str(date2)
