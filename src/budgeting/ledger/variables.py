#!/usr/bin/env python3
"""
Workbook Variables

Layout and period settings live inside the workbook: workbook-level variables
(``PayPeriodDays``, ``TemplateName``, ``TaxMultiplier``) and per-sheet
variables describing each partition's transaction window.

A VariablesCache belongs to one run. It is created by the caller, passed
explicitly and invalidated explicitly; nothing is cached across runs.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any

from ..core.errors import ConfigError
from .models import PartitionLayout, is_blank
from .store import LedgerStore

logger = logging.getLogger(__name__)

VARIABLES_SHEET_NAME = "Variables"


class VariablesCache:
    """Read-through cache of workbook and per-sheet variables."""

    def __init__(self, store: LedgerStore):
        self.store = store
        self._workbook: dict[str, Any] | None = None
        self._layouts: dict[str, PartitionLayout] = {}

    def variables(self) -> dict[str, Any]:
        if self._workbook is None:
            self._workbook = dict(self.store.get_variables())
        return self._workbook

    def get(self, key: str, default: Any = None) -> Any:
        value = self.variables().get(key)
        return default if is_blank(value) else value

    def require(self, key: str) -> Any:
        """
        Raises:
            ConfigError: If the workbook has no value for the key
        """
        value = self.variables().get(key)
        if is_blank(value):
            raise ConfigError(f"Workbook variable {key} is required")
        return value

    @property
    def pay_period_days(self) -> int:
        try:
            days = int(self.require("PayPeriodDays"))
        except (TypeError, ValueError) as e:
            raise ConfigError(f"PayPeriodDays must be an integer: {e}") from e
        if days <= 0:
            raise ConfigError(f"PayPeriodDays must be positive, got {days}")
        return days

    @property
    def template_name(self) -> str:
        return str(self.require("TemplateName"))

    @property
    def tax_multiplier(self) -> Decimal:
        try:
            return Decimal(str(self.require("TaxMultiplier")))
        except InvalidOperation as e:
            raise ConfigError(f"TaxMultiplier must be a number: {e}") from e

    def layout(self, sheet_name: str) -> PartitionLayout:
        """
        Transaction window layout of a sheet.

        Raises:
            ConfigError: For the Variables sheet, or when the sheet's variables are incomplete
        """
        if sheet_name == VARIABLES_SHEET_NAME:
            raise ConfigError(f"Cannot get sheet variables for {VARIABLES_SHEET_NAME} sheet.")

        if sheet_name not in self._layouts:
            sheet = self.store.get_sheet(sheet_name)
            try:
                self._layouts[sheet_name] = PartitionLayout.from_variables(sheet.variables)
            except ConfigError as e:
                raise ConfigError(f"Sheet {sheet_name}: {e}") from e
            logger.debug(f"Layout for {sheet_name}: {self._layouts[sheet_name]}")

        return self._layouts[sheet_name]

    def invalidate(self, sheet_name: str | None = None) -> None:
        """Drop one sheet's cached layout, or everything when no sheet is given."""
        if sheet_name is not None:
            self._layouts.pop(sheet_name, None)
            return
        self._workbook = None
        self._layouts.clear()
