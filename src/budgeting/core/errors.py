#!/usr/bin/env python3
"""
Error Types for the Budgeting Receipts Pipeline

Message- and thread-level failures (classification errors) are contained by the
thread aggregator and turned into diagnostic text. Placement and split failures
propagate to the caller as hard failures.
"""


class BudgetingError(Exception):
    """Base class for all budgeting pipeline errors."""

    pass


class ConfigError(BudgetingError):
    """Raised when a required configuration value is missing or invalid."""

    pass


class ClassificationError(BudgetingError):
    """Raised when a message cannot be classified at all (not the same as "not a receipt")."""

    pass


class UnknownProvider(ClassificationError):
    """Raised when a message's effective origin address has no provider routine."""

    def __init__(self, address: str):
        super().__init__(f"No provider is known for origin address '{address}'")
        self.address = address


class UnresolvableForward(ClassificationError):
    """Raised when a relayed message has no recognizable forwarding banner."""

    pass


class PartitionError(BudgetingError):
    """Raised for ledger partition layout problems."""

    pass


class PartitionNotFound(PartitionError):
    """Raised when no partition window contains a receipt's date."""

    pass


class TemplateNotFound(PartitionError):
    """Raised when the template sheet needed to create a partition is missing."""

    pass


class NoRoomError(PartitionError):
    """Raised when a partition's transaction window has no room left."""

    pass


class SplitPreconditionError(BudgetingError):
    """Raised when a split is requested on a row that cannot be split."""

    pass


class MailStoreError(BudgetingError):
    """Raised when the mail store cannot be reached or searched."""

    pass
