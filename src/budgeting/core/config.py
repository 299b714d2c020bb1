#!/usr/bin/env python3
"""
Configuration Management for Budgeting Receipts

Handles environment-based configuration with secure defaults and validation.
Supports multiple environments (development, test, production).

Ledger-layout values that live inside the workbook itself (pay period length,
template sheet name, tax multiplier, per-sheet transaction windows) are read
through ``budgeting.ledger.variables`` instead.
"""

import logging
import os
import tempfile
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

from .errors import ConfigError

# Load environment variables from .env file
load_dotenv()

DEFAULT_SEARCH_QUERY = (
    "from:(no.reply.alerts@chase.com) in:inbox NOT label:receipts NOT label:receipts-cru-reimburse "
    "NOT label:receipts-tax-deductible NOT label:receipts-scripted"
)


class Environment(Enum):
    """Application environment types."""

    DEVELOPMENT = "development"
    TEST = "test"
    PRODUCTION = "production"


class MailBackend(Enum):
    """Where alert threads are read from."""

    LOCAL = "local"
    IMAP = "imap"


@dataclass
class LedgerConfig:
    """Ledger workbook location and presentation settings."""

    workbook_path: Path
    timezone: str = "America/Chicago"
    # Walk back this many partitions to decide whether a new one is a gap period
    gap_lookback: int = 14
    gap_tab_color: str = "#E8A9CA"
    note_color: str = "#E8A9CA"
    error_color: str = "#FF0000"

    @property
    def tzinfo(self) -> ZoneInfo:
        """Timezone used to decide which calendar day a receipt belongs to."""
        return ZoneInfo(self.timezone)


@dataclass
class MailConfig:
    """Mail store access and classification settings."""

    backend: MailBackend = MailBackend.LOCAL
    mail_dir: Path | None = None
    imap_server: str = "imap.gmail.com"
    imap_port: int = 993
    username: str | None = None
    password: str | None = None
    search_query: str = DEFAULT_SEARCH_QUERY
    # Address through which other inboxes forward their alerts
    forwarding_relay: str | None = None
    # Destination address -> human label for forwarded mail attribution
    attribution_labels: dict[str, str] = field(default_factory=dict)
    default_attribution: str = "Forwarded"


@dataclass
class Config:
    """
    Main configuration class for the budgeting application.

    Loads configuration from environment variables with secure defaults
    and validation for each environment type.
    """

    environment: Environment
    data_dir: Path

    ledger: LedgerConfig
    mail: MailConfig

    debug: bool = False
    log_level: str = "INFO"

    @classmethod
    def from_environment(cls) -> "Config":
        """Create configuration from environment variables."""
        env = Environment(os.getenv("BUDGETING_ENV", "development"))

        if env == Environment.TEST:
            default_test_dir = Path(tempfile.gettempdir()) / "test_budgeting"
            data_dir = Path(os.getenv("BUDGETING_DATA_DIR", str(default_test_dir)))
        else:
            data_dir = Path(os.getenv("BUDGETING_DATA_DIR", "./data")).expanduser().resolve()

        data_dir.mkdir(parents=True, exist_ok=True)

        ledger = LedgerConfig(
            workbook_path=Path(os.getenv("LEDGER_WORKBOOK", str(data_dir / "ledger.json"))),
            timezone=os.getenv("LEDGER_TIMEZONE", "America/Chicago"),
            gap_lookback=int(os.getenv("LEDGER_GAP_LOOKBACK", "14")),
            gap_tab_color=os.getenv("LEDGER_GAP_TAB_COLOR", "#E8A9CA"),
        )

        mail = MailConfig(
            backend=MailBackend(os.getenv("MAIL_BACKEND", "local").lower()),
            mail_dir=Path(os.getenv("MAIL_DIR", str(data_dir / "mail"))),
            imap_server=os.getenv("EMAIL_IMAP_SERVER", "imap.gmail.com"),
            imap_port=int(os.getenv("EMAIL_IMAP_PORT", "993")),
            username=os.getenv("EMAIL_USERNAME"),
            password=os.getenv("EMAIL_PASSWORD"),
            search_query=os.getenv("MAIL_SEARCH_QUERY", DEFAULT_SEARCH_QUERY),
            forwarding_relay=os.getenv("FORWARDING_RELAY") or None,
            attribution_labels=_parse_mapping(os.getenv("ATTRIBUTION_LABELS", "")),
            default_attribution=os.getenv("DEFAULT_ATTRIBUTION", "Forwarded"),
        )

        return cls(
            environment=env,
            data_dir=data_dir,
            ledger=ledger,
            mail=mail,
            debug=os.getenv("DEBUG", "false").lower() == "true",
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )

    def validate(self) -> list:
        """Validate configuration and return list of errors."""
        errors = []

        if not self.data_dir.exists():
            errors.append(f"data_dir does not exist: {self.data_dir}")

        if self.mail.backend == MailBackend.IMAP and self.mail.username and not self.mail.password:
            errors.append("EMAIL_PASSWORD is required when EMAIL_USERNAME is provided")

        if self.mail.imap_port <= 0 or self.mail.imap_port > 65535:
            errors.append("Email IMAP port must be 1-65535")

        if self.ledger.gap_lookback <= 0:
            errors.append("LEDGER_GAP_LOOKBACK must be positive")

        try:
            self.ledger.tzinfo
        except (ZoneInfoNotFoundError, ValueError) as e:
            errors.append(f"Unknown LEDGER_TIMEZONE {self.ledger.timezone!r}: {e}")

        return errors

    def setup_logging(self) -> None:
        """Configure logging based on configuration."""
        level = getattr(logging, self.log_level, logging.INFO)

        if self.environment == Environment.DEVELOPMENT:
            format_str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        else:
            format_str = "%(asctime)s - %(levelname)s - %(message)s"

        logging.basicConfig(level=level, format=format_str, datefmt="%Y-%m-%d %H:%M:%S")

        # imaplib debug output is noisy and may contain credentials
        if self.environment == Environment.PRODUCTION:
            logging.getLogger("imaplib").setLevel(logging.WARNING)

    def get_sensitive_fields(self) -> list:
        """Get list of field names that contain sensitive data."""
        return [
            "mail.password",
            "mail.username",
        ]

    def to_dict(self, include_sensitive: bool = False) -> dict[str, Any]:
        """Convert configuration to dictionary, optionally excluding sensitive data."""
        result: dict[str, Any] = {}

        for field_name, field_value in self.__dict__.items():
            if hasattr(field_value, "__dict__") and not isinstance(field_value, Enum):
                nested_dict: dict[str, Any] = {}
                for nested_name, nested_value in field_value.__dict__.items():
                    full_field_name = f"{field_name}.{nested_name}"

                    if not include_sensitive and full_field_name in self.get_sensitive_fields():
                        nested_dict[nested_name] = "***REDACTED***"
                    else:
                        nested_dict[nested_name] = _plain(nested_value)

                result[field_name] = nested_dict
            else:
                result[field_name] = _plain(field_value)

        return result


def _plain(value: Any) -> Any:
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    return value


def _parse_mapping(value: str, delimiter: str = ",") -> dict[str, str]:
    """Parse "addr=Label,addr2=Label2" into a dict, lower-casing the addresses."""
    mapping: dict[str, str] = {}
    if not value:
        return mapping
    for item in value.split(delimiter):
        if "=" not in item:
            continue
        key, label = item.split("=", 1)
        if key.strip() and label.strip():
            mapping[key.strip().lower()] = label.strip()
    return mapping


# Global configuration instance
_config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        config = Config.from_environment()

        errors = config.validate()
        if errors:
            raise ConfigError(f"Configuration validation failed: {'; '.join(errors)}")

        config.setup_logging()
        _config = config

    return _config


def reload_config() -> Config:
    """Reload configuration from environment (useful for testing)."""
    global _config
    _config = None
    return get_config()


