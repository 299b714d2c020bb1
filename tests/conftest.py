"""
Pytest Configuration and Shared Fixtures

Provides common test fixtures and configuration for the entire test suite.
"""

from pathlib import Path

import pytest

from budgeting.core.config import Config, Environment, LedgerConfig, MailConfig
from budgeting.ledger.store import Workbook
from budgeting.ledger.variables import VariablesCache
from tests.fixtures.builders import RELAY_ADDRESS, make_workbook


@pytest.fixture
def temp_dir(tmp_path) -> Path:
    """Temporary directory for test files."""
    return tmp_path


@pytest.fixture
def workbook() -> Workbook:
    """Two March 2024 pay periods plus the template sheet."""
    return make_workbook()


@pytest.fixture
def variables(workbook) -> VariablesCache:
    return VariablesCache(workbook)


@pytest.fixture
def ledger_config(tmp_path) -> LedgerConfig:
    return LedgerConfig(workbook_path=tmp_path / "ledger.json")


@pytest.fixture
def mail_config(tmp_path) -> MailConfig:
    return MailConfig(
        mail_dir=tmp_path / "mail",
        forwarding_relay=RELAY_ADDRESS,
        attribution_labels={"spouse@example.com": "Spouse"},
    )


@pytest.fixture
def app_config(tmp_path, ledger_config, mail_config) -> Config:
    """Complete configuration pointing into the test's temporary directory."""
    return Config(
        environment=Environment.TEST,
        data_dir=tmp_path,
        ledger=ledger_config,
        mail=mail_config,
    )


@pytest.fixture(autouse=True)
def setup_test_environment(monkeypatch, tmp_path):
    """Set up test environment variables."""
    # Ensure tests don't use real data
    monkeypatch.setenv("BUDGETING_ENV", "test")
    monkeypatch.setenv("BUDGETING_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("LEDGER_WORKBOOK", str(tmp_path / "ledger.json"))
    monkeypatch.setenv("MAIL_DIR", str(tmp_path / "mail"))
    monkeypatch.setenv("MAIL_BACKEND", "local")
    monkeypatch.setenv("LEDGER_TIMEZONE", "America/Chicago")

    # Mock sensitive environment variables
    monkeypatch.setenv("EMAIL_PASSWORD", "test-password")
    monkeypatch.delenv("FORWARDING_RELAY", raising=False)
    monkeypatch.delenv("ATTRIBUTION_LABELS", raising=False)
    monkeypatch.delenv("MAIL_SEARCH_QUERY", raising=False)


# Test markers for categorizing tests
def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests for individual components")
    config.addinivalue_line("markers", "integration: Integration tests for complete workflows")
    config.addinivalue_line("markers", "currency: Tests for currency handling and precision")
    config.addinivalue_line("markers", "mail: Tests for mail classification and aggregation")
    config.addinivalue_line("markers", "ledger: Tests for ledger partitions and splitting")
