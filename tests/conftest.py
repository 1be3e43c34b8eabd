"""
Shared fixtures.

No test talks to Gemini: the assistant and media studio are replaced by
fakes, and a dummy API key keeps settings loadable.
"""

import os

import pytest

os.environ.setdefault("GEMINI_API_KEY", "test-key")

from cedar.audit import AuditLogger, InMemoryAuditTrail  # noqa: E402
from cedar.config import get_settings  # noqa: E402
from cedar.ledger import Ledger  # noqa: E402
from cedar.validation import TransactionValidator  # noqa: E402
from tests.factories import StepClock  # noqa: E402


@pytest.fixture(autouse=True)
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def audit_trail():
    return InMemoryAuditTrail()


@pytest.fixture
def audit_logger(audit_trail):
    return AuditLogger(audit_trail)


@pytest.fixture
def validator():
    return TransactionValidator(large_amount_warning_usd=100000)


@pytest.fixture
def ledger(validator, audit_logger):
    return Ledger(validator=validator, audit_logger=audit_logger, clock=StepClock())
