"""
Shared fixtures for Ledger Fees tests.

No real fee engine is ever called; HTTP is stubbed with httpx.MockTransport
and the fee engine interface with in-memory fakes.
"""

import pytest

from ledger_fees.audit import AuditLogger
from ledger_fees.config import get_settings
from ledger_fees.models import ConsoleTransaction


@pytest.fixture(autouse=True)
def default_settings(monkeypatch):
    """Run every test against default configuration."""
    for name in (
        "FEE_ENGINE_ENABLED",
        "FEE_ENGINE_BASE_URL",
        "FEE_CACHE_CAPACITY",
        "FEE_CACHE_TTL_SECONDS",
        "FEE_VALIDATION_TOLERANCE",
        "FEE_VALIDATION_FEE_KEYWORDS",
        "FEE_VALIDATION_FEE_ALIAS_PATTERNS",
        "FEE_VALIDATION_FILTER_FOREIGN_FEES",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def audit_events():
    return []


@pytest.fixture
def audit_logger(audit_events):
    return AuditLogger(sink=audit_events.append)


@pytest.fixture
def simple_transaction():
    """100 USD from @alice to @bob."""
    return ConsoleTransaction(
        description="Rent",
        asset="USD",
        value="100",
        simple={"from": "@alice", "to": "@bob"},
    )


@pytest.fixture
def fee_engine_payload():
    """
    Fee engine answer for `simple_transaction`: a 2 USD non-deductible
    processing fee charged to @alice and credited to @fee-alice.
    """
    return {
        "transaction": {
            "description": "Rent",
            "send": {
                "asset": "USD",
                "value": "102",
                "source": {
                    "from": [
                        {
                            "accountAlias": "@alice",
                            "amount": {"asset": "USD", "value": "102", "operation": "DEBIT"},
                        },
                    ],
                },
                "distribute": {
                    "to": [
                        {
                            "accountAlias": "@bob",
                            "amount": {"asset": "USD", "value": "100", "operation": "CREDIT"},
                        },
                        {
                            "accountAlias": "@fee-alice",
                            "amount": {"asset": "USD", "value": "2", "operation": "CREDIT"},
                            "description": "Processing fee",
                            "metadata": {"source": "@alice"},
                        },
                    ],
                },
            },
            "feeRules": [
                {
                    "feeId": "fee-processing",
                    "feeLabel": "Processing",
                    "priority": 1,
                    "referenceAmount": "originalAmount",
                    "isDeductibleFrom": False,
                    "creditAccount": "fee-alice",
                },
            ],
            "packageAppliedID": "pkg-standard",
            "packageLabel": "Standard",
        },
    }
