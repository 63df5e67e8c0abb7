"""
Tests for Ledger Fees

Test strategy:
1. Unit tests for individual components (models, netting, classifier, cache)
2. Integration tests for flows (with a fake fee engine)
3. No real API calls in tests (use httpx.MockTransport)
"""

import pytest
from decimal import Decimal
from uuid import uuid4

from pydantic import TypeAdapter

from ledger_fees.models import (
    AccountEntry,
    Amount,
    AppliedFee,
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
    CalculationResult,
    ConsoleTransaction,
    DeduplicationResult,
    FeeCalculationState,
    FeeEngineCalculation,
    LedgerOperation,
    LedgerTransactionResult,
    Share,
    ValidationIssue,
    ValidationResult,
)


class TestTransactionModels:
    """Tests for transaction wire models."""

    def test_amount_keeps_decimal_string(self):
        """Test Amount stores the value as given and exposes a Decimal."""
        amount = Amount(asset="USD", value="10.50")
        assert amount.value == "10.50"
        assert amount.decimal_value == Decimal("10.50")

    def test_amount_from_decimal_has_no_exponent(self):
        """Test Decimal input is serialized in plain notation."""
        amount = Amount(value=Decimal("1E+2"))
        assert amount.value == "100"

    def test_amount_rejects_negative_value(self):
        """Test that negative amounts are rejected."""
        with pytest.raises(ValueError):
            Amount(asset="USD", value="-5")

    def test_amount_rejects_garbage(self):
        """Test that non-numeric amounts are rejected."""
        with pytest.raises(ValueError):
            Amount(asset="USD", value="ten")

    def test_amount_operation_defaults_to_credit(self):
        """Test an unmarked amount counts as a credit."""
        assert Amount(value="1").is_credit
        assert Amount(value="1", operation="credit").is_credit
        assert not Amount(value="1", operation="DEBIT").is_credit

    def test_share_bounds(self):
        """Test share percentage must be between 0 and 100."""
        with pytest.raises(ValueError):
            Share(percentage=120)

    def test_account_entry_accepts_wire_names(self):
        """Test camelCase wire names populate the model."""
        entry = AccountEntry.model_validate({
            "accountAlias": "@alice",
            "chartOfAccounts": "cash",
            "amount": {"asset": "USD", "value": "25"},
        })
        assert entry.account_alias == "@alice"
        assert entry.chart_of_accounts == "cash"
        assert entry.decimal_amount == Decimal("25")
        assert entry.asset == "USD"

    def test_account_entry_to_wire_uses_aliases(self):
        """Test wire dump uses camelCase and drops unset fields."""
        entry = AccountEntry(account_alias="@alice", value="5")
        wire = entry.to_wire()
        assert wire["accountAlias"] == "@alice"
        assert wire["value"] == "5"
        assert "share" not in wire

    def test_account_entry_rejects_share_and_amount(self):
        """Test an entry cannot be share-based and amount-based at once."""
        with pytest.raises(ValueError, match="cannot carry both"):
            AccountEntry(
                account_alias="@alice",
                share=Share(percentage=50),
                value="10",
            )

    def test_account_entry_rejects_empty_alias(self):
        """Test that account alias is required."""
        with pytest.raises(ValueError):
            AccountEntry(account_alias="", value="1")

    def test_bare_value_reads_as_amount(self):
        """Test the bare `value` representation is read like a wrapped amount."""
        entry = AccountEntry(account_alias="@alice", value="12.5")
        assert entry.decimal_amount == Decimal("12.5")

    def test_with_amount_keeps_representation(self):
        """Test with_amount copies the entry without touching the original."""
        wrapped = AccountEntry(
            account_alias="@alice",
            amount=Amount(asset="USD", value="100"),
        )
        bare = AccountEntry(account_alias="@bob", value="100")

        assert wrapped.with_amount(Decimal("70")).amount.value == "70"
        assert bare.with_amount(Decimal("70")).value == "70"
        assert wrapped.amount.value == "100"

    def test_with_amount_on_share_entry_drops_share(self):
        """Test a share entry becomes amount based."""
        entry = AccountEntry(account_alias="@alice", share=Share(percentage=50))
        adjusted = entry.with_amount(Decimal("30"))
        assert adjusted.share is None
        assert adjusted.value == "30"

    def test_console_transaction_simple_aliases(self):
        """Test the simple payload accepts the `from`/`to` wire names."""
        txn = ConsoleTransaction(asset="USD", value="100", simple={"from": "@a", "to": "@b"})
        assert txn.simple.from_account == "@a"
        assert txn.simple.to_account == "@b"
        assert txn.decimal_value == Decimal("100")


class TestCalculationResults:
    """Tests for the calculation result union."""

    def test_fee_engine_variant_selected_by_kind(self, fee_engine_payload):
        """Test kind=fee_engine parses the nested transaction shape."""
        result = TypeAdapter(CalculationResult).validate_python(
            {"kind": "fee_engine", **fee_engine_payload}
        )
        assert isinstance(result, FeeEngineCalculation)
        assert result.transaction.package_applied_id == "pkg-standard"
        assert result.transaction.fee_rules[0].fee_id == "fee-processing"
        assert len(result.transaction.destination_entries) == 2

    def test_ledger_variant_selected_by_kind(self):
        """Test kind=ledger parses flat operation lists."""
        result = TypeAdapter(CalculationResult).validate_python({
            "kind": "ledger",
            "asset": "USD",
            "source": [{"accountAlias": "@alice", "amount": "10"}],
            "destination": [{"accountAlias": "@bob", "amount": {"value": "10"}}],
        })
        assert isinstance(result, LedgerTransactionResult)
        assert result.destination[0].amount == Decimal("10")

    def test_ledger_operation_unwraps_amount(self):
        """Test a wrapped amount on a ledger operation is unwrapped."""
        op = LedgerOperation(account_alias="@bob", amount={"asset": "USD", "value": "3.5"})
        assert op.amount == Decimal("3.5")


class TestFeeModels:
    """Tests for fee and netting result models."""

    def test_without_fees(self):
        """Test the no-fee state passes the amount straight through."""
        state = FeeCalculationState.without_fees("USD", Decimal("100"))
        assert state.has_valid_fees is False
        assert state.total_fees == Decimal("0")
        assert state.sender_pays_amount == Decimal("100")
        assert state.recipient_receives_amount == Decimal("100")
        assert state.applied_fees == []

    def test_fee_state_is_frozen(self):
        """Test a fee state cannot be edited in place."""
        state = FeeCalculationState.without_fees("USD", Decimal("100"))
        with pytest.raises(ValueError):
            state.total_fees = Decimal("5")

    def test_fee_state_wire_names(self):
        """Test fee state serializes with camelCase names."""
        state = FeeCalculationState(
            original_currency="USD",
            original_amount=Decimal("100"),
            total_fees=Decimal("2"),
            non_deductible_fees=Decimal("2"),
            applied_fees=[AppliedFee(
                fee_id="f1",
                fee_label="Processing",
                calculated_amount=Decimal("2"),
            )],
            sender_pays_amount=Decimal("102"),
            recipient_receives_amount=Decimal("100"),
            has_valid_fees=True,
        )
        wire = state.to_wire()
        assert wire["senderPaysAmount"] == "102"
        assert wire["appliedFees"][0]["feeId"] == "f1"
        assert wire["hasValidFees"] is True

    def test_deduplication_result_was_adjusted(self):
        """Test was_adjusted reflects recorded adjustments."""
        result = DeduplicationResult(source=[], destination=[])
        assert result.was_adjusted is False


class TestValidationModels:
    """Tests for validation result models."""

    def test_validation_result_from_issues(self):
        """Test ValidationResult derives validity from error issues."""
        result = ValidationResult.from_issues([
            ValidationIssue(
                field="source",
                issue_type="mixed_distribution",
                message="Mixed",
                severity="warning",
            ),
            ValidationIssue(
                field="destination",
                issue_type="percentage_sum",
                message="Bad sum",
                severity="error",
            ),
        ])
        assert result.is_valid is False
        assert result.has_errors
        assert result.error_count == 1
        assert result.errors == ["Bad sum"]
        assert result.warnings == ["Mixed"]

    def test_validation_issue_severity_pattern(self):
        """Test severity must be error, warning or info."""
        with pytest.raises(ValueError):
            ValidationIssue(
                field="x",
                issue_type="y",
                message="z",
                severity="fatal",
            )


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.NETTING_APPLIED,
            transaction_id="txn-1",
            description="Netted 1 account",
        )
        assert event.event_type == AuditEventType.NETTING_APPLIED
        assert event.severity == AuditSeverity.INFO
        assert event.event_id is not None

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        correlation_id = uuid4()
        event = AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description="Test error",
            error_message="Something went wrong",
        )
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "system_error"
        assert log_dict["severity"] == "error"
        assert log_dict["correlation_id"] == str(correlation_id)
        assert log_dict["error_message"] == "Something went wrong"

    def test_audit_event_builder_netting(self):
        """Test AuditEventBuilder for netting events."""
        event = AuditEventBuilder.netting_applied(
            adjustments=[{"account": "@a", "adjustment": "70"}],
            warnings=["Account @a appears on both sides"],
        )
        assert event.event_type == AuditEventType.NETTING_APPLIED
        assert event.severity == AuditSeverity.WARNING
        assert event.details["adjustments"][0]["account"] == "@a"

    def test_audit_event_builder_fee_state(self):
        """Test AuditEventBuilder for fee state events."""
        event = AuditEventBuilder.fee_state_extracted(
            transaction_id="txn-1",
            organization_id="org-1",
            ledger_id="led-1",
            total_fees="2",
            fee_count=1,
            has_valid_fees=True,
        )
        assert event.event_type == AuditEventType.FEE_STATE_EXTRACTED
        assert event.transaction_id == "txn-1"
        assert event.details["fee_count"] == 1
