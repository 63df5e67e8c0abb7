"""Tests for fee runtime validation."""

from decimal import Decimal

from ledger_fees.models import AppliedFee, FeeCalculations, FeeCalculationState, FeeRule
from ledger_fees.validation import (
    FeeRuntimeValidator,
    calculate_max_between_types,
    validate_fee_rules,
)


def fee(fee_id="f1", amount="2", credit_account="@fee-alice", deductible=False, priority=1):
    return AppliedFee(
        fee_id=fee_id,
        fee_label=fee_id.upper(),
        calculated_amount=Decimal(amount),
        credit_account=credit_account,
        is_deductible_from=deductible,
        priority=priority,
    )


def make_state(original="100", fees=None, **overrides):
    fees = fees if fees is not None else [fee()]
    deductible = sum(
        (f.calculated_amount for f in fees if f.is_deductible_from), Decimal("0")
    )
    non_deductible = sum(
        (f.calculated_amount for f in fees if not f.is_deductible_from), Decimal("0")
    )
    original_amount = Decimal(original)
    values = dict(
        original_currency="USD",
        original_amount=original_amount,
        total_fees=deductible + non_deductible,
        deductible_fees=deductible,
        non_deductible_fees=non_deductible,
        applied_fees=fees,
        sender_pays_amount=original_amount + non_deductible,
        recipient_receives_amount=original_amount - deductible,
        has_valid_fees=bool(fees),
    )
    values.update(overrides)
    return FeeCalculationState(**values)


def issue_types(result):
    return [issue.issue_type for issue in result.issues]


class TestStateChecks:
    """Tests for the arithmetic of a fee state."""

    def test_consistent_state(self):
        """Test a consistent state has no issues."""
        result = FeeRuntimeValidator().validate(make_state())
        assert result.is_valid
        assert result.issues == []

    def test_mixed_deductibility(self):
        """Test deductible and non-deductible fees together."""
        state = make_state(fees=[fee("f1", "2"), fee("f2", "3", deductible=True, priority=2)])
        assert FeeRuntimeValidator().validate(state).is_valid

    def test_non_positive_original_amount(self):
        result = FeeRuntimeValidator().validate(make_state(original="0", fees=[]))
        assert "invalid_value" in issue_types(result)
        assert not result.is_valid

    def test_missing_currency(self):
        result = FeeRuntimeValidator().validate(make_state(original_currency=""))
        assert "missing" in issue_types(result)

    def test_split_mismatch(self):
        """Test deductible plus non-deductible must equal the total."""
        result = FeeRuntimeValidator().validate(make_state(total_fees=Decimal("5")))
        assert "fee_split_mismatch" in issue_types(result)
        assert "fee_sum_mismatch" in issue_types(result)

    def test_deductible_sum_mismatch(self):
        """Test the deductible total must match the deductible fee lines."""
        state = make_state(
            deductible_fees=Decimal("2"),
            non_deductible_fees=Decimal("0"),
            sender_pays_amount=Decimal("100"),
            recipient_receives_amount=Decimal("98"),
        )
        result = FeeRuntimeValidator().validate(state)
        assert issue_types(result) == ["fee_sum_mismatch"]
        assert result.issues[0].field == "deductible_fees"

    def test_sender_amount_error(self):
        result = FeeRuntimeValidator().validate(make_state(sender_pays_amount=Decimal("101")))
        assert issue_types(result) == ["calculation_error"]
        assert result.issues[0].field == "sender_pays_amount"

    def test_recipient_amount_error(self):
        result = FeeRuntimeValidator().validate(
            make_state(recipient_receives_amount=Decimal("99"))
        )
        assert issue_types(result) == ["calculation_error"]
        assert result.issues[0].field == "recipient_receives_amount"

    def test_within_tolerance(self):
        """Test differences up to a cent are accepted."""
        result = FeeRuntimeValidator().validate(
            make_state(sender_pays_amount=Decimal("102.01"))
        )
        assert result.is_valid

    def test_negative_recipient_amount(self):
        """Test deductible fees larger than the transfer are reported."""
        state = make_state(original="1", fees=[fee("f1", "2", deductible=True)])
        result = FeeRuntimeValidator().validate(state)
        assert "negative_amount" in issue_types(result)
        assert "excessive_fees" in issue_types(result)

    def test_high_fee_warning(self):
        """Test fees above half the amount warn without failing."""
        result = FeeRuntimeValidator().validate(make_state(fees=[fee("f1", "60")]))
        assert result.is_valid
        assert issue_types(result) == ["high_fees"]

    def test_excessive_fee_error(self):
        """Test fees above the amount are an error."""
        result = FeeRuntimeValidator().validate(make_state(fees=[fee("f1", "150")]))
        assert not result.is_valid
        assert issue_types(result) == ["excessive_fees"]


class TestPackageRules:
    """Tests against the rules of the applied fee package."""

    def test_consistent_rules(self):
        state = make_state(fees=[fee("f1", "2"), fee("f2", "1", priority=2)])
        rules = [
            FeeRule(fee_id="f1", priority=1, credit_account="@fee-alice"),
            FeeRule(fee_id="f2", priority=2, reference_amount="afterFeesAmount"),
        ]
        assert FeeRuntimeValidator().validate(state, rules).issues == []

    def test_priority_one_must_use_original_amount(self):
        rules = [FeeRule(fee_id="f1", priority=1, reference_amount="afterFeesAmount")]
        result = FeeRuntimeValidator().validate(make_state(), rules)
        assert issue_types(result) == ["priority_reference"]

    def test_duplicate_priorities(self):
        state = make_state(fees=[fee("f1", "1"), fee("f2", "1")])
        rules = [FeeRule(fee_id="f1", priority=2), FeeRule(fee_id="f2", priority=2)]
        result = FeeRuntimeValidator().validate(state, rules)
        assert "duplicate_priority" in issue_types(result)

    def test_priority_order_warning(self):
        """Test fees applied out of priority order are flagged as a warning."""
        state = make_state(fees=[fee("f2", "1"), fee("f1", "1")])
        rules = [
            FeeRule(fee_id="f1", priority=1),
            FeeRule(fee_id="f2", priority=2, reference_amount="afterFeesAmount"),
        ]
        result = FeeRuntimeValidator().validate(state, rules)
        assert issue_types(result) == ["priority_order"]
        assert result.is_valid

    def test_missing_credit_account(self):
        state = make_state(fees=[fee("f1", "2", credit_account=None)])
        result = FeeRuntimeValidator().validate(state, [FeeRule(fee_id="f1")])
        assert issue_types(result) == ["missing_credit_account"]

    def test_duplicate_fee_ids(self):
        state = make_state(fees=[fee("f1", "1"), fee("f1", "1")])
        result = FeeRuntimeValidator().validate(state, [FeeRule(fee_id="f1")])
        assert "duplicate_fee_id" in issue_types(result)

    def test_later_priority_must_use_after_fees_amount(self):
        """Test fees after the first are computed on the amount after earlier fees."""
        state = make_state(fees=[fee("f1", "1"), fee("f2", "1", priority=2)])
        rules = [FeeRule(fee_id="f1", priority=1), FeeRule(fee_id="f2", priority=2)]
        result = FeeRuntimeValidator().validate(state, rules)
        assert issue_types(result) == ["priority_reference"]
        assert result.issues[0].field == "fee_rules.f2"

    def test_max_between_types_amount(self):
        """Test a maxBetweenTypes fee must charge the larger of its two amounts."""
        rule = FeeRule(
            fee_id="f1",
            application_rule="maxBetweenTypes",
            calculations=FeeCalculations(flat_amount="5", percentage="2"),
            credit_account="@fee-alice",
        )
        ok = FeeRuntimeValidator().validate(make_state(fees=[fee("f1", "5")]), [rule])
        assert ok.issues == []

        wrong = FeeRuntimeValidator().validate(make_state(fees=[fee("f1", "2")]), [rule])
        assert issue_types(wrong) == ["max_between_types"]
        assert wrong.is_valid


class TestValidateFeeRules:
    """Tests for the structure of a fee package."""

    def test_valid_package(self):
        rules = [
            FeeRule(fee_id="f1", priority=1),
            FeeRule(fee_id="f2", priority=2, reference_amount="afterFeesAmount"),
            FeeRule(
                fee_id="f3",
                priority=3,
                reference_amount="afterFeesAmount",
                application_rule="maxBetweenTypes",
                calculations=FeeCalculations(flat_amount="1", percentage="0.5"),
            ),
        ]
        result = validate_fee_rules(rules)
        assert result.is_valid
        assert result.issues == []

    def test_max_between_types_needs_both_amounts(self):
        rules = [
            FeeRule(
                fee_id="f1",
                application_rule="maxBetweenTypes",
                calculations=FeeCalculations(flat_amount="1"),
            ),
            FeeRule(
                fee_id="f2",
                priority=2,
                reference_amount="afterFeesAmount",
                application_rule="maxBetweenTypes",
            ),
        ]
        result = validate_fee_rules(rules)
        assert issue_types(result) == ["max_between_types", "max_between_types"]
        assert not result.is_valid

    def test_duplicate_priorities(self):
        result = validate_fee_rules([FeeRule(fee_id="f1"), FeeRule(fee_id="f2")])
        assert issue_types(result) == ["duplicate_priority"]

    def test_empty_package(self):
        assert validate_fee_rules([]).is_valid


class TestCalculateMaxBetweenTypes:
    """Tests for the larger-of-flat-and-percentage fee."""

    def test_flat_amount_wins(self):
        assert calculate_max_between_types("5", "2", "100") == Decimal("5")

    def test_percentage_wins(self):
        assert calculate_max_between_types("5", "2", "1000") == Decimal("20")

    def test_accepts_decimals(self):
        result = calculate_max_between_types(Decimal("0.10"), Decimal("1.5"), Decimal("10"))
        assert result == Decimal("0.15")
