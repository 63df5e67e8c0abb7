"""Tests for distribution validation."""

from decimal import Decimal

from ledger_fees.models import AccountEntry, ConsoleTransaction, Share, TransactionEntry
from ledger_fees.validation import (
    DistributionValidator,
    is_amount_based,
    is_percentage_based,
    validate_amounts,
    validate_percentages,
)


def pct(alias, percentage):
    return TransactionEntry(account_alias=alias, percentage=percentage)


def val(alias, value):
    return TransactionEntry(account_alias=alias, value=value)


def complex_txn(source, destination, value="100"):
    return ConsoleTransaction(
        asset="USD",
        value=value,
        complex={"source": source, "destination": destination},
    )


class TestValidatePercentages:
    """Tests for the percentage sum check."""

    def test_sums_to_hundred(self):
        """Test 60 + 40 is valid."""
        assert validate_percentages([pct("@a", 60), pct("@b", 40)]) is True

    def test_short_of_hundred(self):
        """Test 60 + 39 is invalid."""
        assert validate_percentages([pct("@a", 60), pct("@b", 39)]) is False

    def test_within_tolerance(self):
        """Test rounding dust within 0.01 is accepted."""
        assert validate_percentages([pct("@a", 33.33), pct("@b", 33.33), pct("@c", 33.33)])
        assert not validate_percentages([pct("@a", 33.3), pct("@b", 33.3), pct("@c", 33.3)])

    def test_missing_percentage_counts_as_zero(self):
        """Test an entry without a percentage adds nothing."""
        assert validate_percentages([pct("@a", 100), val("@b", "5")]) is True

    def test_account_entry_shares(self):
        """Test canonical share entries are accepted too."""
        entries = [
            AccountEntry(account_alias="@a", share=Share(percentage=25)),
            AccountEntry(account_alias="@b", share=Share(percentage=75)),
        ]
        assert validate_percentages(entries) is True

    def test_custom_tolerance(self):
        """Test an explicit tolerance overrides the configured one."""
        entries = [pct("@a", 60), pct("@b", 39.5)]
        assert validate_percentages(entries) is False
        assert validate_percentages(entries, tolerance=Decimal("1")) is True


class TestValidateAmounts:
    """Tests for the amount sum check."""

    def test_sums_to_total(self):
        """Test 30 + 70 matches 100."""
        assert validate_amounts([val("@a", "30"), val("@b", "70")], "100") is True

    def test_short_of_total(self):
        """Test 30 + 65 does not match 100."""
        assert validate_amounts([val("@a", "30"), val("@b", "65")], "100") is False

    def test_decimal_precision(self):
        """Test sums are exact, without binary floating point error."""
        assert validate_amounts([val("@a", "0.1"), val("@b", "0.2")], "0.3") is True

    def test_unparseable_total(self):
        """Test an unparseable total fails validation instead of raising."""
        assert validate_amounts([val("@a", "1")], "abc") is False

    def test_wrapped_amounts(self):
        """Test canonical entries with wrapped amounts are read."""
        entries = [
            AccountEntry.model_validate({"accountAlias": "@a", "amount": {"value": "40"}}),
            AccountEntry(account_alias="@b", value="60"),
        ]
        assert validate_amounts(entries, Decimal("100")) is True


class TestDistributionMode:
    """Tests for detecting how a side is expressed."""

    def test_modes(self):
        """Test percentage and amount detection."""
        assert is_percentage_based([pct("@a", 100)])
        assert not is_amount_based([pct("@a", 100)])
        assert is_amount_based([val("@a", "1")])
        assert not is_percentage_based([val("@a", "1")])


class TestDistributionValidator:
    """Tests for the whole-transaction check."""

    def test_simple_transfer_is_valid(self, simple_transaction):
        """Test a 1:1 transfer always passes."""
        result = DistributionValidator().validate(simple_transaction)
        assert result.is_valid
        assert result.issues == []

    def test_zero_value(self):
        """Test a zero transaction value is an error."""
        txn = ConsoleTransaction(asset="USD", value="0", simple={"from": "@a", "to": "@b"})
        result = DistributionValidator().validate(txn)
        assert not result.is_valid
        assert result.issues[0].issue_type == "invalid_value"

    def test_valid_split(self):
        """Test percentages on one side and amounts on the other."""
        txn = complex_txn(
            [val("@a", "30"), val("@b", "70")],
            [pct("@c", 50), pct("@d", 50)],
        )
        assert DistributionValidator().validate(txn).is_valid

    def test_bad_percentages_reported_per_side(self):
        """Test the failing side is named in the issue."""
        txn = complex_txn(
            [val("@a", "100")],
            [pct("@c", 50), pct("@d", 40)],
        )
        result = DistributionValidator().validate(txn)
        assert not result.is_valid
        assert len(result.issues) == 1
        assert result.issues[0].field == "destination"
        assert result.issues[0].issue_type == "percentage_sum"

    def test_bad_amounts(self):
        """Test fixed amounts must add up to the value."""
        txn = complex_txn(
            [val("@a", "30"), val("@b", "60")],
            [val("@c", "100")],
        )
        result = DistributionValidator().validate(txn)
        assert [i.issue_type for i in result.issues] == ["amount_sum"]
        assert result.issues[0].field == "source"

    def test_empty_side(self):
        """Test a side without accounts is an error."""
        txn = complex_txn([val("@a", "100")], [])
        result = DistributionValidator().validate(txn)
        assert result.issues[0].issue_type == "empty_side"

    def test_missing_distribution(self):
        """Test accounts without percentage or amount are an error."""
        txn = complex_txn([val("@a", "100")], [TransactionEntry(account_alias="@c")])
        result = DistributionValidator().validate(txn)
        assert result.issues[0].issue_type == "missing_distribution"

    def test_mixed_side_is_a_warning(self):
        """Test mixing percentages and amounts warns without failing."""
        txn = complex_txn(
            [val("@a", "100")],
            [val("@c", "20"), pct("@d", 100)],
        )
        result = DistributionValidator().validate(txn)
        assert result.is_valid
        assert result.issues[0].issue_type == "mixed_distribution"
        assert result.warnings

    def test_mixed_side_fixed_part_over_total(self):
        """Test fixed amounts on a mixed side cannot exceed the value."""
        txn = complex_txn(
            [val("@a", "100")],
            [val("@c", "120"), pct("@d", 100)],
        )
        result = DistributionValidator().validate(txn)
        assert not result.is_valid
        assert {i.issue_type for i in result.issues} == {"mixed_distribution", "amount_sum"}
