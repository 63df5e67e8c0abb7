"""
Distribution Validation

Advisory checks the console runs before submitting a split transaction:
percentage shares on a side must add up to 100 and fixed amounts must
add up to the transaction total.

IMPORTANT: Validation NEVER raises and NEVER fixes anything.
A False result (or a ValidationResult with errors) is handed back to
the caller, who decides what to tell the user.
"""

from decimal import Decimal
from typing import Iterable, Optional, Union

from ledger_fees.config import get_settings
from ledger_fees.models.transaction import (
    AccountEntry,
    ConsoleTransaction,
    TransactionEntry,
    parse_decimal,
)
from ledger_fees.models.validation import ValidationIssue, ValidationResult


Entry = Union[TransactionEntry, AccountEntry]

HUNDRED = Decimal("100")


def _percentage_of(entry: Entry) -> Optional[Decimal]:
    if isinstance(entry, AccountEntry):
        return entry.share.decimal_percentage if entry.share is not None else None
    if entry.percentage is None:
        return None
    return parse_decimal(entry.percentage)


def _value_of(entry: Entry) -> Optional[Decimal]:
    if isinstance(entry, AccountEntry):
        if entry.amount is None and entry.value is None:
            return None
        return entry.decimal_amount
    if entry.value is None:
        return None
    return parse_decimal(entry.value)


def _tolerance(tolerance: Optional[Decimal]) -> Decimal:
    if tolerance is not None:
        return tolerance
    return get_settings().validation.tolerance


def is_percentage_based(entries: Iterable[Entry]) -> bool:
    """True if any entry is expressed as a percentage share."""
    return any(_percentage_of(entry) is not None for entry in entries)


def is_amount_based(entries: Iterable[Entry]) -> bool:
    """True if any entry is expressed as a fixed value."""
    return any(_value_of(entry) is not None for entry in entries)


def validate_percentages(
    entries: Iterable[Entry],
    tolerance: Optional[Decimal] = None,
) -> bool:
    """Percentages must sum to 100 within tolerance; missing ones count as 0."""
    total = sum(
        (_percentage_of(entry) or Decimal("0") for entry in entries),
        Decimal("0"),
    )
    return abs(total - HUNDRED) <= _tolerance(tolerance)


def validate_amounts(
    entries: Iterable[Entry],
    total_value: Union[str, Decimal],
    tolerance: Optional[Decimal] = None,
) -> bool:
    """Declared values must sum to the transaction total within tolerance."""
    try:
        expected = parse_decimal(total_value)
    except ValueError:
        return False
    total = sum(
        (_value_of(entry) or Decimal("0") for entry in entries),
        Decimal("0"),
    )
    return abs(total - expected) <= _tolerance(tolerance)


class DistributionValidator:
    """
    Validates the split of a console transaction side by side.

    Each side is checked with the validator matching how it is expressed.
    A side mixing percentages and fixed values is reported as a warning,
    and only its fixed part is checked against the total.
    """

    def __init__(self, tolerance: Optional[Decimal] = None):
        self._tolerance = _tolerance(tolerance)

    def _validate_side(
        self,
        name: str,
        entries: list[TransactionEntry],
        total_value: Decimal,
    ) -> list[ValidationIssue]:
        issues = []

        if not entries:
            issues.append(ValidationIssue(
                field=name,
                issue_type="empty_side",
                message=f"Transaction {name} has no accounts",
                severity="error",
            ))
            return issues

        percentage_based = is_percentage_based(entries)
        amount_based = is_amount_based(entries)

        if percentage_based and amount_based:
            issues.append(ValidationIssue(
                field=name,
                issue_type="mixed_distribution",
                message=f"Transaction {name} mixes percentages and fixed amounts",
                severity="warning",
            ))
            fixed_total = sum(
                (_value_of(e) or Decimal("0") for e in entries), Decimal("0")
            )
            if fixed_total - total_value > self._tolerance:
                issues.append(ValidationIssue(
                    field=name,
                    issue_type="amount_sum",
                    message=(
                        f"Fixed amounts on {name} ({fixed_total}) exceed "
                        f"the transaction value ({total_value})"
                    ),
                    severity="error",
                ))
            return issues

        if percentage_based and not validate_percentages(entries, self._tolerance):
            issues.append(ValidationIssue(
                field=name,
                issue_type="percentage_sum",
                message=f"Percentages on {name} must add up to 100",
                severity="error",
            ))
        elif amount_based and not validate_amounts(entries, total_value, self._tolerance):
            issues.append(ValidationIssue(
                field=name,
                issue_type="amount_sum",
                message=f"Amounts on {name} must add up to {total_value}",
                severity="error",
            ))
        elif not percentage_based and not amount_based:
            issues.append(ValidationIssue(
                field=name,
                issue_type="missing_distribution",
                message=f"Accounts on {name} need a percentage or an amount",
                severity="error",
            ))

        return issues

    def validate(self, transaction: ConsoleTransaction) -> ValidationResult:
        """
        Validate the distribution of a console transaction.

        Simple transfers always distribute the full value and pass.
        """
        issues = []

        if transaction.decimal_value <= 0:
            issues.append(ValidationIssue(
                field="value",
                issue_type="invalid_value",
                message="Transaction value must be greater than zero",
                severity="error",
            ))

        if transaction.complex is not None:
            total = transaction.decimal_value
            issues.extend(self._validate_side("source", transaction.complex.source, total))
            issues.extend(
                self._validate_side("destination", transaction.complex.destination, total)
            )

        return ValidationResult.from_issues(issues)
