"""
Fee Runtime Validation

Cross-checks a FeeCalculationState against its own arithmetic and,
when available, against the rules of the fee package the engine
applied. Problems are reported, not raised: a state that fails these
checks is still displayable, it just should not be trusted blindly.

Package rule structure (validate_fee_rules):
- priority 1 fees are computed on the original amount
- later priorities are computed on the amount after earlier fees
- maxBetweenTypes needs both a flat amount and a percentage
- priorities are unique
"""

from decimal import Decimal
from typing import Optional, Union

from ledger_fees.config import get_settings
from ledger_fees.models.fee import FeeCalculationState
from ledger_fees.models.transaction import FeeRule
from ledger_fees.models.validation import ValidationIssue, ValidationResult


HIGH_FEE_PERCENTAGE = Decimal("50")
MAX_FEE_PERCENTAGE = Decimal("100")

ORIGINAL_AMOUNT = "originalAmount"
AFTER_FEES_AMOUNT = "afterFeesAmount"
MAX_BETWEEN_TYPES = "maxBetweenTypes"


def calculate_max_between_types(
    flat_amount: Union[str, Decimal],
    percentage: Union[str, Decimal],
    reference_amount: Union[str, Decimal],
) -> Decimal:
    """The larger of a flat fee and `percentage`% of the reference amount."""
    percentage_amount = Decimal(percentage) / MAX_FEE_PERCENTAGE * Decimal(reference_amount)
    return max(Decimal(flat_amount), percentage_amount)


def validate_fee_rules(rules: list[FeeRule]) -> ValidationResult:
    """Check the structure of a fee package's rules."""
    issues = []

    for rule in rules:
        expected_reference = ORIGINAL_AMOUNT if rule.priority == 1 else AFTER_FEES_AMOUNT
        if rule.reference_amount != expected_reference:
            issues.append(ValidationIssue(
                field=f"fee_rules.{rule.fee_id}",
                issue_type="priority_reference",
                message=(
                    f'Fee "{rule.fee_label}" has priority {rule.priority} but uses '
                    f"{rule.reference_amount} instead of {expected_reference}"
                ),
                severity="error",
            ))

        if rule.application_rule == MAX_BETWEEN_TYPES:
            calculations = rule.calculations
            if (
                calculations is None
                or calculations.flat_amount is None
                or calculations.percentage is None
            ):
                issues.append(ValidationIssue(
                    field=f"fee_rules.{rule.fee_id}.calculations",
                    issue_type="max_between_types",
                    message=(
                        f'Fee "{rule.fee_label}" uses maxBetweenTypes but lacks a '
                        "flat amount or a percentage"
                    ),
                    severity="error",
                ))

    priorities = [rule.priority for rule in rules]
    if len(priorities) != len(set(priorities)):
        issues.append(ValidationIssue(
            field="fee_rules",
            issue_type="duplicate_priority",
            message="All fees within a package must have unique priorities",
            severity="error",
        ))

    return ValidationResult.from_issues(issues)


class FeeRuntimeValidator:
    """Validates fee figures before they are shown to the user."""

    def __init__(self, tolerance: Optional[Decimal] = None):
        self._tolerance = (
            tolerance if tolerance is not None else get_settings().validation.tolerance
        )

    def _mismatch(self, a: Decimal, b: Decimal) -> bool:
        return abs(a - b) > self._tolerance

    def validate(
        self,
        state: FeeCalculationState,
        package_rules: Optional[list[FeeRule]] = None,
    ) -> ValidationResult:
        issues = []

        if state.original_amount <= 0:
            issues.append(ValidationIssue(
                field="original_amount",
                issue_type="invalid_value",
                message="Original amount must be a positive number",
                severity="error",
            ))

        if not state.original_currency:
            issues.append(ValidationIssue(
                field="original_currency",
                issue_type="missing",
                message="Currency must be specified",
                severity="error",
            ))

        split_total = state.deductible_fees + state.non_deductible_fees
        if self._mismatch(split_total, state.total_fees):
            issues.append(ValidationIssue(
                field="total_fees",
                issue_type="fee_split_mismatch",
                message=(
                    f"Fee totals mismatch: deductible ({state.deductible_fees}) + "
                    f"non-deductible ({state.non_deductible_fees}) != total ({state.total_fees})"
                ),
                severity="error",
            ))

        individual_total = sum(
            (fee.calculated_amount for fee in state.applied_fees), Decimal("0")
        )
        if self._mismatch(individual_total, state.total_fees):
            issues.append(ValidationIssue(
                field="applied_fees",
                issue_type="fee_sum_mismatch",
                message=(
                    f"Individual fees sum ({individual_total}) does not match "
                    f"total fees ({state.total_fees})"
                ),
                severity="error",
            ))

        deductible_total = sum(
            (f.calculated_amount for f in state.applied_fees if f.is_deductible_from),
            Decimal("0"),
        )
        if self._mismatch(deductible_total, state.deductible_fees):
            issues.append(ValidationIssue(
                field="deductible_fees",
                issue_type="fee_sum_mismatch",
                message=(
                    f"Deductible fees mismatch: sum of individual ({deductible_total}) "
                    f"!= total deductible ({state.deductible_fees})"
                ),
                severity="error",
            ))

        expected_sender = state.original_amount + state.non_deductible_fees
        if self._mismatch(state.sender_pays_amount, expected_sender):
            issues.append(ValidationIssue(
                field="sender_pays_amount",
                issue_type="calculation_error",
                message=(
                    f"Sender amount calculation error: expected {expected_sender}, "
                    f"got {state.sender_pays_amount}"
                ),
                severity="error",
            ))

        expected_recipient = state.original_amount - state.deductible_fees
        if self._mismatch(state.recipient_receives_amount, expected_recipient):
            issues.append(ValidationIssue(
                field="recipient_receives_amount",
                issue_type="calculation_error",
                message=(
                    f"Recipient amount calculation error: expected {expected_recipient}, "
                    f"got {state.recipient_receives_amount}"
                ),
                severity="error",
            ))

        if state.recipient_receives_amount < 0:
            issues.append(ValidationIssue(
                field="recipient_receives_amount",
                issue_type="negative_amount",
                message="Recipient cannot receive a negative amount",
                severity="error",
            ))

        if state.original_amount > 0:
            fee_percentage = state.total_fees / state.original_amount * 100
            if fee_percentage > MAX_FEE_PERCENTAGE:
                issues.append(ValidationIssue(
                    field="total_fees",
                    issue_type="excessive_fees",
                    message=f"Total fees exceed transaction amount ({fee_percentage:.2f}%)",
                    severity="error",
                ))
            elif fee_percentage > HIGH_FEE_PERCENTAGE:
                issues.append(ValidationIssue(
                    field="total_fees",
                    issue_type="high_fees",
                    message=f"High fee percentage: {fee_percentage:.2f}% of transaction",
                    severity="warning",
                ))

        if package_rules:
            issues.extend(self._validate_package_rules(state, package_rules))

        return ValidationResult.from_issues(issues)

    def _validate_package_rules(
        self,
        state: FeeCalculationState,
        package_rules: list[FeeRule],
    ) -> list[ValidationIssue]:
        issues = list(validate_fee_rules(package_rules).issues)

        expected_order = [
            rule.fee_id for rule in sorted(package_rules, key=lambda r: r.priority)
        ]
        applied_order = [fee.fee_id for fee in state.applied_fees]
        if any(a != e for a, e in zip(applied_order, expected_order)):
            issues.append(ValidationIssue(
                field="applied_fees",
                issue_type="priority_order",
                message=(
                    "Fees may not have been processed in priority order. Expected: "
                    f"{', '.join(expected_order)}, Got: {', '.join(applied_order)}"
                ),
                severity="warning",
            ))

        for fee in state.applied_fees:
            if not fee.credit_account:
                issues.append(ValidationIssue(
                    field=f"applied_fees.{fee.fee_id}",
                    issue_type="missing_credit_account",
                    message=f'Fee "{fee.fee_label}" is missing credit account',
                    severity="error",
                ))

        rules_by_id = {rule.fee_id: rule for rule in package_rules}
        for fee in state.applied_fees:
            rule = rules_by_id.get(fee.fee_id)
            if rule is None or rule.application_rule != MAX_BETWEEN_TYPES:
                continue
            calculations = rule.calculations
            if (
                rule.reference_amount != ORIGINAL_AMOUNT
                or calculations is None
                or calculations.flat_amount is None
                or calculations.percentage is None
            ):
                continue
            expected = calculate_max_between_types(
                calculations.flat_amount, calculations.percentage, state.original_amount
            )
            if self._mismatch(fee.calculated_amount, expected):
                issues.append(ValidationIssue(
                    field=f"applied_fees.{fee.fee_id}",
                    issue_type="max_between_types",
                    message=(
                        f'Fee "{fee.fee_label}" should be the larger of its flat and '
                        f"percentage amounts ({expected}), got {fee.calculated_amount}"
                    ),
                    severity="warning",
                ))

        fee_ids = [fee.fee_id for fee in state.applied_fees]
        if len(fee_ids) != len(set(fee_ids)):
            issues.append(ValidationIssue(
                field="applied_fees",
                issue_type="duplicate_fee_id",
                message="Duplicate fee IDs detected in applied fees",
                severity="error",
            ))

        return issues
