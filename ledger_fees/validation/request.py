"""
Calculation Request Validation

Checks a canonical transaction before it is sent to the fee engine:
the send block is complete, every entry is in the transaction's asset
and each side distributes exactly the transaction value.

Percentage shares are resolved against the transaction value, so a side
mixing shares and fixed amounts is checked as a whole.
"""

from decimal import Decimal
from typing import Optional

from ledger_fees.config import get_settings
from ledger_fees.conversion import share_amount
from ledger_fees.models.transaction import AccountEntry, FeeEngineTransaction
from ledger_fees.models.validation import ValidationIssue, ValidationResult
from ledger_fees.validation.distribution import validate_percentages


def _validate_entries(
    path: str,
    entries: list[AccountEntry],
    asset: str,
) -> list[ValidationIssue]:
    issues = []
    for index, entry in enumerate(entries):
        field = f"{path}[{index}]"
        if entry.share is None and entry.amount is None and entry.value is None:
            issues.append(ValidationIssue(
                field=field,
                issue_type="missing_distribution",
                message=f"Account {entry.account_alias} needs a share or an amount",
                severity="error",
            ))
        if entry.asset is not None and asset and entry.asset != asset:
            issues.append(ValidationIssue(
                field=f"{field}.amount.asset",
                issue_type="asset_mismatch",
                message=(
                    f"Account {entry.account_alias} uses {entry.asset}; "
                    f"asset must match transaction asset ({asset})"
                ),
                severity="error",
            ))
    return issues


def _validate_side_total(
    path: str,
    entries: list[AccountEntry],
    total_value: Decimal,
    tolerance: Decimal,
) -> list[ValidationIssue]:
    if not entries:
        return [ValidationIssue(
            field=path,
            issue_type="empty_side",
            message=f"{path} has no accounts",
            severity="error",
        )]

    if all(entry.share is not None for entry in entries):
        if validate_percentages(entries, tolerance):
            return []
        total_percentage = sum(entry.share.decimal_percentage for entry in entries)
        return [ValidationIssue(
            field=path,
            issue_type="percentage_sum",
            message=f"Percentages on {path} must sum to 100 (current: {total_percentage})",
            severity="error",
        )]

    distributed = sum(
        (
            share_amount(entry.share, total_value) if entry.share is not None
            else entry.decimal_amount
            for entry in entries
        ),
        Decimal("0"),
    )
    if abs(distributed - total_value) > tolerance:
        return [ValidationIssue(
            field=path,
            issue_type="amount_sum",
            message=(
                f"Amounts on {path} must sum to the transaction value "
                f"(expected: {total_value}, got: {distributed})"
            ),
            severity="error",
        )]
    return []


def validate_calculation_request(
    transaction: FeeEngineTransaction,
    tolerance: Optional[Decimal] = None,
) -> ValidationResult:
    """
    Validate a transaction before asking the fee engine to price it.

    Never raises; the caller decides whether to send the request.
    """
    tolerance = tolerance if tolerance is not None else get_settings().validation.tolerance
    send = transaction.send
    issues = []

    if not send.asset:
        issues.append(ValidationIssue(
            field="send.asset",
            issue_type="missing",
            message="Asset is required in send object",
            severity="error",
        ))

    total_value = send.decimal_value
    if total_value <= 0:
        issues.append(ValidationIssue(
            field="send.value",
            issue_type="invalid_value",
            message="Transaction value must be a positive number",
            severity="error",
        ))

    issues.extend(_validate_entries("send.source.from", transaction.source_entries, send.asset))
    issues.extend(
        _validate_entries("send.distribute.to", transaction.destination_entries, send.asset)
    )

    if total_value > 0:
        issues.extend(_validate_side_total(
            "send.source.from", transaction.source_entries, total_value, tolerance
        ))
        issues.extend(_validate_side_total(
            "send.distribute.to", transaction.destination_entries, total_value, tolerance
        ))

    return ValidationResult.from_issues(issues)
