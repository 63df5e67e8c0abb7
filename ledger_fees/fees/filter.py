"""
Fee Validation Filter

The fee engine may return fee lines computed for accounts that are not
part of the transaction at hand but follow the same naming convention.
A fee line is kept only if the account it was charged on behalf of is
one of the transaction's participants.

Matching works on normalized aliases: leading '@' stripped, lower-cased,
and known fee prefixes/suffixes ("fee-", "-tarifa", ...) removed from the
fee alias to recover the underlying account.
"""

from typing import Iterable, Optional, TypeVar

from ledger_fees.config import get_settings
from ledger_fees.fees.strategies import FeeCandidate, normalize_alias, recover_account
from ledger_fees.models.fee import AppliedFee


T = TypeVar("T", bound=FeeCandidate)


def get_transaction_accounts(
    source: Iterable[FeeCandidate],
    destination: Iterable[FeeCandidate],
) -> list[str]:
    """
    Aliases of the genuine transaction parties, in order of appearance.

    Destination entries tagged with `metadata.source` are fee injections,
    not parties, and are left out.
    """
    accounts = []
    for entry in source:
        if entry.account_alias not in accounts:
            accounts.append(entry.account_alias)
    for entry in destination:
        if (entry.metadata or {}).get("source"):
            continue
        if entry.account_alias not in accounts:
            accounts.append(entry.account_alias)
    return accounts


class FeeValidationService:
    """Decides which fee lines are attributable to a transaction."""

    def __init__(self, alias_patterns: Optional[list[str]] = None):
        self._patterns = (
            alias_patterns
            if alias_patterns is not None
            else get_settings().validation.fee_alias_patterns_list
        )

    def recover_account(self, fee_account_alias: str) -> str:
        return recover_account(fee_account_alias, self._patterns)

    def should_apply_fee(
        self,
        transaction_accounts: Iterable[str],
        fee_account_alias: str,
    ) -> bool:
        """True if the fee alias resolves to one of the transaction accounts."""
        if not fee_account_alias:
            return False
        accounts = {normalize_alias(account) for account in transaction_accounts}
        return self.recover_account(fee_account_alias) in accounts

    def should_apply_fee_operation(
        self,
        transaction_accounts: Iterable[str],
        operation: FeeCandidate,
    ) -> bool:
        """
        Check a fee operation by its alias, then by its `metadata.source` tag
        when the tag names an account.
        """
        accounts = list(transaction_accounts)
        if self.should_apply_fee(accounts, operation.account_alias):
            return True
        source = (operation.metadata or {}).get("source")
        if isinstance(source, str) and source.strip().lower() != "fee":
            return self.should_apply_fee(accounts, source)
        return False

    def filter_valid_fee_operations(
        self,
        operations: Iterable[T],
        transaction_accounts: Iterable[str],
    ) -> list[T]:
        accounts = list(transaction_accounts)
        return [
            op for op in operations
            if self.should_apply_fee_operation(accounts, op)
        ]

    def filter_valid_applied_fees(
        self,
        fees: Iterable[AppliedFee],
        transaction_accounts: Iterable[str],
    ) -> list[AppliedFee]:
        accounts = list(transaction_accounts)
        return [
            fee for fee in fees
            if fee.credit_account and self.should_apply_fee(accounts, fee.credit_account)
        ]


def create_fee_validation_service() -> FeeValidationService:
    """Service configured from settings."""
    return FeeValidationService()


def should_apply_fee(transaction_accounts: Iterable[str], fee_account_alias: str) -> bool:
    return create_fee_validation_service().should_apply_fee(
        transaction_accounts, fee_account_alias
    )


def filter_valid_fee_operations(
    operations: Iterable[T],
    transaction_accounts: Iterable[str],
) -> list[T]:
    return create_fee_validation_service().filter_valid_fee_operations(
        operations, transaction_accounts
    )


def filter_valid_applied_fees(
    fees: Iterable[AppliedFee],
    transaction_accounts: Iterable[str],
) -> list[AppliedFee]:
    return create_fee_validation_service().filter_valid_applied_fees(
        fees, transaction_accounts
    )
