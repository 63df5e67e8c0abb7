"""Account netting package."""

from ledger_fees.netting.engine import (
    AllDestinationAccountsRemoved,
    AllSourceAccountsRemoved,
    NettingError,
    UnresolvedShareError,
    dedupe,
    merge_duplicate_entries,
    needs_deduplication,
    overlapping_aliases,
)

__all__ = [
    "AllDestinationAccountsRemoved",
    "AllSourceAccountsRemoved",
    "NettingError",
    "UnresolvedShareError",
    "dedupe",
    "merge_duplicate_entries",
    "needs_deduplication",
    "overlapping_aliases",
]
