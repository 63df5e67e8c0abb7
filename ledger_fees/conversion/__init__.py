"""Console to fee engine format conversion."""

from ledger_fees.conversion.converter import (
    InvalidTransactionShape,
    convert,
    resolve_shares,
    share_amount,
    to_percentage_shares,
)

__all__ = [
    "InvalidTransactionShape",
    "convert",
    "resolve_shares",
    "share_amount",
    "to_percentage_shares",
]
