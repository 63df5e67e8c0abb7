"""
Format Converter

Maps a transaction authored in the console (a 1:1 transfer or an N:M
split, amounts fixed or percentage based) into the canonical shape the
fee engine and the ledger expect.

The converter does not re-validate distributions; run the distribution
validator before converting.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Collection, Iterable, Optional, Union

from ledger_fees.models.transaction import (
    AccountEntry,
    Amount,
    ConsoleTransaction,
    FeeEngineTransaction,
    Send,
    SendDistribute,
    SendSource,
    Share,
    TransactionEntry,
    format_decimal,
    parse_decimal,
)


HUNDRED = Decimal("100")


class InvalidTransactionShape(ValueError):
    """A console transaction must carry exactly one of `simple` or `complex`."""


def _convert_entry(entry: TransactionEntry, asset: str) -> AccountEntry:
    if entry.percentage is not None:
        return AccountEntry(
            account_alias=entry.account_alias,
            share=Share(percentage=entry.percentage),
            description=entry.description,
            chart_of_accounts=entry.chart_of_accounts,
            metadata=dict(entry.metadata),
        )
    return AccountEntry(
        account_alias=entry.account_alias,
        amount=Amount(asset=asset, value=entry.value or "0"),
        description=entry.description,
        chart_of_accounts=entry.chart_of_accounts,
        metadata=dict(entry.metadata),
    )


def convert(transaction: ConsoleTransaction) -> FeeEngineTransaction:
    """
    Convert a console transaction into a FeeEngineTransaction.

    Raises:
        InvalidTransactionShape: If neither or both of simple/complex are set
    """
    if transaction.simple is None and transaction.complex is None:
        raise InvalidTransactionShape(
            "Transaction has neither a simple nor a complex payload"
        )
    if transaction.simple is not None and transaction.complex is not None:
        raise InvalidTransactionShape(
            "Transaction has both a simple and a complex payload"
        )

    asset = transaction.asset

    if transaction.simple is not None:
        # A 1:1 transfer has no internal split; both sides carry the full amount.
        sources = [
            AccountEntry(
                account_alias=transaction.simple.from_account,
                amount=Amount(asset=asset, value=transaction.value),
            )
        ]
        destinations = [
            AccountEntry(
                account_alias=transaction.simple.to_account,
                amount=Amount(asset=asset, value=transaction.value),
            )
        ]
    else:
        sources = [_convert_entry(e, asset) for e in transaction.complex.source]
        destinations = [_convert_entry(e, asset) for e in transaction.complex.destination]

    route = transaction.metadata.get("route")

    return FeeEngineTransaction(
        description=transaction.description,
        route=str(route) if route else None,
        chart_of_accounts_group_name=transaction.chart_of_accounts_group_name,
        send=Send(
            asset=asset,
            value=transaction.value,
            source=SendSource(from_=sources),
            distribute=SendDistribute(to=destinations),
        ),
        metadata=dict(transaction.metadata),
    )


def share_amount(share: Share, total: Union[str, Decimal]) -> Decimal:
    """Fixed amount a percentage share stands for: percentage / 100 x total."""
    return share.decimal_percentage / HUNDRED * parse_decimal(total)


def resolve_shares(
    entries: Iterable[AccountEntry],
    total: Union[str, Decimal],
    asset: Optional[str] = None,
    aliases: Optional[Collection[str]] = None,
) -> list[AccountEntry]:
    """
    Replace percentage shares with the amounts they stand for.

    Only entries whose alias is in `aliases` are resolved when it is given;
    everything else is returned as it is.
    """
    resolved = []
    for entry in entries:
        if entry.share is None or (aliases is not None and entry.account_alias not in aliases):
            resolved.append(entry)
            continue
        value = format_decimal(share_amount(entry.share, total))
        resolved.append(entry.model_copy(update={
            "share": None,
            "amount": Amount(asset=asset, value=value),
        }))
    return resolved


def to_percentage_shares(entries: Iterable[TransactionEntry]) -> list[Share]:
    """
    Express value-based entries as percentage shares of their side's total.

    Percentages are rounded to two places. A zero total yields zero shares.
    """
    entries = list(entries)
    values = [parse_decimal(entry.value) for entry in entries]
    total = sum(values, Decimal("0"))

    if total == 0:
        return [Share(percentage=0) for _ in entries]

    return [
        Share(
            percentage=float(
                (value / total * 100).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
            )
        )
        for value in values
    ]
