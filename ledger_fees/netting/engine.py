"""
Account Netting Engine

The ledger rejects a transaction in which one alias is both debited and
credited. When a split puts an account on both sides, the account is
collapsed to its net position:

    net = source amount - destination amount
    net > 0  -> stays on the source side with `net` (net debit)
    net < 0  -> stays on the destination side with `|net|` (net credit)
    net == 0 -> removed from both sides

The net economic effect of the transaction is unchanged. Every collapse
is recorded as an adjustment and a warning so the user can see what was
rewritten before submitting.

IMPORTANT: Netting works on fixed amounts only. A percentage share has
no amount until it is resolved against the transaction total
(see conversion.resolve_shares); an overlapping share-based entry is
rejected with UnresolvedShareError rather than counted as zero.
"""

from decimal import Decimal
from typing import Iterable, Optional

from ledger_fees.models.fee import DeduplicationResult, NettingAdjustment
from ledger_fees.models.transaction import AccountEntry, Share


class NettingError(ValueError):
    """Netting produced a transaction that cannot be submitted."""


class AllSourceAccountsRemoved(NettingError):
    """Every source account netted away; the transaction has nothing to debit."""


class AllDestinationAccountsRemoved(NettingError):
    """Every destination account netted away; the transaction has nothing to credit."""


class UnresolvedShareError(NettingError):
    """An account to be netted is expressed as a percentage share, not an amount."""


def _totals_by_alias(
    entries: list[AccountEntry],
    aliases: Optional[set[str]] = None,
) -> dict[str, Decimal]:
    """Sum the fixed amounts per alias, restricted to `aliases` when given."""
    totals: dict[str, Decimal] = {}
    for entry in entries:
        alias = entry.account_alias
        if aliases is not None and alias not in aliases:
            continue
        if entry.share is not None:
            raise UnresolvedShareError(
                f"Account {alias} is a {entry.share.percentage}% share; resolve "
                "shares against the transaction total before netting"
            )
        totals[alias] = totals.get(alias, Decimal("0")) + entry.decimal_amount
    return totals


def _rebuild_side(
    entries: list[AccountEntry],
    overlapping: set[str],
    kept: dict[str, Decimal],
) -> list[AccountEntry]:
    """Drop netted aliases, putting a surviving net position where the alias first appeared."""
    result = []
    emitted = set()
    for entry in entries:
        alias = entry.account_alias
        if alias not in overlapping:
            result.append(entry)
        elif alias in kept and alias not in emitted:
            result.append(entry.with_amount(kept[alias]))
            emitted.add(alias)
    return result


def overlapping_aliases(
    source: Iterable[AccountEntry],
    destination: Iterable[AccountEntry],
) -> list[str]:
    """Aliases present on both sides, in order of first appearance on the source side."""
    destination_aliases = {entry.account_alias for entry in destination}
    source_aliases = dict.fromkeys(entry.account_alias for entry in source)
    return [alias for alias in source_aliases if alias in destination_aliases]


def needs_deduplication(
    source: Iterable[AccountEntry],
    destination: Iterable[AccountEntry],
) -> bool:
    """Cheap pre-check: does any alias appear on both sides?"""
    source_aliases = {entry.account_alias for entry in source}
    return any(entry.account_alias in source_aliases for entry in destination)


def dedupe(
    source: Iterable[AccountEntry],
    destination: Iterable[AccountEntry],
) -> DeduplicationResult:
    """
    Collapse accounts that appear on both sides of a transaction.

    Amounts are read from `amount.value` or the bare `value`. An alias
    repeated on one side is netted using the sum of its entries.
    Share-based entries of non-overlapping aliases pass through untouched.

    Raises:
        UnresolvedShareError: If an overlapping alias carries a percentage share
        AllSourceAccountsRemoved: If no source account survives netting
        AllDestinationAccountsRemoved: If no destination account survives netting
    """
    source = list(source)
    destination = list(destination)

    overlapping = overlapping_aliases(source, destination)
    if not overlapping:
        return DeduplicationResult(source=source, destination=destination)

    overlapping_set = set(overlapping)
    source_totals = _totals_by_alias(source, overlapping_set)
    destination_totals = _totals_by_alias(destination, overlapping_set)

    kept_source: dict[str, Decimal] = {}
    kept_destination: dict[str, Decimal] = {}
    adjustments = []
    warnings = []

    for alias in overlapping:
        source_amount = source_totals[alias]
        destination_amount = destination_totals[alias]
        net = source_amount - destination_amount

        if net > 0:
            kept_source[alias] = net
            reason = f"Net debit: {source_amount} - {destination_amount} = {net}"
        elif net < 0:
            kept_destination[alias] = -net
            reason = f"Net credit: {destination_amount} - {source_amount} = {-net}"
        else:
            reason = "Net zero - removed from transaction"

        adjustments.append(NettingAdjustment(account=alias, reason=reason, adjustment=net))
        warnings.append(
            f"Account {alias} appears as source ({source_amount}) and destination "
            f"({destination_amount}); a net calculation was applied"
        )

    adjusted_source = _rebuild_side(source, overlapping_set, kept_source)
    adjusted_destination = _rebuild_side(destination, overlapping_set, kept_destination)

    if not adjusted_source:
        raise AllSourceAccountsRemoved(
            "All source accounts were removed by netting: "
            + ", ".join(overlapping)
        )
    if not adjusted_destination:
        raise AllDestinationAccountsRemoved(
            "All destination accounts were removed by netting: "
            + ", ".join(overlapping)
        )

    return DeduplicationResult(
        source=adjusted_source,
        destination=adjusted_destination,
        warnings=warnings,
        adjustments=adjustments,
    )


def merge_duplicate_entries(entries: Iterable[AccountEntry]) -> list[AccountEntry]:
    """
    Sum entries that repeat an alias on the same side into its first occurrence.

    Order of first appearance is preserved. Repeated shares are merged by
    adding their percentages.

    Raises:
        UnresolvedShareError: If an alias repeats with both a share and an amount
    """
    entries = list(entries)
    groups: dict[str, list[AccountEntry]] = {}
    for entry in entries:
        groups.setdefault(entry.account_alias, []).append(entry)

    merged = []
    for alias, group in groups.items():
        first = group[0]
        if len(group) == 1:
            merged.append(first)
        elif all(e.share is not None for e in group):
            percentage = sum(e.share.decimal_percentage for e in group)
            merged.append(first.model_copy(update={"share": Share(percentage=float(percentage))}))
        else:
            merged.append(first.with_amount(_totals_by_alias(group)[alias]))
    return merged
