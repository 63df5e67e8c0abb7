"""
Fee Classification Strategies

Deciding whether an operation is a fee line is a heuristic. It lives
behind a one-method interface so a stricter strategy (an explicit flag
from the fee engine, for instance) can replace the naming rules without
touching the aggregation code.

Shipped strategies:
- NamingPatternStrategy: keyword match on description, chart of
  accounts and alias ("fee", "tarifa" by default)
- ExplicitFlagStrategy: `metadata.isFee` or the fee engine's
  `metadata.source` tag
- CompositeStrategy: first strategy that says "fee" wins
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Protocol

from ledger_fees.config import get_settings


class FeeCandidate(Protocol):
    """Anything shaped like a transaction operation."""

    account_alias: str
    description: Optional[str]
    chart_of_accounts: Optional[str]
    metadata: dict[str, Any]


@dataclass(frozen=True)
class Classification:
    """
    Result of classifying one operation.

    `recovered_account` is the participant the fee was charged on behalf
    of, when it can be told from the operation; otherwise the normalized
    alias itself.
    """

    is_fee: bool
    recovered_account: Optional[str] = None


def normalize_alias(alias: Optional[str]) -> str:
    """Strip a leading '@' and lower-case."""
    if not alias:
        return ""
    return alias.strip().lstrip("@").lower()


def recover_account(alias: str, patterns: Iterable[str]) -> str:
    """
    Remove a known fee prefix/suffix from an alias.

    Patterns ending in '-' are prefixes, patterns starting with '-' are
    suffixes. The longest matching pattern wins; with no match the
    normalized alias is returned unchanged.
    """
    name = normalize_alias(alias)
    for pattern in sorted(patterns, key=len, reverse=True):
        pattern = pattern.lower()
        if len(name) <= len(pattern):
            continue
        if pattern.endswith("-") and name.startswith(pattern):
            return name[len(pattern):]
        if pattern.startswith("-") and name.endswith(pattern):
            return name[:-len(pattern)]
    return name


class FeeClassificationStrategy(ABC):
    """Decides whether an operation is a fee line."""

    @abstractmethod
    def classify(self, entry: FeeCandidate) -> Classification:
        pass


class NamingPatternStrategy(FeeClassificationStrategy):
    """Case-insensitive keyword match on description, chart of accounts and alias."""

    def __init__(
        self,
        keywords: Optional[list[str]] = None,
        alias_patterns: Optional[list[str]] = None,
    ):
        settings = get_settings().validation
        self._keywords = [k.lower() for k in (keywords or settings.fee_keywords_list)]
        self._patterns = (
            alias_patterns if alias_patterns is not None else settings.fee_alias_patterns_list
        )

    def classify(self, entry: FeeCandidate) -> Classification:
        fields = (
            (entry.description or "").lower(),
            (entry.chart_of_accounts or "").lower(),
            (entry.account_alias or "").lower(),
        )
        is_fee = any(keyword in text for keyword in self._keywords for text in fields)
        return Classification(
            is_fee=is_fee,
            recovered_account=recover_account(entry.account_alias, self._patterns),
        )


class ExplicitFlagStrategy(FeeClassificationStrategy):
    """
    Trusts explicit markers only.

    The fee engine tags injected fee lines with `metadata.source`, set
    either to "fee" or to the alias the fee was charged on behalf of.
    """

    def classify(self, entry: FeeCandidate) -> Classification:
        metadata = entry.metadata or {}
        source = metadata.get("source")
        is_fee = bool(metadata.get("isFee")) or bool(source)

        recovered = normalize_alias(entry.account_alias)
        if isinstance(source, str) and source.strip().lower() != "fee":
            recovered = normalize_alias(source)

        return Classification(is_fee=is_fee, recovered_account=recovered)


class CompositeStrategy(FeeClassificationStrategy):
    """Asks each strategy in turn; the first positive answer wins."""

    def __init__(self, strategies: list[FeeClassificationStrategy]):
        if not strategies:
            raise ValueError("CompositeStrategy needs at least one strategy")
        self._strategies = strategies

    def classify(self, entry: FeeCandidate) -> Classification:
        first = None
        for strategy in self._strategies:
            result = strategy.classify(entry)
            if result.is_fee:
                return result
            if first is None:
                first = result
        return first


def default_strategy() -> FeeClassificationStrategy:
    return CompositeStrategy([ExplicitFlagStrategy(), NamingPatternStrategy()])
