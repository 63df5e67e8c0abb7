"""
Fee and Netting Result Models

Results produced by the netting engine and the fee classifier.
Both are frozen: a different outcome means a new object, never an
in-place edit of one that may already sit in the cache.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ledger_fees.models.transaction import AccountEntry, WireModel


class NettingAdjustment(BaseModel):
    """Audit record of one collapsed account."""

    model_config = ConfigDict(frozen=True)

    account: str
    reason: str
    adjustment: Decimal = Field(
        ...,
        description="Signed net position, source amount minus destination amount"
    )


class DeduplicationResult(BaseModel):
    """
    Outcome of netting overlapping accounts.

    `adjustments` is informational only; nothing downstream reads it
    programmatically.
    """

    model_config = ConfigDict(frozen=True)

    source: list[AccountEntry]
    destination: list[AccountEntry]
    warnings: list[str] = Field(default_factory=list)
    adjustments: list[NettingAdjustment] = Field(default_factory=list)

    @property
    def was_adjusted(self) -> bool:
        return bool(self.adjustments)


class AppliedFee(WireModel):
    """One fee line identified in a calculation result."""

    model_config = ConfigDict(frozen=True)

    fee_id: str
    fee_label: str
    calculated_amount: Decimal
    credit_account: Optional[str] = None
    is_deductible_from: bool = False
    priority: int = 1


class FeeCalculationState(WireModel):
    """
    Aggregated fee figures for one transaction, ready for display.

    Invariants (checked by FeeRuntimeValidator):
    - total_fees == deductible_fees + non_deductible_fees
    - sender_pays_amount == original_amount + non_deductible_fees
    - recipient_receives_amount == original_amount - deductible_fees
    """

    model_config = ConfigDict(frozen=True)

    original_currency: str
    original_amount: Decimal = Decimal("0")
    total_fees: Decimal = Decimal("0")
    deductible_fees: Decimal = Decimal("0")
    non_deductible_fees: Decimal = Decimal("0")
    applied_fees: list[AppliedFee] = Field(default_factory=list)
    sender_pays_amount: Decimal = Decimal("0")
    recipient_receives_amount: Decimal = Decimal("0")
    has_valid_fees: bool = False
    warnings: list[str] = Field(default_factory=list)
    package_id: Optional[str] = None
    package_label: Optional[str] = None
    calculated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @classmethod
    def without_fees(
        cls,
        currency: str,
        amount: Decimal = Decimal("0"),
        warnings: Optional[list[str]] = None,
    ) -> 'FeeCalculationState':
        """State for a transaction with no applicable fee data."""
        return cls(
            original_currency=currency,
            original_amount=amount,
            sender_pays_amount=amount,
            recipient_receives_amount=amount,
            has_valid_fees=False,
            warnings=warnings or [],
        )
