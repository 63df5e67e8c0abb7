"""Validation package."""

from ledger_fees.validation.distribution import (
    DistributionValidator,
    is_amount_based,
    is_percentage_based,
    validate_amounts,
    validate_percentages,
)
from ledger_fees.validation.fee_rules import (
    FeeRuntimeValidator,
    calculate_max_between_types,
    validate_fee_rules,
)
from ledger_fees.validation.request import validate_calculation_request

__all__ = [
    "DistributionValidator",
    "FeeRuntimeValidator",
    "calculate_max_between_types",
    "is_amount_based",
    "is_percentage_based",
    "validate_amounts",
    "validate_calculation_request",
    "validate_fee_rules",
    "validate_percentages",
]
