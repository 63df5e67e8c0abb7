"""Fee classification, filtering and aggregation."""

from ledger_fees.fees.classifier import FeeClassifier, extract_fee_state
from ledger_fees.fees.filter import (
    FeeValidationService,
    create_fee_validation_service,
    filter_valid_applied_fees,
    filter_valid_fee_operations,
    get_transaction_accounts,
    should_apply_fee,
)
from ledger_fees.fees.strategies import (
    Classification,
    CompositeStrategy,
    ExplicitFlagStrategy,
    FeeClassificationStrategy,
    NamingPatternStrategy,
    default_strategy,
    normalize_alias,
    recover_account,
)

__all__ = [
    "Classification",
    "CompositeStrategy",
    "ExplicitFlagStrategy",
    "FeeClassificationStrategy",
    "FeeClassifier",
    "FeeValidationService",
    "NamingPatternStrategy",
    "create_fee_validation_service",
    "default_strategy",
    "extract_fee_state",
    "filter_valid_applied_fees",
    "filter_valid_fee_operations",
    "get_transaction_accounts",
    "normalize_alias",
    "recover_account",
    "should_apply_fee",
]
