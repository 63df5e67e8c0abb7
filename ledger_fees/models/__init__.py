"""
Data Models Package

This package contains all Pydantic models used by Ledger Fees.
All data flowing through the library must conform to these schemas.
"""

from ledger_fees.models.transaction import (
    AccountEntry,
    Amount,
    CalculatedTransaction,
    CalculationResult,
    ComplexPayload,
    ConsoleTransaction,
    FeeEngineCalculation,
    FeeCalculations,
    FeeEngineTransaction,
    FeeRule,
    LedgerOperation,
    LedgerTransactionResult,
    Send,
    SendDistribute,
    SendSource,
    Share,
    SimplePayload,
    TransactionEntry,
    format_decimal,
    parse_decimal,
)
from ledger_fees.models.fee import (
    AppliedFee,
    DeduplicationResult,
    FeeCalculationState,
    NettingAdjustment,
)
from ledger_fees.models.validation import (
    ValidationIssue,
    ValidationResult,
)
from ledger_fees.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Transaction models
    "AccountEntry",
    "Amount",
    "CalculatedTransaction",
    "CalculationResult",
    "ComplexPayload",
    "ConsoleTransaction",
    "FeeEngineCalculation",
    "FeeCalculations",
    "FeeEngineTransaction",
    "FeeRule",
    "LedgerOperation",
    "LedgerTransactionResult",
    "Send",
    "SendDistribute",
    "SendSource",
    "Share",
    "SimplePayload",
    "TransactionEntry",
    "format_decimal",
    "parse_decimal",
    # Fee models
    "AppliedFee",
    "DeduplicationResult",
    "FeeCalculationState",
    "NettingAdjustment",
    # Validation models
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
