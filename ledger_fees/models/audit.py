"""
Audit Models for Ledger Fees

Every netting adjustment and fee calculation outcome is logged for
audit purposes. Netting silently rewrites what the user authored, so
the adjustments must be reconstructable after the fact.

DESIGN DECISION: Audit events are append-only. We never delete or modify them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Netting
    NETTING_APPLIED = "netting_applied"
    NETTING_FAILED = "netting_failed"

    # Fee calculation
    FEE_CALCULATION_REQUESTED = "fee_calculation_requested"
    FEE_CALCULATION_FAILED = "fee_calculation_failed"
    FEE_STATE_EXTRACTED = "fee_state_extracted"
    FEES_FILTERED = "fees_filtered"

    # Cache
    FEE_CACHE_INVALIDATED = "fee_cache_invalidated"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """
    A single audit event.

    Every significant action creates one of these.
    """

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # What is this about? Transactions are identified by the ledger's id
    # (a string), which may not exist yet for a transaction being drafted.
    transaction_id: Optional[str] = None
    organization_id: Optional[str] = None
    ledger_id: Optional[str] = None

    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one submission)"
    )

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    error_code: Optional[str] = None
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "transaction_id": self.transaction_id,
            "organization_id": self.organization_id,
            "ledger_id": self.ledger_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.netting_applied(adjustments, correlation_id)
        event = AuditEventBuilder.fee_state_extracted(txn_id, org_id, ledger_id, ...)
    """

    @staticmethod
    def netting_applied(
        adjustments: list[dict],
        warnings: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.NETTING_APPLIED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description=f"Netted {len(adjustments)} account(s) present on both sides",
            details={
                "adjustments": adjustments,
                "warnings": warnings,
            },
        )

    @staticmethod
    def netting_failed(
        error_code: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.NETTING_FAILED,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description="Netting left one side of the transaction empty",
            error_code=error_code,
            error_message=error_message,
        )

    @staticmethod
    def fee_calculation_requested(
        organization_id: str,
        ledger_id: str,
        asset: str,
        value: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FEE_CALCULATION_REQUESTED,
            severity=AuditSeverity.DEBUG,
            organization_id=organization_id,
            ledger_id=ledger_id,
            correlation_id=correlation_id,
            description=f"Fee calculation requested for {value} {asset}",
            details={"asset": asset, "value": value},
        )

    @staticmethod
    def fee_calculation_failed(
        organization_id: str,
        ledger_id: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FEE_CALCULATION_FAILED,
            severity=AuditSeverity.WARNING,
            organization_id=organization_id,
            ledger_id=ledger_id,
            correlation_id=correlation_id,
            description="Fee calculation unavailable, showing no fees",
            error_message=error_message,
        )

    @staticmethod
    def fee_state_extracted(
        transaction_id: Optional[str],
        organization_id: str,
        ledger_id: str,
        total_fees: str,
        fee_count: int,
        has_valid_fees: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FEE_STATE_EXTRACTED,
            transaction_id=transaction_id,
            organization_id=organization_id,
            ledger_id=ledger_id,
            correlation_id=correlation_id,
            description=f"Extracted {fee_count} fee line(s) totalling {total_fees}",
            details={
                "total_fees": total_fees,
                "fee_count": fee_count,
                "has_valid_fees": has_valid_fees,
            },
        )

    @staticmethod
    def fees_filtered(
        rejected_accounts: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FEES_FILTERED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description=f"{len(rejected_accounts)} fee line(s) not attributable to participants",
            details={"rejected_accounts": rejected_accounts},
        )

    @staticmethod
    def fee_cache_invalidated(
        transaction_id: str,
        removed: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FEE_CACHE_INVALIDATED,
            severity=AuditSeverity.DEBUG,
            transaction_id=transaction_id,
            description=f"Invalidated {removed} cached fee state(s)",
            details={"removed": removed},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description=f"System error: {error_type}",
            details=details or {},
            error_code=error_type,
            error_message=error_message,
        )
