"""
Audit Logger

DESIGN DECISION: Every netting rewrite and every fee calculation outcome
is logged. This provides:
1. Traceability of what the user authored vs. what was submitted
2. Debugging capability when fee figures look wrong
3. A record of fee lines that were rejected as foreign

The audit logger:
- Is synchronous; the fee core has no suspension points
- Gracefully handles sink failures (never breaks the calculation flow)
- Supports correlation IDs to trace related events
"""

from typing import Callable, Optional
from uuid import UUID, uuid4

import structlog

from ledger_fees.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from ledger_fees.models.fee import DeduplicationResult, FeeCalculationState


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


AuditSink = Callable[[AuditEvent], None]


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An optional sink supplied by the host application
    """

    def __init__(self, sink: Optional[AuditSink] = None):
        """
        Initialize audit logger.

        Args:
            sink: Callable receiving every event for persistence.
                  If None, only logs locally.
        """
        self._sink = sink
        self._logger = structlog.get_logger("ledger_fees.audit")

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Forwards to the sink if one is configured.

        Returns True if the sink accepted the event (or no sink is configured).
        """
        log_dict = event.to_log_dict()

        if event.severity == AuditSeverity.ERROR:
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._sink is not None:
            try:
                self._sink(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_sink_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def log_netting_applied(
        self,
        result: DeduplicationResult,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log the adjustments made by the netting engine."""
        event = AuditEventBuilder.netting_applied(
            adjustments=[
                adjustment.model_dump(mode="json") for adjustment in result.adjustments
            ],
            warnings=list(result.warnings),
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_netting_failed(
        self,
        error: Exception,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.netting_failed(
            error_code=type(error).__name__,
            error_message=str(error),
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_fee_calculation_requested(
        self,
        organization_id: str,
        ledger_id: str,
        asset: str,
        value: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.fee_calculation_requested(
            organization_id=organization_id,
            ledger_id=ledger_id,
            asset=asset,
            value=value,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_fee_calculation_failed(
        self,
        organization_id: str,
        ledger_id: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.fee_calculation_failed(
            organization_id=organization_id,
            ledger_id=ledger_id,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_fee_state_extracted(
        self,
        state: FeeCalculationState,
        transaction_id: Optional[str],
        organization_id: str,
        ledger_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.fee_state_extracted(
            transaction_id=transaction_id,
            organization_id=organization_id,
            ledger_id=ledger_id,
            total_fees=str(state.total_fees),
            fee_count=len(state.applied_fees),
            has_valid_fees=state.has_valid_fees,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_fees_filtered(
        self,
        rejected_accounts: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.fees_filtered(
            rejected_accounts=rejected_accounts,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_cache_invalidated(self, transaction_id: str, removed: int) -> None:
        event = AuditEventBuilder.fee_cache_invalidated(
            transaction_id=transaction_id,
            removed=removed,
        )
        self.log(event)

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., a transaction submission).
    """
    return uuid4()
