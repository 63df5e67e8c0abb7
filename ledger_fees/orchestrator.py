"""
Fee Calculation Orchestrator

This module ties together all the components and defines the
end-to-end flows for:
1. Submission (form -> canonical shape -> netting)
2. Fee preview (form -> request check -> fee engine -> classify -> cache)
3. Fee breakdown of a stored transaction (ledger result -> classify -> cache)

DESIGN DECISION: Fee figures are advisory. The orchestrator enforces that:
- A fee engine failure never blocks the transaction (None is returned)
- A request the fee engine would reject is not sent (None is returned)
- Netting failures are raised, since the transaction cannot be submitted
- Every step is audited
"""

from typing import Iterable, Optional
from uuid import UUID

import structlog

from ledger_fees.audit import AuditLogger, create_correlation_id
from ledger_fees.cache import FeeResultCache, cache_key
from ledger_fees.conversion import convert, resolve_shares
from ledger_fees.fees import FeeClassifier
from ledger_fees.models.fee import DeduplicationResult, FeeCalculationState
from ledger_fees.models.transaction import (
    AccountEntry,
    ConsoleTransaction,
    FeeEngineTransaction,
    LedgerTransactionResult,
)
from ledger_fees.netting import (
    NettingError,
    dedupe,
    needs_deduplication,
    overlapping_aliases,
)
from ledger_fees.services.fee_engine import (
    FeeEngineError,
    FeeEngineInterface,
    HttpFeeEngineClient,
)
from ledger_fees.validation import validate_calculation_request


logger = structlog.get_logger(__name__)


class FeeCalculationFlow:
    """
    Orchestrates fee calculation for the transaction pages.

    Flow:
    1. Convert -> canonical fee engine shape
    2. Check -> reject requests the fee engine would refuse
    3. Net -> collapse accounts present on both sides
    4. Calculate -> ask the fee engine
    5. Classify -> filter foreign fees, aggregate the fee state
    6. Cache -> keyed by transaction, organization and ledger

    Steps 2, 4 and 5 fail soft: the caller gets None and submits without
    fee figures.
    """

    def __init__(
        self,
        fee_engine: Optional[FeeEngineInterface] = None,
        cache: Optional[FeeResultCache] = None,
        classifier: Optional[FeeClassifier] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._fee_engine = fee_engine or HttpFeeEngineClient()
        self._cache = cache or FeeResultCache()
        self._classifier = classifier or FeeClassifier(audit_logger=audit_logger)
        self._audit_logger = audit_logger

    @property
    def cache(self) -> FeeResultCache:
        return self._cache

    def prepare_submission(
        self,
        source: Iterable[AccountEntry],
        destination: Iterable[AccountEntry],
        correlation_id: Optional[UUID] = None,
    ) -> DeduplicationResult:
        """
        Net accounts that appear on both sides, if any.

        Raises:
            NettingError: If netting leaves a side empty
        """
        source = list(source)
        destination = list(destination)

        if not needs_deduplication(source, destination):
            return DeduplicationResult(source=source, destination=destination)

        try:
            result = dedupe(source, destination)
        except NettingError as e:
            if self._audit_logger:
                self._audit_logger.log_netting_failed(e, correlation_id=correlation_id)
            raise

        if self._audit_logger:
            self._audit_logger.log_netting_applied(result, correlation_id=correlation_id)
        return result

    def build_submission(
        self,
        transaction: ConsoleTransaction,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[FeeEngineTransaction, list[str]]:
        """
        Canonical, netted transaction ready for the fee engine or the ledger.

        Returns:
            (transaction, netting warnings)

        Raises:
            InvalidTransactionShape: If the form has no (or both) payloads
            NettingError: If netting leaves a side empty
        """
        return self._net(convert(transaction), correlation_id)

    def _net(
        self,
        canonical: FeeEngineTransaction,
        correlation_id: Optional[UUID],
    ) -> tuple[FeeEngineTransaction, list[str]]:
        send = canonical.send
        overlapping = overlapping_aliases(canonical.source_entries, canonical.destination_entries)
        if not overlapping:
            return canonical, []

        # Overlapping shares become amounts first; netting needs fixed positions.
        netted = self.prepare_submission(
            resolve_shares(canonical.source_entries, send.value, send.asset, overlapping),
            resolve_shares(canonical.destination_entries, send.value, send.asset, overlapping),
            correlation_id=correlation_id,
        )

        send = send.model_copy(update={
            "source": send.source.model_copy(update={"from_": netted.source}),
            "distribute": send.distribute.model_copy(update={"to": netted.destination}),
        })
        return canonical.model_copy(update={"send": send}), list(netted.warnings)

    def calculate(
        self,
        transaction: ConsoleTransaction,
        organization_id: str,
        ledger_id: str,
        transaction_id: Optional[str] = None,
    ) -> Optional[FeeCalculationState]:
        """
        Fee preview for a console transaction.

        Cached when a transaction id is given.

        Returns:
            The fee state, or None if the request is invalid or the fee
            engine produced nothing usable

        Raises:
            InvalidTransactionShape: If the form has no (or both) payloads
            NettingError: If netting leaves a side empty
        """
        key = cache_key(transaction_id, organization_id, ledger_id) if transaction_id else None
        if key is not None:
            cached = self._cache.get(key)
            if cached is not None:
                logger.debug("fee_state_cache_hit", key=key)
                return cached

        correlation_id = create_correlation_id()
        canonical = convert(transaction)

        # Validated before netting, which lowers both side totals below send.value.
        request_check = validate_calculation_request(canonical)
        if not request_check.is_valid:
            logger.warning(
                "fee_calculation_request_invalid",
                organization_id=organization_id,
                ledger_id=ledger_id,
                errors=request_check.errors,
            )
            if self._audit_logger:
                self._audit_logger.log_fee_calculation_failed(
                    organization_id,
                    ledger_id,
                    "; ".join(request_check.errors),
                    correlation_id=correlation_id,
                )
            return None

        submission, netting_warnings = self._net(canonical, correlation_id)

        if self._audit_logger:
            self._audit_logger.log_fee_calculation_requested(
                organization_id=organization_id,
                ledger_id=ledger_id,
                asset=transaction.asset,
                value=transaction.value,
                correlation_id=correlation_id,
            )

        try:
            result = self._fee_engine.calculate(submission, organization_id, ledger_id)
        except FeeEngineError as e:
            logger.warning(
                "fee_calculation_unavailable",
                organization_id=organization_id,
                ledger_id=ledger_id,
                error=str(e),
            )
            if self._audit_logger:
                self._audit_logger.log_fee_calculation_failed(
                    organization_id, ledger_id, str(e), correlation_id=correlation_id
                )
            return None

        if result is None:
            if self._audit_logger:
                self._audit_logger.log_fee_calculation_failed(
                    organization_id,
                    ledger_id,
                    "Fee engine returned no usable result",
                    correlation_id=correlation_id,
                )
            return None

        state = self._extract(result, transaction, correlation_id)
        if state is None:
            return None

        if netting_warnings:
            state = state.model_copy(update={"warnings": [*netting_warnings, *state.warnings]})

        return self._finish(state, key, transaction_id, organization_id, ledger_id, correlation_id)

    def describe_transaction(
        self,
        transaction: LedgerTransactionResult,
        transaction_id: str,
        organization_id: str,
        ledger_id: str,
    ) -> Optional[FeeCalculationState]:
        """Fee breakdown of a transaction already stored in the ledger."""
        key = cache_key(transaction_id, organization_id, ledger_id)
        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("fee_state_cache_hit", key=key)
            return cached

        correlation_id = create_correlation_id()
        state = self._extract(transaction, None, correlation_id)
        if state is None:
            return None
        return self._finish(state, key, transaction_id, organization_id, ledger_id, correlation_id)

    def invalidate(self, transaction_id: str) -> int:
        """Forget every cached fee state of a transaction."""
        removed = self._cache.invalidate(transaction_id)
        if self._audit_logger:
            self._audit_logger.log_cache_invalidated(transaction_id, removed)
        return removed

    def _extract(
        self,
        result,
        form_values: Optional[ConsoleTransaction],
        correlation_id: UUID,
    ) -> Optional[FeeCalculationState]:
        try:
            return self._classifier.extract(result, form_values)
        except Exception as e:
            # Fee figures are advisory; a result we cannot interpret is not fatal
            logger.warning("fee_state_extraction_failed", error=str(e), exc_info=True)
            if self._audit_logger:
                self._audit_logger.log_error(
                    error_type=type(e).__name__,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            return None

    def _finish(
        self,
        state: FeeCalculationState,
        key: Optional[str],
        transaction_id: Optional[str],
        organization_id: str,
        ledger_id: str,
        correlation_id: UUID,
    ) -> FeeCalculationState:
        if self._audit_logger:
            self._audit_logger.log_fee_state_extracted(
                state,
                transaction_id=transaction_id,
                organization_id=organization_id,
                ledger_id=ledger_id,
                correlation_id=correlation_id,
            )
        if key is not None:
            self._cache.set(key, state)
        return state
