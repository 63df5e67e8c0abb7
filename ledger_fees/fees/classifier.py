"""
Fee Classifier & Aggregator

Turns a calculation result into a FeeCalculationState: which operations
are fees, how much they add up to, and what the sender pays and the
recipient receives.

Two input shapes, two total functions:
- FeeEngineCalculation: the fee engine's nested `transaction.send` shape
- LedgerTransactionResult: a stored transaction's flat operation lists

Deductible fees are taken out of what the recipient receives;
non-deductible fees are charged to the sender on top of the transfer:

    sender pays        = original amount + non-deductible fees
    recipient receives = original amount - deductible fees

Inputs are never mutated.
"""

from decimal import Decimal
from typing import Optional, Union

import structlog

from ledger_fees.audit import AuditLogger
from ledger_fees.config import get_settings
from ledger_fees.fees.filter import FeeValidationService, get_transaction_accounts
from ledger_fees.fees.strategies import (
    FeeClassificationStrategy,
    default_strategy,
    normalize_alias,
)
from ledger_fees.models.fee import AppliedFee, FeeCalculationState
from ledger_fees.models.transaction import (
    AccountEntry,
    CalculatedTransaction,
    ConsoleTransaction,
    FeeEngineCalculation,
    FeeRule,
    LedgerTransactionResult,
)
from ledger_fees.validation import FeeRuntimeValidator


logger = structlog.get_logger(__name__)

ZERO = Decimal("0")


def _participants_from_form(form: ConsoleTransaction) -> list[str]:
    if form.simple is not None:
        return [form.simple.from_account, form.simple.to_account]
    if form.complex is not None:
        return get_transaction_accounts(form.complex.source, form.complex.destination)
    return []


def _find_rule(rules: list[FeeRule], alias: str) -> Optional[FeeRule]:
    target = normalize_alias(alias)
    for rule in rules:
        if rule.credit_account and normalize_alias(rule.credit_account) == target:
            return rule
    return None


class FeeClassifier:
    """
    Extracts fee state from calculation results.

    Args:
        strategy: Decides which operations are fee lines
        fee_filter: Rejects fee lines not attributable to participants.
                    Only applied to fee engine results.
        filter_foreign_fees: Whether to apply `fee_filter` at all;
                    defaults to the configured value.
        audit_logger: Receives an event for every batch of rejected fee lines.
        runtime_validator: Checks fee engine states against their package rules;
                    its findings are appended to the state's warnings.
    """

    def __init__(
        self,
        strategy: Optional[FeeClassificationStrategy] = None,
        fee_filter: Optional[FeeValidationService] = None,
        filter_foreign_fees: Optional[bool] = None,
        audit_logger: Optional[AuditLogger] = None,
        runtime_validator: Optional[FeeRuntimeValidator] = None,
    ):
        settings = get_settings().validation
        self._audit = audit_logger
        self._strategy = strategy or default_strategy()
        self._fee_filter = fee_filter or FeeValidationService()
        self._filter_foreign_fees = (
            settings.filter_foreign_fees if filter_foreign_fees is None else filter_foreign_fees
        )
        self._tolerance = settings.tolerance
        self._runtime_validator = runtime_validator or FeeRuntimeValidator(self._tolerance)

    def extract(
        self,
        result: Union[FeeEngineCalculation, LedgerTransactionResult],
        original_form_values: Optional[ConsoleTransaction] = None,
    ) -> FeeCalculationState:
        if isinstance(result, FeeEngineCalculation):
            return self.extract_from_fee_engine(result, original_form_values)
        if isinstance(result, LedgerTransactionResult):
            return self.extract_from_ledger_transaction(result)
        raise TypeError(f"Unsupported calculation result: {type(result).__name__}")

    # -------------------------------------------------------------------------
    # Fee engine shape
    # -------------------------------------------------------------------------

    def _looks_like_fee(self, entry: AccountEntry, asset: str) -> bool:
        if entry.fee_source:
            return True
        if entry.asset is not None and entry.asset != asset:
            return True
        return self._strategy.classify(entry).is_fee

    def _original_destinations(
        self,
        transaction: CalculatedTransaction,
        warnings: list[str],
    ) -> list[int]:
        """
        Indices of the destination entries that carry the pre-fee transfer.

        One clean candidate (transaction asset, credit, not fee-tagged) is
        the normal case. Several clean candidates are an N:M split and are
        all treated as original. Without any, the largest destination is
        used; the caller falls back to the source total when that is absent.

        NOTE: a genuine fee line that carries no `metadata.source` tag and
        no fee-like alias is indistinguishable from a recipient here. It is
        counted as part of the original transfer, so the fee total is
        understated and the fee does not appear in `applied_fees`.
        """
        asset = transaction.send.asset
        destinations = transaction.destination_entries

        candidates = [
            i for i, entry in enumerate(destinations)
            if entry.amount is not None
            and entry.amount.asset == asset
            and entry.amount.is_credit
            and not entry.fee_source
            and not self._strategy.classify(entry).is_fee
        ]
        if len(candidates) > 1:
            warnings.append(
                f"{len(candidates)} destination operations qualify as the original "
                "transfer; their sum is used as the pre-fee amount"
            )
        if candidates:
            return candidates

        with_amounts = [
            i for i, entry in enumerate(destinations)
            if entry.amount is not None or entry.value is not None
        ]
        if not with_amounts:
            return []

        largest = max(with_amounts, key=lambda i: destinations[i].decimal_amount)
        warnings.append(
            "No unambiguous original destination; using the largest destination "
            f"({destinations[largest].account_alias}) as the pre-fee amount"
        )
        return [largest]

    def _is_deductible(
        self,
        entry: AccountEntry,
        rule: Optional[FeeRule],
        transaction: CalculatedTransaction,
    ) -> bool:
        if rule is not None:
            return rule.is_deductible_from
        if "isDeductibleFrom" in entry.metadata:
            return bool(entry.metadata["isDeductibleFrom"])
        return bool(transaction.is_deductible_from)

    def extract_from_fee_engine(
        self,
        calculation: FeeEngineCalculation,
        form_values: Optional[ConsoleTransaction] = None,
    ) -> FeeCalculationState:
        transaction = calculation.transaction
        send = transaction.send
        sources = transaction.source_entries
        destinations = transaction.destination_entries
        currency = send.asset or (form_values.asset if form_values else "")
        form_amount = form_values.decimal_value if form_values is not None else None

        if not sources or not destinations:
            return FeeCalculationState.without_fees(
                currency,
                form_amount if form_amount is not None else send.decimal_value,
                warnings=["Fee calculation returned no source or destination operations"],
            )

        warnings: list[str] = []
        enhanced_total = send.decimal_value

        original_indices = self._original_destinations(transaction, warnings)
        if original_indices:
            base_amount = sum(
                (destinations[i].decimal_amount for i in original_indices), ZERO
            )
        else:
            base_amount = sum((entry.decimal_amount for entry in sources), ZERO)

        fee_entries = [
            entry for i, entry in enumerate(destinations)
            if i not in original_indices and self._looks_like_fee(entry, send.asset)
        ]

        total_fees = enhanced_total - base_amount

        if fee_entries and self._filter_foreign_fees:
            if form_values is not None:
                participants = _participants_from_form(form_values)
            else:
                participants = get_transaction_accounts(sources, destinations)
            accepted = self._fee_filter.filter_valid_fee_operations(fee_entries, participants)
            if len(accepted) < len(fee_entries):
                accepted_ids = {id(entry) for entry in accepted}
                rejected = [
                    entry.account_alias for entry in fee_entries
                    if id(entry) not in accepted_ids
                ]
                warnings.append(
                    f"{len(rejected)} fee operation(s) not attributable to the "
                    f"transaction were ignored: {', '.join(rejected)}"
                )
                logger.warning("foreign_fees_filtered", rejected=rejected)
                if self._audit is not None:
                    self._audit.log_fees_filtered(rejected)
                fee_entries = accepted
                total_fees = sum((entry.decimal_amount for entry in accepted), ZERO)

        applied_fees = []
        for position, entry in enumerate(fee_entries, start=1):
            rule = _find_rule(transaction.fee_rules, entry.account_alias)
            applied_fees.append(AppliedFee(
                fee_id=rule.fee_id if rule else f"fee-{position}",
                fee_label=entry.description or (rule.fee_label if rule else None) or "Fee",
                calculated_amount=entry.decimal_amount,
                credit_account=entry.account_alias,
                is_deductible_from=self._is_deductible(entry, rule, transaction),
                priority=rule.priority if rule else position,
            ))

        is_simple_transfer = len(sources) == 1 and len(original_indices) == 1
        if not applied_fees or (is_simple_transfer and total_fees == 0):
            return FeeCalculationState.without_fees(
                currency,
                form_amount if form_amount is not None else base_amount,
                warnings=warnings,
            ).model_copy(update={
                "package_id": transaction.package_applied_id,
                "package_label": transaction.package_label,
            })

        deductible = sum(
            (f.calculated_amount for f in applied_fees if f.is_deductible_from), ZERO
        )
        non_deductible = sum(
            (f.calculated_amount for f in applied_fees if not f.is_deductible_from), ZERO
        )

        if abs((deductible + non_deductible) - total_fees) > self._tolerance:
            warnings.append(
                f"Fee operations ({deductible + non_deductible}) do not account for "
                f"the total fee charged ({total_fees})"
            )

        original_amount = form_amount if form_amount is not None else base_amount + deductible

        state = FeeCalculationState(
            original_currency=currency,
            original_amount=original_amount,
            total_fees=total_fees,
            deductible_fees=deductible,
            non_deductible_fees=non_deductible,
            applied_fees=applied_fees,
            sender_pays_amount=original_amount + non_deductible,
            recipient_receives_amount=original_amount - deductible,
            has_valid_fees=True,
            warnings=warnings,
            package_id=transaction.package_applied_id,
            package_label=transaction.package_label,
        )

        if not transaction.fee_rules:
            return state

        check = self._runtime_validator.validate(state, transaction.fee_rules)
        if not check.issues:
            return state
        logger.warning(
            "fee_package_rules_violated",
            package_id=transaction.package_applied_id,
            errors=check.errors,
            warnings=check.warnings,
        )
        return state.model_copy(update={
            "warnings": [*state.warnings, *(issue.message for issue in check.issues)],
        })

    # -------------------------------------------------------------------------
    # Ledger (console-native) shape
    # -------------------------------------------------------------------------

    def extract_from_ledger_transaction(
        self,
        transaction: LedgerTransactionResult,
    ) -> FeeCalculationState:
        sources = transaction.source
        destinations = transaction.destination
        currency = transaction.asset or next(
            (op.asset for op in [*sources, *destinations] if op.asset), ""
        )

        if not sources or not destinations:
            return FeeCalculationState.without_fees(
                currency,
                transaction.amount or ZERO,
                warnings=["Transaction has no source or destination operations"],
            )

        source_total = sum((op.amount for op in sources), ZERO)
        destination_total = sum((op.amount for op in destinations), ZERO)

        fee_ops = []
        recipient_ops = []
        for op in destinations:
            if self._strategy.classify(op).is_fee:
                fee_ops.append(op)
            else:
                recipient_ops.append(op)

        fee_sum = sum((op.amount for op in fee_ops), ZERO)
        total_fees = destination_total - source_total
        if total_fees <= 0:
            total_fees = fee_sum

        if not fee_ops or total_fees <= 0:
            return FeeCalculationState.without_fees(
                currency, transaction.amount or source_total
            )

        applied_fees = [
            AppliedFee(
                fee_id=str(op.metadata.get("feeId") or f"fee-{position}"),
                fee_label=op.description or f"Fee collected by {op.account_alias}",
                calculated_amount=op.amount,
                credit_account=op.account_alias,
                is_deductible_from=bool(op.metadata.get("isDeductibleFrom", False)),
                priority=position,
            )
            for position, op in enumerate(fee_ops, start=1)
        ]

        deductible = sum(
            (f.calculated_amount for f in applied_fees if f.is_deductible_from), ZERO
        )
        non_deductible = sum(
            (f.calculated_amount for f in applied_fees if not f.is_deductible_from), ZERO
        )
        original_amount = sum((op.amount for op in recipient_ops), ZERO) + deductible

        return FeeCalculationState(
            original_currency=currency,
            original_amount=original_amount,
            total_fees=total_fees,
            deductible_fees=deductible,
            non_deductible_fees=non_deductible,
            applied_fees=applied_fees,
            sender_pays_amount=original_amount + non_deductible,
            recipient_receives_amount=original_amount - deductible,
            has_valid_fees=True,
        )


def extract_fee_state(
    result: Union[FeeEngineCalculation, LedgerTransactionResult, None],
    original_form_values: Optional[ConsoleTransaction] = None,
    classifier: Optional[FeeClassifier] = None,
) -> Optional[FeeCalculationState]:
    """
    Fee state for a calculation result, or None when there is no result.

    A missing result is the soft "no fee data" outcome, not an error.
    """
    if result is None:
        return None
    return (classifier or FeeClassifier()).extract(result, original_form_values)
