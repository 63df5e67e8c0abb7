"""
Abstract Fee Engine Interface

DESIGN DECISION: The orchestrator talks to the fee engine through this
interface. This allows us to:
1. Use the HTTP client in production
2. Use an in-memory fake in tests
3. Point at a different pricing service without touching fee logic
"""

from abc import ABC, abstractmethod
from typing import Optional, Union

from ledger_fees.models.transaction import (
    FeeEngineCalculation,
    FeeEngineTransaction,
    LedgerTransactionResult,
)


class FeeEngineInterface(ABC):
    """Computes the fees applicable to a transaction."""

    @abstractmethod
    def calculate(
        self,
        transaction: FeeEngineTransaction,
        organization_id: str,
        ledger_id: str,
    ) -> Optional[Union[FeeEngineCalculation, LedgerTransactionResult]]:
        """
        Ask the fee engine to apply fees to a transaction.

        Args:
            transaction: Canonical transaction, after netting
            organization_id: Organization the ledger belongs to
            ledger_id: Ledger the transaction will be posted to

        Returns:
            The calculation result, or None when the engine answered
            but produced nothing usable

        Raises:
            FeeEngineConfigurationError: If the engine is disabled or not configured
            FeeEngineUnavailableError: If the engine cannot be reached
        """
        pass


class FeeEngineError(Exception):
    """Base exception for fee engine errors."""
    pass


class FeeEngineConfigurationError(FeeEngineError):
    """Fee engine is disabled or has no base URL."""
    pass


class FeeEngineUnavailableError(FeeEngineError):
    """Fee engine could not be reached after retrying."""
    pass
