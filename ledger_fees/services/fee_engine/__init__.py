"""Fee engine client."""

from ledger_fees.services.fee_engine.http_client import (
    HttpFeeEngineClient,
    parse_calculation_response,
)
from ledger_fees.services.fee_engine.interface import (
    FeeEngineConfigurationError,
    FeeEngineError,
    FeeEngineInterface,
    FeeEngineUnavailableError,
)

__all__ = [
    "FeeEngineConfigurationError",
    "FeeEngineError",
    "FeeEngineInterface",
    "FeeEngineUnavailableError",
    "HttpFeeEngineClient",
    "parse_calculation_response",
]
