"""
Fee Engine HTTP Client

Calls the remote fee (pricing) engine over HTTP:

    POST {base_url}/organizations/{org}/ledgers/{ledger}/fees/calculate
    body: {"transaction": <canonical transaction>}

This service handles:
1. Request construction and the organization header
2. Retrying transport failures (connection errors, timeouts)
3. Choosing the calculation result variant at the boundary

DESIGN DECISION: A response the engine returns but that cannot be used
(non-2xx, an `{"error": ...}` body, a shape we do not recognise) is a
soft failure: it is logged and None is returned, so the console can
still submit the transaction without fee figures. Only a misconfigured
or unreachable engine raises.
"""

from typing import Any, Optional, Union

import httpx
import structlog
from pydantic import TypeAdapter, ValidationError
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from ledger_fees.config import get_settings
from ledger_fees.models.transaction import (
    CalculationResult,
    FeeEngineCalculation,
    FeeEngineTransaction,
    LedgerTransactionResult,
)
from ledger_fees.services.fee_engine.interface import (
    FeeEngineConfigurationError,
    FeeEngineInterface,
    FeeEngineUnavailableError,
)


logger = structlog.get_logger(__name__)

ORGANIZATION_HEADER = "X-Organization-Id"

_result_adapter = TypeAdapter(CalculationResult)


def parse_calculation_response(
    payload: Any,
) -> Optional[Union[FeeEngineCalculation, LedgerTransactionResult]]:
    """
    Turn a decoded response body into a calculation result.

    A body carrying `transaction` is a fee engine calculation; one carrying
    flat `source`/`destination` lists is a console-native transaction. An
    explicit `kind` wins over both. Anything else yields None.
    """
    if not isinstance(payload, dict):
        logger.warning("fee_engine_unexpected_payload", payload_type=type(payload).__name__)
        return None

    if payload.get("error"):
        logger.warning("fee_engine_returned_error", error=payload["error"])
        return None

    if "kind" in payload:
        data = payload
    elif "transaction" in payload:
        data = {**payload, "kind": "fee_engine"}
    elif "source" in payload or "destination" in payload:
        data = {**payload, "kind": "ledger"}
    else:
        logger.warning("fee_engine_unrecognised_payload", keys=sorted(payload))
        return None

    try:
        return _result_adapter.validate_python(data)
    except ValidationError as e:
        logger.warning("fee_engine_malformed_payload", errors=e.error_count(), error=str(e))
        return None


class HttpFeeEngineClient(FeeEngineInterface):
    """
    Fee engine client over httpx.

    Args:
        base_url: Engine base URL; defaults to FEE_ENGINE_BASE_URL
        timeout_seconds: Per-request timeout
        max_retries: Attempts made on transport errors
        enabled: Whether fee calculation is enabled at all
        transport: httpx transport override (tests use httpx.MockTransport)
        wait: tenacity wait strategy between attempts
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        max_retries: Optional[int] = None,
        enabled: Optional[bool] = None,
        transport: Optional[httpx.BaseTransport] = None,
        wait: Optional[wait_base] = None,
    ):
        settings = get_settings().fee_engine
        self._base_url = (base_url or settings.base_url or "").rstrip("/") or None
        self._timeout = timeout_seconds if timeout_seconds is not None else settings.timeout_seconds
        self._max_retries = max_retries if max_retries is not None else settings.max_retries
        self._enabled = enabled if enabled is not None else settings.enabled
        self._transport = transport
        self._wait = wait or wait_exponential(multiplier=1, min=2, max=10)
        self._client: Optional[httpx.Client] = None

    def _get_client(self) -> httpx.Client:
        """Get or create the HTTP client."""
        if not self._enabled:
            raise FeeEngineConfigurationError("Fee calculation is disabled")
        if self._base_url is None:
            raise FeeEngineConfigurationError(
                "Fee engine base URL is not configured (FEE_ENGINE_BASE_URL)"
            )
        if self._client is None:
            self._client = httpx.Client(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> "HttpFeeEngineClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _post(self, path: str, body: dict, organization_id: str) -> httpx.Response:
        client = self._get_client()
        retrying = Retrying(
            stop=stop_after_attempt(self._max_retries),
            wait=self._wait,
            retry=retry_if_exception_type(httpx.TransportError),
            reraise=True,
        )
        return retrying(
            client.post,
            path,
            json=body,
            headers={ORGANIZATION_HEADER: organization_id},
        )

    def calculate(
        self,
        transaction: FeeEngineTransaction,
        organization_id: str,
        ledger_id: str,
    ) -> Optional[Union[FeeEngineCalculation, LedgerTransactionResult]]:
        path = f"/organizations/{organization_id}/ledgers/{ledger_id}/fees/calculate"

        try:
            response = self._post(path, {"transaction": transaction.to_wire()}, organization_id)
        except httpx.TransportError as e:
            logger.error(
                "fee_engine_unreachable",
                organization_id=organization_id,
                ledger_id=ledger_id,
                attempts=self._max_retries,
                error=str(e),
            )
            raise FeeEngineUnavailableError(
                f"Fee engine unreachable after {self._max_retries} attempts: {e}"
            ) from e

        if not response.is_success:
            logger.warning(
                "fee_engine_http_error",
                status_code=response.status_code,
                organization_id=organization_id,
                ledger_id=ledger_id,
            )
            return None

        try:
            payload = response.json()
        except ValueError as e:
            logger.warning("fee_engine_invalid_json", error=str(e))
            return None

        return parse_calculation_response(payload)
