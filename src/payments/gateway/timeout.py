"""Bounded-time wrapper around any PaymentGateway.

Every gateway call runs on a worker thread and is awaited for at most
``timeout`` seconds. A timeout or any exception raised by the adapter is
reported as ``GatewayUnavailable``; it is never retried here and never
treated as success.
"""

from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from decimal import Decimal

import structlog

from payments.gateway.port import CaptureResult, IntentResult, PaymentGateway
from shared.errors import GatewayUnavailable

logger = structlog.get_logger(__name__)

_executor = ThreadPoolExecutor(max_workers=8, thread_name_prefix="payment-gateway")


class TimeoutGateway(PaymentGateway):
    def __init__(self, gateway: PaymentGateway, timeout: float) -> None:
        self.gateway = gateway
        self.timeout = timeout

    def _call(self, operation: str, fn, *args):
        future = _executor.submit(fn, *args)
        try:
            return future.result(timeout=self.timeout)
        except FutureTimeout:
            future.cancel()
            logger.warning("payment.gateway_timeout", operation=operation, timeout=self.timeout)
            raise GatewayUnavailable(f"{operation} timed out after {self.timeout}s") from None
        except Exception as exc:
            logger.warning("payment.gateway_error", operation=operation, error=str(exc), exc_info=True)
            raise GatewayUnavailable(f"{operation} failed: {exc}") from exc

    def create_intent(self, amount: Decimal, return_context: dict) -> IntentResult:
        return self._call("create_intent", self.gateway.create_intent, amount, return_context)

    def capture_intent(self, payment_reference: str, payer_reference: str) -> CaptureResult:
        return self._call("capture_intent", self.gateway.capture_intent, payment_reference, payer_reference)
