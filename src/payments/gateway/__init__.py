"""Process-wide payment gateway selection.

PAYMENT_GATEWAY picks the adapter (``fake`` or ``stripe``) the first time
one is needed; tests replace it with set_gateway().

Ordering code calls bounded_gateway(), which wraps the current adapter in
TimeoutGateway.
"""

from config import get_settings
from payments.gateway.fake_adapter import FakeGateway
from payments.gateway.port import PaymentGateway
from payments.gateway.timeout import TimeoutGateway

_current_gateway: PaymentGateway | None = None


def _build_gateway() -> PaymentGateway:
    settings = get_settings()
    if settings.payment_gateway == "fake":
        return FakeGateway()
    if settings.payment_gateway == "stripe":
        from payments.gateway.stripe_adapter import StripeGateway

        if not settings.stripe_api_key:
            raise ValueError("STRIPE_API_KEY must be set when PAYMENT_GATEWAY=stripe")
        return StripeGateway(api_key=settings.stripe_api_key)
    raise ValueError(f"Unknown payment gateway: {settings.payment_gateway}")


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway. Defaults to the configured adapter."""
    global _current_gateway
    if _current_gateway is None:
        _current_gateway = _build_gateway()
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Install ``gateway`` as the process-wide adapter."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    """Forget the installed adapter; the next lookup rebuilds it from settings."""
    global _current_gateway
    _current_gateway = None


def bounded_gateway() -> PaymentGateway:
    """Return the current gateway with the configured call timeout applied."""
    return TimeoutGateway(get_gateway(), timeout=get_settings().payment_gateway_timeout)
