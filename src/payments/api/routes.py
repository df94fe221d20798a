"""FastAPI routes for the Payments domain."""

from fastapi import APIRouter, Depends, HTTPException

from config import get_settings
from identity.principal import Principal, require_admin
from payments.api.schemas import ConfigureGatewayRequest, GatewayConfigResponse
from payments.gateway import get_gateway
from payments.gateway.fake_adapter import FakeGateway

payment_router = APIRouter(prefix="/payments", tags=["payments"])


@payment_router.post("/gateway/configure", response_model=GatewayConfigResponse)
def configure_gateway(
    body: ConfigureGatewayRequest,
    _: Principal = Depends(require_admin),
) -> GatewayConfigResponse:
    """Configure the FakeGateway behavior (non-production only).

    Lets an operator make the gateway decline, hang or drop connections
    while exercising the checkout and capture flows by hand.
    """
    if get_settings().is_production:
        raise HTTPException(status_code=403, detail="Gateway configuration not available in production")

    gateway = get_gateway()
    if not isinstance(gateway, FakeGateway):
        raise HTTPException(status_code=400, detail="Gateway configuration only available for FakeGateway")

    gateway.configure(
        should_succeed=body.should_succeed,
        failure_reason=body.failure_reason,
        delay=body.delay,
        unavailable=body.unavailable,
    )
    return GatewayConfigResponse(
        gateway=type(gateway).__name__,
        should_succeed=gateway.should_succeed,
        failure_reason=gateway.failure_reason,
        delay=gateway.delay,
        unavailable=gateway.unavailable,
    )
