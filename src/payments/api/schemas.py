"""Pydantic request/response schemas for the Payments API."""

from pydantic import BaseModel, ConfigDict, Field


class ConfigureGatewayRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    should_succeed: bool = True
    failure_reason: str = "Payment declined"
    delay: float = Field(default=0.0, ge=0, le=60)
    unavailable: bool = False


class GatewayConfigResponse(BaseModel):
    gateway: str
    should_succeed: bool
    failure_reason: str
    delay: float
    unavailable: bool
