"""
Pydantic models for the call-control HTTP endpoints.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class OutboundCallRequest(BaseModel):
    """Body of POST /outbound-call."""

    model_config = ConfigDict(populate_by_name=True)

    to: str = Field(..., description="Destination phone number")
    from_: str = Field(..., alias="from", description="Caller ID phone number")
    accountSid: str = Field(..., description="Provider account identifier")
    authToken: str = Field(..., description="Provider auth token")

    @field_validator("to", "from_", "accountSid", "authToken")
    def validate_not_blank(cls, v):
        if not v.strip():
            raise ValueError("Field cannot be empty")
        return v.strip()


class ErrorResponse(BaseModel):
    """Error payload returned when the provider rejects a call."""

    error: str
    status: Optional[int] = Field(None, description="Upstream HTTP status, when known")
