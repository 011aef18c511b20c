"""Session verification Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class VerifyRequest(BaseModel):
    """Signed sign-in assertion submitted by a wallet client.

    Required fields are declared optional so the endpoint can answer a
    missing field with a plain 400 instead of a validation error body.
    """

    address: str | None = Field(None, description="0x-prefixed wallet address")
    message: str | None = Field(None, description="Exact message the wallet signed")
    signature: str | None = Field(None, description="Hex-encoded personal-message signature")
    expected_domain: str | None = Field(
        None,
        alias="expectedDomain",
        description="Domain the signed message must mention",
    )
    expires_at: datetime | None = Field(
        None,
        alias="expiresAt",
        description="Assertion expiry (ISO 8601 or unix seconds)",
    )

    model_config = ConfigDict(populate_by_name=True)


class VerifyResponse(BaseModel):
    """Verification outcome, with a session token when verification succeeded."""

    ok: bool = Field(..., description="True if the assertion verified")
    token: str | None = Field(None, description="Session bearer token")
    expires_at: datetime | None = Field(None, description="Session token expiry")


class SessionResponse(BaseModel):
    address: str = Field(..., description="Lower-cased address bound to the session")
