# src/impact_cycle/api/v1/endpoints/auth.py
"""Wallet session endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from impact_cycle.api.v1.dependencies import SessionAddressDep, enforce_rate_limit
from impact_cycle.schemas.session import SessionResponse, VerifyRequest, VerifyResponse
from impact_cycle.services.coordinates import sanitize_input
from impact_cycle.services.session import create_session_token, verify_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post(
    "/verify",
    summary="Verify a signed wallet assertion",
    response_model=VerifyResponse,
    dependencies=[Depends(enforce_rate_limit)],
)
async def verify(payload: VerifyRequest) -> VerifyResponse:
    """Check the signature and, when valid, issue a session token."""
    if not payload.address or not payload.message or not payload.signature:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing address, message, or signature",
        )

    try:
        verified = verify_session(
            sanitize_input(payload.address),
            payload.message,
            sanitize_input(payload.signature),
            expires_at=payload.expires_at,
            expected_domain=payload.expected_domain,
        )
    except (ValueError, TypeError) as err:
        logger.warning("Verification error: %s", err)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Failed to verify payload",
        ) from err

    if not verified:
        return VerifyResponse(ok=False)

    session = create_session_token(payload.address, expires_at=payload.expires_at)
    return VerifyResponse(ok=True, token=session.token, expires_at=session.expires_at)


@router.get(
    "/session",
    summary="Resolve the address behind a session token",
    response_model=SessionResponse,
)
async def current_session(address: SessionAddressDep) -> SessionResponse:
    return SessionResponse(address=address)
