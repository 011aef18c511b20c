"""Shared API dependencies for authentication, rate limiting and the ledger."""

import secrets
from collections.abc import AsyncIterator
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from impact_cycle.core.errors import AuthorizationError
from impact_cycle.core.settings import settings
from impact_cycle.services.ledger import LedgerGateway, get_ledger_gateway
from impact_cycle.services.orchestrator import DailyCycleOrchestrator
from impact_cycle.services.rate_limit import RateLimiter, get_rate_limiter
from impact_cycle.services.session import decode_session_token

# Missing credentials are reported by the dependencies themselves (401, not 403).
bearer_scheme = HTTPBearer(auto_error=False)

BearerDep = Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)]


async def get_ledger() -> AsyncIterator[LedgerGateway]:
    """Yield a ledger gateway scoped to one request."""
    gateway = get_ledger_gateway()
    try:
        yield gateway
    finally:
        await gateway.close()


LedgerDep = Annotated[LedgerGateway, Depends(get_ledger)]


def get_orchestrator(ledger: LedgerDep) -> DailyCycleOrchestrator:
    return DailyCycleOrchestrator(ledger)


OrchestratorDep = Annotated[DailyCycleOrchestrator, Depends(get_orchestrator)]


def require_cron_secret(credentials: BearerDep) -> None:
    """Reject scheduler calls that do not present the configured secret.

    Raises:
        HTTPException: 500 when no secret is configured, 401 on mismatch.
    """
    if not settings.cron_secret:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="CRON_SECRET not configured",
        )
    if credentials is None or not secrets.compare_digest(
        credentials.credentials.encode(),
        settings.cron_secret.encode(),
    ):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )


def get_limiter() -> RateLimiter:
    return get_rate_limiter()


LimiterDep = Annotated[RateLimiter, Depends(get_limiter)]


def _client_identifier(request: Request) -> str:
    """Return the caller address used as the rate-limit key.

    X-Forwarded-For is only honoured when the socket peer is a configured
    trusted proxy. The header is read right to left and the first hop not
    belonging to a trusted proxy is the caller.
    """
    peer = request.client.host if request.client is not None else "anonymous"
    trusted = settings.trusted_proxies
    if peer not in trusted:
        return peer
    forwarded = request.headers.get("x-forwarded-for", "")
    hops = [hop.strip() for hop in forwarded.split(",") if hop.strip()]
    for hop in reversed(hops):
        if hop not in trusted:
            return hop
    return peer


def enforce_rate_limit(request: Request, limiter: LimiterDep) -> None:
    """Apply the per-caller request budget."""
    if not limiter.hit(_client_identifier(request)):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many requests",
        )


def get_session_address(credentials: BearerDep) -> str:
    """Return the address bound to the caller's session token.

    Raises:
        HTTPException: If the token is missing, invalid or expired.
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )
    try:
        return decode_session_token(credentials.credentials)
    except AuthorizationError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        ) from err


SessionAddressDep = Annotated[str, Depends(get_session_address)]
