"""Stateless wallet-signature session verification."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from impact_cycle.core.errors import AuthorizationError, SessionValidationError
from impact_cycle.core.security import verify_signature
from impact_cycle.core.settings import settings


@dataclass(frozen=True)
class SessionToken:
    token: str
    address: str
    expires_at: datetime


def _require_text(name: str, value: object) -> str:
    if not isinstance(value, str) or not value:
        raise SessionValidationError(f"{name} must be a non-empty string")
    return value


def _as_aware(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment


def verify_session(
    address: str,
    message: str,
    signature: str,
    expires_at: datetime | None = None,
    expected_domain: str | None = None,
    *,
    now: datetime | None = None,
) -> bool:
    """Verify a signed sign-in assertion.

    Checks run in order and stop at the first failure: expiry, signature
    recovery, then domain binding.

    Args:
        address: Address the client claims to control.
        message: Exact message text the wallet signed.
        signature: Hex-encoded personal-message signature.
        expires_at: Optional expiry; naive values are treated as UTC.
        expected_domain: Optional string the signed message must contain.
        now: Evaluation instant, defaults to the current UTC time.

    Returns:
        True if every check passes; False for any invalid assertion.

    Raises:
        SessionValidationError: If a required field is missing or not a string.
    """
    address = _require_text("address", address)
    message = _require_text("message", message)
    signature = _require_text("signature", signature)
    if expected_domain is not None and not isinstance(expected_domain, str):
        raise SessionValidationError("expected_domain must be a string")

    current = _as_aware(now) if now is not None else datetime.now(UTC)
    if expires_at is not None and current > _as_aware(expires_at):
        return False

    if not verify_signature(address, message, signature):
        return False

    if expected_domain and expected_domain not in message:
        return False

    return True


def create_session_token(
    address: str,
    *,
    expires_at: datetime | None = None,
    now: datetime | None = None,
) -> SessionToken:
    """Mint a session JWT for a verified address.

    The token lifetime is the configured session TTL, shortened to the
    client-supplied expiry when that comes first.
    """
    issued = _as_aware(now) if now is not None else datetime.now(UTC)
    expiry = issued + timedelta(minutes=settings.session_ttl_minutes)
    if expires_at is not None:
        expiry = min(expiry, _as_aware(expires_at))
    claims: dict[str, object] = {
        "sub": address.lower(),
        "iat": int(issued.timestamp()),
        "exp": int(expiry.timestamp()),
    }
    token: str = jwt.encode(claims, settings.secret_key, algorithm=settings.jwt_algorithm)
    return SessionToken(token=token, address=address.lower(), expires_at=expiry)


def decode_session_token(token: str) -> str:
    """Return the address bound to a session token.

    Raises:
        AuthorizationError: If the token is invalid or expired.
    """
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as err:
        raise AuthorizationError("Invalid session token") from err
    subject = payload.get("sub")
    if not isinstance(subject, str):
        raise AuthorizationError("Invalid session token")
    return subject
