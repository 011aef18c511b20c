"""Error taxonomy shared by the cycle services and the API layer."""

from __future__ import annotations


class ImpactCycleError(RuntimeError):
    """Base exception for all service-level failures."""


class ConfigurationError(ImpactCycleError):
    """Raised when a required credential or address is not configured.

    Fatal for the current invocation; retrying without fixing the
    environment cannot succeed.
    """


class AuthorizationError(ImpactCycleError):
    """Raised when a caller fails trigger or session authentication."""


class LedgerError(ImpactCycleError):
    """Raised when the ledger rejects a call or cannot be reached."""


class CycleActionError(ImpactCycleError):
    """A scheduled ledger action failed during an orchestrator invocation.

    Attributes:
        phase: Cycle phase active when the action was attempted.
        action: Ledger action name, or None when the failure happened
            before an action was chosen.
        submitted: True if a transaction reached the ledger before failing.
    """

    def __init__(
        self,
        message: str,
        *,
        phase: str,
        action: str | None = None,
        submitted: bool = False,
    ) -> None:
        super().__init__(message)
        self.phase = phase
        self.action = action
        self.submitted = submitted


class CoordinateValidationError(ValueError):
    """Raised when a coordinate or evaluator input is malformed."""


class SessionValidationError(ValueError):
    """Raised when a signed-session payload is structurally malformed."""
