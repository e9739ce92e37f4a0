"""Intake pipeline errors.

Every gate in the pipeline raises one of these. Each carries the HTTP status
and the stage label reported back to the caller, so the router can turn any
of them into the same JSON envelope.
"""

from __future__ import annotations

from typing import Any, Optional


class IntakeError(Exception):
    """Base class for a tagged, caller-visible pipeline failure."""

    status_code: int = 500
    stage: str = "server"

    def __init__(self, message: str, details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class MethodNotAllowed(IntakeError):
    status_code = 405
    stage = "method"


class Unauthorized(IntakeError):
    status_code = 401
    stage = "auth"


class ServerMisconfigured(IntakeError):
    """A required deployment secret is missing; nothing works until redeploy."""

    status_code = 500
    stage = "config"


class MissingVerificationToken(IntakeError):
    status_code = 400
    stage = "validation"


class VerificationNetworkError(IntakeError):
    """Turnstile could not be reached or answered garbage. Transient."""

    status_code = 502
    stage = "turnstile"


class VerificationRejected(IntakeError):
    """Turnstile said no. The token is spent; the caller needs a fresh one."""

    status_code = 400
    stage = "turnstile"


class ValidationFailed(IntakeError):
    status_code = 400
    stage = "validation"


class DeliveryFailed(IntakeError):
    """The Discord webhook refused the message or could not be reached."""

    status_code = 502
    stage = "discord"


class UnexpectedError(IntakeError):
    status_code = 500
    stage = "server"
