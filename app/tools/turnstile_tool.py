"""Cloudflare Turnstile verification.

Redeems a widget token server-side. Tokens are single use, so a verification
is never retried here; the caller resubmits with a fresh token instead.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field

from app.models.errors import VerificationNetworkError, VerificationRejected

logger = logging.getLogger(__name__)


class TurnstileResult(BaseModel):
    """Subset of the siteverify answer we care about."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    success: bool = False
    error_codes: list[str] = Field(default_factory=list, alias="error-codes")
    hostname: Optional[str] = None


class TurnstileVerifier:
    """Thin async client for the siteverify endpoint."""

    def __init__(self, secret: str, verify_url: str, timeout: float = 6.0) -> None:
        self.secret = secret
        self.verify_url = verify_url
        self.timeout = timeout

    async def verify(self, token: str, remote_ip: Optional[str] = None) -> TurnstileResult:
        """Verify a token; raise unless Turnstile confirms it.

        Raises
        ------
        VerificationNetworkError : timeout, connection failure, non-JSON answer
        VerificationRejected     : Turnstile answered ``success: false``
        """
        form = {"secret": self.secret, "response": token}
        if remote_ip:
            form["remoteip"] = remote_ip

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(self.verify_url, data=form)
            result = TurnstileResult.model_validate(resp.json())
        except httpx.TimeoutException as exc:
            logger.error("Turnstile verification timed out after %.1fs", self.timeout)
            raise VerificationNetworkError(
                "Verification service timed out",
                details={"error": "timeout", "message": str(exc) or type(exc).__name__},
            ) from exc
        except httpx.HTTPError as exc:
            logger.error("Turnstile request failed: %s", exc)
            raise VerificationNetworkError(
                "Verification service unreachable",
                details={"error": "network", "message": str(exc) or type(exc).__name__},
            ) from exc
        except ValueError as exc:
            logger.error("Turnstile returned an unreadable response (HTTP %s)", resp.status_code)
            raise VerificationNetworkError(
                "Verification service returned an invalid response",
                details={"error": "invalid_response", "status": resp.status_code},
            ) from exc

        if not result.success:
            logger.warning("Turnstile rejected token: %s", result.error_codes)
            raise VerificationRejected(
                "Verification failed",
                details={"error-codes": result.error_codes},
            )

        logger.info("Turnstile verification passed (hostname=%s)", result.hostname)
        return result
