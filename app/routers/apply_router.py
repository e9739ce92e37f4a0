"""Apply router: /api endpoints for guild application intake."""

from __future__ import annotations

import hmac
import json
import logging
from typing import Any, Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from app.config import get_settings
from app.models.errors import (
    IntakeError,
    MethodNotAllowed,
    Unauthorized,
    UnexpectedError,
    ValidationFailed,
)
from app.models.request_models import ApplySubmission
from app.models.response_models import ApplyResponse, HealthResponse
from app.pipeline.intake import ensure_configured, honeypot_filled, process_application

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["apply"])

DEBUG_VALUES = {"1", "true", "yes", "on"}


def _error_response(exc: IntakeError) -> JSONResponse:
    body = ApplyResponse(ok=False, error=exc.message, stage=exc.stage, details=exc.details)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump(exclude_none=True))


def client_ip(request: Request) -> Optional[str]:
    """Best guess at the applicant's IP behind Cloudflare / the platform proxy."""
    headers = request.headers
    if headers.get("cf-connecting-ip"):
        return headers["cf-connecting-ip"].strip()
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if headers.get("x-real-ip"):
        return headers["x-real-ip"].strip()
    return request.client.host if request.client else None


async def _read_body(request: Request) -> dict[str, Any]:
    raw = await request.body()
    try:
        data: Any = json.loads(raw or b"{}")
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ValidationFailed("Invalid JSON body") from exc
    if not isinstance(data, dict):
        raise ValidationFailed("Request body must be a JSON object")
    return data


def _parse_submission(data: dict[str, Any]) -> ApplySubmission:
    try:
        return ApplySubmission.model_validate(data)
    except ValidationError as exc:
        errors = [
            {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
            for err in exc.errors()
        ]
        raise ValidationFailed("Malformed submission", details={"errors": errors}) from exc


def _check_shared_secret(request: Request, expected: str) -> None:
    if not expected:
        return
    supplied = request.headers.get("x-apply-secret", "")
    if not hmac.compare_digest(supplied.encode(), expected.encode()):
        logger.warning("Rejected submission with bad x-apply-secret")
        raise Unauthorized("Unauthorized")


# ── Endpoints ─────────────────────────────────────────────────────────────────


@router.post("/apply", response_model=ApplyResponse, response_model_exclude_none=True)
async def submit_application(request: Request):
    """Receive a guild application, verify it and forward it to Discord."""
    settings = get_settings()
    debug = request.query_params.get("debug", "").lower() in DEBUG_VALUES
    try:
        ensure_configured(settings)
        data = await _read_body(request)
        _check_shared_secret(request, settings.apply_shared_secret)

        # Honeypot runs on the raw body, ahead of any type checks.
        if honeypot_filled(data.get("website")):
            logger.info("Honeypot field filled from %s, dropping submission", client_ip(request) or "unknown")
            return ApplyResponse(ok=True)

        submission = _parse_submission(data)
        return await process_application(
            submission,
            remote_ip=client_ip(request),
            debug=debug,
            settings=settings,
        )
    except IntakeError as exc:
        return _error_response(exc)
    except Exception:
        logger.exception("Intake pipeline failed")
        return _error_response(UnexpectedError("Unexpected server error"))


@router.api_route("/apply", methods=["GET", "PUT", "PATCH", "DELETE"], include_in_schema=False)
async def apply_wrong_method(request: Request) -> JSONResponse:
    logger.info("Rejected %s /api/apply", request.method)
    response = _error_response(MethodNotAllowed("Method Not Allowed"))
    response.headers["Allow"] = "POST"
    return response


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Simple liveness probe."""
    return HealthResponse()
