"""Field validation for guild applications."""

from __future__ import annotations

import logging
from typing import Optional

from pydantic import AnyHttpUrl, TypeAdapter, ValidationError

from app.config import Settings
from app.models.errors import ValidationFailed
from app.pipeline.submission import Application

logger = logging.getLogger(__name__)

_http_url = TypeAdapter(AnyHttpUrl)

LINK_FIELDS = ("rio", "wcl")


def is_http_url(value: Optional[str]) -> bool:
    """True for an absolute http(s) URL with a host."""
    if not value:
        return False
    try:
        _http_url.validate_python(value)
    except ValidationError:
        return False
    return True


def validate_application(application: Application, settings: Settings) -> None:
    """Raise ValidationFailed listing every missing or malformed field."""
    missing: list[str] = []
    invalid: list[str] = []

    for name in ("character", "realm", "btag", "availability"):
        if not getattr(application, name):
            missing.append(name)

    for name in LINK_FIELDS:
        value = getattr(application, name)
        if not value:
            if settings.require_links:
                missing.append(name)
        elif not is_http_url(value):
            invalid.append(name)

    if settings.require_discord and not (application.discord or application.discord_id_guess):
        missing.append("discord")

    if application.consent is not True:
        missing.append("consent")

    if missing or invalid:
        logger.warning("Application rejected: missing=%s invalid=%s", missing, invalid)
        parts = []
        if missing:
            parts.append("missing required fields: " + ", ".join(missing))
        if invalid:
            parts.append("invalid URLs: " + ", ".join(invalid))
        raise ValidationFailed(
            "Validation failed (" + "; ".join(parts) + ")",
            details={"missing": missing, "invalid": invalid},
        )
