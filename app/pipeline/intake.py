"""Intake Loop: runs one guild application through the full pipeline.

Flow:
1. Configuration gate (webhook URL + Turnstile secret must be set)
2. Honeypot → silently accept, no outbound calls
3. Turnstile token present? → verify with Cloudflare (bounded timeout)
4. Resolve submission shape (raw fields vs. prebuilt panel) and validate
5. Normalize the Discord handle, resolve it against the guild directory
6. Assemble the Discord message
   → debug mode → return the message instead of sending it
7. Deliver to the webhook

Every gate raises an ``IntakeError``; the router turns it into the response.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from app.config import Settings, get_settings
from app.models.errors import MissingVerificationToken, ServerMisconfigured
from app.models.request_models import ApplySubmission
from app.models.response_models import ApplyResponse
from app.pipeline.message_builder import build_message
from app.pipeline.submission import resolve_submission, to_application
from app.pipeline.validation import validate_application
from app.tools.contact_handle import format_contact, is_snowflake, parse_handle
from app.tools.member_directory_tool import MemberDirectory
from app.tools.notification_tool import DiscordWebhookNotifier
from app.tools.turnstile_tool import TurnstileVerifier

logger = logging.getLogger(__name__)


def honeypot_filled(value: Any) -> bool:
    """True when the hidden ``website`` field carries anything but whitespace."""
    return value is not None and bool(str(value).strip())


def ensure_configured(settings: Settings) -> None:
    """Fail closed when a required deployment secret is missing."""
    missing = settings.missing_secrets()
    if missing:
        logger.error("Server misconfigured, missing: %s", ", ".join(missing))
        raise ServerMisconfigured(
            "Server misconfigured",
            details={"missing": missing},
        )


def _create_tools(
    settings: Settings,
) -> tuple[TurnstileVerifier, Optional[MemberDirectory], DiscordWebhookNotifier]:
    """Instantiate tools with current settings."""
    verifier = TurnstileVerifier(
        secret=settings.turnstile_secret,
        verify_url=settings.turnstile_verify_url,
        timeout=settings.turnstile_timeout,
    )
    directory = None
    if settings.directory_enabled:
        directory = MemberDirectory(
            bot_token=settings.discord_bot_token,
            guild_id=settings.discord_guild_id,
            api_base=settings.discord_api_base,
        )
    notifier = DiscordWebhookNotifier(
        webhook_url=settings.discord_webhook_url,
        timeout=settings.webhook_timeout,
        error_body_limit=settings.error_body_limit,
    )
    return verifier, directory, notifier


async def process_application(
    submission: ApplySubmission,
    remote_ip: Optional[str] = None,
    debug: bool = False,
    settings: Optional[Settings] = None,
) -> ApplyResponse:
    """End-to-end pipeline: validated submission in, delivered message out."""
    settings = settings or get_settings()

    # ── 1. Configuration gate ─────────────────────────────────────────────
    ensure_configured(settings)
    verifier, directory, notifier = _create_tools(settings)

    # ── 2. Honeypot ───────────────────────────────────────────────────────
    if honeypot_filled(submission.website):
        logger.info("Honeypot field filled from %s, dropping submission", remote_ip or "unknown")
        return ApplyResponse(ok=True)

    # ── 3. Turnstile ──────────────────────────────────────────────────────
    if not submission.turnstile_token:
        logger.warning("Submission without Turnstile token from %s", remote_ip or "unknown")
        raise MissingVerificationToken("Missing verification token")
    await verifier.verify(submission.turnstile_token, remote_ip=remote_ip)

    # ── 4. Shape + validation ─────────────────────────────────────────────
    shape = resolve_submission(submission)
    application = to_application(shape)
    validate_application(application, settings)

    # ── 5. Contact handle ─────────────────────────────────────────────────
    handle = parse_handle(application.discord)
    resolved_id = None
    if directory is not None:
        resolved_id = await directory.resolve(handle)
    if resolved_id is None and is_snowflake(application.discord_id_guess):
        resolved_id = application.discord_id_guess.strip()
    contact = format_contact(handle, resolved_id)

    # ── 6. Assemble ───────────────────────────────────────────────────────
    message = build_message(shape, application, contact, settings)
    logger.info(
        "Application assembled: %s @ %s (%s panel)",
        application.character, application.realm, type(shape).__name__,
    )

    if debug or settings.apply_debug:
        logger.info("Debug mode: skipping Discord delivery")
        return ApplyResponse(ok=True, debug=True, details=message.to_payload())

    # ── 7. Deliver ────────────────────────────────────────────────────────
    await notifier.send(message)
    return ApplyResponse(ok=True)
