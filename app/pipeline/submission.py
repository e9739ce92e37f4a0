"""Submission shapes.

The website posts either bare form values (``RawFields``) or, from older
builds of the form script, a Discord message it already rendered itself
(``PrebuiltPanel``). The shape is decided once here; both variants are then
flattened into a single ``Application`` that the validation stage checks.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Union

from app.models.request_models import ApplySubmission
from app.models.response_models import Embed

# Embed field labels, in display order.
FIELD_BATTLETAG = "BattleTag"
FIELD_CLASS = "Class"
FIELD_ROLES = "Roles"
FIELD_AVAILABILITY = "Availability"
FIELD_RIO = "Raider.IO"
FIELD_WCL = "Warcraft Logs"
FIELD_DISCORD = "Discord"

PLACEHOLDER = "—"


@dataclass
class Application:
    """One guild application, alive for a single request."""

    character: Optional[str] = None
    realm: Optional[str] = None
    btag: Optional[str] = None
    classes: list[str] = field(default_factory=list)
    roles: list[str] = field(default_factory=list)
    rio: Optional[str] = None
    wcl: Optional[str] = None
    availability: Optional[str] = None
    notes: Optional[str] = None
    discord: Optional[str] = None
    discord_id_guess: Optional[str] = None
    consent: bool = False
    submitted_at: str = ""


@dataclass
class RawFields:
    submission: ApplySubmission


@dataclass
class PrebuiltPanel:
    submission: ApplySubmission
    embed: Embed


SubmissionShape = Union[RawFields, PrebuiltPanel]


def resolve_submission(submission: ApplySubmission) -> SubmissionShape:
    """Decide which shape the client sent."""
    if submission.embeds:
        return PrebuiltPanel(submission=submission, embed=submission.embeds[0].model_copy(deep=True))
    return RawFields(submission=submission)


def parse_timestamp(value: Union[int, float, str, None]) -> str:
    """Client timestamp as ISO-8601 UTC; falls back to now."""
    now = datetime.now(timezone.utc)
    if value is None:
        return now.isoformat()
    try:
        if isinstance(value, (int, float)):
            seconds = value / 1000 if value > 1e11 else value
            parsed = datetime.fromtimestamp(seconds, tz=timezone.utc)
        else:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
    except (ValueError, OverflowError, OSError):
        return now.isoformat()
    return parsed.astimezone(timezone.utc).isoformat()


def _panel_value(embed: Embed, *names: str) -> Optional[str]:
    for name in names:
        found = embed.get_field(name)
        if found is not None:
            value = found.value.strip()
            if value and value != PLACEHOLDER:
                return value
    return None


def _split_list(value: Optional[str]) -> list[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def to_application(shape: SubmissionShape) -> Application:
    """Flatten either shape into an Application.

    Body values always win. A prebuilt panel only fills in what the body
    left out, so a panel can never smuggle in values the body contradicts.
    """
    sub = shape.submission
    application = Application(
        character=sub.character,
        realm=sub.realm,
        btag=sub.btag,
        classes=list(sub.classes),
        roles=list(sub.roles),
        rio=sub.rio,
        wcl=sub.wcl,
        availability=sub.availability,
        notes=sub.notes,
        discord=sub.discord or sub.discord_username_guess,
        discord_id_guess=sub.discord_id_guess,
        consent=sub.consent,
        submitted_at=parse_timestamp(sub.meta.ts if sub.meta else None),
    )

    if isinstance(shape, PrebuiltPanel):
        embed = shape.embed
        if embed.title and " @ " in embed.title:
            character, realm = (part.strip() for part in embed.title.split(" @ ", 1))
            application.character = application.character or character or None
            application.realm = application.realm or realm or None
        application.btag = application.btag or _panel_value(embed, FIELD_BATTLETAG)
        application.availability = application.availability or _panel_value(embed, FIELD_AVAILABILITY)
        application.rio = application.rio or _panel_value(embed, FIELD_RIO)
        application.wcl = application.wcl or _panel_value(embed, FIELD_WCL)
        application.discord = application.discord or _panel_value(embed, FIELD_DISCORD)
        if not application.classes:
            application.classes = _split_list(_panel_value(embed, FIELD_CLASS, "Classes"))
        if not application.roles:
            application.roles = _split_list(_panel_value(embed, FIELD_ROLES, "Role"))
        if not application.notes and embed.description.strip() not in ("", PLACEHOLDER):
            application.notes = embed.description.strip()

    return application
