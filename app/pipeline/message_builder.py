"""Builds the Discord message for a validated application."""

from __future__ import annotations

from typing import Optional

from app.config import Settings
from app.models.response_models import (
    AllowedMentions,
    Embed,
    EmbedField,
    EmbedFooter,
    WebhookMessage,
)
from app.pipeline.submission import (
    FIELD_AVAILABILITY,
    FIELD_BATTLETAG,
    FIELD_CLASS,
    FIELD_DISCORD,
    FIELD_RIO,
    FIELD_ROLES,
    FIELD_WCL,
    PLACEHOLDER,
    Application,
    PrebuiltPanel,
    SubmissionShape,
)
from app.tools.notification_tool import truncate

# Discord message / embed limits
MESSAGE_CONTENT_MAX = 2000
TITLE_MAX = 256
DESCRIPTION_MAX = 4096
FIELD_NAME_MAX = 256
FIELD_VALUE_MAX = 1024
FOOTER_MAX = 2048
EMBED_TOTAL_MAX = 6000
MAX_FIELDS = 25


def headline(application: Application) -> str:
    return f"**New Guild Application** | {application.character} @ {application.realm}"


def _title(application: Application) -> str:
    return truncate(f"{application.character} @ {application.realm}", TITLE_MAX)


def _mandatory_fields(application: Application, contact: str) -> list[EmbedField]:
    """Fields the handler always derives itself, whatever the client sent."""
    fields = [
        EmbedField(name=FIELD_BATTLETAG, value=application.btag or PLACEHOLDER, inline=True),
        EmbedField(name=FIELD_AVAILABILITY, value=application.availability or PLACEHOLDER),
    ]
    if application.rio:
        fields.append(EmbedField(name=FIELD_RIO, value=application.rio))
    if application.wcl:
        fields.append(EmbedField(name=FIELD_WCL, value=application.wcl))
    fields.append(EmbedField(name=FIELD_DISCORD, value=contact or PLACEHOLDER, inline=True))
    return fields


def _panel_from_fields(application: Application, contact: str, settings: Settings) -> Embed:
    mandatory = {f.name: f for f in _mandatory_fields(application, contact)}
    fields = [
        mandatory[FIELD_BATTLETAG],
        EmbedField(name=FIELD_CLASS, value=", ".join(application.classes) or PLACEHOLDER, inline=True),
        EmbedField(name=FIELD_ROLES, value=", ".join(application.roles) or PLACEHOLDER, inline=True),
        mandatory[FIELD_AVAILABILITY],
    ]
    fields += [mandatory[name] for name in (FIELD_RIO, FIELD_WCL) if name in mandatory]
    fields.append(mandatory[FIELD_DISCORD])

    return Embed(
        title=_title(application),
        description=application.notes or PLACEHOLDER,
        color=settings.embed_color,
        fields=fields,
        timestamp=application.submitted_at,
        footer=EmbedFooter(text=settings.embed_footer),
    )


def _panel_from_prebuilt(
    embed: Embed, application: Application, contact: str, settings: Settings
) -> Embed:
    """Keep the client's panel but overwrite or backfill the mandatory subset."""
    panel = embed.model_copy(deep=True)

    title = panel.title or ""
    if application.character not in title or application.realm not in title:
        panel.title = _title(application)
    if not panel.description.strip():
        panel.description = application.notes or PLACEHOLDER
    if not panel.color:
        panel.color = settings.embed_color
    if not panel.timestamp:
        panel.timestamp = application.submitted_at
    if panel.footer is None:
        panel.footer = EmbedFooter(text=settings.embed_footer)

    mandatory = _mandatory_fields(application, contact)
    for field in mandatory:
        panel.set_field(field.name, field.value, inline=field.inline)

    # Surplus client fields give way so the mandatory ones survive the cap.
    surplus = len(panel.fields) - MAX_FIELDS
    if surplus > 0:
        keep = {f.name for f in mandatory}
        kept: list[EmbedField] = []
        for field in reversed(panel.fields):
            if surplus > 0 and field.name not in keep:
                surplus -= 1
                continue
            kept.append(field)
        panel.fields = kept[::-1]
    return panel


def embed_length(panel: Embed) -> int:
    """Characters Discord counts against the per-embed total."""
    total = len(panel.title) + len(panel.description)
    total += sum(len(field.name) + len(field.value) for field in panel.fields)
    if panel.footer is not None:
        total += len(panel.footer.text)
    author = (panel.model_extra or {}).get("author")
    if isinstance(author, dict) and isinstance(author.get("name"), str):
        total += len(author["name"])
    return total


def _shrink(text: str, excess: int) -> str:
    return truncate(text, max(len(text) - excess, len(PLACEHOLDER)))


def _clamp(panel: Embed) -> Embed:
    panel.title = truncate(panel.title, TITLE_MAX)
    panel.description = truncate(panel.description, DESCRIPTION_MAX)
    panel.fields = panel.fields[:MAX_FIELDS]
    for field in panel.fields:
        field.name = truncate(field.name, FIELD_NAME_MAX) or PLACEHOLDER
        field.value = truncate(field.value, FIELD_VALUE_MAX) or PLACEHOLDER
    if panel.footer is not None:
        panel.footer.text = truncate(panel.footer.text, FOOTER_MAX)

    # Over the total: notes give way first, then the footer, then the longest
    # field values, and field names only as a last resort.
    excess = embed_length(panel) - EMBED_TOTAL_MAX
    if excess > 0:
        panel.description = _shrink(panel.description, excess)
    excess = embed_length(panel) - EMBED_TOTAL_MAX
    if excess > 0 and panel.footer is not None:
        panel.footer.text = _shrink(panel.footer.text, excess)
    for field in sorted(panel.fields, key=lambda f: len(f.value), reverse=True):
        excess = embed_length(panel) - EMBED_TOTAL_MAX
        if excess <= 0:
            break
        field.value = _shrink(field.value, excess)
    for field in sorted(panel.fields, key=lambda f: len(f.name), reverse=True):
        excess = embed_length(panel) - EMBED_TOTAL_MAX
        if excess <= 0:
            break
        field.name = _shrink(field.name, excess)
    return panel


def build_message(
    shape: SubmissionShape,
    application: Application,
    contact: str,
    settings: Settings,
) -> WebhookMessage:
    """Lower a validated application into the single outgoing message.

    The headline is always generated here; a client-supplied ``content``
    string is never forwarded. Mentions are locked down to the configured
    recruitment role, or to nothing at all.
    """
    if isinstance(shape, PrebuiltPanel):
        panel = _panel_from_prebuilt(shape.embed, application, contact, settings)
    else:
        panel = _panel_from_fields(application, contact, settings)

    content = headline(application)
    role_id: Optional[str] = settings.discord_role_id.strip() or None
    if role_id:
        content = f"<@&{role_id}> {content}"
        mentions = AllowedMentions(parse=[], roles=[role_id])
    else:
        mentions = AllowedMentions(parse=[])

    return WebhookMessage(
        content=truncate(content, MESSAGE_CONTENT_MAX),
        embeds=[_clamp(panel)],
        allowed_mentions=mentions,
    )
