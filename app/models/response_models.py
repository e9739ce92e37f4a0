"""Response models for the Guild Apply API and the Discord webhook payload."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ApplyResponse(BaseModel):
    """Envelope returned by POST /api/apply."""

    ok: bool = Field(..., description="Whether the submission was accepted")
    error: Optional[str] = Field(default=None, description="Human-readable error")
    stage: Optional[str] = Field(
        default=None,
        description="Pipeline stage that failed",
        examples=["config", "turnstile", "validation", "discord"],
    )
    details: Optional[Any] = Field(default=None, description="Stage-specific diagnostics")
    debug: Optional[bool] = Field(
        default=None,
        description="Set when delivery was skipped and the assembled message is in details",
    )


class HealthResponse(BaseModel):
    """Health-check response."""

    status: str = "ok"
    version: str = "1.0.0"


# ── Discord webhook payload ──────────────────────────────────────────────────


class EmbedField(BaseModel):
    """A single name/value row inside an embed panel."""

    name: str
    value: str
    inline: bool = False


class EmbedFooter(BaseModel):
    model_config = ConfigDict(extra="allow")

    text: str


class Embed(BaseModel):
    """The structured panel rendered inside the delivered notification.

    Extra keys a client puts on a prebuilt panel (author, url, thumbnail)
    are kept and forwarded as-is.
    """

    model_config = ConfigDict(extra="allow")

    title: str = ""
    description: str = ""
    color: int = 0
    fields: list[EmbedField] = Field(default_factory=list)
    timestamp: Optional[str] = None
    footer: Optional[EmbedFooter] = None

    def get_field(self, name: str) -> Optional[EmbedField]:
        """Return the first field with the given name (case-insensitive)."""
        wanted = name.strip().lower()
        for field in self.fields:
            if field.name.strip().lower() == wanted:
                return field
        return None

    def set_field(self, name: str, value: str, inline: bool = False) -> None:
        """Overwrite an existing field's value, or append a new field."""
        existing = self.get_field(name)
        if existing is not None:
            existing.value = value
            return
        self.fields.append(EmbedField(name=name, value=value, inline=inline))


class AllowedMentions(BaseModel):
    """Explicit mention allow-list. Nothing is pinged unless listed here."""

    parse: list[str] = Field(default_factory=list)
    roles: Optional[list[str]] = None


class WebhookMessage(BaseModel):
    """Final message posted to the Discord webhook."""

    content: str
    embeds: list[Embed]
    allowed_mentions: AllowedMentions = Field(default_factory=AllowedMentions)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)
